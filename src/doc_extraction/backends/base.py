"""
Base OCR Backend
================

Abstract base class for OCR engine implementations.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict


@dataclass
class OCRResult:
    """Result from recognizing a single image."""
    text: str
    confidence: float = 0.0  # Engine-native scale, 0-100
    word_count: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Calculate word count if not provided."""
        if self.word_count == 0 and self.text:
            self.word_count = len(self.text.split())


class BaseOCRBackend(ABC):
    """
    Abstract base class for OCR backends.

    All OCR backends must implement:
    - recognize(): Recognize text in a single raster image
    - is_available(): Check if the backend is available

    Optional overrides:
    - terminate(): Release engine resources

    Backends that cannot serve overlapping recognize() calls must leave
    supports_concurrency False; the shared engine then serializes them.
    """

    supports_concurrency: bool = False

    def __init__(self, name: str = "BaseOCR", lang: str = "eng"):
        """
        Initialize backend.

        Args:
            name: Human-readable name for the backend
            lang: Recognition language(s)
        """
        self.name = name
        self.lang = lang

    @abstractmethod
    def recognize(self, image_path: Path, **kwargs) -> OCRResult:
        """
        Recognize text in an image file.

        Args:
            image_path: Path to a PNG/JPEG image
            **kwargs: Backend-specific options

        Returns:
            OCRResult with text and confidence on a 0-100 scale
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if this backend is installed and usable.

        Returns:
            True if backend can be used, False otherwise
        """
        pass

    def terminate(self) -> None:
        """Release engine resources. Default: nothing to release."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', lang='{self.lang}')"
