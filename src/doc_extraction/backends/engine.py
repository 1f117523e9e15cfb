"""
Shared OCR Engine
=================

Process-wide OCR engine handle. The backend is created lazily on first
use (engine startup is expensive) and reused by every later call.
"""

import logging
import threading
from pathlib import Path
from typing import Callable

from doc_extraction.errors import OcrFailedError

from .base import BaseOCRBackend, OCRResult
from .tesseract import TesseractBackend

logger = logging.getLogger(__name__)

BackendFactory = Callable[[str], BaseOCRBackend]


def _tesseract_factory(lang: str) -> BaseOCRBackend:
    return TesseractBackend(lang=lang)


class SharedOCREngine:
    """
    Thread-safe, lazily initialized OCR engine handle.

    Usage:
        engine = SharedOCREngine(language="eng")
        result = engine.recognize(Path("page1.png"))
        engine.terminate()
    """

    def __init__(
        self,
        factory: BackendFactory | None = None,
        language: str = "eng",
    ):
        self._factory = factory or _tesseract_factory
        self.language = language
        self._backend: BaseOCRBackend | None = None
        self._init_lock = threading.Lock()
        self._recognize_lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._backend is not None

    def get_backend(self) -> BaseOCRBackend:
        """
        Return the shared backend, creating it on first use.

        Raises:
            OcrFailedError: If the backend cannot be created or is unavailable
        """
        with self._init_lock:
            if self._backend is None:
                logger.info("Initializing OCR engine (language=%s)", self.language)
                try:
                    backend = self._factory(self.language)
                except Exception as e:
                    raise OcrFailedError(f"Failed to start OCR engine: {e}", cause=e) from e
                if not backend.is_available():
                    raise OcrFailedError(f"OCR engine {backend.name} is not available")
                self._backend = backend
            return self._backend

    def is_available(self) -> bool:
        """True if the engine is running or can be started."""
        try:
            self.get_backend()
        except OcrFailedError as e:
            logger.warning("OCR unavailable: %s", e.message)
            return False
        return True

    def recognize(self, image_path: Path) -> OCRResult:
        """Recognize one image through the shared backend."""
        backend = self.get_backend()
        if backend.supports_concurrency:
            return backend.recognize(image_path)
        with self._recognize_lock:
            return backend.recognize(image_path)

    def terminate(self) -> None:
        """Terminate and clear the backend. Safe to call when none exists."""
        with self._init_lock:
            backend, self._backend = self._backend, None
        if backend is not None:
            logger.info("Terminating OCR engine %s", backend.name)
            backend.terminate()
