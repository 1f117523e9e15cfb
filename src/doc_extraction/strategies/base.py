"""
Base Extraction Strategy
========================

Abstract base class for format-specific extraction strategies.
"""

import time
from abc import ABC, abstractmethod

from doc_extraction.errors import ExtractionError
from doc_extraction.models import (
    ExtractionMetadata,
    ExtractionMethod,
    ExtractionOptions,
    ExtractionResult,
)
from doc_extraction.normalizer import count_words, normalize_text


class BaseExtractor(ABC):
    """
    Abstract base class for extraction strategies.

    Subclasses set ``method`` and ``error_class`` and implement extract().
    Results are built with build_result(), which normalizes the raw text
    and counts words on the normalized text.
    """

    method: ExtractionMethod
    error_class: type[ExtractionError]

    @abstractmethod
    def extract(self, content: bytes, options: ExtractionOptions) -> ExtractionResult:
        """
        Extract text from document bytes.

        Args:
            content: Raw document bytes
            options: Per-call extraction options

        Returns:
            ExtractionResult with normalized text and metadata

        Raises:
            ExtractionError: The strategy's typed error on failure
        """
        pass

    def ensure_not_empty(self, content: bytes) -> None:
        """Fail fast on an empty buffer."""
        if not content:
            raise self.error_class(f"Cannot extract {self.method.value}: document is empty")

    def build_result(
        self,
        raw_text: str,
        total_pages: int,
        confidence: float,
        start_time: float,
    ) -> ExtractionResult:
        text = normalize_text(raw_text)
        return ExtractionResult(
            text=text,
            metadata=ExtractionMetadata(
                total_pages=max(1, total_pages),
                word_count=count_words(text),
                extraction_method=self.method,
                processing_time_ms=int((time.time() - start_time) * 1000),
                confidence=min(1.0, max(0.0, confidence)),
            ),
        )
