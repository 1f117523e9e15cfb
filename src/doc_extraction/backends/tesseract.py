"""
Tesseract OCR Backend
=====================

Local OCR using Tesseract through pytesseract. Free and offline.
"""

import logging
import os
import time
from pathlib import Path
from typing import List, Optional

from PIL import Image
import pytesseract

from .base import BaseOCRBackend, OCRResult

logger = logging.getLogger(__name__)


class TesseractBackend(BaseOCRBackend):
    """
    OCR backend using a local Tesseract installation.

    Every recognition runs in its own tesseract subprocess, so concurrent
    calls are safe.

    Environment variables:
        TESSERACT_PATH: Path to tesseract binary (default: tesseract on PATH)
        TESSERACT_LANG: Languages to use (default: eng)
    """

    supports_concurrency = True

    def __init__(
        self,
        lang: Optional[str] = None,
        tesseract_path: Optional[str] = None,
        config: str = "",
    ):
        """
        Initialize Tesseract backend.

        Args:
            lang: OCR languages (e.g., "eng" or "deu+eng")
            tesseract_path: Path to tesseract binary
            config: Extra tesseract command line options
        """
        super().__init__(
            name="Tesseract",
            lang=lang or os.getenv("TESSERACT_LANG", "eng"),
        )
        self.tesseract_path = tesseract_path or os.getenv("TESSERACT_PATH", "tesseract")
        self.config = config

        pytesseract.pytesseract.tesseract_cmd = self.tesseract_path

    def is_available(self) -> bool:
        """Check if Tesseract is installed and accessible."""
        try:
            pytesseract.get_tesseract_version()
            return True
        except Exception as e:
            logger.warning("Tesseract not available at %s: %s", self.tesseract_path, e)
            return False

    def recognize(self, image_path: Path, **kwargs) -> OCRResult:
        """
        Recognize text in an image file.

        Args:
            image_path: Path to image file
            **kwargs: Additional options (lang, config)

        Returns:
            OCRResult with text and mean word confidence (0-100)
        """
        start_time = time.time()
        lang = kwargs.get("lang", self.lang)
        config = kwargs.get("config", self.config)

        with Image.open(image_path) as image:
            data = pytesseract.image_to_data(
                image, lang=lang, config=config, output_type=pytesseract.Output.DICT
            )
            text = pytesseract.image_to_string(image, lang=lang, config=config)

        confidence = self._mean_confidence(data.get("conf", []))
        processing_time = (time.time() - start_time) * 1000

        return OCRResult(
            text=text.strip(),
            confidence=confidence,
            metadata={
                "lang": lang,
                "processing_time_ms": processing_time,
            },
        )

    @staticmethod
    def _mean_confidence(raw_confidences: List) -> float:
        """Average the word confidences, ignoring tesseract's -1 entries."""
        confidences = []
        for value in raw_confidences:
            try:
                conf = float(value)
            except (TypeError, ValueError):
                continue
            if conf >= 0:
                confidences.append(conf)
        return sum(confidences) / len(confidences) if confidences else 0.0

