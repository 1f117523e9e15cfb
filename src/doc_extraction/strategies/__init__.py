"""
Extraction Strategies
=====================

One strategy per supported format. Every strategy returns normalized text
and raises its own typed error on failure.
"""

from .base import BaseExtractor
from .ocr import OcrExtractor, OCRMode, preprocess_image
from .pdf import PdfExtractor
from .plain_text import PlainTextExtractor
from .word import DocxExtractor

__all__ = [
    "BaseExtractor",
    "DocxExtractor",
    "OCRMode",
    "OcrExtractor",
    "PdfExtractor",
    "PlainTextExtractor",
    "preprocess_image",
]
