"""
OCR Backends
============

OCR engine implementations and the shared, lazily initialized engine handle.

Available Backends:
- TesseractBackend: Local Tesseract OCR (offline, free)

Usage:
    from doc_extraction.backends import SharedOCREngine, TesseractBackend

    engine = SharedOCREngine(factory=lambda lang: TesseractBackend(lang=lang))
    if engine.is_available():
        result = engine.recognize(Path("scan.png"))
        print(result.text, result.confidence)
"""

from .base import BaseOCRBackend, OCRResult
from .engine import SharedOCREngine
from .tesseract import TesseractBackend

__all__ = [
    "BaseOCRBackend",
    "OCRResult",
    "SharedOCREngine",
    "TesseractBackend",
]
