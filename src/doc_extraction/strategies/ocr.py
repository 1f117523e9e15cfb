"""
OCR Extraction Strategy
=======================

Optical character recognition through the shared OCR engine.

Modes:
- IMAGE_AS_PDF: the buffer is a PDF that the storage provider rasterized
  into a single image; it is recognized as one image.
- DIRECT_IMAGE: the buffer is an image the caller asked to OCR directly.
- PDF_PAGES: the buffer is a PDF; its pages are rasterized with PyMuPDF
  and recognized one after another.

Image buffers are pre-processed (grayscale, autocontrast, sharpen) before
recognition. Scratch files live in a per-call temporary directory that is
removed on every exit path.
"""

import logging
import tempfile
import time
from enum import Enum
from io import BytesIO
from pathlib import Path

import fitz  # PyMuPDF
from PIL import Image, ImageFilter, ImageOps

from doc_extraction.backends import SharedOCREngine
from doc_extraction.errors import OcrFailedError
from doc_extraction.models import ExtractionMethod, ExtractionOptions, ExtractionResult

from .base import BaseExtractor

logger = logging.getLogger(__name__)


class OCRMode(Enum):
    """How the input buffer is turned into images."""

    IMAGE_AS_PDF = "image_as_pdf"
    DIRECT_IMAGE = "direct_image"
    PDF_PAGES = "pdf_pages"


class OcrExtractor(BaseExtractor):
    """Extract text by OCR through a SharedOCREngine."""

    method = ExtractionMethod.OCR
    error_class = OcrFailedError

    def __init__(self, engine: SharedOCREngine | None, dpi: int = 300):
        """
        Initialize the OCR strategy.

        Args:
            engine: Shared OCR engine handle (None when OCR is not installed)
            dpi: Resolution used to rasterize PDF pages
        """
        self.engine = engine
        self.dpi = dpi

    def is_available(self) -> bool:
        return self.engine is not None and self.engine.is_available()

    def extract(
        self,
        content: bytes,
        options: ExtractionOptions,
        mode: OCRMode = OCRMode.PDF_PAGES,
    ) -> ExtractionResult:
        """
        Run OCR over the buffer.

        Args:
            content: PDF or image bytes
            options: Per-call extraction options (max_pages applies to PDF_PAGES)
            mode: How to turn the buffer into images

        Returns:
            ExtractionResult with method "ocr" and engine confidence rescaled to 0-1

        Raises:
            OcrFailedError: Engine unavailable or recognition failed
        """
        start_time = time.time()
        self.ensure_not_empty(content)
        if self.engine is None:
            raise OcrFailedError("Failed to extract text using OCR: no OCR engine configured")

        logger.info("Starting OCR (%s, %d bytes)", mode.value, len(content))

        try:
            with tempfile.TemporaryDirectory(prefix="doc-ocr-") as scratch:
                scratch_dir = Path(scratch)
                if mode == OCRMode.PDF_PAGES:
                    images, total_pages = self._rasterize_pdf(content, scratch_dir, options.max_pages)
                else:
                    images, total_pages = [self._prepare_image(content, scratch_dir)], 1

                texts: list[str] = []
                confidences: list[float] = []
                for image_path in images:
                    result = self.engine.recognize(image_path)
                    texts.append(result.text)
                    confidences.append(result.confidence)
        except OcrFailedError:
            raise
        except Exception as e:
            logger.error("OCR extraction failed: %s", e)
            raise OcrFailedError(f"Failed to extract text using OCR: {e}", cause=e) from e

        confidence = (sum(confidences) / len(confidences) / 100) if confidences else 0.0
        logger.info(
            "OCR completed: pages=%d, confidence=%.2f, time=%.0fms",
            len(images),
            confidence,
            (time.time() - start_time) * 1000,
        )
        return self.build_result(
            "\n\n".join(texts),
            total_pages=total_pages,
            confidence=confidence,
            start_time=start_time,
        )

    def _prepare_image(self, content: bytes, scratch_dir: Path) -> Path:
        """Write the buffer as an image, pre-processed when Pillow can read it."""
        image_path = scratch_dir / "page1.png"
        try:
            with Image.open(BytesIO(content)) as image:
                processed = preprocess_image(image)
                processed.save(image_path, format="PNG")
        except Exception as e:
            logger.warning("Image pre-processing failed, using raw bytes: %s", e)
            image_path.write_bytes(content)
        return image_path

    def _rasterize_pdf(
        self,
        content: bytes,
        scratch_dir: Path,
        max_pages: int,
    ) -> tuple[list[Path], int]:
        """Render up to max_pages PDF pages to PNG files."""
        doc = fitz.open(stream=content, filetype="pdf")
        try:
            total_pages = len(doc)
            zoom = self.dpi / 72  # PDF default is 72 DPI
            matrix = fitz.Matrix(zoom, zoom)

            paths: list[Path] = []
            for page_num in range(min(total_pages, max_pages)):
                pix = doc[page_num].get_pixmap(matrix=matrix)
                image_path = scratch_dir / f"page{page_num + 1}.png"
                pix.save(str(image_path))
                paths.append(image_path)
        finally:
            doc.close()

        if not paths:
            raise OcrFailedError("Failed to extract text using OCR: PDF has no pages to render")
        return paths, total_pages


def preprocess_image(image: Image.Image) -> Image.Image:
    """Grayscale, stretch contrast and sharpen an image for recognition."""
    gray = ImageOps.grayscale(image)
    normalized = ImageOps.autocontrast(gray)
    return normalized.filter(ImageFilter.SHARPEN)
