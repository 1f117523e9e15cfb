"""
PDF Native Text Strategy
========================

Reads the embedded text layer of a PDF with PyMuPDF.

A PDF whose text layer holds fewer than ``sparse_text_threshold`` words is
most likely a scanned image wrapped in a PDF container; when OCR is
enabled and available it is handed to the OCR strategy instead.
"""

import logging
import time

import fitz  # PyMuPDF

from doc_extraction.errors import PdfExtractionFailedError, UnsupportedFileTypeError
from doc_extraction.models import (
    ExtractionMethod,
    ExtractionOptions,
    ExtractionResult,
    ProcessorConfig,
)
from doc_extraction.normalizer import count_words
from doc_extraction.sniffer import classify, is_image

from .base import BaseExtractor
from .ocr import OcrExtractor, OCRMode

logger = logging.getLogger(__name__)

PDF_SIGNATURE = b"%PDF"
NATIVE_TEXT_CONFIDENCE = 0.95


class PdfExtractor(BaseExtractor):
    """Native PDF text extraction with OCR escalation."""

    method = ExtractionMethod.TEXT
    error_class = PdfExtractionFailedError

    def __init__(
        self,
        ocr: OcrExtractor | None = None,
        config: ProcessorConfig | None = None,
    ):
        """
        Initialize the PDF strategy.

        Args:
            ocr: OCR strategy used for sparse or unreadable PDFs
            config: Processor configuration (threshold, OCR capability flag)
        """
        self.ocr = ocr
        self.config = config or ProcessorConfig()

    def ocr_available(self) -> bool:
        return self.config.ocr_available and self.ocr is not None and self.ocr.is_available()

    def extract(self, content: bytes, options: ExtractionOptions) -> ExtractionResult:
        start_time = time.time()

        self.ensure_not_empty(content)
        if not options.skip_signature_validation:
            self._validate_signature(content)

        try:
            raw_text, total_pages = self._read_text_layer(content, options.max_pages)
        except Exception as e:
            logger.error("Error in PDF text extraction: %s", e)
            if options.enable_ocr and self.ocr_available():
                logger.info("Falling back to OCR due to error in text extraction")
                return self.ocr.extract(content, options, mode=OCRMode.PDF_PAGES)
            raise PdfExtractionFailedError(
                f"Failed to extract text from PDF: {e}", cause=e
            ) from e

        word_count = count_words(raw_text)
        if word_count < self.config.sparse_text_threshold and options.enable_ocr:
            if self.ocr_available():
                logger.info(
                    "Text extraction yielded %d words (threshold %d). Attempting OCR...",
                    word_count,
                    self.config.sparse_text_threshold,
                )
                return self.ocr.extract(content, options, mode=OCRMode.PDF_PAGES)
            logger.warning("Sparse PDF text (%d words) but OCR is not available", word_count)

        return self.build_result(
            raw_text,
            total_pages=total_pages,
            confidence=NATIVE_TEXT_CONFIDENCE,
            start_time=start_time,
        )

    def _validate_signature(self, content: bytes) -> None:
        """
        Reject buffers that do not start with %PDF.

        Raises:
            UnsupportedFileTypeError: If the bytes are actually an image
            PdfExtractionFailedError: Otherwise, flagged as invalid format
        """
        if content[:4] == PDF_SIGNATURE:
            return

        sniffed = classify(content)
        if is_image(sniffed):
            raise UnsupportedFileTypeError(
                f"Unsupported file type: {sniffed} (expected application/pdf)",
                mime_type=sniffed,
            )
        raise PdfExtractionFailedError(
            f"Failed to extract text from PDF: invalid PDF format (detected {sniffed or 'unknown'})",
            invalid_format=True,
        )

    @staticmethod
    def _read_text_layer(content: bytes, max_pages: int) -> tuple[str, int]:
        """Return the text of the first max_pages pages and the page count."""
        doc = fitz.open(stream=content, filetype="pdf")
        try:
            total_pages = len(doc)
            page_texts = [
                doc[page_num].get_text()
                for page_num in range(min(total_pages, max_pages))
            ]
        finally:
            doc.close()
        return "\n\n".join(page_texts), total_pages
