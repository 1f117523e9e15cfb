"""
Document Processor
==================

Drives one extraction call: fetch the document, resolve its effective
type (applying override flags), dispatch to the matching strategy, and
return normalized text with metadata.

Usage:
    processor = DocumentProcessor(
        fetcher=ContentFetcher(),
        ocr_engine=SharedOCREngine(),
    )
    result = processor.process(url, ExtractionOptions(enable_ocr=True))

Dispatch Matrix:
    | Resolved type          | Default          | force_type_override          |
    |------------------------|------------------|------------------------------|
    | application/pdf        | PDF strategy     | PDF (signature check opt.)   |
    | image/*                | unsupported      | OCR (or PDF, then OCR retry) |
    | DOCX                   | DOCX strategy    | DOCX strategy                |
    | application/msword     | unsupported      | unsupported                  |
    | text/plain             | TXT strategy     | TXT strategy                 |
"""

import logging
from dataclasses import replace

from doc_extraction import sniffer
from doc_extraction.backends import SharedOCREngine
from doc_extraction.errors import (
    ExtractionError,
    OcrFailedError,
    ProcessingFailedError,
    UnsupportedFileTypeError,
)
from doc_extraction.fetcher import ContentFetcher
from doc_extraction.models import (
    ExtractionOptions,
    ExtractionResult,
    FetchedContent,
    ProcessorConfig,
)
from doc_extraction.strategies import (
    DocxExtractor,
    OcrExtractor,
    OCRMode,
    PdfExtractor,
    PlainTextExtractor,
)

logger = logging.getLogger(__name__)

IMAGE_AS_PDF_NOTE = "File was processed with OCR as it was detected as an image"


class DocumentProcessor:
    """Extraction orchestrator. Safe to share between threads."""

    def __init__(
        self,
        fetcher: ContentFetcher | None = None,
        ocr_engine: SharedOCREngine | None = None,
        config: ProcessorConfig | None = None,
    ):
        """
        Initialize the DocumentProcessor.

        Args:
            fetcher: Content fetcher (default: ContentFetcher from environment)
            ocr_engine: Shared OCR engine handle (default: Tesseract engine,
                dropped when config.ocr_available is False)
            config: Processor configuration
        """
        self.fetcher = fetcher or ContentFetcher()
        self.config = config or ProcessorConfig()
        if self.config.ocr_available:
            self.ocr_engine = ocr_engine or SharedOCREngine()
        else:
            self.ocr_engine = None

        self.ocr = OcrExtractor(self.ocr_engine, dpi=self.config.ocr_dpi)
        self.pdf = PdfExtractor(ocr=self.ocr, config=self.config)
        self.docx = DocxExtractor()
        self.txt = PlainTextExtractor()

    def process(
        self,
        url: str,
        options: ExtractionOptions | None = None,
    ) -> ExtractionResult:
        """
        Extract text from the document at ``url``.

        Args:
            url: Document URL
            options: Extraction options

        Returns:
            ExtractionResult with normalized text and metadata

        Raises:
            ExtractionError: Typed error from the fetcher or a strategy, or
                ProcessingFailedError wrapping any other exception
        """
        options = options or ExtractionOptions()

        try:
            fetched = self.fetcher.fetch(url, filename_hint=options.filename)
            try:
                return self._extract(fetched, options)
            except UnsupportedFileTypeError as e:
                if options.force_type_override and sniffer.is_image(e.mime_type):
                    logger.info(
                        "File detected as %s but flagged as PDF, retrying with OCR", e.mime_type
                    )
                    return self._run_ocr(fetched.content, options, OCRMode.IMAGE_AS_PDF)
                raise
        except ExtractionError:
            raise
        except Exception as e:
            logger.exception("Unexpected error while processing %s", url)
            raise ProcessingFailedError(f"Failed to process document: {e}", cause=e) from e

    def shutdown(self) -> None:
        """Terminate the shared OCR engine, if any."""
        if self.ocr_engine is not None:
            self.ocr_engine.terminate()

    def _extract(self, fetched: FetchedContent, options: ExtractionOptions) -> ExtractionResult:
        mime_type = fetched.mime_type
        content = fetched.content

        if options.use_direct_ocr and sniffer.is_image(mime_type):
            logger.info("Direct OCR requested for %s", mime_type)
            return self._run_ocr(content, options, OCRMode.DIRECT_IMAGE)

        skip_signature = False
        if options.force_type_override and sniffer.is_image(mime_type):
            if options.skip_signature_validation:
                logger.info("Treating %s as a converted PDF image, using OCR", mime_type)
                return self._run_ocr(content, options, OCRMode.IMAGE_AS_PDF)
            logger.info("Reclassifying %s as application/pdf", mime_type)
            mime_type = sniffer.PDF
        elif options.force_type_override and options.skip_signature_validation:
            skip_signature = True

        logger.info("Processing %s (%d bytes)", mime_type, fetched.size_bytes)

        if mime_type == sniffer.PDF:
            pdf_options = replace(options, skip_signature_validation=skip_signature)
            return self.pdf.extract(content, pdf_options)
        if mime_type == sniffer.DOCX:
            return self.docx.extract(content, options)
        if mime_type == sniffer.DOC:
            raise UnsupportedFileTypeError(
                "Legacy .doc files are not supported. Please convert the document to DOCX.",
                mime_type=mime_type,
            )
        if mime_type == sniffer.TEXT:
            return self.txt.extract(content, options)

        raise UnsupportedFileTypeError(f"Unsupported file type: {mime_type}", mime_type=mime_type)

    def _run_ocr(self, content: bytes, options: ExtractionOptions, mode: OCRMode) -> ExtractionResult:
        if self.ocr_engine is None:
            raise OcrFailedError("Failed to extract text using OCR: OCR is not available")
        result = self.ocr.extract(content, options, mode=mode)
        if mode == OCRMode.IMAGE_AS_PDF:
            result.note = IMAGE_AS_PDF_NOTE
        return result
