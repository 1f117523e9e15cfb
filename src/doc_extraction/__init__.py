"""
Document Extraction Service
===========================

Extracts plain text from remotely hosted documents (PDF, DOCX, plain text
and scanned images delivered as PDF), falling back to OCR when the native
text layer is too sparse.

Features:
- Multi-strategy download for storage providers that rewrite URLs
- Content-type sniffing that trusts bytes over filenames and headers
- Native PDF text extraction with OCR escalation for scanned documents
- Deterministic text normalization with paragraph reconstruction
- Typed errors with stable codes and HTTP status

Basic Usage:
    from doc_extraction import DocumentProcessor, ExtractionOptions

    processor = DocumentProcessor()
    result = processor.process("https://example.com/report.pdf")
    print(result.text)
    print(result.metadata.extraction_method)  # ExtractionMethod.TEXT

Advanced Usage:
    from doc_extraction import ContentFetcher, DocumentProcessor, ProcessorConfig
    from doc_extraction.backends import SharedOCREngine

    processor = DocumentProcessor(
        fetcher=ContentFetcher(timeout=30),
        ocr_engine=SharedOCREngine(language="deu+eng"),
        config=ProcessorConfig(sparse_text_threshold=20),
    )
    options = ExtractionOptions.from_request(filename="scan.pdf")
    result = processor.process(url, options)
"""

__version__ = "0.1.0"

from .errors import (
    DocxExtractionFailedError,
    DownloadFailedError,
    ErrorCode,
    ExtractionError,
    OcrFailedError,
    PdfExtractionFailedError,
    ProcessingFailedError,
    TxtExtractionFailedError,
    UnsupportedFileTypeError,
)
from .fetcher import CloudinaryCredentials, ContentFetcher
from .models import (
    ExtractionMetadata,
    ExtractionMethod,
    ExtractionOptions,
    ExtractionResult,
    FetchedContent,
    ProcessorConfig,
)
from .normalizer import normalize_text
from .processor import DocumentProcessor
from .sniffer import classify

__all__ = [
    # Version
    "__version__",
    # Processing
    "DocumentProcessor",
    "ProcessorConfig",
    "ExtractionOptions",
    "ExtractionResult",
    "ExtractionMetadata",
    "ExtractionMethod",
    # Fetching
    "ContentFetcher",
    "CloudinaryCredentials",
    "FetchedContent",
    # Text
    "classify",
    "normalize_text",
    # Errors
    "ErrorCode",
    "ExtractionError",
    "DownloadFailedError",
    "UnsupportedFileTypeError",
    "PdfExtractionFailedError",
    "DocxExtractionFailedError",
    "TxtExtractionFailedError",
    "OcrFailedError",
    "ProcessingFailedError",
]
