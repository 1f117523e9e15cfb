"""
Data Models for Document Extraction
===================================

Shared data models for the extraction pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ExtractionMethod(Enum):
    """Method that produced the returned text."""

    TEXT = "text"  # Native PDF text layer
    OCR = "ocr"
    DOCX = "docx"
    TXT = "txt"


@dataclass
class ExtractionOptions:
    """Per-call extraction options."""

    enable_ocr: bool = True
    force_type_override: bool = False  # Trust the PDF filename over sniffed image bytes
    skip_signature_validation: bool = False
    use_direct_ocr: bool = False  # OCR image bytes without native extraction
    max_pages: int = 100
    filename: str | None = None
    document_id: str | None = None

    @classmethod
    def from_request(
        cls,
        filename: str | None = None,
        file_type: str | None = None,
        enable_ocr: bool = True,
        document_id: str | None = None,
    ) -> "ExtractionOptions":
        """
        Build options for an API request.

        A request that names a PDF (by filename or file type) may have been
        silently rasterized by the storage provider, so both override flags
        are set for it.
        """
        is_pdf_file = bool(
            (filename and filename.lower().endswith(".pdf"))
            or (file_type and file_type.lower() == "pdf")
        )
        return cls(
            enable_ocr=enable_ocr,
            force_type_override=is_pdf_file,
            skip_signature_validation=is_pdf_file,
            filename=filename,
            document_id=document_id,
        )


@dataclass
class ProcessorConfig:
    """Configuration for DocumentProcessor and its strategies."""

    sparse_text_threshold: int = 10
    ocr_available: bool = True
    ocr_dpi: int = 300


@dataclass
class FetchedContent:
    """Bytes downloaded for one extraction call."""

    content: bytes
    mime_type: str
    source_url: str
    declared_mime_type: str | None = None
    filename: str | None = None
    size_bytes: int = field(init=False)

    def __post_init__(self) -> None:
        self.size_bytes = len(self.content)


@dataclass
class ExtractionMetadata:
    """Metadata describing how the text was obtained."""

    total_pages: int
    word_count: int
    extraction_method: ExtractionMethod
    processing_time_ms: int
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys used by API consumers."""
        return {
            "totalPages": self.total_pages,
            "wordCount": self.word_count,
            "extractionMethod": self.extraction_method.value,
            "processingTimeMs": self.processing_time_ms,
            "confidence": self.confidence,
        }


@dataclass
class ExtractionResult:
    """Normalized text plus metadata."""

    text: str
    metadata: ExtractionMetadata
    note: str | None = None
