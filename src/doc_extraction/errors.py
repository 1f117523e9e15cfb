"""
Extraction Errors
=================

Closed set of typed errors raised by the extraction pipeline.

Every error carries a stable ``code`` (used in the JSON envelope), a
human-readable ``message`` and the ``http_status`` the service layer
should answer with.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes exposed to API consumers."""

    DOWNLOAD_FAILED = "DOWNLOAD_FAILED"
    UNSUPPORTED_FILE_TYPE = "UNSUPPORTED_FILE_TYPE"
    PDF_EXTRACTION_FAILED = "PDF_EXTRACTION_FAILED"
    DOCX_EXTRACTION_FAILED = "DOCX_EXTRACTION_FAILED"
    TXT_EXTRACTION_FAILED = "TXT_EXTRACTION_FAILED"
    OCR_FAILED = "OCR_FAILED"
    PROCESSING_FAILED = "PROCESSING_FAILED"


class ExtractionError(Exception):
    """Base class for all pipeline errors."""

    code: ErrorCode = ErrorCode.PROCESSING_FAILED
    http_status: int = 500

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Serialize into the error part of the API envelope."""
        payload: dict[str, Any] = {
            "error": self.code.value,
            "message": self.message,
        }
        if self.cause is not None:
            payload["originalError"] = str(self.cause)
        return payload

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


class DownloadFailedError(ExtractionError):
    """All fetch strategies were exhausted."""

    code = ErrorCode.DOWNLOAD_FAILED

    def __init__(
        self,
        message: str,
        original_url: str,
        cause: BaseException | None = None,
    ):
        super().__init__(message, cause)
        self.original_url = original_url

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["originalUrl"] = self.original_url
        return payload


class UnsupportedFileTypeError(ExtractionError):
    """The resolved content type has no extraction strategy."""

    code = ErrorCode.UNSUPPORTED_FILE_TYPE
    http_status = 400

    def __init__(self, message: str, mime_type: str | None = None):
        super().__init__(message)
        self.mime_type = mime_type


class PdfExtractionFailedError(ExtractionError):
    """Native PDF text extraction failed and OCR could not take over."""

    code = ErrorCode.PDF_EXTRACTION_FAILED

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        invalid_format: bool = False,
    ):
        super().__init__(message, cause)
        self.invalid_format = invalid_format


class DocxExtractionFailedError(ExtractionError):
    code = ErrorCode.DOCX_EXTRACTION_FAILED


class TxtExtractionFailedError(ExtractionError):
    code = ErrorCode.TXT_EXTRACTION_FAILED


class OcrFailedError(ExtractionError):
    """OCR engine unavailable or recognition failed."""

    code = ErrorCode.OCR_FAILED


class ProcessingFailedError(ExtractionError):
    """Wraps any unclassified exception raised during orchestration."""

    code = ErrorCode.PROCESSING_FAILED
