"""
Document Extraction Service - FastAPI Application

Minimal REST API that extracts text from remotely hosted documents.
"""

import logging
import os
import secrets
import threading
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

from doc_extraction import (
    DocumentProcessor,
    ExtractionError,
    ExtractionOptions,
    __version__,
)
from doc_extraction.backends import SharedOCREngine

logger = logging.getLogger(__name__)

FALLBACK_SUGGESTION = "Try again later or contact support"

# Processor is created on first use and shared by all requests
_processor: DocumentProcessor | None = None
_processor_lock = threading.Lock()


def get_processor() -> DocumentProcessor:
    """Get or create the shared DocumentProcessor."""
    global _processor

    if _processor is None:
        with _processor_lock:
            if _processor is None:
                _processor = DocumentProcessor(
                    ocr_engine=SharedOCREngine(language=os.getenv("TESSERACT_LANG", "eng")),
                )
    return _processor


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _processor is not None:
        _processor.shutdown()


# Initialize FastAPI app
app = FastAPI(
    title="Document Extraction Service",
    description="Text extraction from remote PDF, DOCX and text documents with OCR fallback",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Pydantic Models
# ============================================================================


class ExtractRequest(BaseModel):
    """Text extraction request."""

    model_config = ConfigDict(populate_by_name=True)

    url: str | None = Field(default=None, alias="cloudinaryUrl")
    document_id: str | None = Field(default=None, alias="documentId")
    filename: str | None = None
    file_type: str | None = Field(default=None, alias="fileType")
    enable_ocr: bool = Field(default=True, alias="enableOCR")


class MetadataResponse(BaseModel):
    """Extraction metadata in camelCase."""

    model_config = ConfigDict(populate_by_name=True)

    total_pages: int = Field(alias="totalPages")
    word_count: int = Field(alias="wordCount")
    extraction_method: str = Field(alias="extractionMethod")
    processing_time_ms: int = Field(alias="processingTimeMs")
    confidence: float


class ExtractionData(BaseModel):
    """Payload of a successful extraction."""

    model_config = ConfigDict(populate_by_name=True)

    document_id: str = Field(alias="documentId")
    extracted_text: str = Field(alias="extractedText")
    metadata: MetadataResponse
    note: str | None = None


class ExtractResponse(BaseModel):
    """Text extraction response."""

    success: bool = True
    data: ExtractionData


class HealthData(BaseModel):
    """Process health data."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = "ok"
    uptime: float
    timestamp: int
    version: str = __version__
    ocr_available: bool = Field(alias="ocrAvailable")


class HealthResponse(BaseModel):
    """Health check response."""

    success: bool = True
    data: HealthData


class ErrorResponse(BaseModel):
    """Error response."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    error: str
    message: str
    fallback_suggestion: str | None = Field(default=None, alias="fallbackSuggestion")


# ============================================================================
# Global state
# ============================================================================

_start_time = time.time()


# ============================================================================
# Authentication
# ============================================================================


def require_api_key(authorization: str | None = Header(default=None)) -> None:
    """Check the bearer token against the API_KEY environment variable."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=401,
            detail={"error": "UNAUTHORIZED", "message": "Missing or invalid authorization token"},
        )

    token = authorization.split(" ", 1)[1]
    expected = os.getenv("API_KEY")
    if not expected or not secrets.compare_digest(token, expected):
        raise HTTPException(
            status_code=403,
            detail={"error": "FORBIDDEN", "message": "Invalid API key"},
        )


# ============================================================================
# Endpoints
# ============================================================================


@app.get("/", tags=["System"])
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Document Extraction Service",
        "status": "Running",
        "version": __version__,
        "endpoints": ["/api/extract", "/api/health"],
    }


@app.get("/api/health", response_model=HealthResponse, tags=["System"])
def health_check(processor: DocumentProcessor = Depends(get_processor)):
    """Health check endpoint for container orchestration."""
    return HealthResponse(
        data=HealthData(
            uptime=time.time() - _start_time,
            timestamp=int(time.time() * 1000),
            ocr_available=processor.ocr.is_available(),
        )
    )


@app.post(
    "/api/extract",
    response_model=ExtractResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    dependencies=[Depends(require_api_key)],
    tags=["Extraction"],
)
def extract_text(
    request: ExtractRequest,
    processor: DocumentProcessor = Depends(get_processor),
):
    """
    Extract text from a remotely hosted document.

    Files named or typed as PDF are processed with override flags: when the
    storage provider has turned the PDF into an image, the image is OCRed.
    """
    if not request.url:
        return _error(400, "MISSING_URL", "Document URL is required")
    if not request.document_id:
        return _error(400, "MISSING_DOCUMENT_ID", "Document ID is required")

    logger.info("Processing document ID: %s, URL: %s", request.document_id, request.url)

    options = ExtractionOptions.from_request(
        filename=request.filename,
        file_type=request.file_type,
        enable_ocr=request.enable_ocr,
        document_id=request.document_id,
    )
    result = processor.process(request.url, options)
    metadata = result.metadata.to_dict()

    return ExtractResponse(
        data=ExtractionData(
            document_id=request.document_id,
            extracted_text=result.text,
            metadata=MetadataResponse(**metadata),
            note=result.note,
        )
    )


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": code, "message": message},
    )


# ============================================================================
# Error handlers
# ============================================================================


@app.exception_handler(ExtractionError)
async def extraction_error_handler(request, exc: ExtractionError):
    """Map typed extraction errors to their status code and envelope."""
    logger.error("Error processing document: %r", exc)
    return JSONResponse(
        status_code=exc.http_status,
        content={
            "success": False,
            **exc.to_dict(),
            "fallbackSuggestion": FALLBACK_SUGGESTION,
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    """Custom HTTP exception handler."""
    detail = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, **detail},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    """General exception handler."""
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "INTERNAL_SERVER_ERROR",
            "message": "An unexpected error occurred",
            "fallbackSuggestion": FALLBACK_SUGGESTION,
        },
    )
