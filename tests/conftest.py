"""
Test Configuration and Fixtures for doc-extraction-service

This module provides shared fixtures, markers, and configuration for all tests.
"""

import io
import tempfile
from pathlib import Path
from typing import Generator, List
from unittest.mock import MagicMock

import pytest

from doc_extraction.backends.base import BaseOCRBackend, OCRResult
from doc_extraction.backends.engine import SharedOCREngine
from doc_extraction.models import FetchedContent
from doc_extraction.sniffer import resolve_mime_type


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, no external deps)")
    config.addinivalue_line("markers", "integration: Integration tests (may need Tesseract)")
    config.addinivalue_line("markers", "api: API/service tests")
    config.addinivalue_line("markers", "slow: Slow tests (skip with -m 'not slow')")


# =============================================================================
# Path Fixtures
# =============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory(prefix="doc_extraction_test_") as tmpdir:
        yield Path(tmpdir)


# =============================================================================
# Sample Text
# =============================================================================

SAMPLE_SENTENCES = [
    "The quarterly report describes revenue growth across all regions.",
    "Operating costs remained stable while headcount increased slightly.",
    "Customer retention improved after the new onboarding program launched.",
    "Management expects similar results during the next fiscal period.",
]


def words_text(count: int) -> str:
    """Build a lowercase sentence with exactly ``count`` words."""
    return " ".join(f"word{i}" for i in range(count)) + "."


# =============================================================================
# Document Creation Fixtures
# =============================================================================

@pytest.fixture
def make_pdf_bytes():
    """Factory fixture to create PDF bytes with one text line per entry."""
    def _create(pages: List[List[str]] | None = None) -> bytes:
        import fitz

        pages = pages if pages is not None else [SAMPLE_SENTENCES]
        doc = fitz.open()
        for lines in pages:
            page = doc.new_page()
            y_pos = 72
            for line in lines:
                page.insert_text((72, y_pos), line, fontsize=11)
                y_pos += 18
        data = doc.tobytes()
        doc.close()
        return data
    return _create


@pytest.fixture
def make_png_bytes():
    """Factory fixture to create PNG bytes (optionally with drawn text)."""
    def _create(text: str | None = None, size=(400, 120)) -> bytes:
        from PIL import Image, ImageDraw

        img = Image.new("RGB", size, color="white")
        if text:
            ImageDraw.Draw(img).text((10, 40), text, fill="black")
        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return buffer.getvalue()
    return _create


@pytest.fixture
def make_docx_bytes():
    """Factory fixture to create DOCX bytes."""
    def _create(paragraphs: List[str] | None = None, table: List[List[str]] | None = None) -> bytes:
        from docx import Document

        document = Document()
        for paragraph in paragraphs if paragraphs is not None else SAMPLE_SENTENCES:
            document.add_paragraph(paragraph)
        if table:
            grid = document.add_table(rows=len(table), cols=len(table[0]))
            for r, row in enumerate(table):
                for c, value in enumerate(row):
                    grid.cell(r, c).text = value
        buffer = io.BytesIO()
        document.save(buffer)
        return buffer.getvalue()
    return _create


# =============================================================================
# OCR Fakes
# =============================================================================

class FakeOCRBackend(BaseOCRBackend):
    """In-memory OCR backend recording every recognized image."""

    def __init__(
        self,
        text: str = "Recognized text from the scanned page.",
        confidence: float = 87.0,
        available: bool = True,
        should_fail: bool = False,
        lang: str = "eng",
    ):
        super().__init__(name="FakeOCR", lang=lang)
        self._text = text
        self._confidence = confidence
        self._available = available
        self._should_fail = should_fail
        self.recognize_calls: List[Path] = []
        self.seen_files: List[bytes] = []
        self.terminated = False

    def is_available(self) -> bool:
        return self._available

    def recognize(self, image_path: Path, **kwargs) -> OCRResult:
        self.recognize_calls.append(image_path)
        self.seen_files.append(Path(image_path).read_bytes())
        if self._should_fail:
            raise RuntimeError("Fake OCR failure")
        return OCRResult(text=self._text, confidence=self._confidence)

    def terminate(self) -> None:
        self.terminated = True


@pytest.fixture
def fake_backend() -> FakeOCRBackend:
    return FakeOCRBackend()


@pytest.fixture
def fake_engine(fake_backend) -> SharedOCREngine:
    """SharedOCREngine serving the fake backend."""
    return SharedOCREngine(factory=lambda lang: fake_backend)


# =============================================================================
# Fetcher Fakes
# =============================================================================

@pytest.fixture
def make_fetcher():
    """Factory fixture for a fetcher stub returning fixed bytes."""
    def _create(content: bytes, filename: str | None = None, header: str | None = None):
        fetcher = MagicMock()
        fetcher.fetch.return_value = FetchedContent(
            content=content,
            mime_type=resolve_mime_type(content, filename, header),
            source_url="https://files.example.com/doc",
            declared_mime_type=header,
            filename=filename,
        )
        return fetcher
    return _create


# =============================================================================
# Environment Fixtures
# =============================================================================

@pytest.fixture
def tesseract_available() -> bool:
    """Check if Tesseract is available."""
    try:
        import pytesseract
        pytesseract.get_tesseract_version()
        return True
    except Exception:
        return False


@pytest.fixture
def skip_if_no_tesseract(tesseract_available):
    """Skip test if Tesseract is not available."""
    if not tesseract_available:
        pytest.skip("Tesseract not installed or not accessible")
