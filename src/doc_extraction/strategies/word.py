"""
DOCX Extraction Strategy
========================

Raw text extraction from Word documents with python-docx. The format
has no page concept, so results always report a single page.
"""

import logging
import time
from io import BytesIO

from docx import Document

from doc_extraction.errors import DocxExtractionFailedError
from doc_extraction.models import ExtractionMethod, ExtractionOptions, ExtractionResult

from .base import BaseExtractor

logger = logging.getLogger(__name__)

DOCX_CONFIDENCE = 0.98


class DocxExtractor(BaseExtractor):
    """Extract paragraph and table text from DOCX files."""

    method = ExtractionMethod.DOCX
    error_class = DocxExtractionFailedError

    def extract(self, content: bytes, options: ExtractionOptions) -> ExtractionResult:
        start_time = time.time()
        self.ensure_not_empty(content)

        try:
            document = Document(BytesIO(content))
            blocks = [p.text for p in document.paragraphs if p.text.strip()]
            for table in document.tables:
                for row in table.rows:
                    cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                    if cells:
                        blocks.append(" | ".join(cells))
        except Exception as e:
            logger.error("Error in DOCX text extraction: %s", e)
            raise DocxExtractionFailedError(
                f"Failed to extract text from DOCX: {e}", cause=e
            ) from e

        return self.build_result(
            "\n\n".join(blocks),
            total_pages=1,
            confidence=DOCX_CONFIDENCE,
            start_time=start_time,
        )
