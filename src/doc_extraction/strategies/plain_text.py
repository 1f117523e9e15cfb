"""Plain text passthrough strategy."""

import logging
import time

from doc_extraction.errors import TxtExtractionFailedError
from doc_extraction.models import ExtractionMethod, ExtractionOptions, ExtractionResult

from .base import BaseExtractor

logger = logging.getLogger(__name__)


class PlainTextExtractor(BaseExtractor):
    """Decode UTF-8 text files."""

    method = ExtractionMethod.TXT
    error_class = TxtExtractionFailedError

    def extract(self, content: bytes, options: ExtractionOptions) -> ExtractionResult:
        start_time = time.time()
        self.ensure_not_empty(content)

        try:
            raw_text = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            logger.error("Text file is not valid UTF-8: %s", e)
            raise TxtExtractionFailedError(
                "Failed to extract text from TXT: not valid UTF-8", cause=e
            ) from e

        return self.build_result(raw_text, total_pages=1, confidence=1.0, start_time=start_time)
