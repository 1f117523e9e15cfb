"""
Unit Tests for ContentFetcher

Test Coverage:
- Cloudinary URL helpers
- Strategy order and isolation (direct, resource-type, attachment, signed)
- Size cap and transfer deadline enforced while streaming
- MIME resolution on the successful response
"""

import hashlib
import os
import time
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from doc_extraction.errors import DownloadFailedError
from doc_extraction.fetcher import (
    CloudinaryCredentials,
    ContentFetcher,
    build_signed_url,
    extract_cloud_name,
    extract_filename,
    extract_public_id,
)
from doc_extraction.sniffer import PDF, PNG

CLOUDINARY_URL = (
    "https://res.cloudinary.com/demo-cloud/image/upload/v1751643822/"
    "documents/abc/1751643821707_The%20poem.pdf"
)
PUBLIC_ID = "documents/abc/1751643821707_The poem.pdf"
RAW_URL = f"https://res.cloudinary.com/demo-cloud/raw/upload/{PUBLIC_ID}"
IMAGE_URL = f"https://res.cloudinary.com/demo-cloud/image/upload/{PUBLIC_ID}"
ATTACHMENT_URL = f"https://res.cloudinary.com/demo-cloud/raw/upload/fl_attachment/{PUBLIC_ID}"
SIGNED_PREFIX = "https://res.cloudinary.com/demo-cloud/image/upload/fl_attachment,f_auto,q_auto/"

PDF_BYTES = b"%PDF-1.4\n" + b"0" * 100


# =============================================================================
# Fakes
# =============================================================================

class FakeResponse:
    """Minimal streaming response."""

    def __init__(self, status_code=200, body=b"", headers=None, chunk_size=None, chunk_delay=0.0):
        self.status_code = status_code
        self.headers = headers or {}
        self._body = body
        self._chunk_size = chunk_size
        self._chunk_delay = chunk_delay
        self.chunks_sent = 0
        self.closed = False

    def iter_content(self, chunk_size=1):
        size = self._chunk_size or chunk_size
        for i in range(0, len(self._body), size):
            if self._chunk_delay:
                time.sleep(self._chunk_delay)
            self.chunks_sent += 1
            yield self._body[i:i + size]

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.closed = True
        return False


class FakeSession:
    """Session returning canned responses by URL (or URL prefix)."""

    def __init__(self, routes=None):
        self.routes = routes or {}
        self.calls = []
        self.max_redirects = 30

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        for key, value in self.routes.items():
            if url == key or (key.endswith("/") and url.startswith(key)):
                if isinstance(value, Exception):
                    raise value
                return value
        return FakeResponse(status_code=404)


def build_fetcher(routes, credentials=None, max_bytes=None, timeout=5):
    session = FakeSession(routes)
    fetcher = ContentFetcher(
        credentials=credentials or CloudinaryCredentials(),
        session=session,
        timeout=timeout,
        max_bytes=max_bytes,
    )
    return fetcher, session


# =============================================================================
# Test: URL Helpers
# =============================================================================

@pytest.mark.unit
class TestUrlHelpers:
    """Tests for Cloudinary URL parsing."""

    def test_extract_filename_decodes(self):
        assert extract_filename(CLOUDINARY_URL) == "1751643821707_The poem.pdf"

    def test_extract_filename_strips_version_prefix(self):
        assert extract_filename("https://x.test/files/v12_report.docx") == "report.docx"

    def test_extract_filename_ignores_query(self):
        assert extract_filename("https://x.test/a/notes.txt?dl=1") == "notes.txt"

    def test_extract_filename_without_path(self):
        assert extract_filename("https://x.test") is None

    def test_extract_cloud_name(self):
        assert extract_cloud_name(CLOUDINARY_URL) == "demo-cloud"
        assert extract_cloud_name("https://example.com/upload/x.pdf") is None

    def test_extract_public_id_with_version(self):
        assert extract_public_id(CLOUDINARY_URL) == PUBLIC_ID

    def test_extract_public_id_without_version(self):
        url = "https://res.cloudinary.com/c/raw/upload/folder/file.pdf"
        assert extract_public_id(url) == "folder/file.pdf"

    def test_extract_public_id_missing(self):
        assert extract_public_id("https://example.com/file.pdf") is None

    def test_build_signed_url(self):
        url = build_signed_url("demo-cloud", "docs/a.pdf", "key123", "secret", timestamp=1700000000)
        parsed = urlparse(url)
        query = parse_qs(parsed.query)

        expected = hashlib.sha1(b"public_id=docs/a.pdf&timestamp=1700000000secret").hexdigest()
        assert url.startswith(SIGNED_PREFIX + "docs/a.pdf?")
        assert query["api_key"] == ["key123"]
        assert query["timestamp"] == ["1700000000"]
        assert query["signature"] == [expected]


@pytest.mark.unit
class TestCredentials:
    """Tests for CloudinaryCredentials."""

    def test_from_env(self):
        env = {
            "CLOUDINARY_CLOUD_NAME": "envcloud",
            "CLOUDINARY_API_KEY": "k",
            "CLOUDINARY_API_SECRET": "s",
        }
        with patch.dict(os.environ, env, clear=True):
            creds = CloudinaryCredentials.from_env()
        assert creds.cloud_name == "envcloud"
        assert creds.can_sign is True

    def test_missing_env_disables_signing(self):
        with patch.dict(os.environ, {}, clear=True):
            creds = CloudinaryCredentials.from_env()
        assert creds.cloud_name is None
        assert creds.can_sign is False


# =============================================================================
# Test: Strategies
# =============================================================================

@pytest.mark.unit
class TestFetchStrategies:
    """Tests for the ordered fallback chain."""

    def test_direct_download(self):
        fetcher, session = build_fetcher({
            CLOUDINARY_URL: FakeResponse(body=PDF_BYTES, headers={"Content-Type": "image/png"}),
        })

        fetched = fetcher.fetch(CLOUDINARY_URL)

        assert fetched.content == PDF_BYTES
        assert fetched.size_bytes == len(PDF_BYTES)
        assert fetched.mime_type == PDF
        assert fetched.declared_mime_type == "image/png"
        assert fetched.source_url == CLOUDINARY_URL
        assert len(session.calls) == 1

    def test_direct_request_options(self):
        fetcher, session = build_fetcher({CLOUDINARY_URL: FakeResponse(body=PDF_BYTES)})

        fetcher.fetch(CLOUDINARY_URL)

        _, kwargs = session.calls[0]
        assert kwargs["timeout"] == 5
        assert kwargs["stream"] is True
        assert kwargs["allow_redirects"] is True
        assert "Mozilla" in kwargs["headers"]["User-Agent"]
        assert session.max_redirects == 5

    def test_direct_4xx_moves_to_resource_type(self):
        """A 4xx from the direct GET does not raise; the next strategy runs."""
        fetcher, session = build_fetcher({
            CLOUDINARY_URL: FakeResponse(status_code=401),
            RAW_URL: FakeResponse(body=PDF_BYTES),
        })

        fetched = fetcher.fetch(CLOUDINARY_URL)

        assert fetched.source_url == RAW_URL
        assert [url for url, _ in session.calls] == [CLOUDINARY_URL, RAW_URL]

    def test_resource_type_image_for_non_documents(self, make_png_bytes):
        url = "https://res.cloudinary.com/demo-cloud/image/upload/v1/photos/cat.png"
        image_url = "https://res.cloudinary.com/demo-cloud/image/upload/photos/cat.png"
        fetcher, _ = build_fetcher({
            url: FakeResponse(status_code=404),
            image_url: FakeResponse(body=make_png_bytes()),
        })

        fetched = fetcher.fetch(url)

        assert fetched.source_url == image_url
        assert fetched.mime_type == PNG

    def test_filename_hint_selects_raw_resource_type(self):
        url = "https://res.cloudinary.com/demo-cloud/image/upload/v1/docs/abc123"
        raw_url = "https://res.cloudinary.com/demo-cloud/raw/upload/docs/abc123"
        fetcher, _ = build_fetcher({
            url: FakeResponse(status_code=404),
            raw_url: FakeResponse(body=b"plain text body", headers={"Content-Type": "application/octet-stream"}),
        })

        fetched = fetcher.fetch(url, filename_hint="notes.txt")

        assert fetched.source_url == raw_url
        assert fetched.filename == "notes.txt"
        assert fetched.mime_type == "text/plain"

    def test_attachment_after_resource_type_fails(self):
        fetcher, session = build_fetcher({
            CLOUDINARY_URL: requests.ConnectionError("connection reset"),
            RAW_URL: FakeResponse(status_code=404),
            ATTACHMENT_URL: FakeResponse(body=PDF_BYTES),
        })

        fetched = fetcher.fetch(CLOUDINARY_URL)

        assert fetched.source_url == ATTACHMENT_URL
        assert len(session.calls) == 3

    def test_signed_url_with_credentials(self):
        credentials = CloudinaryCredentials(api_key="key123", api_secret="secret")
        fetcher, session = build_fetcher(
            {SIGNED_PREFIX: FakeResponse(body=PDF_BYTES)},
            credentials=credentials,
        )

        fetched = fetcher.fetch(CLOUDINARY_URL)

        assert fetched.source_url.startswith(SIGNED_PREFIX)
        query = parse_qs(urlparse(fetched.source_url).query)
        assert query["api_key"] == ["key123"]
        assert len(session.calls) == 4

    def test_signed_url_skipped_without_credentials(self):
        fetcher, session = build_fetcher({SIGNED_PREFIX: FakeResponse(body=PDF_BYTES)})

        with pytest.raises(DownloadFailedError):
            fetcher.fetch(CLOUDINARY_URL)

        assert len(session.calls) == 3

    def test_configured_cloud_name_for_foreign_host(self):
        url = "https://cdn.example.com/upload/v3/docs/file.pdf"
        raw_url = "https://res.cloudinary.com/mycloud/raw/upload/docs/file.pdf"
        fetcher, _ = build_fetcher(
            {url: FakeResponse(status_code=403), raw_url: FakeResponse(body=PDF_BYTES)},
            credentials=CloudinaryCredentials(cloud_name="mycloud"),
        )

        assert fetcher.fetch(url).source_url == raw_url

    def test_all_strategies_fail(self):
        fetcher, _ = build_fetcher({})

        with pytest.raises(DownloadFailedError) as exc_info:
            fetcher.fetch(CLOUDINARY_URL)

        error = exc_info.value
        assert error.original_url == CLOUDINARY_URL
        assert error.code.value == "DOWNLOAD_FAILED"
        assert error.to_dict()["originalUrl"] == CLOUDINARY_URL

    def test_non_provider_url_only_tries_direct(self):
        url = "https://files.example.com/report.pdf"
        fetcher, session = build_fetcher({url: FakeResponse(status_code=404)})

        with pytest.raises(DownloadFailedError) as exc_info:
            fetcher.fetch(url)

        assert len(session.calls) == 1
        assert "HTTP 404" in exc_info.value.message

    def test_empty_body_is_a_successful_fetch(self):
        url = "https://files.example.com/empty.pdf"
        fetcher, _ = build_fetcher({url: FakeResponse(body=b"")})

        fetched = fetcher.fetch(url)

        assert fetched.size_bytes == 0
        assert fetched.mime_type == PDF


# =============================================================================
# Test: Size Cap
# =============================================================================

@pytest.mark.unit
class TestSizeCap:
    """Tests for the maximum download size."""

    def test_declared_length_over_cap(self):
        fetcher, session = build_fetcher(
            {CLOUDINARY_URL: FakeResponse(body=PDF_BYTES, headers={"Content-Length": "5000"})},
            max_bytes=1000,
        )

        with pytest.raises(DownloadFailedError, match="exceeds limit"):
            fetcher.fetch(CLOUDINARY_URL)

        assert len(session.calls) == 1

    def test_streamed_body_over_cap(self):
        response = FakeResponse(body=b"%PDF" + b"x" * 5000, chunk_size=256)
        fetcher, _ = build_fetcher({CLOUDINARY_URL: response}, max_bytes=1000)

        with pytest.raises(DownloadFailedError, match="exceeds limit"):
            fetcher.fetch(CLOUDINARY_URL)

        assert response.closed is True

    def test_body_at_cap_is_accepted(self):
        body = b"%PDF" + b"x" * 996
        fetcher, _ = build_fetcher({CLOUDINARY_URL: FakeResponse(body=body)}, max_bytes=1000)

        assert fetcher.fetch(CLOUDINARY_URL).size_bytes == 1000

    def test_default_cap_is_50_mib(self):
        with patch.dict(os.environ, {}, clear=True):
            fetcher = ContentFetcher(credentials=CloudinaryCredentials(), session=FakeSession())
        assert fetcher.max_bytes == 50 * 1024 * 1024
        assert fetcher.timeout == 60


# =============================================================================
# Test: Transfer Deadline
# =============================================================================

@pytest.mark.unit
class TestTransferDeadline:
    """Tests for the per-attempt bound on slow bodies."""

    def test_slow_body_is_abandoned(self):
        url = "https://files.example.com/slow.pdf"
        slow = FakeResponse(body=b"%PDF" + b"x" * 196, chunk_size=10, chunk_delay=0.03)
        fetcher, _ = build_fetcher({url: slow}, timeout=0.1)

        with pytest.raises(DownloadFailedError, match="did not finish within"):
            fetcher.fetch(url)

        assert slow.chunks_sent < 20
        assert slow.closed is True

    def test_body_within_deadline(self):
        url = "https://files.example.com/quick.pdf"
        fetcher, _ = build_fetcher({url: FakeResponse(body=PDF_BYTES, chunk_size=10)}, timeout=5)

        assert fetcher.fetch(url).content == PDF_BYTES
