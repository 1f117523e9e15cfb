"""
Content Fetcher
===============

Downloads a document from a URL with a chain of fallback strategies for
Cloudinary, which rewrites delivery URLs and may transform uploaded files.

Strategies (first success wins):
    1. Direct GET of the original URL
    2. GET of a URL rebuilt with the resource type matching the file
       (raw for documents, image otherwise)
    3. GET of the raw attachment URL (fl_attachment, no transformation)
    4. GET of a signed URL, when API credentials are configured

Usage:
    fetcher = ContentFetcher()
    fetched = fetcher.fetch("https://res.cloudinary.com/demo/image/upload/v1/docs/report.pdf")
    print(fetched.mime_type, fetched.size_bytes)
"""

import hashlib
import logging
import os
import re
import time
from dataclasses import dataclass
from typing import Callable
from urllib.parse import unquote, urlencode, urlparse

import requests

from doc_extraction.errors import DownloadFailedError
from doc_extraction.models import FetchedContent
from doc_extraction.sniffer import resolve_mime_type

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 50 * 1024 * 1024
DEFAULT_TIMEOUT = 60
MAX_REDIRECTS = 5
CHUNK_SIZE = 64 * 1024

CLOUDINARY_BASE_URL = "https://res.cloudinary.com"

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    ),
    "Accept": "*/*",
}

# Extensions delivered through Cloudinary's "raw" resource type
DOCUMENT_EXTENSIONS = (".pdf", ".docx", ".doc", ".txt")

_CLOUD_NAME_PATTERN = re.compile(r"https://res\.cloudinary\.com/([^/]+)")
_PUBLIC_ID_PATTERN = re.compile(r"/upload/(?:v\d+/)?(.+)$")
_VERSION_PREFIX_PATTERN = re.compile(r"^(?:v\d+_)?(.+)$")


class ResponseTooLargeError(Exception):
    """Download exceeded the configured size cap."""


@dataclass
class CloudinaryCredentials:
    """Storage provider credentials. All fields are optional."""

    cloud_name: str | None = None
    api_key: str | None = None
    api_secret: str | None = None

    @classmethod
    def from_env(cls) -> "CloudinaryCredentials":
        return cls(
            cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME") or None,
            api_key=os.getenv("CLOUDINARY_API_KEY") or None,
            api_secret=os.getenv("CLOUDINARY_API_SECRET") or None,
        )

    @property
    def can_sign(self) -> bool:
        return bool(self.api_key and self.api_secret)


def extract_filename(url: str) -> str | None:
    """Filename from the last URL path segment, without a v<digits>_ prefix."""
    path = urlparse(url).path
    last_part = unquote(path.rstrip("/").split("/")[-1]) if path else ""
    if not last_part:
        return None
    match = _VERSION_PREFIX_PATTERN.match(last_part)
    return match.group(1) if match else last_part


def extract_cloud_name(url: str) -> str | None:
    match = _CLOUD_NAME_PATTERN.match(url)
    return match.group(1) if match else None


def extract_public_id(url: str) -> str | None:
    """Public id: path after /upload/ without the optional version segment."""
    path = urlparse(url).path
    match = _PUBLIC_ID_PATTERN.search(path)
    return unquote(match.group(1)) if match else None


def build_signed_url(
    cloud_name: str,
    public_id: str,
    api_key: str,
    api_secret: str,
    timestamp: int | None = None,
) -> str:
    """Build a time-stamped, SHA-1 signed attachment URL for a public id."""
    ts = str(timestamp if timestamp is not None else int(time.time()))
    to_sign = f"public_id={public_id}&timestamp={ts}{api_secret}"
    signature = hashlib.sha1(to_sign.encode("utf-8")).hexdigest()
    query = urlencode({"api_key": api_key, "timestamp": ts, "signature": signature})
    return (
        f"{CLOUDINARY_BASE_URL}/{cloud_name}/image/upload/"
        f"fl_attachment,f_auto,q_auto/{public_id}?{query}"
    )


class ContentFetcher:
    """Download documents with multi-strategy fallback and MIME resolution."""

    def __init__(
        self,
        credentials: CloudinaryCredentials | None = None,
        session: requests.Session | None = None,
        timeout: float | None = None,
        max_bytes: int | None = None,
    ):
        """
        Initialize the fetcher.

        Args:
            credentials: Cloudinary credentials (default: from environment)
            session: HTTP session to use (default: new requests.Session)
            timeout: Per-request timeout in seconds (or DOWNLOAD_TIMEOUT env var)
            max_bytes: Maximum response size (or MAX_DOWNLOAD_BYTES env var)
        """
        self.credentials = credentials or CloudinaryCredentials.from_env()
        self.session = session or requests.Session()
        self.session.max_redirects = MAX_REDIRECTS
        self.timeout = timeout or float(os.getenv("DOWNLOAD_TIMEOUT", DEFAULT_TIMEOUT))
        self.max_bytes = max_bytes or int(os.getenv("MAX_DOWNLOAD_BYTES", DEFAULT_MAX_BYTES))

    def fetch(self, url: str, filename_hint: str | None = None) -> FetchedContent:
        """
        Download a document, trying each strategy in order.

        Args:
            url: Document URL
            filename_hint: Original filename, preferred over the URL's

        Returns:
            FetchedContent with bytes and resolved MIME type

        Raises:
            DownloadFailedError: If every strategy fails or the file is too large
        """
        logger.info("Attempting to download: %s", url)
        filename = filename_hint or extract_filename(url)
        logger.info("Using filename: %s", filename)

        strategies: list[tuple[str, Callable[[], FetchedContent | None]]] = [
            ("direct", lambda: self._fetch_direct(url, filename)),
            ("resource-type", lambda: self._fetch_resource_type(url, filename)),
            ("attachment", lambda: self._fetch_attachment(url, filename)),
            ("signed", lambda: self._fetch_signed(url, filename)),
        ]

        last_error: Exception | None = None
        for name, attempt in strategies:
            try:
                fetched = attempt()
            except ResponseTooLargeError as e:
                raise DownloadFailedError(
                    f"Failed to download file: {e}", original_url=url, cause=e
                ) from e
            except Exception as e:
                logger.warning("Download strategy '%s' failed: %s", name, e)
                last_error = e
                continue

            if fetched is not None:
                logger.info(
                    "Download strategy '%s' succeeded: %s, %d bytes",
                    name,
                    fetched.mime_type,
                    fetched.size_bytes,
                )
                return fetched

        reason = str(last_error) if last_error else "no strategy applicable"
        logger.error("All download methods failed for %s: %s", url, reason)
        raise DownloadFailedError(
            f"Failed to download file: all download methods failed ({reason})",
            original_url=url,
            cause=last_error,
        )

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _fetch_direct(self, url: str, filename: str | None) -> FetchedContent:
        """Direct GET. Non-200 answers fail the attempt without raise_for_status."""
        deadline = self._deadline()
        response = self._get(url, headers=BROWSER_HEADERS)
        with response:
            if response.status_code != 200:
                logger.info("Direct download failed with status: %d", response.status_code)
                raise requests.HTTPError(
                    f"direct download returned HTTP {response.status_code}", response=response
                )
            return self._read(response, url, filename, deadline)

    def _fetch_resource_type(self, url: str, filename: str | None) -> FetchedContent | None:
        located = self._locate(url)
        if located is None:
            return None
        cloud_name, public_id = located

        is_document = bool(filename and filename.lower().endswith(DOCUMENT_EXTENSIONS))
        resource_type = "raw" if is_document else "image"
        rebuilt = f"{CLOUDINARY_BASE_URL}/{cloud_name}/{resource_type}/upload/{public_id}"
        logger.info("Using reconstructed URL (%s): %s", resource_type, rebuilt)
        return self._fetch_strict(rebuilt, filename)

    def _fetch_attachment(self, url: str, filename: str | None) -> FetchedContent | None:
        located = self._locate(url)
        if located is None:
            return None
        cloud_name, public_id = located

        attachment_url = f"{CLOUDINARY_BASE_URL}/{cloud_name}/raw/upload/fl_attachment/{public_id}"
        logger.info("Using attachment URL: %s", attachment_url)
        return self._fetch_strict(attachment_url, filename)

    def _fetch_signed(self, url: str, filename: str | None) -> FetchedContent | None:
        if not self.credentials.can_sign:
            return None
        located = self._locate(url)
        if located is None:
            return None
        cloud_name, public_id = located

        signed_url = build_signed_url(
            cloud_name,
            public_id,
            self.credentials.api_key,
            self.credentials.api_secret,
        )
        logger.info("Using authenticated URL for public id: %s", public_id)
        return self._fetch_strict(signed_url, filename)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _locate(self, url: str) -> tuple[str, str] | None:
        """Cloud name and public id for a Cloudinary URL, if derivable."""
        public_id = extract_public_id(url)
        cloud_name = extract_cloud_name(url) or self.credentials.cloud_name
        if not public_id or not cloud_name:
            return None
        return cloud_name, public_id

    def _get(self, url: str, headers: dict[str, str] | None = None) -> requests.Response:
        return self.session.get(
            url,
            headers=headers or {"User-Agent": BROWSER_HEADERS["User-Agent"]},
            timeout=self.timeout,
            stream=True,
            allow_redirects=True,
        )

    def _deadline(self) -> float:
        """Monotonic time by which a whole transfer must have finished."""
        return time.monotonic() + self.timeout

    def _fetch_strict(self, url: str, filename: str | None) -> FetchedContent:
        deadline = self._deadline()
        response = self._get(url)
        with response:
            response.raise_for_status()
            return self._read(response, url, filename, deadline)

    def _read(
        self,
        response: requests.Response,
        url: str,
        filename: str | None,
        deadline: float,
    ) -> FetchedContent:
        """Stream the body, enforcing the size cap and the overall timeout."""
        declared_length = response.headers.get("Content-Length")
        if declared_length and declared_length.isdigit() and int(declared_length) > self.max_bytes:
            raise ResponseTooLargeError(
                f"declared size {declared_length} bytes exceeds limit of {self.max_bytes} bytes"
            )

        buffer = bytearray()
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if time.monotonic() > deadline:
                raise requests.Timeout(
                    f"download did not finish within {self.timeout:g} seconds"
                )
            if not chunk:
                continue
            buffer.extend(chunk)
            if len(buffer) > self.max_bytes:
                raise ResponseTooLargeError(
                    f"response exceeds limit of {self.max_bytes} bytes"
                )

        content = bytes(buffer)
        declared_type = response.headers.get("Content-Type")
        return FetchedContent(
            content=content,
            mime_type=resolve_mime_type(content, filename, declared_type),
            source_url=url,
            declared_mime_type=declared_type,
            filename=filename,
        )
