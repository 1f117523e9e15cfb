"""
Content Type Sniffer
====================

Classifies downloaded bytes by their file signature.

Storage providers are known to transcode or mislabel uploads, so the
signature of the bytes wins over the filename extension, and the
extension wins over the transport Content-Type.

Usage:
    from doc_extraction.sniffer import classify, resolve_mime_type

    classify(b"%PDF-1.7 ...")          # "application/pdf"
    resolve_mime_type(data, "scan.pdf", "image/png")
"""

import logging
from pathlib import PurePosixPath

logger = logging.getLogger(__name__)

PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOC = "application/msword"
ZIP = "application/zip"
PNG = "image/png"
JPEG = "image/jpeg"
GIF = "image/gif"
TEXT = "text/plain"
OCTET_STREAM = "application/octet-stream"

_ZIP_HEADER = b"PK\x03\x04"
_OLE_HEADER = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
_PNG_HEADER = b"\x89PNG\r\n\x1a\n"
_JPEG_HEADER = b"\xff\xd8\xff"

# Zip members that only appear in word-processing packages
_DOCX_MARKERS = (b"word/", b"_rels", b"docProps")
_DOCX_SCAN_BYTES = 1000

EXTENSION_MIME_TYPES = {
    "pdf": PDF,
    "docx": DOCX,
    "doc": DOC,
    "txt": TEXT,
    "png": PNG,
    "jpg": JPEG,
    "jpeg": JPEG,
    "gif": GIF,
    "webp": "image/webp",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "avi": "video/avi",
}


def classify(data: bytes) -> str | None:
    """
    Classify a buffer by its leading signature.

    Args:
        data: Raw document bytes

    Returns:
        MIME type, or None when no known signature matches
    """
    if not data:
        return None

    if data[:4] == b"%PDF":
        return PDF

    if data[:4] == _ZIP_HEADER:
        head = data[:_DOCX_SCAN_BYTES]
        if any(marker in head for marker in _DOCX_MARKERS):
            return DOCX
        return ZIP

    if data[:8] == _OLE_HEADER:
        return DOC

    if data[:8] == _PNG_HEADER:
        return PNG

    if data[:3] == _JPEG_HEADER:
        return JPEG

    if data[:6] in (b"GIF87a", b"GIF89a"):
        return GIF

    return None


def mime_from_extension(filename: str | None) -> str | None:
    """Infer a MIME type from a filename extension."""
    if not filename:
        return None
    suffix = PurePosixPath(filename).suffix.lower().lstrip(".")
    return EXTENSION_MIME_TYPES.get(suffix)


def resolve_mime_type(
    data: bytes,
    filename: str | None = None,
    header_content_type: str | None = None,
) -> str:
    """
    Resolve the effective MIME type of downloaded content.

    Priority: byte signature > filename extension > transport header >
    application/octet-stream.
    """
    content_type = classify(data)
    extension_type = mime_from_extension(filename)

    header_type = None
    if header_content_type:
        header_type = header_content_type.split(";")[0].strip().lower() or None
        if header_type == OCTET_STREAM:
            header_type = None

    resolved = content_type or extension_type or header_type or OCTET_STREAM

    logger.info(
        "MIME type detection - content: %s, extension: %s, header: %s, final: %s",
        content_type,
        extension_type,
        header_type,
        resolved,
    )
    return resolved


def is_image(mime_type: str | None) -> bool:
    """True for raster image MIME types."""
    return bool(mime_type and mime_type.startswith("image/"))
