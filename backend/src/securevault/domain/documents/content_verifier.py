"""Content verification for uploaded documents.

Checks run from cheapest to most expensive, and the first failure wins:

1. size within (0, max_size]
2. declared MIME type on the category whitelist
3. real type detected from magic bytes (``filetype`` as a fallback)
4. declared and detected types agree after normalization
5. detected type on the category whitelist

A PNG declared as application/pdf is rejected at step 4 even though the
declared type passed step 2.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import filetype

from ...errors import BadRequestError
from ...models.document import DocumentType
from ...observability.metrics import content_verification_rejections_total
from .validation import (
    MAX_FILE_SIZE,
    MIME_DOC,
    MIME_DOCX,
    MIME_JPEG,
    MIME_PDF,
    MIME_PNG,
    allowed_mime_types,
    is_allowed_mime_type,
    normalize_mime_type,
    validate_file_size,
)

logger = logging.getLogger(__name__)

PDF_SIGNATURE = b"%PDF"
JPEG_SIGNATURE = b"\xff\xd8\xff"
PNG_SIGNATURE = b"\x89PNG"
ZIP_LOCAL_HEADER = b"PK\x03\x04"
ZIP_EMPTY_ARCHIVE = b"PK\x05\x06"
OLE_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

# OOXML packages list [Content_Types].xml near the start of the archive
OOXML_SCAN_LENGTH = 1024
OOXML_MARKER = "[Content_Types].xml"


class ContentVerificationError(BadRequestError):
    """Upload rejected by content verification.

    ``reason`` is a stable machine-readable tag (size, declared_type,
    undetectable, mismatch, detected_type).
    """

    def __init__(self, reason: str, message: str):
        super().__init__(message, details=[{"reason": reason}])
        self.reason = reason


def detect_mime_type(data: bytes) -> Optional[str]:
    """Identify the real type of ``data`` from its leading bytes.

    Known signatures are tried in priority order; when none matches the
    ``filetype`` library gets a chance. Returns None if nothing matches.

    Example:
        >>> detect_mime_type(b"%PDF-1.7 ...")
        'application/pdf'
        >>> detect_mime_type(b"plain text") is None
        True
    """
    if data.startswith(PDF_SIGNATURE):
        return MIME_PDF
    if data.startswith(JPEG_SIGNATURE):
        return MIME_JPEG
    if data.startswith(PNG_SIGNATURE):
        return MIME_PNG
    if data.startswith(ZIP_LOCAL_HEADER) or data.startswith(ZIP_EMPTY_ARCHIVE):
        head = data[:OOXML_SCAN_LENGTH].decode("latin-1")
        if OOXML_MARKER in head:
            return MIME_DOCX
    if data.startswith(OLE_SIGNATURE):
        return MIME_DOC

    kind = filetype.guess(data)
    if kind is not None:
        return kind.mime
    return None


@dataclass
class ContentVerifier:
    """Validates uploaded bytes against a declared type and a category whitelist."""

    max_file_size: int = MAX_FILE_SIZE

    def verify(self, data: bytes, declared_mime_type: str, category: DocumentType) -> str:
        """Run all checks; return the normalized detected MIME type.

        Raises:
            ContentVerificationError: On the first failed check
        """
        is_valid, error = validate_file_size(len(data), self.max_file_size)
        if not is_valid:
            self._reject("size", error)

        if not is_allowed_mime_type(declared_mime_type, category):
            allowed = ", ".join(sorted(allowed_mime_types(category)))
            self._reject(
                "declared_type",
                f"File type {declared_mime_type} is not allowed for {DocumentType(category).value}. "
                f"Allowed types: {allowed}",
            )

        detected = detect_mime_type(data)
        if detected is None:
            self._reject("undetectable", "Cannot determine the real type of the file")

        declared = normalize_mime_type(declared_mime_type)
        detected = normalize_mime_type(detected)
        if declared != detected:
            self._reject(
                "mismatch",
                f"File declared as {declared} but is actually {detected}; possibly malicious",
            )

        if not is_allowed_mime_type(detected, category):
            self._reject(
                "detected_type",
                f"Detected file type {detected} is not allowed for {DocumentType(category).value}",
            )

        return detected

    def _reject(self, reason: str, message: str) -> None:
        content_verification_rejections_total.labels(reason=reason).inc()
        logger.warning(f"Content verification failed ({reason}): {message}")
        raise ContentVerificationError(reason, message)
