"""File validation utilities for document uploads

Category whitelists, size limits and filename sanitation. Each check
returns ``(is_valid, error_message)`` so callers decide how to fail.
"""

import os
import re
from typing import Dict, FrozenSet, Optional, Tuple

from ...models.document import DocumentType


MIME_PDF = 'application/pdf'
MIME_JPEG = 'image/jpeg'
MIME_JPG = 'image/jpg'
MIME_PNG = 'image/png'
MIME_DOC = 'application/msword'
MIME_DOCX = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'

# Permitted declared MIME types per document category
ALLOWED_MIME_TYPES: Dict[DocumentType, FrozenSet[str]] = {
    DocumentType.KYC_IDENTITY: frozenset({MIME_JPEG, MIME_PNG, MIME_JPG, MIME_PDF}),
    DocumentType.KYC_PROOF_OF_ADDRESS: frozenset({MIME_JPEG, MIME_PNG, MIME_JPG, MIME_PDF}),
    DocumentType.KYC_BANK_STATEMENT: frozenset({MIME_PDF, MIME_JPEG, MIME_PNG}),
    DocumentType.CONTRACT: frozenset({MIME_PDF, MIME_DOC, MIME_DOCX}),
    DocumentType.OTHER: frozenset({MIME_PDF, MIME_JPEG, MIME_PNG, MIME_DOC, MIME_DOCX}),
}

# 10 MB
MAX_FILE_SIZE = 10 * 1024 * 1024

MAX_NAME_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 1000


def normalize_mime_type(mime_type: str) -> str:
    """Lower-case, strip parameters, and fold image/jpg into image/jpeg.

    Example:
        >>> normalize_mime_type('image/JPG')
        'image/jpeg'
        >>> normalize_mime_type('application/pdf; charset=binary')
        'application/pdf'
    """
    mime_type = mime_type.split(';', 1)[0].strip().lower()
    if mime_type == MIME_JPG:
        return MIME_JPEG
    return mime_type


def allowed_mime_types(category: DocumentType) -> FrozenSet[str]:
    return ALLOWED_MIME_TYPES.get(DocumentType(category), frozenset())


def is_allowed_mime_type(mime_type: str, category: DocumentType) -> bool:
    """Check the MIME type against the category whitelist.

    The comparison is exact on the lower-cased type without parameters, so
    image/jpg is accepted only where the whitelist lists it.
    """
    return mime_type.split(';', 1)[0].strip().lower() in allowed_mime_types(category)


def validate_file_size(size_bytes: int, max_size: Optional[int] = None) -> Tuple[bool, Optional[str]]:
    """Validate file size is within (0, max_size]

    Example:
        >>> validate_file_size(1024)
        (True, None)
        >>> validate_file_size(0)
        (False, 'File is empty (0 bytes)')
    """
    if max_size is None:
        max_size = MAX_FILE_SIZE

    if size_bytes <= 0:
        return False, "File is empty (0 bytes)"

    if size_bytes > max_size:
        return False, f"File exceeds maximum size of {max_size} bytes (got {size_bytes} bytes)"

    return True, None


def validate_filename(filename: str) -> Tuple[bool, Optional[str]]:
    """Validate an uploaded file's original name

    Validation rules:
    - Not empty
    - Max 255 characters
    - No null bytes or control characters
    """
    if not filename or len(filename.strip()) == 0:
        return False, "Filename cannot be empty"

    if len(filename) > MAX_NAME_LENGTH:
        return False, f"Filename exceeds {MAX_NAME_LENGTH} characters (got {len(filename)})"

    if any(ord(c) < 32 for c in filename):
        return False, "Filename contains control characters"

    return True, None


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe storage

    Example:
        >>> sanitize_filename('../../passport.pdf')
        'passport.pdf'
        >>> sanitize_filename('passport (copy).pdf')
        'passport_copy_.pdf'
    """
    # Remove path components (both separators, whatever the host OS)
    filename = os.path.basename(filename.replace('\\', '/'))

    # Replace problematic characters with underscore
    filename = re.sub(r'[^\w\s.-]', '_', filename)

    # Collapse multiple spaces/underscores
    filename = re.sub(r'[\s_]+', '_', filename)

    if len(filename) > MAX_NAME_LENGTH:
        name, ext = os.path.splitext(filename)
        filename = name[:MAX_NAME_LENGTH - len(ext)] + ext

    return filename


def safe_extension(filename: str) -> str:
    """Lower-cased extension of a sanitized filename, or '' when it has none.

    Example:
        >>> safe_extension('Scan.PDF')
        '.pdf'
        >>> safe_extension('../x/evil.p$f')
        '.p_f'
    """
    _, ext = os.path.splitext(sanitize_filename(filename))
    if len(ext) > 16:
        return ''
    return ext.lower()
