"""Unit tests for upload content verification

Tests cover:
- Magic-byte detection for every supported format
- The check order (size, declared type, detection, agreement)
- Normalization of image/jpg
- Rejection reasons carried on the error
"""

import pytest

from securevault.domain.documents.content_verifier import (
    ContentVerificationError,
    ContentVerifier,
    detect_mime_type,
)
from securevault.domain.documents.validation import MIME_DOC, MIME_DOCX, MIME_JPEG, MIME_PDF, MIME_PNG
from securevault.errors import BadRequestError
from securevault.models import DocumentType


class TestDetectMimeType:
    """Test signature sniffing"""

    def test_known_signatures(self, samples):
        assert detect_mime_type(samples.pdf) == MIME_PDF
        assert detect_mime_type(samples.jpeg) == MIME_JPEG
        assert detect_mime_type(samples.png) == MIME_PNG
        assert detect_mime_type(samples.docx) == MIME_DOCX
        assert detect_mime_type(samples.doc) == MIME_DOC

    def test_zip_without_ooxml_marker_is_not_docx(self):
        plain_zip = b"PK\x03\x04" + b"\x00" * 2048
        assert detect_mime_type(plain_zip) != MIME_DOCX

    def test_ooxml_marker_must_be_near_the_start(self):
        late_marker = b"PK\x03\x04" + b"\x00" * 2048 + b"[Content_Types].xml"
        assert detect_mime_type(late_marker) != MIME_DOCX

    def test_library_fallback_for_other_formats(self, samples):
        assert detect_mime_type(samples.gif) == "image/gif"

    def test_unrecognized_bytes(self, samples):
        assert detect_mime_type(samples.text) is None


class TestContentVerifier:
    """Test the full verification pipeline"""

    def test_accepts_matching_pdf(self, samples):
        verifier = ContentVerifier()
        assert verifier.verify(samples.pdf, "application/pdf", DocumentType.CONTRACT) == MIME_PDF

    def test_declared_type_parameters_and_case_ignored(self, samples):
        verifier = ContentVerifier()
        result = verifier.verify(samples.pdf, "Application/PDF; charset=binary", DocumentType.OTHER)
        assert result == MIME_PDF

    def test_image_jpg_declared_for_real_jpeg(self, samples):
        """Test image/jpg is folded into image/jpeg where the category lists it"""
        verifier = ContentVerifier()
        assert verifier.verify(samples.jpeg, "image/jpg", DocumentType.KYC_IDENTITY) == MIME_JPEG

    def test_image_jpg_not_listed_for_bank_statements(self, samples):
        verifier = ContentVerifier()

        with pytest.raises(ContentVerificationError) as exc_info:
            verifier.verify(samples.jpeg, "image/jpg", DocumentType.KYC_BANK_STATEMENT)

        assert exc_info.value.reason == "declared_type"

    def test_office_documents_accepted_for_contracts(self, samples):
        verifier = ContentVerifier()
        assert verifier.verify(samples.docx, MIME_DOCX, DocumentType.CONTRACT) == MIME_DOCX
        assert verifier.verify(samples.doc, MIME_DOC, DocumentType.CONTRACT) == MIME_DOC

    def test_empty_file_rejected(self):
        with pytest.raises(ContentVerificationError) as exc_info:
            ContentVerifier().verify(b"", "application/pdf", DocumentType.CONTRACT)

        assert exc_info.value.reason == "size"
        assert "empty" in exc_info.value.message

    def test_oversized_file_rejected_before_type_checks(self, samples):
        """Test size is checked first, even when the type is also wrong"""
        verifier = ContentVerifier(max_file_size=16)

        with pytest.raises(ContentVerificationError) as exc_info:
            verifier.verify(samples.png, "text/plain", DocumentType.CONTRACT)

        assert exc_info.value.reason == "size"

    def test_file_exactly_at_limit_accepted(self, samples):
        verifier = ContentVerifier(max_file_size=len(samples.pdf))
        assert verifier.verify(samples.pdf, MIME_PDF, DocumentType.CONTRACT) == MIME_PDF

    def test_declared_type_not_on_whitelist(self, samples):
        with pytest.raises(ContentVerificationError) as exc_info:
            ContentVerifier().verify(samples.png, "image/png", DocumentType.CONTRACT)

        assert exc_info.value.reason == "declared_type"
        assert "not allowed for CONTRACT" in exc_info.value.message

    def test_disguised_png_rejected_as_mismatch(self, samples):
        """Test a PNG declared as PDF passes the whitelist but fails agreement"""
        with pytest.raises(ContentVerificationError) as exc_info:
            ContentVerifier().verify(samples.png, "application/pdf", DocumentType.KYC_IDENTITY)

        error = exc_info.value
        assert error.reason == "mismatch"
        assert "declared as application/pdf but is actually image/png" in error.message
        assert "possibly malicious" in error.message

    def test_disguised_gif_rejected_as_mismatch(self, samples):
        with pytest.raises(ContentVerificationError) as exc_info:
            ContentVerifier().verify(samples.gif, "image/png", DocumentType.OTHER)

        assert exc_info.value.reason == "mismatch"

    def test_undetectable_content_rejected(self, samples):
        with pytest.raises(ContentVerificationError) as exc_info:
            ContentVerifier().verify(samples.text, "application/pdf", DocumentType.OTHER)

        assert exc_info.value.reason == "undetectable"

    def test_error_maps_to_bad_request(self, samples):
        with pytest.raises(BadRequestError) as exc_info:
            ContentVerifier().verify(samples.text, "application/pdf", DocumentType.OTHER)

        assert exc_info.value.status_code == 400
        assert exc_info.value.details == [{"reason": "undetectable"}]
