"""Unit tests for request schema validation"""

import pytest
from pydantic import ValidationError

from securevault.auth.schemas import LoginRequest, VerifyOtpRequest
from securevault.documents.schemas import ShareDocumentRequest, UploadDocumentForm
from securevault.gdpr.schemas import RectifyRequest
from securevault.models import DocumentType, SharePermission


class TestAuthSchemas:

    def test_login_requires_valid_email(self):
        with pytest.raises(ValidationError):
            LoginRequest(email="not-an-email", password="x")

    def test_login_requires_password(self):
        with pytest.raises(ValidationError):
            LoginRequest(email="alice@test.com", password="")

    @pytest.mark.parametrize("code", ["12345", "1234567", "12a456", ""])
    def test_verify_rejects_malformed_codes(self, code):
        with pytest.raises(ValidationError):
            VerifyOtpRequest(email="alice@test.com", code=code)

    def test_verify_accepts_six_digits(self):
        assert VerifyOtpRequest(email="alice@test.com", code="004211").code == "004211"


class TestDocumentSchemas:

    def test_upload_form_parses_category(self):
        form = UploadDocumentForm(name="Passport", type="KYC_IDENTITY")
        assert form.type is DocumentType.KYC_IDENTITY
        assert form.description is None

    def test_upload_form_rejects_unknown_category(self):
        with pytest.raises(ValidationError):
            UploadDocumentForm(name="Payslip", type="PAYSLIP")

    def test_upload_form_limits(self):
        with pytest.raises(ValidationError):
            UploadDocumentForm(name="", type="OTHER")
        with pytest.raises(ValidationError):
            UploadDocumentForm(name="x" * 256, type="OTHER")
        with pytest.raises(ValidationError):
            UploadDocumentForm(name="ok", type="OTHER", description="d" * 1001)

    def test_share_request_defaults_to_read(self):
        request = ShareDocumentRequest(shared_with_id="user-2")
        assert request.permission is SharePermission.READ
        assert request.expires_at is None

    def test_share_request_rejects_unknown_permission(self):
        with pytest.raises(ValidationError):
            ShareDocumentRequest(shared_with_id="user-2", permission="OWNER")


class TestRectifyRequest:

    def test_requires_at_least_one_field(self):
        with pytest.raises(ValidationError):
            RectifyRequest()

    def test_single_field_is_enough(self):
        assert RectifyRequest(last_name="Smith").first_name is None
