"""Unit tests for the GDPR coordinator

Tests cover:
- Export bundle contents (metadata only)
- Erasure: blobs, documents, shares, consents, codes and the account removed;
  audit rows anonymized and kept
- Rectification of profile fields
- Consent grant, revoke and listing
"""

from datetime import timedelta

import pytest

from securevault.audit.service import RequestOrigin
from securevault.documents.sharing import ShareEngine
from securevault.domain.documents.ports.blob_storage_port import StorageError
from securevault.errors import BadRequestError, NotFoundError
from securevault.gdpr.service import GdprService
from securevault.models import AuditLog, Consent, Document, DocumentShare, OtpCode, User


class FailingDeleteStorage:

    async def delete(self, locator):
        raise StorageError("bucket unavailable")


@pytest.fixture
def gdpr(db_session, storage, audit, clock):
    return GdprService(db_session, storage, audit, clock=clock)


@pytest.fixture
def shares(db_session, audit, clock):
    return ShareEngine(db_session, audit, clock=clock)


async def _stored_document(db_session, storage, owner, name, clock):
    await storage.ensure_ready()
    locator = await storage.write_new(b"%PDF-1.4 " + name.encode(), extension=".pdf")
    document = Document(
        owner_id=owner.id,
        name=name,
        type="CONTRACT",
        file_path=locator,
        file_size=9 + len(name),
        mime_type="application/pdf",
        doc_metadata={"original_name": f"{name}.pdf"},
        created_at=clock.now,
        updated_at=clock.now,
    )
    db_session.add(document)
    db_session.commit()
    db_session.refresh(document)
    return document


class TestExport:
    """Test the right of access"""

    @pytest.mark.asyncio
    async def test_export_bundle(self, gdpr, shares, db_session, storage, audit, clock, alice, bob):
        own = await _stored_document(db_session, storage, alice, "lease", clock)
        received = await _stored_document(db_session, storage, bob, "invoice", clock)
        shares.share(own.id, alice.id, bob.id)
        shares.share(received.id, bob.id, alice.id, expires_at=clock.now + timedelta(days=1))
        gdpr.grant_consent(alice.id, "MARKETING")

        bundle = gdpr.export(alice.id)

        assert bundle["user"]["email"] == "alice@test.com"
        assert "password_hash" not in bundle["user"]
        assert [d["name"] for d in bundle["documents"]] == ["lease"]
        assert "file_path" not in bundle["documents"][0]
        assert bundle["shared_documents"][0]["document"]["name"] == "invoice"
        assert bundle["shared_documents"][0]["document"]["owner"]["email"] == "bob@test.com"
        assert bundle["shares_created"][0]["shared_with"]["email"] == "bob@test.com"
        assert [c["consent_type"] for c in bundle["consents"]] == ["MARKETING"]
        assert {e["action"] for e in bundle["audit_logs"]} >= {"DOCUMENT_SHARED", "CONSENT_GRANTED"}
        assert bundle["exported_at"] == clock.now.isoformat()

    def test_export_is_audited(self, gdpr, audit, alice):
        gdpr.export(alice.id)

        events = audit.query_by_action("DATA_EXPORT")
        assert [(e["user_id"], e["entity_id"]) for e in events] == [(alice.id, alice.id)]

    def test_export_of_missing_user(self, gdpr):
        with pytest.raises(NotFoundError):
            gdpr.export("missing")


class TestErase:
    """Test the right to erasure"""

    @pytest.mark.asyncio
    async def test_erase_removes_everything_owned(self, gdpr, shares, db_session, session_factory, storage, audit, clock, alice, bob):
        alice_id, bob_id = alice.id, bob.id
        lease = await _stored_document(db_session, storage, alice, "lease", clock)
        passport = await _stored_document(db_session, storage, alice, "passport", clock)
        invoice = await _stored_document(db_session, storage, bob, "invoice", clock)
        alice_locators = [lease.file_path, passport.file_path]
        invoice_id, invoice_locator = invoice.id, invoice.file_path
        shares.share(lease.id, alice_id, bob_id)
        shares.share(invoice.id, bob_id, alice_id)
        gdpr.grant_consent(alice_id, "DATA_PROCESSING")
        db_session.add(OtpCode(user_id=alice_id, code="123456", expires_at=clock.now + timedelta(minutes=2)))
        db_session.commit()

        counts = await gdpr.erase(alice_id)

        assert counts == {"documents_deleted": 2, "shares_deleted": 2, "consents_deleted": 1}
        for locator in alice_locators:
            assert await storage.exists(locator) is False
        assert await storage.exists(invoice_locator) is True

        with session_factory() as check:
            assert check.get(User, alice_id) is None
            assert check.query(Document).filter(Document.owner_id == alice_id).count() == 0
            assert check.get(Document, invoice_id) is not None
            assert check.query(DocumentShare).count() == 0
            assert check.query(Consent).count() == 0
            assert check.query(OtpCode).count() == 0

    @pytest.mark.asyncio
    async def test_erase_anonymizes_audit_trail(self, gdpr, session_factory, audit, clock, alice):
        alice_id = alice.id
        audit.record("OTP_ISSUED", user_id=alice_id, entity_type="User", entity_id=alice_id, details={"x": 1})
        audit.record("DATA_EXPORT", user_id=alice_id, entity_type="User", entity_id=alice_id)

        await gdpr.erase(alice_id)

        with session_factory() as check:
            assert check.query(AuditLog).filter(AuditLog.user_id == alice_id).count() == 0
            anonymized = check.query(AuditLog).filter(AuditLog.action.in_(["OTP_ISSUED", "DATA_EXPORT"])).all()
            assert len(anonymized) == 2
            for row in anonymized:
                assert row.user_id is None
                assert row.details == {
                    "anonymized": True,
                    "original_user_id": alice_id,
                    "anonymized_at": clock.now.isoformat(),
                }

        deletion = audit.query_by_action("DATA_DELETION")
        assert len(deletion) == 1
        assert deletion[0]["user_id"] is None
        assert deletion[0]["entity_id"] == alice_id
        assert deletion[0]["details"]["documents_deleted"] == 0

    @pytest.mark.asyncio
    async def test_erase_tolerates_blob_failures(self, db_session, session_factory, storage, audit, clock, alice):
        alice_id = alice.id
        await _stored_document(db_session, storage, alice, "lease", clock)
        gdpr = GdprService(db_session, FailingDeleteStorage(), audit, clock=clock)

        counts = await gdpr.erase(alice_id)

        assert counts["documents_deleted"] == 1
        with session_factory() as check:
            assert check.get(User, alice_id) is None

    @pytest.mark.asyncio
    async def test_erase_missing_user(self, gdpr):
        with pytest.raises(NotFoundError):
            await gdpr.erase("missing")


class TestRectify:
    """Test the right to rectification"""

    def test_rectify_updates_given_fields(self, gdpr, audit, alice, clock):
        clock.advance(minutes=1)

        user = gdpr.rectify(alice.id, first_name="Alicia")

        assert user.first_name == "Alicia"
        assert user.last_name == "Owner"
        assert user.updated_at == clock.now
        events = audit.query_by_action("DATA_RECTIFICATION")
        assert events[0]["details"] == {"updated_fields": ["first_name"]}

    def test_rectify_both_fields_audits_names_only(self, gdpr, audit, alice):
        gdpr.rectify(alice.id, first_name="Alicia", last_name="Smith")

        details = audit.query_by_action("DATA_RECTIFICATION")[0]["details"]
        assert details == {"updated_fields": ["first_name", "last_name"]}
        assert "Alicia" not in str(details)

    def test_rectify_requires_a_field(self, gdpr, alice):
        with pytest.raises(BadRequestError, match="At least one"):
            gdpr.rectify(alice.id)

    def test_rectify_missing_user(self, gdpr):
        with pytest.raises(NotFoundError):
            gdpr.rectify("missing", first_name="Ghost")


class TestConsents:
    """Test consent bookkeeping"""

    def test_grant_records_origin(self, gdpr, alice, clock):
        origin = RequestOrigin(ip_address="198.51.100.4", user_agent="browser")

        consent = gdpr.grant_consent(alice.id, "ANALYTICS", origin=origin)

        assert consent.consent_type == "ANALYTICS"
        assert consent.granted is True
        assert consent.granted_at == clock.now
        assert consent.revoked_at is None
        assert consent.ip_address == "198.51.100.4"
        assert consent.user_agent == "browser"

    def test_grant_twice_keeps_one_row(self, gdpr, db_session, alice, clock):
        first = gdpr.grant_consent(alice.id, "MARKETING")
        clock.advance(minutes=1)
        second = gdpr.grant_consent(alice.id, "MARKETING")

        assert second.id == first.id
        assert second.granted_at == clock.now
        assert db_session.query(Consent).count() == 1

    def test_revoke_then_regrant(self, gdpr, audit, alice, clock):
        gdpr.grant_consent(alice.id, "MARKETING")
        clock.advance(minutes=1)

        revoked = gdpr.revoke_consent(alice.id, "MARKETING")
        assert revoked.granted is False
        assert revoked.revoked_at == clock.now

        clock.advance(minutes=1)
        regranted = gdpr.grant_consent(alice.id, "MARKETING")
        assert regranted.granted is True
        assert regranted.revoked_at is None

        actions = [e["action"] for e in audit.query(user_id=alice.id)]
        assert actions == ["CONSENT_GRANTED", "CONSENT_REVOKED", "CONSENT_GRANTED"]

    def test_revoke_never_granted(self, gdpr, alice):
        with pytest.raises(NotFoundError):
            gdpr.revoke_consent(alice.id, "ANALYTICS")

    def test_unknown_consent_type(self, gdpr, alice):
        with pytest.raises(BadRequestError, match="Invalid consent type"):
            gdpr.grant_consent(alice.id, "TELEMETRY")

    def test_list_consents(self, gdpr, alice, bob):
        gdpr.grant_consent(alice.id, "MARKETING")
        gdpr.grant_consent(alice.id, "DATA_PROCESSING")
        gdpr.grant_consent(bob.id, "ANALYTICS")

        assert [c.consent_type for c in gdpr.list_consents(alice.id)] == ["DATA_PROCESSING", "MARKETING"]
