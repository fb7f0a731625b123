"""Unit tests for the Share Engine

Tests cover:
- Granting, re-granting (upsert) and the guard order
- Revocation and permission updates
- Owner listing with expiry flags
- Shared-with-me listing hiding expired shares
"""

from datetime import timedelta

import pytest

from securevault.documents.sharing import ShareEngine
from securevault.errors import BadRequestError, ForbiddenError, NotFoundError
from securevault.models import Document, DocumentShare, SharePermission


@pytest.fixture
def engine(db_session, audit, clock):
    return ShareEngine(db_session, audit, clock=clock)


@pytest.fixture
def make_document(db_session, clock):
    counter = {"n": 0}

    def _factory(owner, name="Passport"):
        counter["n"] += 1
        document = Document(
            owner_id=owner.id,
            name=name,
            type="KYC_IDENTITY",
            file_path=f"blob-{counter['n']}.pdf",
            file_size=128,
            mime_type="application/pdf",
            doc_metadata={},
            created_at=clock.now,
            updated_at=clock.now,
        )
        db_session.add(document)
        db_session.commit()
        db_session.refresh(document)
        return document

    return _factory


@pytest.fixture
def document(make_document, alice):
    return make_document(alice)


class TestShare:
    """Test granting access"""

    def test_share_creates_read_grant(self, engine, document, alice, bob, audit):
        share = engine.share(document.id, alice.id, bob.id)

        assert share.document_id == document.id
        assert share.shared_with_id == bob.id
        assert share.permission == "READ"
        assert share.expires_at is None

        events = audit.query_by_action("DOCUMENT_SHARED")
        assert events[0]["user_id"] == alice.id
        assert events[0]["entity_id"] == document.id
        assert events[0]["details"] == {
            "share_id": share.id,
            "shared_with_id": bob.id,
            "permission": "READ",
            "expires_at": None,
        }

    def test_share_with_expiry(self, engine, document, alice, bob, clock):
        expires_at = clock.now + timedelta(days=7)

        share = engine.share(document.id, alice.id, bob.id, SharePermission.READ_WRITE, expires_at=expires_at)

        assert share.permission == "READ_WRITE"
        assert share.expires_at == expires_at

    def test_naive_expiry_treated_as_utc(self, engine, document, alice, bob, clock):
        expires_at = clock.now + timedelta(days=1)

        share = engine.share(document.id, alice.id, bob.id, expires_at=expires_at.replace(tzinfo=None))

        assert share.expires_at == expires_at

    def test_reshare_updates_existing_row(self, engine, document, db_session, alice, bob, clock):
        """Test granting twice keeps one row and takes the new permission and expiry"""
        first = engine.share(document.id, alice.id, bob.id, expires_at=clock.now + timedelta(days=1))
        clock.advance(minutes=5)

        second = engine.share(document.id, alice.id, bob.id, SharePermission.READ_WRITE)

        assert second.id == first.id
        assert second.permission == "READ_WRITE"
        assert second.expires_at is None
        assert db_session.query(DocumentShare).count() == 1

    def test_permission_accepts_string(self, engine, document, alice, bob):
        assert engine.share(document.id, alice.id, bob.id, "READ_WRITE").permission == "READ_WRITE"

    def test_invalid_permission(self, engine, document, alice, bob):
        with pytest.raises(BadRequestError, match="Invalid permission"):
            engine.share(document.id, alice.id, bob.id, "ADMIN")

    def test_missing_document(self, engine, alice, bob):
        with pytest.raises(NotFoundError, match="Document not found"):
            engine.share("missing", alice.id, bob.id)

    def test_non_owner_forbidden(self, engine, document, bob, create_user):
        carol = create_user("carol@test.com")

        with pytest.raises(ForbiddenError):
            engine.share(document.id, bob.id, carol.id)

    def test_self_share_rejected(self, engine, document, alice):
        with pytest.raises(BadRequestError, match="yourself"):
            engine.share(document.id, alice.id, alice.id)

    def test_ownership_checked_before_self_share(self, engine, document, bob):
        with pytest.raises(ForbiddenError):
            engine.share(document.id, bob.id, bob.id)

    def test_missing_grantee(self, engine, document, alice):
        with pytest.raises(NotFoundError, match="Recipient user not found"):
            engine.share(document.id, alice.id, "no-such-user")

    @pytest.mark.parametrize("offset", [timedelta(0), timedelta(seconds=-1), timedelta(days=-3)])
    def test_expiry_must_be_in_the_future(self, engine, document, alice, bob, clock, offset):
        with pytest.raises(BadRequestError, match="must be in the future"):
            engine.share(document.id, alice.id, bob.id, expires_at=clock.now + offset)


class TestRevoke:
    """Test revoking access"""

    def test_revoke_deletes_share(self, engine, document, db_session, audit, alice, bob):
        share = engine.share(document.id, alice.id, bob.id)
        share_id = share.id

        engine.revoke(document.id, share_id, alice.id)

        assert db_session.query(DocumentShare).count() == 0
        events = audit.query_by_action("SHARE_REVOKED")
        assert events[0]["details"] == {"share_id": share_id, "shared_with_id": bob.id}

    def test_revoke_by_non_owner_forbidden(self, engine, document, alice, bob):
        share = engine.share(document.id, alice.id, bob.id)

        with pytest.raises(ForbiddenError):
            engine.revoke(document.id, share.id, bob.id)

    def test_revoke_missing_share(self, engine, document, alice):
        with pytest.raises(NotFoundError, match="Share not found"):
            engine.revoke(document.id, "missing", alice.id)

    def test_revoke_share_of_other_document(self, engine, make_document, alice, bob):
        """Test a share id cannot be revoked through a different document"""
        first = make_document(alice, "first")
        second = make_document(alice, "second")
        share = engine.share(first.id, alice.id, bob.id)

        with pytest.raises(BadRequestError, match="does not belong"):
            engine.revoke(second.id, share.id, alice.id)


class TestUpdatePermission:

    def test_update_permission(self, engine, document, audit, alice, bob):
        share = engine.share(document.id, alice.id, bob.id)

        updated = engine.update_permission(document.id, share.id, alice.id, SharePermission.READ_WRITE)

        assert updated.permission == "READ_WRITE"
        events = audit.query_by_action("SHARE_PERMISSION_UPDATED")
        assert events[0]["details"]["old_permission"] == "READ"
        assert events[0]["details"]["new_permission"] == "READ_WRITE"

    def test_update_by_non_owner_forbidden(self, engine, document, alice, bob):
        share = engine.share(document.id, alice.id, bob.id)

        with pytest.raises(ForbiddenError):
            engine.update_permission(document.id, share.id, bob.id, SharePermission.READ_WRITE)

    def test_update_missing_share(self, engine, document, alice):
        with pytest.raises(NotFoundError):
            engine.update_permission(document.id, "missing", alice.id, SharePermission.READ)


class TestListings:
    """Test owner and grantee views"""

    def test_list_shares_flags_expired(self, engine, document, alice, bob, create_user, clock):
        carol = create_user("carol@test.com", first_name="Carol")
        engine.share(document.id, alice.id, bob.id, expires_at=clock.now + timedelta(hours=1))
        clock.advance(minutes=1)
        engine.share(document.id, alice.id, carol.id)
        clock.advance(hours=2)

        statuses = engine.list_shares(document.id, alice.id)

        assert [(s.shared_with["email"], s.is_expired) for s in statuses] == [
            ("carol@test.com", False),
            ("bob@test.com", True),
        ]
        assert "password_hash" not in statuses[0].shared_with

    def test_list_shares_owner_only(self, engine, document, alice, bob):
        engine.share(document.id, alice.id, bob.id)

        with pytest.raises(ForbiddenError):
            engine.list_shares(document.id, bob.id)

    def test_shared_with_me_hides_expired(self, engine, make_document, alice, bob, clock):
        kept = make_document(alice, "kept")
        lapsing = make_document(alice, "lapsing")
        engine.share(kept.id, alice.id, bob.id)
        engine.share(lapsing.id, alice.id, bob.id, expires_at=clock.now + timedelta(minutes=30))

        assert {v.document.id for v in engine.shared_with_me(bob.id)} == {kept.id, lapsing.id}

        clock.advance(minutes=31)

        views = engine.shared_with_me(bob.id)
        assert [v.document.id for v in views] == [kept.id]
        assert views[0].shared_by["email"] == "alice@test.com"
        assert views[0].permission == "READ"

    def test_shared_with_me_newest_first(self, engine, make_document, alice, bob, clock):
        older = make_document(alice, "older")
        newer = make_document(alice, "newer")
        engine.share(older.id, alice.id, bob.id)
        clock.advance(seconds=30)
        engine.share(newer.id, alice.id, bob.id)

        assert [v.document.id for v in engine.shared_with_me(bob.id)] == [newer.id, older.id]

    def test_shared_with_me_empty_for_owner(self, engine, document, alice, bob):
        engine.share(document.id, alice.id, bob.id)
        assert engine.shared_with_me(alice.id) == []
