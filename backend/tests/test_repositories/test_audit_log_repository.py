"""Tests for AuditLogRepository and SessionRepository."""

from datetime import datetime, timedelta, timezone

from repositories.audit_log_repository import AuditLogRepository
from repositories.session_repository import SessionRepository


class TestAuditLogRepository:
    """Tests for the append-only audit log."""

    def test_append_and_read_by_target(self, db_session, admin_user, test_user) -> None:
        repo = AuditLogRepository(db_session)
        repo.append(admin_user.id, "user_suspended", "user", str(test_user.id))
        repo.append(
            admin_user.id,
            "user_banned",
            "user",
            str(test_user.id),
            changes={"permanent": True},
            reason="spam",
        )
        repo.append(admin_user.id, "user_banned", "user", "999")
        db_session.commit()

        trail = repo.get_by_target("user", str(test_user.id))
        assert [e.action for e in trail] == ["user_banned", "user_suspended"]
        assert trail[0].changes == {"permanent": True}
        assert repo.count_for_target("user", "999") == 1
        assert len(repo.get_by_admin(admin_user.id)) == 3

    def test_exposes_no_mutation_helpers(self) -> None:
        assert not hasattr(AuditLogRepository, "update")
        assert not hasattr(AuditLogRepository, "delete")


class TestSessionRepository:
    """Tests for session lookup and revocation."""

    def test_delete_by_user(self, db_session, test_user, admin_user, make_session) -> None:
        make_session(test_user)
        make_session(test_user)
        make_session(admin_user)
        repo = SessionRepository(db_session)

        assert repo.delete_by_user(test_user.id) == 2
        db_session.commit()
        assert repo.get_by_user(test_user.id) == []
        assert len(repo.get_by_user(admin_user.id)) == 1

    def test_delete_without_sessions_is_safe(self, db_session, test_user) -> None:
        assert SessionRepository(db_session).delete_by_user(test_user.id) == 0

    def test_count_live_ignores_expired(self, db_session, test_user, make_session) -> None:
        make_session(test_user)
        make_session(
            test_user, expires_at=datetime.now(timezone.utc) - timedelta(hours=1)
        )
        assert SessionRepository(db_session).count_live(test_user.id) == 1
