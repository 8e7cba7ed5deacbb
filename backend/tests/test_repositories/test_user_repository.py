"""Tests for UserRepository."""

import pytest
from sqlalchemy.exc import IntegrityError

import repositories.db_models as db_models
from repositories.user_repository import UserRepository


class TestUserLookups:
    """Tests for read helpers."""

    def test_get_by_email_and_username(self, db_session, test_user) -> None:
        repo = UserRepository(db_session)
        assert repo.get_by_email("test@example.com").id == test_user.id
        assert repo.get_by_username("testuser").id == test_user.id
        assert repo.get_by_email("missing@example.com") is None

    def test_get_by_ids_skips_missing(self, db_session, test_user, admin_user) -> None:
        repo = UserRepository(db_session)
        users = repo.get_by_ids([test_user.id, admin_user.id, 9999])
        assert {u.id for u in users} == {test_user.id, admin_user.id}
        assert repo.get_by_ids([]) == []

    def test_taken_by_other_excludes_self(self, db_session, test_user, admin_user) -> None:
        repo = UserRepository(db_session)
        assert repo.email_taken_by_other("test@example.com", test_user.id) is False
        assert repo.email_taken_by_other("test@example.com", admin_user.id) is True
        assert repo.username_taken_by_other("testuser", admin_user.id) is True
        assert repo.username_taken_by_other("nobody", admin_user.id) is False


class TestConditionalUpdate:
    """Tests for update_fields."""

    def test_applies_when_condition_holds(self, db_session, test_user) -> None:
        repo = UserRepository(db_session)
        updated = repo.update_fields(
            test_user.id, {"email_verified": True}, email_verified=False
        )
        db_session.commit()

        assert updated == 1
        db_session.refresh(test_user)
        assert test_user.email_verified is True

    def test_skips_when_condition_fails(self, db_session, make_user) -> None:
        user = make_user(email_verified=True)
        repo = UserRepository(db_session)

        assert repo.update_fields(user.id, {"email_verified": True}, email_verified=False) == 0

    def test_increment_view_count_leaves_updated_at(self, db_session, test_user) -> None:
        repo = UserRepository(db_session)
        before = test_user.updated_at

        repo.increment_admin_view_count(test_user.id)
        db_session.commit()
        db_session.refresh(test_user)

        assert test_user.admin_view_count == 1
        assert test_user.updated_at == before

    def test_bulk_update_status(self, db_session, make_user) -> None:
        a, b = make_user(), make_user()
        repo = UserRepository(db_session)

        assert repo.bulk_update_status([a.id, b.id], db_models.UserStatus.BANNED) == 2
        assert repo.bulk_update_status([], db_models.UserStatus.BANNED) == 0


class TestDeleteRow:
    """Tests for delete_row."""

    def test_removes_loaded_user(self, db_session, test_user) -> None:
        repo = UserRepository(db_session)
        user_id = test_user.id

        assert repo.delete_row(user_id) == 1
        db_session.commit()
        assert repo.get_by_id(user_id) is None

    def test_refused_while_owned_rows_remain(
        self, db_session, test_user, make_session
    ) -> None:
        """Foreign keys are enforced, so dependents must go first."""
        make_session(test_user)

        with pytest.raises(IntegrityError):
            UserRepository(db_session).delete_row(test_user.id)
        db_session.rollback()
