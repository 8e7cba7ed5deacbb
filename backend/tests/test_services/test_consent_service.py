"""Tests for ConsentService."""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

import models.schemas as schemas
import repositories.db_models as db_models
from models.exceptions import StorageException, UserNotFoundException
from repositories.consent_repository import ConsentRepository
from services.consent_service import ConsentService

Type = db_models.ConsentType
Status = db_models.ConsentStatus


class TestUpdateConsent:
    """Tests for update_consent."""

    def test_one_row_and_one_log_per_call(self, db_session, test_user) -> None:
        service = ConsentService(db_session)
        repo = ConsentRepository(db_session)

        for granted in (True, False, True):
            service.update_consent(test_user.id, Type.ANALYTICS, granted)

        assert len(repo.get_user_consents(test_user.id)) == 1
        assert len(repo.get_consent_history(test_user.id, Type.ANALYTICS)) == 3

    def test_row_matches_latest_log(self, db_session, test_user) -> None:
        service = ConsentService(db_session)
        repo = ConsentRepository(db_session)

        service.update_consent(test_user.id, Type.MARKETING, True)
        state = service.update_consent(test_user.id, Type.MARKETING, False)

        assert state.status == Status.DENIED
        latest = repo.get_latest_log(test_user.id, Type.MARKETING)
        assert latest.status == repo.get_consent(test_user.id, Type.MARKETING).status

    def test_log_carries_metadata(self, db_session, test_user) -> None:
        service = ConsentService(db_session)
        service.update_consent(
            test_user.id,
            Type.ANALYTICS,
            True,
            schemas.RequestMetadata(ip_address="203.0.113.9", user_agent="browser"),
        )

        entry = service.get_consent_history(test_user.id)[0]
        assert entry.ip_address == "203.0.113.9"
        assert entry.metadata == {"source": "user_settings"}
        assert entry.version == 1

    def test_failed_log_write_rolls_back_row(self, db_session, test_user) -> None:
        service = ConsentService(db_session)
        with patch.object(
            ConsentRepository,
            "log_consent_change",
            side_effect=SQLAlchemyError("disk full"),
        ):
            with pytest.raises(StorageException):
                service.update_consent(test_user.id, Type.ANALYTICS, True)

        assert ConsentRepository(db_session).get_user_consents(test_user.id) == []

    def test_unknown_user(self, db_session) -> None:
        with pytest.raises(UserNotFoundException):
            ConsentService(db_session).update_consent(9999, Type.ANALYTICS, True)


class TestGetConsents:
    """Tests for get_consents and related reads."""

    def test_synthesizes_denied_defaults(self, db_session, test_user) -> None:
        service = ConsentService(db_session)
        service.update_consent(test_user.id, Type.ANALYTICS, True)

        states = {s.consent_type: s for s in service.get_consents(test_user.id)}

        assert set(states) == set(Type)
        assert states[Type.ANALYTICS].status == Status.GRANTED
        assert states[Type.ANALYTICS].id is not None
        assert states[Type.MARKETING].status == Status.DENIED
        assert states[Type.MARKETING].version == 1
        assert states[Type.MARKETING].id is None

    def test_batch_update(self, db_session, test_user) -> None:
        states = ConsentService(db_session).update_consents(
            test_user.id,
            [
                schemas.ConsentUpdate(consent_type=Type.ANALYTICS, granted=True),
                schemas.ConsentUpdate(consent_type=Type.MARKETING, granted=True),
            ],
        )
        granted = {s.consent_type for s in states if s.status == Status.GRANTED}
        assert granted == {Type.ANALYTICS, Type.MARKETING}

    def test_withdraw(self, db_session, test_user) -> None:
        service = ConsentService(db_session)
        service.update_consent(test_user.id, Type.MARKETING, True)

        state = service.withdraw_consent(test_user.id, Type.MARKETING)

        assert state.status == Status.WITHDRAWN
        assert state.withdrawn_at is not None
        assert service.has_consent(test_user.id, Type.MARKETING) is False

    def test_has_consent(self, db_session, test_user) -> None:
        service = ConsentService(db_session)
        assert service.has_consent(test_user.id, Type.NECESSARY) is True
        assert service.has_consent(test_user.id, Type.ANALYTICS) is False
        service.update_consent(test_user.id, Type.ANALYTICS, True)
        assert service.has_consent(test_user.id, Type.ANALYTICS) is True

    def test_history_filter(self, db_session, test_user) -> None:
        service = ConsentService(db_session)
        service.update_consent(test_user.id, Type.ANALYTICS, True)
        service.update_consent(test_user.id, Type.MARKETING, True)

        history = service.get_consent_history(test_user.id, Type.MARKETING)
        assert [h.consent_type for h in history] == [Type.MARKETING]


class TestUnsubscribe:
    """Tests for email opt-outs."""

    def test_create_and_query(self, db_session, test_user) -> None:
        service = ConsentService(db_session)
        service.create_unsubscribe("Test@Example.com", "marketing", test_user.id)

        assert service.is_unsubscribed("test@example.com", "marketing") is True
        assert service.is_unsubscribed("test@example.com", "digest") is False

    def test_all_covers_every_category(self, db_session) -> None:
        service = ConsentService(db_session)
        service.create_unsubscribe("someone@example.com", "all")
        assert service.is_unsubscribed("someone@example.com", "digest") is True

    def test_repeat_returns_existing(self, db_session) -> None:
        service = ConsentService(db_session)
        first = service.create_unsubscribe("someone@example.com", "marketing")
        second = service.create_unsubscribe("someone@example.com", "marketing")
        assert first.id == second.id
