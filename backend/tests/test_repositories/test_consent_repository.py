"""Tests for ConsentRepository."""

import repositories.db_models as db_models
from repositories.consent_repository import ConsentRepository

ANALYTICS = db_models.ConsentType.ANALYTICS
MARKETING = db_models.ConsentType.MARKETING


class TestUpsertConsent:
    """Tests for upsert_consent."""

    def test_creates_then_supersedes_single_row(self, db_session, test_user) -> None:
        repo = ConsentRepository(db_session)

        repo.upsert_consent(test_user.id, ANALYTICS, db_models.ConsentStatus.GRANTED, 1)
        repo.upsert_consent(test_user.id, ANALYTICS, db_models.ConsentStatus.DENIED, 1)
        db_session.commit()

        rows = repo.get_user_consents(test_user.id)
        assert len(rows) == 1
        assert rows[0].status == db_models.ConsentStatus.DENIED

    def test_stamps_grant_and_withdrawal(self, db_session, test_user) -> None:
        repo = ConsentRepository(db_session)

        consent = repo.upsert_consent(
            test_user.id, MARKETING, db_models.ConsentStatus.GRANTED, 1
        )
        assert consent.granted_at is not None
        assert consent.withdrawn_at is None

        consent = repo.upsert_consent(
            test_user.id, MARKETING, db_models.ConsentStatus.WITHDRAWN, 1
        )
        assert consent.withdrawn_at is not None

    def test_truncates_user_agent(self, db_session, test_user) -> None:
        repo = ConsentRepository(db_session)
        consent = repo.upsert_consent(
            test_user.id,
            ANALYTICS,
            db_models.ConsentStatus.GRANTED,
            1,
            user_agent="x" * 900,
        )
        assert len(consent.user_agent) == 500


class TestConsentHistory:
    """Tests for the consent log."""

    def test_history_newest_first_and_filtered(self, db_session, test_user) -> None:
        repo = ConsentRepository(db_session)
        repo.log_consent_change(test_user.id, ANALYTICS, db_models.ConsentStatus.GRANTED, 1)
        repo.log_consent_change(test_user.id, MARKETING, db_models.ConsentStatus.DENIED, 1)
        repo.log_consent_change(test_user.id, ANALYTICS, db_models.ConsentStatus.DENIED, 1)
        db_session.commit()

        history = repo.get_consent_history(test_user.id)
        assert len(history) == 3

        analytics = repo.get_consent_history(test_user.id, ANALYTICS)
        assert [h.status for h in analytics] == [
            db_models.ConsentStatus.DENIED,
            db_models.ConsentStatus.GRANTED,
        ]
        assert repo.get_latest_log(test_user.id, ANALYTICS).status == (
            db_models.ConsentStatus.DENIED
        )

    def test_history_limit_and_unbounded(self, db_session, test_user) -> None:
        repo = ConsentRepository(db_session)
        for _ in range(105):
            repo.log_consent_change(
                test_user.id, ANALYTICS, db_models.ConsentStatus.GRANTED, 1
            )
        db_session.commit()

        assert len(repo.get_consent_history(test_user.id)) == 100
        assert len(repo.get_consent_history(test_user.id, limit=3)) == 3
        assert len(repo.get_consent_history(test_user.id, limit=None)) == 105

    def test_metadata_round_trip(self, db_session, test_user) -> None:
        repo = ConsentRepository(db_session)
        entry = repo.log_consent_change(
            test_user.id,
            ANALYTICS,
            db_models.ConsentStatus.GRANTED,
            1,
            metadata={"source": "banner"},
        )
        db_session.commit()
        db_session.refresh(entry)
        assert entry.extra_metadata == {"source": "banner"}

    def test_delete_user_consents_keeps_logs(self, db_session, test_user) -> None:
        repo = ConsentRepository(db_session)
        repo.upsert_consent(test_user.id, ANALYTICS, db_models.ConsentStatus.GRANTED, 1)
        repo.log_consent_change(test_user.id, ANALYTICS, db_models.ConsentStatus.GRANTED, 1)

        assert repo.delete_user_consents(test_user.id) == 1
        db_session.commit()

        assert repo.get_user_consents(test_user.id) == []
        assert len(repo.get_consent_history(test_user.id)) == 1
