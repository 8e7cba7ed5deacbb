"""Unit tests for init_db functionality."""

from unittest.mock import patch

import repositories.db_models as db_models
from init_db import ensure_bootstrap_admin


class TestEnsureBootstrapAdmin:
    """Tests for ensure_bootstrap_admin."""

    def test_disabled_without_email(self, db_session) -> None:
        with patch("init_db.settings.BOOTSTRAP_ADMIN_EMAIL", None):
            assert ensure_bootstrap_admin(db_session) is None
        assert db_session.query(db_models.User).count() == 0

    def test_creates_admin_once(self, db_session) -> None:
        with patch("init_db.settings.BOOTSTRAP_ADMIN_EMAIL", "root@example.com"):
            admin = ensure_bootstrap_admin(db_session)
            again = ensure_bootstrap_admin(db_session)

        assert admin is not None
        assert admin.role == db_models.UserRole.ADMIN
        assert admin.email_verified is True
        assert again is None
        assert db_session.query(db_models.User).count() == 1
