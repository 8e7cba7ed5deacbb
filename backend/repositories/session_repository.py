"""
Session repository: lookup and bulk revocation of login sessions.
"""

from datetime import datetime, timezone

from sqlalchemy.orm import Session

import repositories.db_models as db_models

from .base import BaseRepository


class SessionRepository(BaseRepository[db_models.UserSession]):
    """Repository for user session operations."""

    def __init__(self, db: Session):
        """
        Initialize session repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.UserSession, db)

    def get_by_user(self, user_id: int) -> list[db_models.UserSession]:
        """
        Get all sessions for a user, newest first.

        Args:
            user_id: User ID

        Returns:
            List of sessions
        """
        return (
            self.db.query(db_models.UserSession)
            .filter(db_models.UserSession.user_id == user_id)
            .order_by(db_models.UserSession.created_at.desc())
            .all()
        )

    def count_live(self, user_id: int) -> int:
        """
        Count sessions that have not yet expired.

        Args:
            user_id: User ID

        Returns:
            Number of live sessions
        """
        return (
            self.db.query(db_models.UserSession)
            .filter(
                db_models.UserSession.user_id == user_id,
                db_models.UserSession.expires_at > datetime.now(timezone.utc),
            )
            .count()
        )

    def delete_by_user(self, user_id: int) -> int:
        """
        Delete every session of a user. Safe when none exist.

        Args:
            user_id: User ID

        Returns:
            Number of deleted sessions
        """
        return (
            self.db.query(db_models.UserSession)
            .filter(db_models.UserSession.user_id == user_id)
            .delete(synchronize_session=False)
        )
