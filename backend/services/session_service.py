"""Session revocation for account lifecycle actions."""

from loguru import logger
from sqlalchemy.orm import Session

from repositories.session_repository import SessionRepository


class SessionRevoker:
    """Invalidates every live session of a user."""

    def __init__(self, db: Session):
        self.db = db
        self.session_repo = SessionRepository(db)

    def revoke_all(self, user_id: int) -> int:
        """
        Delete all sessions of a user inside the caller's unit of work.

        Safe when the user has no sessions.

        Args:
            user_id: User whose sessions are revoked

        Returns:
            Number of revoked sessions
        """
        revoked = self.session_repo.delete_by_user(user_id)
        self.db.flush()
        logger.info(f"Revoked {revoked} session(s) for user {user_id}")
        return revoked

    def count_live(self, user_id: int) -> int:
        """Count sessions that have not yet expired."""
        return self.session_repo.count_live(user_id)
