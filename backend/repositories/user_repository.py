"""
User repository for database operations (the account store).
"""

from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from .base import BaseRepository


class UserRepository(BaseRepository[db_models.User]):
    """Repository for User entity database operations."""

    def __init__(self, db: Session):
        """
        Initialize user repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.User, db)

    def get_by_email(self, email: str) -> Optional[db_models.User]:
        """
        Get user by email.

        Args:
            email: User email

        Returns:
            User if found, None otherwise
        """
        return (
            self.db.query(db_models.User).filter(db_models.User.email == email).first()
        )

    def get_by_username(self, username: str) -> Optional[db_models.User]:
        """
        Get user by username.

        Args:
            username: Username

        Returns:
            User if found, None otherwise
        """
        return (
            self.db.query(db_models.User)
            .filter(db_models.User.username == username)
            .first()
        )

    def get_by_ids(self, user_ids: List[int]) -> List[db_models.User]:
        """
        Get users by a list of IDs.

        Args:
            user_ids: User IDs

        Returns:
            Users found (missing IDs are simply absent)
        """
        if not user_ids:
            return []
        return (
            self.db.query(db_models.User)
            .filter(db_models.User.id.in_(user_ids))
            .all()
        )

    def email_taken_by_other(self, email: str, user_id: int) -> bool:
        """
        Check whether another account already uses an email.

        Args:
            email: Email to check
            user_id: Account being edited (excluded from the check)

        Returns:
            True if a different account holds the email
        """
        return (
            self.db.query(db_models.User.id)
            .filter(db_models.User.email == email, db_models.User.id != user_id)
            .first()
            is not None
        )

    def username_taken_by_other(self, username: str, user_id: int) -> bool:
        """
        Check whether another account already uses a username.

        Args:
            username: Username to check
            user_id: Account being edited (excluded from the check)

        Returns:
            True if a different account holds the username
        """
        return (
            self.db.query(db_models.User.id)
            .filter(
                db_models.User.username == username, db_models.User.id != user_id
            )
            .first()
            is not None
        )

    def update_fields(
        self,
        user_id: int,
        values: dict[str, Any],
        **conditions: Any,
    ) -> int:
        """
        Conditionally update one user row.

        The update only applies when every column in `conditions` still holds
        the given value, which lets callers express "set X only if not
        already X" as a single statement.

        Args:
            user_id: User ID
            values: Column values to write
            **conditions: Column equality conditions that must hold

        Returns:
            Number of rows updated (0 or 1)
        """
        query = self.db.query(db_models.User).filter(db_models.User.id == user_id)
        for column, expected in conditions.items():
            query = query.filter(getattr(db_models.User, column) == expected)

        payload = {**values, "updated_at": datetime.now(timezone.utc)}
        updated = query.update(payload, synchronize_session="fetch")
        self.db.flush()
        return updated

    def bulk_update_status(
        self, user_ids: List[int], status: db_models.UserStatus
    ) -> int:
        """
        Set the status of several users at once.

        Args:
            user_ids: User IDs
            status: New status

        Returns:
            Number of rows updated
        """
        if not user_ids:
            return 0
        updated = (
            self.db.query(db_models.User)
            .filter(db_models.User.id.in_(user_ids))
            .update(
                {"status": status, "updated_at": datetime.now(timezone.utc)},
                synchronize_session="fetch",
            )
        )
        self.db.flush()
        return updated

    def increment_admin_view_count(self, user_id: int) -> None:
        """
        Bump the admin view counter without touching updated_at.

        Args:
            user_id: User ID
        """
        self.db.query(db_models.User).filter(db_models.User.id == user_id).update(
            {"admin_view_count": db_models.User.admin_view_count + 1},
            synchronize_session=False,
        )

    def find_identity_clash(
        self, email: str, username: str, user_id: int
    ) -> Optional[db_models.User]:
        """
        Find another account already holding an email or username.

        Args:
            email: Email to check
            username: Username to check
            user_id: Account being written (excluded from the check)

        Returns:
            Clashing user, or None
        """
        return (
            self.db.query(db_models.User)
            .filter(
                or_(
                    db_models.User.email == email,
                    db_models.User.username == username,
                ),
                db_models.User.id != user_id,
            )
            .first()
        )

    def delete_row(self, user_id: int) -> int:
        """
        Physically remove a user row. Dependent rows must already be gone.

        Args:
            user_id: User ID

        Returns:
            Number of rows deleted (0 or 1)
        """
        user = self.db.get(db_models.User, user_id)
        if user is not None:
            self.db.expunge(user)
        deleted = (
            self.db.query(db_models.User)
            .filter(db_models.User.id == user_id)
            .delete(synchronize_session=False)
        )
        self.db.flush()
        return deleted
