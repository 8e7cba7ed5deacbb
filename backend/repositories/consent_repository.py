"""
Consent repository: current per-category consent state plus its change log.

Both tables are written here so a consent row and its log entry always land
in the same flush.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

import repositories.db_models as db_models

from .base import BaseRepository


class ConsentRepository(BaseRepository[db_models.UserConsent]):
    """Repository for consent ledger operations."""

    def __init__(self, db: Session):
        """
        Initialize consent repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.UserConsent, db)

    def get_user_consents(self, user_id: int) -> list[db_models.UserConsent]:
        """
        Get all stored consent rows for a user.

        Args:
            user_id: User ID

        Returns:
            List of consent rows
        """
        return (
            self.db.query(db_models.UserConsent)
            .filter(db_models.UserConsent.user_id == user_id)
            .all()
        )

    def get_consent(
        self, user_id: int, consent_type: db_models.ConsentType
    ) -> Optional[db_models.UserConsent]:
        """
        Get the consent row for one category.

        Args:
            user_id: User ID
            consent_type: Consent category

        Returns:
            Consent row if found, None otherwise
        """
        return (
            self.db.query(db_models.UserConsent)
            .filter(
                db_models.UserConsent.user_id == user_id,
                db_models.UserConsent.consent_type == consent_type,
            )
            .first()
        )

    def upsert_consent(
        self,
        user_id: int,
        consent_type: db_models.ConsentType,
        status: db_models.ConsentStatus,
        version: int,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> db_models.UserConsent:
        """
        Create or supersede the consent row for (user, category).

        granted_at is stamped on every grant; withdrawn_at on every
        withdrawal. A denial leaves both timestamps untouched.

        Args:
            user_id: User ID
            consent_type: Consent category
            status: Resulting status
            version: Policy version the decision applies to
            ip_address: Optional caller address
            user_agent: Optional caller client string

        Returns:
            The current consent row
        """
        now = datetime.now(timezone.utc)
        consent = self.get_consent(user_id, consent_type)

        if consent is None:
            consent = db_models.UserConsent(
                user_id=user_id,
                consent_type=consent_type,
                created_at=now,
            )
            self.db.add(consent)

        consent.status = status
        consent.version = version
        consent.ip_address = ip_address
        consent.user_agent = user_agent[:500] if user_agent else None
        consent.updated_at = now
        if status == db_models.ConsentStatus.GRANTED:
            consent.granted_at = now
        elif status == db_models.ConsentStatus.WITHDRAWN:
            consent.withdrawn_at = now

        self.db.flush()
        return consent

    def log_consent_change(
        self,
        user_id: int,
        consent_type: db_models.ConsentType,
        status: db_models.ConsentStatus,
        version: int,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> db_models.ConsentLog:
        """
        Append a consent log entry.

        Args:
            user_id: User ID
            consent_type: Consent category
            status: Resulting status
            version: Policy version
            ip_address: Optional caller address
            user_agent: Optional caller client string
            metadata: Optional free-form context (e.g. source screen)

        Returns:
            Created ConsentLog entry
        """
        entry = db_models.ConsentLog(
            user_id=user_id,
            consent_type=consent_type,
            status=status,
            version=version,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
            extra_metadata=metadata,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def get_consent_history(
        self,
        user_id: int,
        consent_type: Optional[db_models.ConsentType] = None,
        limit: Optional[int] = 100,
    ) -> list[db_models.ConsentLog]:
        """
        Get consent log entries for a user, newest first.

        Args:
            user_id: User ID
            consent_type: Optional category filter
            limit: Maximum entries to return, None for the full history

        Returns:
            List of consent log entries
        """
        query = self.db.query(db_models.ConsentLog).filter(
            db_models.ConsentLog.user_id == user_id
        )
        if consent_type is not None:
            query = query.filter(db_models.ConsentLog.consent_type == consent_type)
        query = query.order_by(
            db_models.ConsentLog.created_at.desc(),
            db_models.ConsentLog.id.desc(),
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def get_latest_log(
        self, user_id: int, consent_type: db_models.ConsentType
    ) -> Optional[db_models.ConsentLog]:
        """Get the most recent log entry for (user, category)."""
        history = self.get_consent_history(user_id, consent_type, limit=1)
        return history[0] if history else None

    def delete_user_consents(self, user_id: int) -> int:
        """
        Delete all current consent rows for a user.

        Args:
            user_id: User ID

        Returns:
            Number of deleted rows
        """
        return (
            self.db.query(db_models.UserConsent)
            .filter(db_models.UserConsent.user_id == user_id)
            .delete(synchronize_session=False)
        )

    def delete_consent_logs(self, user_id: int) -> int:
        """
        Delete consent log entries for a user (hard delete only).

        Args:
            user_id: User ID

        Returns:
            Number of deleted rows
        """
        return (
            self.db.query(db_models.ConsentLog)
            .filter(db_models.ConsentLog.user_id == user_id)
            .delete(synchronize_session=False)
        )
