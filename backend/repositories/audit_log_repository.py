"""
Admin audit log repository.

Append-only: this repository exposes inserts and reads, nothing that
updates or deletes an existing entry.
"""

from typing import Any, Optional

from sqlalchemy.orm import Session

import repositories.db_models as db_models

from .base import BaseRepository


class AuditLogRepository(BaseRepository[db_models.AdminAuditLog]):
    """Repository for admin audit log entries."""

    def __init__(self, db: Session):
        """
        Initialize audit log repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.AdminAuditLog, db)

    def append(
        self,
        admin_id: int,
        action: str,
        target_type: str,
        target_id: str,
        changes: Optional[dict[str, Any]] = None,
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> db_models.AdminAuditLog:
        """
        Append a new audit entry inside the current unit of work.

        Args:
            admin_id: Acting administrator
            action: Action tag (e.g. user_suspended)
            target_type: Kind of entity acted upon
            target_id: ID of the entity acted upon
            changes: Optional before/after payload
            reason: Optional free-text reason
            ip_address: Optional caller address
            user_agent: Optional caller client string

        Returns:
            Persisted AdminAuditLog entry
        """
        entry = db_models.AdminAuditLog(
            admin_id=admin_id,
            action=action,
            target_type=target_type,
            target_id=target_id,
            changes=changes,
            reason=reason,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        return self.create(entry)

    def get_by_target(
        self,
        target_type: str,
        target_id: str,
        limit: int = 100,
    ) -> list[db_models.AdminAuditLog]:
        """
        Get entries for a target, newest first.

        Args:
            target_type: Kind of entity
            target_id: Entity ID
            limit: Maximum entries to return

        Returns:
            List of audit entries
        """
        return (
            self.db.query(db_models.AdminAuditLog)
            .filter(
                db_models.AdminAuditLog.target_type == target_type,
                db_models.AdminAuditLog.target_id == target_id,
            )
            .order_by(
                db_models.AdminAuditLog.created_at.desc(),
                db_models.AdminAuditLog.id.desc(),
            )
            .limit(limit)
            .all()
        )

    def get_by_admin(self, admin_id: int, limit: int = 100) -> list[db_models.AdminAuditLog]:
        """
        Get entries written by an administrator, newest first.

        Args:
            admin_id: Administrator ID
            limit: Maximum entries to return

        Returns:
            List of audit entries
        """
        return (
            self.db.query(db_models.AdminAuditLog)
            .filter(db_models.AdminAuditLog.admin_id == admin_id)
            .order_by(
                db_models.AdminAuditLog.created_at.desc(),
                db_models.AdminAuditLog.id.desc(),
            )
            .limit(limit)
            .all()
        )

    def count_for_target(self, target_type: str, target_id: str) -> int:
        """Count entries recorded against a target."""
        return (
            self.db.query(db_models.AdminAuditLog)
            .filter(
                db_models.AdminAuditLog.target_type == target_type,
                db_models.AdminAuditLog.target_id == target_id,
            )
            .count()
        )
