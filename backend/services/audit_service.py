"""Service for the admin audit trail."""

from typing import Any, Optional

from loguru import logger
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from models.exceptions import MissingActorException
from repositories.audit_log_repository import AuditLogRepository


class AuditAction:
    """Audit action tags for account lifecycle and compliance operations."""

    EMAIL_VERIFIED = "email_verified"
    ROLE_CHANGED = "role_changed"
    USER_SUSPENDED = "user_suspended"
    USER_BANNED = "user_banned"
    USER_SOFT_DELETED = "user_soft_deleted"
    USER_HARD_DELETED = "user_hard_deleted"
    USER_UPDATED = "user_updated"
    USER_STATUS_CHANGED = "user_status_changed"
    USER_ANONYMIZED = "user_anonymized"

    @staticmethod
    def deletion_request(status: db_models.DataDeletionStatus) -> str:
        """Tag for a deletion request status change."""
        return f"deletion_request_{status.value}"


class AuditTarget:
    """Target types recorded on audit entries."""

    USER = "user"
    DELETION_REQUEST = "deletion_request"


class AuditService:
    """
    Writer and reader of the admin audit trail.

    Entries are appended inside the caller's unit of work, so an audit entry
    exists exactly when the action it describes was committed.
    """

    def __init__(self, db: Session):
        self.db = db
        self.audit_repo = AuditLogRepository(db)

    def record(
        self,
        admin_id: Optional[int],
        action: str,
        target_type: str,
        target_id: int | str,
        changes: Optional[dict[str, Any]] = None,
        reason: Optional[str] = None,
        metadata: Optional[schemas.RequestMetadata] = None,
    ) -> db_models.AdminAuditLog:
        """
        Append an audit entry.

        Args:
            admin_id: Acting administrator (required)
            action: Action tag from AuditAction
            target_type: Kind of entity acted upon
            target_id: ID of the entity acted upon
            changes: Optional before/after payload
            reason: Optional free-text reason
            metadata: Optional caller address and client string

        Returns:
            Persisted audit entry

        Raises:
            MissingActorException: If no acting administrator is given
        """
        if admin_id is None:
            raise MissingActorException()

        entry = self.audit_repo.append(
            admin_id=admin_id,
            action=action,
            target_type=target_type,
            target_id=str(target_id),
            changes=changes,
            reason=reason,
            ip_address=metadata.ip_address if metadata else None,
            user_agent=metadata.user_agent if metadata else None,
        )
        logger.info(
            f"AUDIT: {action} on {target_type} {target_id} by admin {admin_id}",
            extra={
                "audit_action": action,
                "admin_id": admin_id,
                "target_type": target_type,
                "target_id": str(target_id),
            },
        )
        return entry

    def get_trail(
        self, target_type: str, target_id: int | str, limit: int = 100
    ) -> list[schemas.AuditEntry]:
        """
        Get the audit trail of an entity, newest first.

        Args:
            target_type: Kind of entity
            target_id: Entity ID
            limit: Maximum entries

        Returns:
            List of audit entries
        """
        entries = self.audit_repo.get_by_target(target_type, str(target_id), limit)
        return [schemas.AuditEntry.model_validate(e) for e in entries]
