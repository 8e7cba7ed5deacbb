"""
Account Lifecycle Service.

Guarded administrative transitions on a user account: verify e-mail, change
role, suspend, ban, soft or hard delete, edit, and bulk status changes.

Every mutation follows the same shape: the guard rules run before anything
is written, then the state change, any session revocation and the audit
entry are applied in one unit of work.
"""

from typing import Any, Optional

from loguru import logger
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from core.sentry_config import capture_service_error
from core.telemetry import best_effort
from models.config import settings
from models.exceptions import (
    AlreadyInDesiredStateException,
    EmailAlreadyInUseException,
    InvalidBulkOperationException,
    MissingActorException,
    ProtectedTargetForbiddenException,
    SelfActionForbiddenException,
    StorageException,
    UserNotFoundException,
    UsernameTakenException,
)
from repositories.database import transaction
from repositories.user_repository import UserRepository
from services.account_deletion_service import AccountDeletionService
from services.audit_service import AuditAction, AuditService, AuditTarget
from services.session_service import SessionRevoker

# Statuses that end every live session of the account
SESSION_ENDING_STATUSES = frozenset(
    {
        db_models.UserStatus.SUSPENDED,
        db_models.UserStatus.BANNED,
        db_models.UserStatus.DELETED,
    }
)


class AccountLifecycleService:
    """State machine over account status with its administrative guard rules."""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.audit = AuditService(db)
        self.sessions = SessionRevoker(db)
        self.deletion = AccountDeletionService(db)

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    @staticmethod
    def _require_actor(actor_id: Optional[int]) -> int:
        if actor_id is None:
            raise MissingActorException()
        return actor_id

    @staticmethod
    def _forbid_self(target_id: int, actor_id: int, action: str) -> None:
        if target_id == actor_id:
            logger.warning(f"Admin {actor_id} attempted to {action} own account")
            raise SelfActionForbiddenException(action)

    @staticmethod
    def _forbid_protected(user: db_models.User, action: str) -> None:
        role = user.role.value
        if role in settings.PROTECTED_ROLES:
            logger.warning(f"Refused to {action} user {user.id} with role {role}")
            raise ProtectedTargetForbiddenException(action, role)

    def _load_user(self, user_id: int) -> db_models.User:
        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise UserNotFoundException(user_id)
        return user

    def _report(self, exc: StorageException, method: str, **extra: Any) -> None:
        capture_service_error(exc, "AccountLifecycleService", method, **extra)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_user_by_id(self, user_id: int) -> db_models.User:
        """
        Get an account for an administrator.

        Bumps the admin view counter as a best-effort side effect in its own
        commit; a failure there is logged and the read still succeeds.

        Args:
            user_id: User ID

        Returns:
            The account

        Raises:
            UserNotFoundException: If the user does not exist
        """
        user = self._load_user(user_id)

        with best_effort("admin_view_count", user_id=user_id):
            with transaction(self.db):
                self.user_repo.increment_admin_view_count(user_id)

        self.db.refresh(user)
        return user

    def get_user_audit_trail(
        self, user_id: int, limit: int = 100
    ) -> list[schemas.AuditEntry]:
        """Get audit entries recorded against an account, newest first."""
        return self.audit.get_trail(AuditTarget.USER, user_id, limit)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def verify_email(
        self,
        target_id: int,
        actor_id: Optional[int],
        request: Optional[schemas.VerifyEmailRequest] = None,
        metadata: Optional[schemas.RequestMetadata] = None,
    ) -> db_models.User:
        """
        Mark an account's e-mail as verified.

        Raises:
            MissingActorException: If no acting administrator is given
            UserNotFoundException: If the target does not exist
            AlreadyInDesiredStateException: If the e-mail is already verified
        """
        actor_id = self._require_actor(actor_id)
        reason = request.reason if request else None

        try:
            with transaction(self.db):
                user = self._load_user(target_id)
                if user.email_verified:
                    raise AlreadyInDesiredStateException("Email already verified")

                # Conditional write closes the gap between the check and the update
                updated = self.user_repo.update_fields(
                    target_id, {"email_verified": True}, email_verified=False
                )
                if not updated:
                    raise AlreadyInDesiredStateException("Email already verified")

                self.audit.record(
                    admin_id=actor_id,
                    action=AuditAction.EMAIL_VERIFIED,
                    target_type=AuditTarget.USER,
                    target_id=target_id,
                    changes={"email_verified": {"before": False, "after": True}},
                    reason=reason,
                    metadata=metadata,
                )
        except StorageException as exc:
            self._report(exc, "verify_email", user_id=target_id)
            raise

        logger.info(f"Admin {actor_id} verified email of user {target_id}")
        return user

    def change_role(
        self,
        target_id: int,
        actor_id: Optional[int],
        request: schemas.ChangeRoleRequest,
        metadata: Optional[schemas.RequestMetadata] = None,
    ) -> db_models.User:
        """
        Change the role of an account.

        Raises:
            SelfActionForbiddenException: If the actor targets themselves
            UserNotFoundException: If the target does not exist
        """
        actor_id = self._require_actor(actor_id)
        self._forbid_self(target_id, actor_id, "change the role of")

        try:
            with transaction(self.db):
                user = self._load_user(target_id)
                previous_role = user.role

                self.user_repo.update_fields(target_id, {"role": request.role})
                self.audit.record(
                    admin_id=actor_id,
                    action=AuditAction.ROLE_CHANGED,
                    target_type=AuditTarget.USER,
                    target_id=target_id,
                    changes={
                        "role": {
                            "before": previous_role.value,
                            "after": request.role.value,
                        }
                    },
                    reason=request.reason,
                    metadata=metadata,
                )
        except StorageException as exc:
            self._report(exc, "change_role", user_id=target_id)
            raise

        logger.info(
            f"Admin {actor_id} changed role of user {target_id} "
            f"from {previous_role.value} to {request.role.value}"
        )
        return user

    def _end_access(
        self,
        target_id: int,
        actor_id: int,
        status: db_models.UserStatus,
        action: str,
        verb: str,
        changes: dict[str, Any],
        reason: Optional[str],
        metadata: Optional[schemas.RequestMetadata],
    ) -> db_models.User:
        """Set a session-ending status, revoke sessions and audit, atomically."""
        user = self._load_user(target_id)
        self._forbid_protected(user, verb)
        previous_status = user.status

        self.user_repo.update_fields(target_id, {"status": status})
        revoked = self.sessions.revoke_all(target_id)
        self.audit.record(
            admin_id=actor_id,
            action=action,
            target_type=AuditTarget.USER,
            target_id=target_id,
            changes={
                "status": {"before": previous_status.value, "after": status.value},
                "sessions_revoked": revoked,
                **changes,
            },
            reason=reason,
            metadata=metadata,
        )
        return user

    def suspend_user(
        self,
        target_id: int,
        actor_id: Optional[int],
        request: schemas.SuspendUserRequest,
        metadata: Optional[schemas.RequestMetadata] = None,
    ) -> db_models.User:
        """
        Suspend an account and revoke its sessions.

        The duration is recorded on the audit entry only; nothing reactivates
        the account when it elapses.

        Raises:
            SelfActionForbiddenException: If the actor targets themselves
            UserNotFoundException: If the target does not exist
            ProtectedTargetForbiddenException: If the target holds a protected role
        """
        actor_id = self._require_actor(actor_id)
        self._forbid_self(target_id, actor_id, "suspend")

        try:
            with transaction(self.db):
                user = self._end_access(
                    target_id,
                    actor_id,
                    db_models.UserStatus.SUSPENDED,
                    AuditAction.USER_SUSPENDED,
                    "suspend",
                    {
                        "duration_days": request.duration_days,
                        "permanent": request.permanent,
                    },
                    request.reason,
                    metadata,
                )
        except StorageException as exc:
            self._report(exc, "suspend_user", user_id=target_id)
            raise

        logger.info(f"Admin {actor_id} suspended user {target_id}")
        return user

    def ban_user(
        self,
        target_id: int,
        actor_id: Optional[int],
        request: schemas.BanUserRequest,
        metadata: Optional[schemas.RequestMetadata] = None,
    ) -> db_models.User:
        """
        Ban an account and revoke its sessions.

        Raises:
            SelfActionForbiddenException: If the actor targets themselves
            UserNotFoundException: If the target does not exist
            ProtectedTargetForbiddenException: If the target holds a protected role
        """
        actor_id = self._require_actor(actor_id)
        self._forbid_self(target_id, actor_id, "ban")

        try:
            with transaction(self.db):
                user = self._end_access(
                    target_id,
                    actor_id,
                    db_models.UserStatus.BANNED,
                    AuditAction.USER_BANNED,
                    "ban",
                    {"permanent": request.permanent},
                    request.reason,
                    metadata,
                )
        except StorageException as exc:
            self._report(exc, "ban_user", user_id=target_id)
            raise

        logger.info(f"Admin {actor_id} banned user {target_id}")
        return user

    def delete_user(
        self,
        target_id: int,
        actor_id: Optional[int],
        request: schemas.DeleteUserRequest,
        metadata: Optional[schemas.RequestMetadata] = None,
    ) -> Optional[db_models.User]:
        """
        Soft or hard delete an account.

        A soft delete sets the status to deleted and revokes sessions. A hard
        delete removes the row and everything it owns; it is the only deletion
        allowed against a protected role. The audit entry survives both.

        Returns:
            The soft-deleted account, or None after a hard delete

        Raises:
            SelfActionForbiddenException: If the actor targets themselves
            UserNotFoundException: If the target does not exist
            ProtectedTargetForbiddenException: On soft delete of a protected role
        """
        actor_id = self._require_actor(actor_id)
        self._forbid_self(target_id, actor_id, "delete")

        try:
            with transaction(self.db):
                if request.hard_delete:
                    user = self._load_user(target_id)
                    self.audit.record(
                        admin_id=actor_id,
                        action=AuditAction.USER_HARD_DELETED,
                        target_type=AuditTarget.USER,
                        target_id=target_id,
                        changes={
                            "hard_delete": True,
                            "role": user.role.value,
                            "status": {"before": user.status.value, "after": None},
                        },
                        reason=request.reason,
                        metadata=metadata,
                    )
                    self.deletion.purge_user(target_id)
                    result = None
                else:
                    result = self._end_access(
                        target_id,
                        actor_id,
                        db_models.UserStatus.DELETED,
                        AuditAction.USER_SOFT_DELETED,
                        "delete",
                        {"hard_delete": False},
                        request.reason,
                        metadata,
                    )
        except StorageException as exc:
            self._report(exc, "delete_user", user_id=target_id)
            raise

        kind = "hard" if request.hard_delete else "soft"
        logger.info(f"Admin {actor_id} {kind} deleted user {target_id}")
        return result

    def update_user(
        self,
        target_id: int,
        actor_id: Optional[int],
        request: schemas.UpdateUserRequest,
        metadata: Optional[schemas.RequestMetadata] = None,
    ) -> db_models.User:
        """
        Edit account fields that carry no lifecycle meaning.

        Raises:
            UserNotFoundException: If the target does not exist
            EmailAlreadyInUseException: If another account uses the e-mail
            UsernameTakenException: If another account uses the username
        """
        actor_id = self._require_actor(actor_id)
        values = request.model_dump(exclude_none=True)

        try:
            with transaction(self.db):
                user = self._load_user(target_id)
                before = {"email": user.email, "username": user.username}

                email = values.get("email")
                if email and email != user.email:
                    if self.user_repo.email_taken_by_other(email, target_id):
                        raise EmailAlreadyInUseException()
                username = values.get("username")
                if username and username != user.username:
                    if self.user_repo.username_taken_by_other(username, target_id):
                        raise UsernameTakenException()

                if values:
                    self.user_repo.update_fields(target_id, values)

                self.audit.record(
                    admin_id=actor_id,
                    action=AuditAction.USER_UPDATED,
                    target_type=AuditTarget.USER,
                    target_id=target_id,
                    changes={
                        "before": before,
                        "after": {"email": user.email, "username": user.username},
                        "fields": sorted(values),
                    },
                    metadata=metadata,
                )
        except StorageException as exc:
            self._report(exc, "update_user", user_id=target_id)
            raise

        logger.info(
            f"Admin {actor_id} updated user {target_id} (fields: {sorted(values)})"
        )
        return user

    def bulk_update_status(
        self,
        actor_id: Optional[int],
        request: schemas.BulkStatusRequest,
        metadata: Optional[schemas.RequestMetadata] = None,
    ) -> schemas.BulkOperationResult:
        """
        Apply one status change to several accounts as a single unit of work.

        Every account gets its own audit entry. Any failing guard rejects the
        whole batch before anything is written.

        Raises:
            InvalidBulkOperationException: On unknown ids or a missing status
            SelfActionForbiddenException: If the actor is in the batch
            ProtectedTargetForbiddenException: If a target holds a protected role
        """
        actor_id = self._require_actor(actor_id)
        user_ids = list(dict.fromkeys(request.user_ids))

        if request.action == "delete":
            status = db_models.UserStatus.DELETED
            action = AuditAction.USER_SOFT_DELETED
            verb = "delete"
        else:
            if request.status is None:
                raise InvalidBulkOperationException(
                    "Status is required for change_status action"
                )
            status = request.status
            action = AuditAction.USER_STATUS_CHANGED
            verb = "change the status of"

        if actor_id in user_ids:
            self._forbid_self(actor_id, actor_id, verb)

        try:
            with transaction(self.db):
                users = self.user_repo.get_by_ids(user_ids)
                if len(users) != len(user_ids):
                    raise InvalidBulkOperationException("Some user IDs are invalid")
                for user in users:
                    self._forbid_protected(user, verb)

                previous = {user.id: user.status for user in users}
                self.user_repo.bulk_update_status(user_ids, status)

                for user_id in user_ids:
                    revoked = 0
                    if status in SESSION_ENDING_STATUSES:
                        revoked = self.sessions.revoke_all(user_id)
                    self.audit.record(
                        admin_id=actor_id,
                        action=action,
                        target_type=AuditTarget.USER,
                        target_id=user_id,
                        changes={
                            "status": {
                                "before": previous[user_id].value,
                                "after": status.value,
                            },
                            "sessions_revoked": revoked,
                            "bulk": True,
                        },
                        reason=request.reason,
                        metadata=metadata,
                    )
        except StorageException as exc:
            self._report(exc, "bulk_update_status", user_count=len(user_ids))
            raise

        logger.info(
            f"Admin {actor_id} set status {status.value} on {len(user_ids)} user(s)"
        )
        return schemas.BulkOperationResult(affected=len(user_ids), user_ids=user_ids)
