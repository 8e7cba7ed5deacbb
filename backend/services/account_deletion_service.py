"""
Account Deletion Service.

Right-to-be-forgotten pipeline: deletion requests, their processing by an
administrator, anonymization in place, and the physical purge used by a hard
delete. Each public operation is one unit of work.
"""

import json
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from core.sentry_config import capture_service_error
from models.config import settings
from models.exceptions import (
    ConflictException,
    DeletionRequestNotFoundException,
    DuplicateDeletionRequestException,
    EmailMismatchException,
    InvalidDeletionTransitionException,
    MissingActorException,
    StorageException,
    UserNotFoundException,
)
from repositories.account_deletion_repository import AccountDeletionRepository
from repositories.consent_repository import ConsentRepository
from repositories.database import transaction
from repositories.deletion_request_repository import DeletionRequestRepository
from repositories.user_repository import UserRepository
from services.audit_service import AuditAction, AuditService, AuditTarget
from services.data_export_service import DataExportService
from services.session_service import SessionRevoker

_Status = db_models.DataDeletionStatus

ALLOWED_TRANSITIONS: dict[db_models.DataDeletionStatus, frozenset] = {
    _Status.REQUESTED: frozenset(
        {_Status.PROCESSING, _Status.COMPLETED, _Status.CANCELLED}
    ),
    _Status.PROCESSING: frozenset({_Status.COMPLETED}),
    _Status.COMPLETED: frozenset(),
    _Status.CANCELLED: frozenset(),
}


def synthetic_identity(user_id: int) -> tuple[str, str]:
    """
    Return the (email, username) written over an anonymized account.

    Both are a pure function of the user id.
    """
    username = f"{settings.ANONYMIZED_USERNAME_PREFIX}{user_id}"
    email = f"{username}@{settings.ANONYMIZED_EMAIL_DOMAIN}"
    return email, username


class AccountDeletionService:
    """Service for deletion requests, anonymization and hard deletion."""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.request_repo = DeletionRequestRepository(db)
        self.deletion_repo = AccountDeletionRepository(db)
        self.consent_repo = ConsentRepository(db)
        self.audit = AuditService(db)
        self.sessions = SessionRevoker(db)
        self.exporter = DataExportService(db)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def request_deletion(
        self, user_id: int, request: schemas.DeletionRequestCreate
    ) -> schemas.DeletionRequestCreated:
        """
        File a deletion request for the user's own account.

        Args:
            user_id: Authenticated requesting user
            request: Confirmation e-mail and optional reason

        Returns:
            The created request and a confirmation message

        Raises:
            UserNotFoundException: If the user does not exist
            EmailMismatchException: If the confirmation e-mail is not the account's
            DuplicateDeletionRequestException: If a request is already pending
        """
        try:
            with transaction(self.db):
                user = self.user_repo.get_by_id(user_id)
                if not user:
                    raise UserNotFoundException(user_id)

                if user.email.strip().lower() != str(request.confirm_email).strip().lower():
                    logger.warning(
                        f"Deletion request rejected for user {user_id}: email mismatch"
                    )
                    raise EmailMismatchException()

                if self.request_repo.get_pending_for_user(user_id):
                    logger.warning(
                        f"Deletion request rejected for user {user_id}: already pending"
                    )
                    raise DuplicateDeletionRequestException()

                deletion_request = self.request_repo.create_request(
                    user_id, request.reason
                )
        except StorageException as exc:
            capture_service_error(
                exc, "AccountDeletionService", "request_deletion", user_id=user_id
            )
            raise

        logger.info(
            f"Deletion request {deletion_request.id} filed by user {user_id}"
        )
        return schemas.DeletionRequestCreated(
            request=schemas.DeletionRequestResponse.model_validate(deletion_request),
            message=(
                "Your data deletion request has been received and will be "
                f"processed within {settings.DELETION_GRACE_PERIOD_DAYS} days."
            ),
        )

    def get_user_deletion_requests(
        self, user_id: int
    ) -> list[schemas.DeletionRequestResponse]:
        """Get the requests a user has filed, newest first."""
        requests = self.request_repo.list_requests(user_id=user_id)
        return [schemas.DeletionRequestResponse.model_validate(r) for r in requests]

    def list_deletion_requests(
        self,
        status: Optional[db_models.DataDeletionStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[schemas.DeletionRequestResponse]:
        """List deletion requests for administrators, optionally by status."""
        requests = self.request_repo.list_requests(
            status=status, skip=skip, limit=limit
        )
        return [schemas.DeletionRequestResponse.model_validate(r) for r in requests]

    def process_request(
        self,
        request_id: int,
        processor_id: Optional[int],
        request: schemas.ProcessDeletionRequest,
        metadata: Optional[schemas.RequestMetadata] = None,
    ) -> schemas.DeletionRequestResponse:
        """
        Move a deletion request to a new status.

        Completing a request anonymizes the account first (optionally after
        storing a JSON export on the request); cancelling or marking it
        processing only updates the request.

        Args:
            request_id: Deletion request ID
            processor_id: Acting administrator
            request: Target status, notes, export flag
            metadata: Optional caller address and client string

        Returns:
            Updated request

        Raises:
            MissingActorException: If no processor is given
            DeletionRequestNotFoundException: If the request does not exist
            InvalidDeletionTransitionException: If the move is not allowed
        """
        if processor_id is None:
            raise MissingActorException()

        target = request.status
        try:
            with transaction(self.db):
                deletion_request = self.request_repo.get_by_id(request_id)
                if not deletion_request:
                    raise DeletionRequestNotFoundException(request_id)

                current = deletion_request.status
                if target not in ALLOWED_TRANSITIONS[current]:
                    logger.warning(
                        f"Rejected deletion request {request_id} move "
                        f"{current.value} -> {target.value}"
                    )
                    raise InvalidDeletionTransitionException(
                        current.value, target.value
                    )

                exported_data = None
                if target == _Status.COMPLETED:
                    user_id = deletion_request.user_id
                    if request.export_before_delete:
                        exported_data = json.dumps(
                            self.exporter.collect(user_id), default=str
                        )
                    previous_status = self._anonymize(user_id)
                    self.audit.record(
                        admin_id=processor_id,
                        action=AuditAction.USER_ANONYMIZED,
                        target_type=AuditTarget.USER,
                        target_id=user_id,
                        changes={
                            "status": {
                                "before": previous_status.value,
                                "after": db_models.UserStatus.DELETED.value,
                            },
                            "deletion_request_id": request_id,
                            "exported": exported_data is not None,
                        },
                        reason=request.notes,
                        metadata=metadata,
                    )
                else:
                    self.audit.record(
                        admin_id=processor_id,
                        action=AuditAction.deletion_request(target),
                        target_type=AuditTarget.DELETION_REQUEST,
                        target_id=request_id,
                        changes={
                            "status": {"before": current.value, "after": target.value}
                        },
                        reason=request.notes,
                        metadata=metadata,
                    )

                self.request_repo.update_status(
                    deletion_request,
                    target,
                    processed_by=processor_id,
                    notes=request.notes,
                    exported_data=exported_data,
                )
        except StorageException as exc:
            capture_service_error(
                exc,
                "AccountDeletionService",
                "process_request",
                request_id=request_id,
            )
            raise

        logger.info(
            f"Deletion request {request_id} moved to {target.value} "
            f"by admin {processor_id}"
        )
        return schemas.DeletionRequestResponse.model_validate(deletion_request)

    # ------------------------------------------------------------------
    # Anonymization
    # ------------------------------------------------------------------

    @staticmethod
    def is_anonymized(user: db_models.User) -> bool:
        """Check whether the account already carries its synthetic identity."""
        email, _ = synthetic_identity(user.id)
        return user.email == email

    def anonymize_user(
        self,
        user_id: int,
        actor_id: Optional[int],
        metadata: Optional[schemas.RequestMetadata] = None,
    ) -> db_models.User:
        """
        Anonymize an account in place as one unit of work.

        Running it again on an anonymized account succeeds, leaves the
        account fields unchanged and writes no further audit entry.

        Args:
            user_id: Account to anonymize
            actor_id: Acting administrator
            metadata: Optional caller address and client string

        Returns:
            The anonymized account
        """
        if actor_id is None:
            raise MissingActorException()

        try:
            with transaction(self.db):
                user = self.user_repo.get_by_id(user_id)
                if not user:
                    raise UserNotFoundException(user_id)
                already = self.is_anonymized(user)
                previous_status = self._anonymize(user_id)
                if not already:
                    self.audit.record(
                        admin_id=actor_id,
                        action=AuditAction.USER_ANONYMIZED,
                        target_type=AuditTarget.USER,
                        target_id=user_id,
                        changes={
                            "status": {
                                "before": previous_status.value,
                                "after": db_models.UserStatus.DELETED.value,
                            }
                        },
                        metadata=metadata,
                    )
        except StorageException as exc:
            capture_service_error(
                exc, "AccountDeletionService", "anonymize_user", user_id=user_id
            )
            raise

        self.db.refresh(user)
        return user

    def _anonymize(self, user_id: int) -> db_models.UserStatus:
        """
        Run the anonymization steps inside the caller's unit of work.

        Authored content (articles, topics, replies, bookmarks, applications,
        messages) is retained and keeps pointing at the anonymized account.
        Email opt-outs are kept but unlinked from it.

        Returns:
            Account status before anonymization
        """
        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise UserNotFoundException(user_id)
        previous_status = user.status

        if not self.is_anonymized(user):
            email, username = synthetic_identity(user_id)
            if self.user_repo.find_identity_clash(email, username, user_id):
                raise ConflictException(
                    "Synthetic identity for this account is already in use"
                )
            self.user_repo.update_fields(
                user_id,
                {
                    "email": email,
                    "username": username,
                    "password_hash": None,
                    "two_factor_secret": None,
                    "two_factor_enabled": False,
                    "email_verified": False,
                    "status": db_models.UserStatus.DELETED,
                },
            )

        self.deletion_repo.delete_profile(user_id)
        self.deletion_repo.delete_work_experiences(user_id)
        self.deletion_repo.delete_educations(user_id)
        self.deletion_repo.delete_portfolio_projects(user_id)
        self.deletion_repo.delete_skills(user_id)
        self.deletion_repo.delete_notification_preferences(user_id)
        self.sessions.revoke_all(user_id)
        self.deletion_repo.delete_oauth_providers(user_id)
        self.consent_repo.delete_user_consents(user_id)
        self.deletion_repo.detach_email_unsubscribes(user_id)
        self.db.flush()

        logger.info(f"Anonymized user {user_id}")
        return previous_status

    # ------------------------------------------------------------------
    # Hard delete
    # ------------------------------------------------------------------

    def purge_user(self, user_id: int) -> dict[str, int]:
        """
        Physically remove an account and everything it owns.

        Runs inside the caller's unit of work. Audit entries about or by the
        account are kept.

        Args:
            user_id: Account to remove

        Returns:
            Deleted row counts per step
        """
        repo = self.deletion_repo
        topic_ids = repo.get_topic_ids_by_user(user_id)
        article_ids = repo.get_article_ids_by_user(user_id)

        counts = {
            "replies": repo.delete_replies(user_id, topic_ids),
            "bookmarks": repo.delete_bookmarks(user_id, article_ids),
            "articles": repo.delete_articles(user_id),
            "topics": repo.delete_topics(user_id),
            "job_applications": repo.delete_job_applications(user_id),
            "notifications": repo.delete_notifications(user_id),
            "messages": repo.delete_messages(user_id),
            "email_unsubscribes": repo.delete_email_unsubscribes(user_id),
            "consents": self.consent_repo.delete_user_consents(user_id),
            "consent_logs": self.consent_repo.delete_consent_logs(user_id),
            "deletion_requests": self.request_repo.delete_by_user(user_id),
            "processed_requests_detached": self.request_repo.clear_processor(user_id),
            "profile": repo.delete_profile(user_id),
            "skills": repo.delete_skills(user_id),
            "work_experiences": repo.delete_work_experiences(user_id),
            "educations": repo.delete_educations(user_id),
            "portfolio_projects": repo.delete_portfolio_projects(user_id),
            "notification_preferences": repo.delete_notification_preferences(user_id),
            "sessions": self.sessions.revoke_all(user_id),
            "oauth_providers": repo.delete_oauth_providers(user_id),
        }
        counts["user"] = self.user_repo.delete_row(user_id)

        logger.info(f"Hard deleted user {user_id}")
        return counts
