"""
Consent ledger service.

Holds the current per-category consent of each user and an append-only
log of every change. A consent row is only ever written together with
its log entry, in one unit of work.
"""

from typing import Any, Optional

from loguru import logger
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from core.sentry_config import capture_service_error
from models.config import settings
from models.exceptions import StorageException, UserNotFoundException
from repositories.consent_repository import ConsentRepository
from repositories.database import transaction
from repositories.email_unsubscribe_repository import EmailUnsubscribeRepository
from repositories.user_repository import UserRepository

DEFAULT_CONSENT_SOURCE = {"source": "user_settings"}


class ConsentService:
    """Service for the consent ledger and email opt-outs."""

    def __init__(self, db: Session):
        self.db = db
        self.consent_repo = ConsentRepository(db)
        self.user_repo = UserRepository(db)
        self.unsubscribe_repo = EmailUnsubscribeRepository(db)

    def _require_user(self, user_id: int) -> db_models.User:
        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise UserNotFoundException(user_id)
        return user

    def _apply(
        self,
        user_id: int,
        consent_type: db_models.ConsentType,
        status: db_models.ConsentStatus,
        metadata: Optional[schemas.RequestMetadata],
        extra: Optional[dict[str, Any]],
    ) -> db_models.UserConsent:
        """Supersede the consent row and append the matching log entry."""
        ip_address = metadata.ip_address if metadata else None
        user_agent = metadata.user_agent if metadata else None
        version = settings.CONSENT_POLICY_VERSION

        consent = self.consent_repo.upsert_consent(
            user_id=user_id,
            consent_type=consent_type,
            status=status,
            version=version,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.consent_repo.log_consent_change(
            user_id=user_id,
            consent_type=consent_type,
            status=status,
            version=version,
            ip_address=ip_address,
            user_agent=user_agent,
            metadata=extra if extra is not None else dict(DEFAULT_CONSENT_SOURCE),
        )
        return consent

    def update_consent(
        self,
        user_id: int,
        consent_type: db_models.ConsentType,
        granted: bool,
        metadata: Optional[schemas.RequestMetadata] = None,
        extra: Optional[dict[str, Any]] = None,
    ) -> schemas.ConsentState:
        """
        Grant or deny one consent category.

        Args:
            user_id: User ID
            consent_type: Consent category
            granted: True to grant, False to deny
            metadata: Optional caller address and client string
            extra: Optional log metadata (defaults to the settings screen source)

        Returns:
            Resulting consent state

        Raises:
            UserNotFoundException: If the user does not exist
            StorageException: If the write failed and was rolled back
        """
        status = (
            db_models.ConsentStatus.GRANTED
            if granted
            else db_models.ConsentStatus.DENIED
        )
        try:
            with transaction(self.db):
                self._require_user(user_id)
                consent = self._apply(user_id, consent_type, status, metadata, extra)
        except StorageException as exc:
            capture_service_error(exc, "ConsentService", "update_consent", user_id=user_id)
            raise

        logger.info(
            f"Consent {consent_type.value} set to {status.value} for user {user_id}"
        )
        return schemas.ConsentState.model_validate(consent)

    def update_consents(
        self,
        user_id: int,
        updates: list[schemas.ConsentUpdate],
        metadata: Optional[schemas.RequestMetadata] = None,
    ) -> list[schemas.ConsentState]:
        """
        Apply several consent decisions as one unit of work.

        Args:
            user_id: User ID
            updates: Category decisions, applied in order
            metadata: Optional caller address and client string

        Returns:
            Full consent state after the update (every category)
        """
        try:
            with transaction(self.db):
                self._require_user(user_id)
                for update in updates:
                    status = (
                        db_models.ConsentStatus.GRANTED
                        if update.granted
                        else db_models.ConsentStatus.DENIED
                    )
                    self._apply(user_id, update.consent_type, status, metadata, None)
        except StorageException as exc:
            capture_service_error(exc, "ConsentService", "update_consents", user_id=user_id)
            raise

        logger.info(f"Applied {len(updates)} consent update(s) for user {user_id}")
        return self.get_consents(user_id)

    def withdraw_consent(
        self,
        user_id: int,
        consent_type: db_models.ConsentType,
        metadata: Optional[schemas.RequestMetadata] = None,
    ) -> schemas.ConsentState:
        """
        Withdraw a consent category.

        Args:
            user_id: User ID
            consent_type: Consent category
            metadata: Optional caller address and client string

        Returns:
            Resulting consent state
        """
        try:
            with transaction(self.db):
                self._require_user(user_id)
                consent = self._apply(
                    user_id,
                    consent_type,
                    db_models.ConsentStatus.WITHDRAWN,
                    metadata,
                    None,
                )
        except StorageException as exc:
            capture_service_error(exc, "ConsentService", "withdraw_consent", user_id=user_id)
            raise

        logger.info(f"Consent {consent_type.value} withdrawn for user {user_id}")
        return schemas.ConsentState.model_validate(consent)

    def get_consents(self, user_id: int) -> list[schemas.ConsentState]:
        """
        Get one consent state per category.

        Categories without a stored row are reported as denied at version 1.

        Args:
            user_id: User ID

        Returns:
            Consent states in category order
        """
        self._require_user(user_id)
        stored = {c.consent_type: c for c in self.consent_repo.get_user_consents(user_id)}

        states: list[schemas.ConsentState] = []
        for consent_type in db_models.ConsentType:
            row = stored.get(consent_type)
            if row is not None:
                states.append(schemas.ConsentState.model_validate(row))
            else:
                states.append(
                    schemas.ConsentState(
                        consent_type=consent_type,
                        status=db_models.ConsentStatus.DENIED,
                        version=1,
                    )
                )
        return states

    def get_consent_history(
        self,
        user_id: int,
        consent_type: Optional[db_models.ConsentType] = None,
    ) -> list[schemas.ConsentHistoryEntry]:
        """Get consent log entries for a user, newest first."""
        self._require_user(user_id)
        history = self.consent_repo.get_consent_history(user_id, consent_type)
        return [schemas.ConsentHistoryEntry.model_validate(h) for h in history]

    def has_consent(self, user_id: int, consent_type: db_models.ConsentType) -> bool:
        """
        Check whether a user currently consents to a category.

        Strictly necessary processing needs no consent and is always allowed.
        """
        if consent_type == db_models.ConsentType.NECESSARY:
            return True
        consent = self.consent_repo.get_consent(user_id, consent_type)
        return consent is not None and consent.status == db_models.ConsentStatus.GRANTED

    # ------------------------------------------------------------------
    # Email opt-outs
    # ------------------------------------------------------------------

    def create_unsubscribe(
        self,
        email: str,
        unsubscribe_type: str,
        user_id: Optional[int] = None,
    ) -> db_models.EmailUnsubscribe:
        """
        Record an email opt-out. Repeating an existing opt-out returns it.

        Args:
            email: Address that opted out
            unsubscribe_type: Mail category, or "all"
            user_id: Linked account, if known

        Returns:
            The opt-out record
        """
        existing = self.unsubscribe_repo.find(email, unsubscribe_type)
        if existing is not None and existing.unsubscribe_type == unsubscribe_type:
            return existing

        with transaction(self.db):
            record = self.unsubscribe_repo.create_unsubscribe(
                email=email,
                unsubscribe_type=unsubscribe_type,
                user_id=user_id,
            )
        logger.info(f"Recorded {unsubscribe_type} unsubscribe (user {user_id})")
        return record

    def is_unsubscribed(self, email: str, unsubscribe_type: str) -> bool:
        """Check whether an address opted out of a category (or of all mail)."""
        return self.unsubscribe_repo.find(email, unsubscribe_type) is not None
