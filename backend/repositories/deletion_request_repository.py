"""
Deletion request repository for right-to-be-forgotten requests.
"""

from datetime import datetime, timezone
from typing import Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from models.exceptions import DuplicateDeletionRequestException

from .base import BaseRepository


class DeletionRequestRepository(BaseRepository[db_models.DataDeletionRequest]):
    """Repository for data deletion request operations."""

    def __init__(self, db: Session):
        """
        Initialize deletion request repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.DataDeletionRequest, db)

    def create_request(
        self, user_id: int, reason: Optional[str] = None
    ) -> db_models.DataDeletionRequest:
        """
        Create a deletion request in the requested state.

        A violation of the pending-request unique index is reported as a
        duplicate; the session must then be rolled back by the caller.

        Args:
            user_id: Requesting user
            reason: Optional reason

        Returns:
            Created request

        Raises:
            DuplicateDeletionRequestException: If a requested row already exists
        """
        request = db_models.DataDeletionRequest(
            user_id=user_id,
            reason=reason,
            status=db_models.DataDeletionStatus.REQUESTED,
        )
        self.db.add(request)
        try:
            self.db.flush()
        except IntegrityError as exc:
            logger.warning(
                f"Pending deletion request already exists for user {user_id}"
            )
            raise DuplicateDeletionRequestException() from exc

        self.db.refresh(request)
        return request

    def get_pending_for_user(
        self, user_id: int
    ) -> Optional[db_models.DataDeletionRequest]:
        """
        Get the user's request still in the requested state, if any.

        Args:
            user_id: User ID

        Returns:
            Pending request or None
        """
        return (
            self.db.query(db_models.DataDeletionRequest)
            .filter(
                db_models.DataDeletionRequest.user_id == user_id,
                db_models.DataDeletionRequest.status
                == db_models.DataDeletionStatus.REQUESTED,
            )
            .first()
        )

    def list_requests(
        self,
        user_id: Optional[int] = None,
        status: Optional[db_models.DataDeletionStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[db_models.DataDeletionRequest]:
        """
        List deletion requests, newest first.

        Args:
            user_id: Optional requester filter
            status: Optional status filter
            skip: Number of records to skip
            limit: Maximum records to return

        Returns:
            List of requests
        """
        query = self.db.query(db_models.DataDeletionRequest)
        if user_id is not None:
            query = query.filter(db_models.DataDeletionRequest.user_id == user_id)
        if status is not None:
            query = query.filter(db_models.DataDeletionRequest.status == status)
        return (
            query.order_by(
                db_models.DataDeletionRequest.requested_at.desc(),
                db_models.DataDeletionRequest.id.desc(),
            )
            .offset(skip)
            .limit(limit)
            .all()
        )

    def update_status(
        self,
        request: db_models.DataDeletionRequest,
        status: db_models.DataDeletionStatus,
        processed_by: int,
        notes: Optional[str] = None,
        exported_data: Optional[str] = None,
    ) -> db_models.DataDeletionRequest:
        """
        Move a request to a new status and stamp the matching timestamp.

        Transition legality is checked by the caller.

        Args:
            request: Request to update
            status: New status
            processed_by: Acting administrator
            notes: Optional processing notes (kept if None)
            exported_data: Optional serialized export (kept if None)

        Returns:
            Updated request
        """
        now = datetime.now(timezone.utc)
        request.status = status
        request.processed_by = processed_by
        if notes is not None:
            request.notes = notes
        if exported_data is not None:
            request.exported_data = exported_data

        if status == db_models.DataDeletionStatus.PROCESSING:
            request.processed_at = now
        elif status == db_models.DataDeletionStatus.COMPLETED:
            request.completed_at = now
            if request.processed_at is None:
                request.processed_at = now
        elif status == db_models.DataDeletionStatus.CANCELLED:
            request.cancelled_at = now

        self.db.flush()
        return request

    def delete_by_user(self, user_id: int) -> int:
        """
        Delete every request filed by a user (hard delete only).

        Args:
            user_id: User ID

        Returns:
            Number of deleted rows
        """
        return (
            self.db.query(db_models.DataDeletionRequest)
            .filter(db_models.DataDeletionRequest.user_id == user_id)
            .delete(synchronize_session=False)
        )

    def clear_processor(self, user_id: int) -> int:
        """
        Null out processed_by on requests handled by a user being removed.

        Args:
            user_id: Processor user ID

        Returns:
            Number of updated rows
        """
        return (
            self.db.query(db_models.DataDeletionRequest)
            .filter(db_models.DataDeletionRequest.processed_by == user_id)
            .update({"processed_by": None}, synchronize_session=False)
        )
