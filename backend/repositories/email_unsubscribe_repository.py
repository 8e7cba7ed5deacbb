"""
Email unsubscribe repository.
"""

import secrets
from typing import Optional

from sqlalchemy.orm import Session

import repositories.db_models as db_models

from .base import BaseRepository


class EmailUnsubscribeRepository(BaseRepository[db_models.EmailUnsubscribe]):
    """Repository for email unsubscribe records."""

    def __init__(self, db: Session):
        """
        Initialize email unsubscribe repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.EmailUnsubscribe, db)

    def create_unsubscribe(
        self,
        email: str,
        unsubscribe_type: str,
        user_id: Optional[int] = None,
    ) -> db_models.EmailUnsubscribe:
        """
        Record that an address opted out of a mail category.

        Args:
            email: Address that unsubscribed
            unsubscribe_type: Mail category (e.g. marketing, all)
            user_id: Linked account, if known

        Returns:
            Created record
        """
        record = db_models.EmailUnsubscribe(
            user_id=user_id,
            email=email.lower(),
            unsubscribe_type=unsubscribe_type,
            token=secrets.token_urlsafe(32),
        )
        return self.create(record)

    def find(
        self, email: str, unsubscribe_type: str
    ) -> Optional[db_models.EmailUnsubscribe]:
        """
        Find an unsubscribe record covering a category.

        A record of type "all" covers every category.

        Args:
            email: Address to check
            unsubscribe_type: Mail category

        Returns:
            Matching record or None
        """
        return (
            self.db.query(db_models.EmailUnsubscribe)
            .filter(
                db_models.EmailUnsubscribe.email == email.lower(),
                db_models.EmailUnsubscribe.unsubscribe_type.in_(
                    [unsubscribe_type, "all"]
                ),
            )
            .first()
        )
