"""
Data Export Repository.

Provides read-only access to everything a user owns, for portability
requests. Nothing here writes.
"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

import repositories.db_models as db_models

from .base import BaseRepository


class DataExportRepository(BaseRepository[db_models.User]):
    """Repository for user data export operations."""

    def __init__(self, db: Session):
        """
        Initialize data export repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.User, db)

    def get_profile(self, user_id: int) -> Optional[db_models.Profile]:
        """
        Get the user's profile.

        Args:
            user_id: User ID

        Returns:
            Profile or None
        """
        return (
            self.db.query(db_models.Profile)
            .filter(db_models.Profile.user_id == user_id)
            .first()
        )

    def get_skills(self, user_id: int) -> list[db_models.UserSkill]:
        """Get skills listed by a user."""
        return (
            self.db.query(db_models.UserSkill)
            .filter(db_models.UserSkill.user_id == user_id)
            .order_by(db_models.UserSkill.id)
            .all()
        )

    def get_work_experiences(self, user_id: int) -> list[db_models.WorkExperience]:
        """Get work history of a user."""
        return (
            self.db.query(db_models.WorkExperience)
            .filter(db_models.WorkExperience.user_id == user_id)
            .order_by(db_models.WorkExperience.id)
            .all()
        )

    def get_educations(self, user_id: int) -> list[db_models.Education]:
        """Get education entries of a user."""
        return (
            self.db.query(db_models.Education)
            .filter(db_models.Education.user_id == user_id)
            .order_by(db_models.Education.id)
            .all()
        )

    def get_portfolio_projects(self, user_id: int) -> list[db_models.PortfolioProject]:
        """Get portfolio projects of a user."""
        return (
            self.db.query(db_models.PortfolioProject)
            .filter(db_models.PortfolioProject.user_id == user_id)
            .order_by(db_models.PortfolioProject.id)
            .all()
        )

    def get_articles(self, user_id: int) -> list[db_models.Article]:
        """
        Get articles authored by a user.

        Args:
            user_id: User ID

        Returns:
            List of articles
        """
        return (
            self.db.query(db_models.Article)
            .filter(db_models.Article.author_id == user_id)
            .order_by(db_models.Article.id)
            .all()
        )

    def get_topics(self, user_id: int) -> list[db_models.Topic]:
        """Get forum topics authored by a user."""
        return (
            self.db.query(db_models.Topic)
            .filter(db_models.Topic.author_id == user_id)
            .order_by(db_models.Topic.id)
            .all()
        )

    def get_replies(self, user_id: int) -> list[db_models.Reply]:
        """Get forum replies written by a user."""
        return (
            self.db.query(db_models.Reply)
            .filter(db_models.Reply.author_id == user_id)
            .order_by(db_models.Reply.id)
            .all()
        )

    def get_bookmarks(self, user_id: int) -> list[db_models.Bookmark]:
        """
        Get bookmarks with their article loaded.

        Args:
            user_id: User ID

        Returns:
            List of bookmarks
        """
        return (
            self.db.query(db_models.Bookmark)
            .options(joinedload(db_models.Bookmark.article))
            .filter(db_models.Bookmark.user_id == user_id)
            .order_by(db_models.Bookmark.id)
            .all()
        )

    def get_job_applications(self, user_id: int) -> list[db_models.JobApplication]:
        """
        Get job applications with their job loaded.

        Args:
            user_id: User ID

        Returns:
            List of job applications
        """
        return (
            self.db.query(db_models.JobApplication)
            .options(joinedload(db_models.JobApplication.job))
            .filter(db_models.JobApplication.user_id == user_id)
            .order_by(db_models.JobApplication.id)
            .all()
        )

    def get_notifications(self, user_id: int) -> list[db_models.Notification]:
        """Get notifications addressed to a user."""
        return (
            self.db.query(db_models.Notification)
            .filter(db_models.Notification.user_id == user_id)
            .order_by(db_models.Notification.created_at.desc())
            .all()
        )

    def get_sent_messages(self, user_id: int) -> list[db_models.Message]:
        """Get messages sent by a user."""
        return (
            self.db.query(db_models.Message)
            .filter(db_models.Message.sender_id == user_id)
            .order_by(db_models.Message.created_at.desc())
            .all()
        )

    def get_received_messages(self, user_id: int) -> list[db_models.Message]:
        """Get messages received by a user."""
        return (
            self.db.query(db_models.Message)
            .filter(db_models.Message.recipient_id == user_id)
            .order_by(db_models.Message.created_at.desc())
            .all()
        )

    def get_email_unsubscribes(self, user_id: int) -> list[db_models.EmailUnsubscribe]:
        """Get unsubscribe records linked to a user."""
        return (
            self.db.query(db_models.EmailUnsubscribe)
            .filter(db_models.EmailUnsubscribe.user_id == user_id)
            .order_by(db_models.EmailUnsubscribe.unsubscribed_at)
            .all()
        )
