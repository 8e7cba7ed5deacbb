"""
Account Deletion Repository.

Every step of anonymization and hard deletion is a named method here, so
what gets removed and what is retained can be read off this file rather
than inferred from the mapper.
"""

from sqlalchemy import or_
from sqlalchemy.orm import Session

import repositories.db_models as db_models

from .base import BaseRepository


class AccountDeletionRepository(BaseRepository[db_models.User]):
    """Repository for account deletion and anonymization steps."""

    def __init__(self, db: Session):
        """
        Initialize account deletion repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.User, db)

    # ------------------------------------------------------------------
    # Directly identifying profile data
    # ------------------------------------------------------------------

    def delete_profile(self, user_id: int) -> int:
        """
        Delete the profile (bio, headline, location, avatar) of a user.

        Args:
            user_id: User ID

        Returns:
            Number of deleted records
        """
        return (
            self.db.query(db_models.Profile)
            .filter(db_models.Profile.user_id == user_id)
            .delete(synchronize_session=False)
        )

    def delete_skills(self, user_id: int) -> int:
        """Delete skills listed by a user."""
        return (
            self.db.query(db_models.UserSkill)
            .filter(db_models.UserSkill.user_id == user_id)
            .delete(synchronize_session=False)
        )

    def delete_work_experiences(self, user_id: int) -> int:
        """Delete work history entries of a user."""
        return (
            self.db.query(db_models.WorkExperience)
            .filter(db_models.WorkExperience.user_id == user_id)
            .delete(synchronize_session=False)
        )

    def delete_educations(self, user_id: int) -> int:
        """Delete education entries of a user."""
        return (
            self.db.query(db_models.Education)
            .filter(db_models.Education.user_id == user_id)
            .delete(synchronize_session=False)
        )

    def delete_portfolio_projects(self, user_id: int) -> int:
        """Delete portfolio projects of a user."""
        return (
            self.db.query(db_models.PortfolioProject)
            .filter(db_models.PortfolioProject.user_id == user_id)
            .delete(synchronize_session=False)
        )

    def delete_notification_preferences(self, user_id: int) -> int:
        """Delete notification preferences of a user."""
        return (
            self.db.query(db_models.NotificationPreference)
            .filter(db_models.NotificationPreference.user_id == user_id)
            .delete(synchronize_session=False)
        )

    def delete_oauth_providers(self, user_id: int) -> int:
        """
        Delete OAuth provider links for a user.

        Args:
            user_id: User ID

        Returns:
            Number of deleted records
        """
        return (
            self.db.query(db_models.OAuthProvider)
            .filter(db_models.OAuthProvider.user_id == user_id)
            .delete(synchronize_session=False)
        )

    # ------------------------------------------------------------------
    # Authored content (only removed by a hard delete)
    # ------------------------------------------------------------------

    def get_topic_ids_by_user(self, user_id: int) -> list[int]:
        """
        Get IDs of topics authored by a user.

        Args:
            user_id: User ID

        Returns:
            List of topic IDs
        """
        results = (
            self.db.query(db_models.Topic.id)
            .filter(db_models.Topic.author_id == user_id)
            .all()
        )
        return [r[0] for r in results]

    def get_article_ids_by_user(self, user_id: int) -> list[int]:
        """
        Get IDs of articles authored by a user.

        Args:
            user_id: User ID

        Returns:
            List of article IDs
        """
        results = (
            self.db.query(db_models.Article.id)
            .filter(db_models.Article.author_id == user_id)
            .all()
        )
        return [r[0] for r in results]

    def delete_replies(self, user_id: int, topic_ids: list[int]) -> int:
        """
        Delete replies written by a user and replies under the user's topics.

        Args:
            user_id: User ID
            topic_ids: Topics authored by the user

        Returns:
            Number of deleted records
        """
        condition = db_models.Reply.author_id == user_id
        if topic_ids:
            condition = or_(condition, db_models.Reply.topic_id.in_(topic_ids))
        return (
            self.db.query(db_models.Reply)
            .filter(condition)
            .delete(synchronize_session=False)
        )

    def delete_bookmarks(self, user_id: int, article_ids: list[int]) -> int:
        """
        Delete a user's bookmarks and any bookmark on the user's articles.

        Args:
            user_id: User ID
            article_ids: Articles authored by the user

        Returns:
            Number of deleted records
        """
        condition = db_models.Bookmark.user_id == user_id
        if article_ids:
            condition = or_(condition, db_models.Bookmark.article_id.in_(article_ids))
        return (
            self.db.query(db_models.Bookmark)
            .filter(condition)
            .delete(synchronize_session=False)
        )

    def delete_articles(self, user_id: int) -> int:
        """Delete articles authored by a user."""
        return (
            self.db.query(db_models.Article)
            .filter(db_models.Article.author_id == user_id)
            .delete(synchronize_session=False)
        )

    def delete_topics(self, user_id: int) -> int:
        """Delete topics authored by a user."""
        return (
            self.db.query(db_models.Topic)
            .filter(db_models.Topic.author_id == user_id)
            .delete(synchronize_session=False)
        )

    def delete_job_applications(self, user_id: int) -> int:
        """Delete job applications submitted by a user."""
        return (
            self.db.query(db_models.JobApplication)
            .filter(db_models.JobApplication.user_id == user_id)
            .delete(synchronize_session=False)
        )

    def delete_notifications(self, user_id: int) -> int:
        """Delete notifications addressed to a user."""
        return (
            self.db.query(db_models.Notification)
            .filter(db_models.Notification.user_id == user_id)
            .delete(synchronize_session=False)
        )

    def delete_messages(self, user_id: int) -> int:
        """
        Delete messages the user sent or received.

        Args:
            user_id: User ID

        Returns:
            Number of deleted records
        """
        return (
            self.db.query(db_models.Message)
            .filter(
                or_(
                    db_models.Message.sender_id == user_id,
                    db_models.Message.recipient_id == user_id,
                )
            )
            .delete(synchronize_session=False)
        )

    def delete_email_unsubscribes(self, user_id: int) -> int:
        """Delete unsubscribe records linked to a user."""
        return (
            self.db.query(db_models.EmailUnsubscribe)
            .filter(db_models.EmailUnsubscribe.user_id == user_id)
            .delete(synchronize_session=False)
        )

    def detach_email_unsubscribes(self, user_id: int) -> int:
        """
        Unlink unsubscribe records from a user, keeping the opt-out itself.

        The address stays on the record so mail to it is still suppressed.
        """
        return (
            self.db.query(db_models.EmailUnsubscribe)
            .filter(db_models.EmailUnsubscribe.user_id == user_id)
            .update({"user_id": None}, synchronize_session=False)
        )
