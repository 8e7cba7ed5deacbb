"""
Data Export Service.

Provides user data portability in JSON and CSV formats: one snapshot of the
account and every entity the user owns, read in a single unit of work.
"""

import csv
import io
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Protocol, Union

from loguru import logger
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from core.sentry_config import capture_service_error
from models.exceptions import (
    StorageException,
    UserNotFoundException,
    ValidationException,
)
from repositories.consent_repository import ConsentRepository
from repositories.data_export_repository import DataExportRepository
from repositories.database import transaction
from repositories.user_repository import UserRepository

EXPORT_FORMATS = ("json", "csv")


class CsvWriterProtocol(Protocol):
    """Protocol for csv.writer objects."""

    def writerow(self, row: Iterable[Any], /) -> Any:
        """Write a row to the CSV output."""
        ...


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class DataExportService:
    """Service for exporting a user's data for portability requests."""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.export_repo = DataExportRepository(db)
        self.consent_repo = ConsentRepository(db)

    def export_user_data(
        self, user_id: int, export_format: str = "json"
    ) -> Union[dict, str]:
        """
        Export all personal data of a user.

        Nothing is written. Any read failure aborts the whole export rather
        than returning a snapshot with sections missing.

        Args:
            user_id: User ID
            export_format: "json" (dict) or "csv" (sectioned text)

        Returns:
            Export as a dict (json) or CSV text

        Raises:
            ValidationException: If the format is unknown
            UserNotFoundException: If the user does not exist
            StorageException: If any read failed
        """
        if export_format not in EXPORT_FORMATS:
            raise ValidationException(f"Unsupported export format: {export_format}")

        try:
            with transaction(self.db):
                export_data = self.collect(user_id)
        except StorageException as exc:
            capture_service_error(
                exc, "DataExportService", "export_user_data", user_id=user_id
            )
            raise

        export_data["export_format"] = export_format
        logger.info(f"Exported data for user {user_id} as {export_format}")

        if export_format == "csv":
            return self._convert_to_csv(export_data)
        return export_data

    def collect(self, user_id: int) -> dict[str, Any]:
        """
        Build the export snapshot inside the caller's unit of work.

        Args:
            user_id: User ID

        Returns:
            Export dict with an export timestamp
        """
        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise UserNotFoundException(user_id)

        repo = self.export_repo
        return {
            "export_date": datetime.now(timezone.utc).isoformat(),
            "account": self._format_account(user),
            "profile": self._format_profile(repo.get_profile(user_id)),
            "skills": [
                {
                    "skill_name": s.skill_name,
                    "proficiency": s.proficiency,
                    "years_experience": s.years_experience,
                }
                for s in repo.get_skills(user_id)
            ],
            "work_experiences": [
                {
                    "title": w.title,
                    "company": w.company,
                    "description": w.description,
                    "start_date": _iso(w.start_date),
                    "end_date": _iso(w.end_date),
                }
                for w in repo.get_work_experiences(user_id)
            ],
            "educations": [
                {
                    "institution": e.institution,
                    "degree": e.degree,
                    "field_of_study": e.field_of_study,
                    "start_date": _iso(e.start_date),
                    "end_date": _iso(e.end_date),
                }
                for e in repo.get_educations(user_id)
            ],
            "portfolio_projects": [
                {
                    "title": p.title,
                    "description": p.description,
                    "project_url": p.project_url,
                    "created_at": _iso(p.created_at),
                }
                for p in repo.get_portfolio_projects(user_id)
            ],
            "consents": [
                {
                    "consent_type": c.consent_type.value,
                    "status": c.status.value,
                    "version": c.version,
                    "granted_at": _iso(c.granted_at),
                    "withdrawn_at": _iso(c.withdrawn_at),
                }
                for c in self.consent_repo.get_user_consents(user_id)
            ],
            "consent_history": [
                {
                    "consent_type": log.consent_type.value,
                    "status": log.status.value,
                    "version": log.version,
                    "created_at": _iso(log.created_at),
                }
                for log in self.consent_repo.get_consent_history(user_id, limit=None)
            ],
            "articles": [
                {
                    "id": a.id,
                    "title": a.title,
                    "slug": a.slug,
                    "published_at": _iso(a.published_at),
                    "view_count": a.view_count,
                }
                for a in repo.get_articles(user_id)
            ],
            "topics": [
                {
                    "id": t.id,
                    "title": t.title,
                    "slug": t.slug,
                    "created_at": _iso(t.created_at),
                    "view_count": t.view_count,
                }
                for t in repo.get_topics(user_id)
            ],
            "replies": [
                {"id": r.id, "topic_id": r.topic_id, "created_at": _iso(r.created_at)}
                for r in repo.get_replies(user_id)
            ],
            "bookmarks": [
                {
                    "article_id": b.article_id,
                    "article_title": b.article.title if b.article else None,
                    "created_at": _iso(b.created_at),
                }
                for b in repo.get_bookmarks(user_id)
            ],
            "job_applications": [
                {
                    "job_id": a.job_id,
                    "job_title": a.job.title if a.job else None,
                    "status": a.status,
                    "applied_at": _iso(a.applied_at),
                }
                for a in repo.get_job_applications(user_id)
            ],
            "notifications": [
                {
                    "type": n.type,
                    "title": n.title,
                    "message": n.message,
                    "is_read": n.is_read,
                    "created_at": _iso(n.created_at),
                }
                for n in repo.get_notifications(user_id)
            ],
            "sent_messages": [
                {
                    "recipient_id": m.recipient_id,
                    "subject": m.subject,
                    "created_at": _iso(m.created_at),
                }
                for m in repo.get_sent_messages(user_id)
            ],
            "received_messages": [
                {
                    "sender_id": m.sender_id,
                    "subject": m.subject,
                    "created_at": _iso(m.created_at),
                }
                for m in repo.get_received_messages(user_id)
            ],
            "email_unsubscribes": [
                {
                    "email": u.email,
                    "unsubscribe_type": u.unsubscribe_type,
                    "unsubscribed_at": _iso(u.unsubscribed_at),
                }
                for u in repo.get_email_unsubscribes(user_id)
            ],
        }

    @staticmethod
    def _format_account(user: db_models.User) -> dict:
        """Format account fields for export (no credentials)."""
        return {
            "id": user.id,
            "email": user.email,
            "username": user.username,
            "role": user.role.value,
            "account_type": user.account_type.value,
            "status": user.status.value,
            "email_verified": bool(user.email_verified),
            "two_factor_enabled": bool(user.two_factor_enabled),
            "timezone": user.timezone,
            "locale": user.locale,
            "last_login_at": _iso(user.last_login_at),
            "created_at": _iso(user.created_at),
            "updated_at": _iso(user.updated_at),
        }

    @staticmethod
    def _format_profile(profile: Optional[db_models.Profile]) -> Optional[dict]:
        if profile is None:
            return None
        return {
            "display_name": profile.display_name,
            "headline": profile.headline,
            "bio": profile.bio,
            "location": profile.location,
            "website": profile.website,
            "avatar_url": profile.avatar_url,
            "updated_at": _iso(profile.updated_at),
        }

    @staticmethod
    def _write_csv_section(
        writer: CsvWriterProtocol,
        title: str,
        data: list[dict],
        empty_message: str,
    ) -> None:
        """Write a section to CSV output using csv.writer object."""
        writer.writerow([f"=== {title} ==="])
        if data:
            headers = list(data[0].keys())
            writer.writerow(headers)
            for item in data:
                writer.writerow(["" if item.get(h) is None else str(item[h]) for h in headers])
        else:
            writer.writerow([empty_message])
        writer.writerow([])

    @staticmethod
    def _write_key_value_section(
        writer: CsvWriterProtocol, title: str, data: Optional[dict], empty_message: str
    ) -> None:
        writer.writerow([f"=== {title} ==="])
        if data:
            for key, value in data.items():
                writer.writerow([key, "" if value is None else value])
        else:
            writer.writerow([empty_message])
        writer.writerow([])

    @classmethod
    def _convert_to_csv(cls, data: dict) -> str:
        """
        Convert export data to CSV format.

        Creates one section per entity kind.
        """
        output = io.StringIO()
        writer = csv.writer(output)

        writer.writerow(["=== USER DATA EXPORT ==="])
        writer.writerow(["Export Date", data["export_date"]])
        writer.writerow([])

        cls._write_key_value_section(writer, "ACCOUNT", data["account"], "No account")
        cls._write_key_value_section(writer, "PROFILE", data["profile"], "No profile")

        for key, value in data.items():
            if isinstance(value, list):
                title = key.replace("_", " ").upper()
                cls._write_csv_section(
                    writer, title, value, f"No {key.replace('_', ' ')} found"
                )

        return output.getvalue()
