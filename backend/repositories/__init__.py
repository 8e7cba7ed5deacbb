"""
Repository pattern implementation for data access layer.
"""

from .account_deletion_repository import AccountDeletionRepository
from .audit_log_repository import AuditLogRepository
from .base import BaseRepository
from .consent_repository import ConsentRepository
from .data_export_repository import DataExportRepository
from .deletion_request_repository import DeletionRequestRepository
from .email_unsubscribe_repository import EmailUnsubscribeRepository
from .session_repository import SessionRepository
from .user_repository import UserRepository

__all__ = [
    "AccountDeletionRepository",
    "AuditLogRepository",
    "BaseRepository",
    "ConsentRepository",
    "DataExportRepository",
    "DeletionRequestRepository",
    "EmailUnsubscribeRepository",
    "SessionRepository",
    "UserRepository",
]
