"""
Services layer for business logic.

Each service is constructed with the database session it works in and owns
the unit-of-work boundary of its public operations.
"""

from .account_deletion_service import AccountDeletionService
from .account_lifecycle_service import AccountLifecycleService
from .audit_service import AuditAction, AuditService
from .consent_service import ConsentService
from .data_export_service import DataExportService
from .session_service import SessionRevoker

__all__ = [
    "AccountDeletionService",
    "AccountLifecycleService",
    "AuditAction",
    "AuditService",
    "ConsentService",
    "DataExportService",
    "SessionRevoker",
]
