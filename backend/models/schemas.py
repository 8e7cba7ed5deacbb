from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from repositories.db_models import (
    ConsentStatus,
    ConsentType,
    DataDeletionStatus,
    UserRole,
    UserStatus,
)


# Request metadata captured for audit and consent records
class RequestMetadata(BaseModel):
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


# Admin user action inputs
class VerifyEmailRequest(BaseModel):
    reason: Optional[str] = None


class ChangeRoleRequest(BaseModel):
    role: UserRole
    reason: str


class SuspendUserRequest(BaseModel):
    reason: str
    duration_days: Optional[int] = Field(default=None, ge=1)
    permanent: bool = False


class BanUserRequest(BaseModel):
    reason: str
    permanent: bool = True


class DeleteUserRequest(BaseModel):
    reason: str
    hard_delete: bool = False


class UpdateUserRequest(BaseModel):
    """Partial update of account fields; None means unchanged."""

    email: Optional[EmailStr] = None
    username: Optional[str] = None
    timezone: Optional[str] = None
    locale: Optional[str] = None


class BulkStatusRequest(BaseModel):
    user_ids: List[int] = Field(..., min_length=1)
    action: Literal["change_status", "delete"]
    status: Optional[UserStatus] = None
    reason: Optional[str] = None


class AuditEntry(BaseModel):
    id: int
    admin_id: int
    action: str
    target_type: str
    target_id: str
    changes: Optional[dict[str, Any]] = None
    reason: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BulkOperationResult(BaseModel):
    affected: int
    user_ids: List[int]


# Consent
class ConsentUpdate(BaseModel):
    consent_type: ConsentType
    granted: bool


class ConsentState(BaseModel):
    """Current consent for one category; id is None for synthesized defaults."""

    id: Optional[int] = None
    consent_type: ConsentType
    status: ConsentStatus
    version: int
    granted_at: Optional[datetime] = None
    withdrawn_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ConsentHistoryEntry(BaseModel):
    id: int
    consent_type: ConsentType
    status: ConsentStatus
    version: int
    ip_address: Optional[str] = None
    metadata: Optional[dict[str, Any]] = Field(
        default=None, validation_alias="extra_metadata"
    )
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Deletion requests
class DeletionRequestCreate(BaseModel):
    confirm_email: EmailStr
    reason: Optional[str] = None


class ProcessDeletionRequest(BaseModel):
    status: DataDeletionStatus
    notes: Optional[str] = None
    export_before_delete: bool = False


class DeletionRequestResponse(BaseModel):
    id: int
    user_id: int
    status: DataDeletionStatus
    reason: Optional[str] = None
    requested_at: datetime
    processed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    processed_by: Optional[int] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class DeletionRequestCreated(BaseModel):
    request: DeletionRequestResponse
    message: str
