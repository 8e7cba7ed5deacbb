"""Tests for domain exceptions: correlation IDs and stable error codes."""

import pytest

from core.correlation import set_correlation_id
from models.exceptions import (
    AlreadyInDesiredStateException,
    BusinessRuleException,
    ConflictException,
    DeletionRequestNotFoundException,
    DomainException,
    DuplicateDeletionRequestException,
    EmailAlreadyInUseException,
    EmailMismatchException,
    InvalidDeletionTransitionException,
    MissingActorException,
    NotFoundException,
    PermissionDeniedException,
    ProtectedTargetForbiddenException,
    SelfActionForbiddenException,
    StorageException,
    UserNotFoundException,
    UsernameTakenException,
    ValidationException,
)


class TestDomainExceptionCorrelationId:
    """Tests for correlation ID in DomainException."""

    def setup_method(self) -> None:
        """Reset correlation context before each test."""
        set_correlation_id("")

    def test_uses_context_correlation_id(self) -> None:
        set_correlation_id("context1")
        assert DomainException("Test error").correlation_id == "context1"

    def test_generates_id_when_no_context(self) -> None:
        exc = DomainException("Test error")
        assert len(exc.correlation_id) == 8
        assert all(c in "0123456789abcdef" for c in exc.correlation_id)

    def test_explicit_overrides_context(self) -> None:
        set_correlation_id("context_id")
        exc = DomainException("Test error", correlation_id="override")
        assert exc.correlation_id == "override"

    @pytest.mark.parametrize(
        "exception_class",
        [
            NotFoundException,
            PermissionDeniedException,
            ValidationException,
            ConflictException,
            BusinessRuleException,
            StorageException,
        ],
    )
    def test_child_exceptions_use_context_id(
        self, exception_class: type[DomainException]
    ) -> None:
        set_correlation_id("inherited")
        assert exception_class("Test error").correlation_id == "inherited"

    def test_message_preserved(self) -> None:
        exc = UserNotFoundException(42)
        assert exc.message == "User not found"
        assert str(exc) == "User not found"
        assert exc.user_id == 42


class TestErrorCodes:
    """Each failure kind maps to a stable code."""

    @pytest.mark.parametrize(
        ("exc", "code"),
        [
            (UserNotFoundException(1), "NOT_FOUND"),
            (DeletionRequestNotFoundException(1), "NOT_FOUND"),
            (EmailMismatchException(), "BAD_REQUEST"),
            (MissingActorException(), "BAD_REQUEST"),
            (SelfActionForbiddenException("ban"), "SELF_ACTION_FORBIDDEN"),
            (
                ProtectedTargetForbiddenException("ban", "admin"),
                "PROTECTED_TARGET_FORBIDDEN",
            ),
            (AlreadyInDesiredStateException("x"), "ALREADY_IN_DESIRED_STATE"),
            (DuplicateDeletionRequestException(), "CONFLICT_DUPLICATE_REQUEST"),
            (EmailAlreadyInUseException(), "CONFLICT"),
            (UsernameTakenException(), "CONFLICT"),
            (InvalidDeletionTransitionException("completed", "cancelled"), "CONFLICT"),
            (StorageException("x"), "STORAGE_ERROR"),
        ],
    )
    def test_error_code(self, exc: DomainException, code: str) -> None:
        assert exc.error_code == code

    def test_guard_messages(self) -> None:
        assert str(SelfActionForbiddenException("suspend")) == (
            "Cannot suspend your own account"
        )
        assert str(ProtectedTargetForbiddenException("ban", "admin")) == (
            "Cannot ban admin users"
        )

    def test_duplicate_request_is_a_conflict(self) -> None:
        assert isinstance(DuplicateDeletionRequestException(), ConflictException)
