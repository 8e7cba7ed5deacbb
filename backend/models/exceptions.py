"""
Custom domain exceptions for the account lifecycle and compliance core.

These exceptions are raised by the service layer at the point a guard rule
fails and are translated by the HTTP layer using `error_code`, never by
inspecting messages. Every failure kind is a class; callers branch on type.

Enhanced with correlation IDs so a rejected admin action can be traced
across logs, Sentry and the caller's error report.
"""

from core.correlation import generate_correlation_id, get_correlation_id


class DomainException(Exception):
    """
    Base class for all domain exceptions.

    Attributes:
        message: Human-readable error message.
        correlation_id: Unique ID for error tracking (auto-generated if not provided).
        error_code: Stable machine-readable failure kind.
    """

    error_code = "DOMAIN_ERROR"

    def __init__(self, message: str, correlation_id: str | None = None):
        self.message = message
        # Use request correlation ID if available, otherwise generate new one
        self.correlation_id = (
            correlation_id or get_correlation_id() or generate_correlation_id()
        )
        super().__init__(self.message)


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    error_code = "NOT_FOUND"


class PermissionDeniedException(DomainException):
    """Raised when the actor may not perform the action on the target."""

    error_code = "FORBIDDEN"


class ValidationException(DomainException):
    """Raised when domain input is malformed (BadRequest)."""

    error_code = "BAD_REQUEST"


class ConflictException(DomainException):
    """Raised when operation conflicts with existing data."""

    error_code = "CONFLICT"


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    error_code = "BUSINESS_RULE"


class StorageException(DomainException):
    """Raised when the persistence layer fails; the unit of work was rolled back."""

    error_code = "STORAGE_ERROR"


# ============================================================================
# Not found
# ============================================================================


class UserNotFoundException(NotFoundException):
    """User not found."""

    def __init__(self, user_id: int | None = None):
        super().__init__("User not found")
        self.user_id = user_id


class DeletionRequestNotFoundException(NotFoundException):
    """Deletion request not found."""

    def __init__(self, request_id: int):
        super().__init__("Deletion request not found")
        self.request_id = request_id


# ============================================================================
# Bad request
# ============================================================================


class EmailMismatchException(ValidationException):
    """Raised when a deletion confirmation e-mail does not match the account."""

    def __init__(self, message: str = "Email does not match your account"):
        super().__init__(message)


class MissingActorException(ValidationException):
    """Raised when an operation is invoked without an authenticated actor."""

    def __init__(self, message: str = "Acting user is required"):
        super().__init__(message)


class InvalidBulkOperationException(ValidationException):
    """Raised when a bulk operation references unknown users or an unknown action."""

    pass


# ============================================================================
# Lifecycle guard rules
# ============================================================================


class SelfActionForbiddenException(PermissionDeniedException):
    """Raised when an admin targets their own account with a forbidden action."""

    error_code = "SELF_ACTION_FORBIDDEN"

    def __init__(self, action: str):
        super().__init__(f"Cannot {action} your own account")
        self.action = action


class ProtectedTargetForbiddenException(PermissionDeniedException):
    """Raised when the target holds a role shielded from the action."""

    error_code = "PROTECTED_TARGET_FORBIDDEN"

    def __init__(self, action: str, role: str):
        super().__init__(f"Cannot {action} {role} users")
        self.action = action
        self.role = role


class AlreadyInDesiredStateException(BusinessRuleException):
    """Raised when the requested change is already in effect."""

    error_code = "ALREADY_IN_DESIRED_STATE"


# ============================================================================
# Conflicts
# ============================================================================


class DuplicateDeletionRequestException(ConflictException):
    """Raised when the user already has a pending deletion request."""

    error_code = "CONFLICT_DUPLICATE_REQUEST"

    def __init__(
        self, message: str = "You already have a pending deletion request"
    ):
        super().__init__(message)


class EmailAlreadyInUseException(ConflictException):
    """Raised when an e-mail is already used by another account."""

    def __init__(self, message: str = "Email already in use"):
        super().__init__(message)


class UsernameTakenException(ConflictException):
    """Raised when a username is already used by another account."""

    def __init__(self, message: str = "Username already taken"):
        super().__init__(message)


class InvalidDeletionTransitionException(ConflictException):
    """Raised when a deletion request cannot move to the requested status."""

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Deletion request cannot move from '{current}' to '{target}'"
        )
        self.current = current
        self.target = target
