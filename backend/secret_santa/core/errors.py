"""Error Hierarchy - typed, categorized exceptions for every Secret Santa failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Caller-correctable errors are 4xx; persistence and identity failures are 5xx
    - to_response() produces the REST error envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with SantaError base: FastAPI global handler catches all
    - ErrorContext as dataclass: draw/participant context travels with the error,
      logging reads it without the core importing a logging framework
    - ProvisioningError is raised by the identity side only; orchestrators
      catch it and never let it reach the API caller
"""

from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    ACCESS_DENIED = "access_denied"
    CONFLICT = "conflict"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Draw/participant context attached to an error for logs and responses."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    draw_id: str | None = None
    participant_id: str | None = None


class SantaError(Exception):
    """Base exception for all Secret Santa errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "draw_id": self.context.draw_id,
                    "participant_id": self.context.participant_id,
                },
            }
        }


# ─── Caller-correctable errors (400-level) ──────────────────────

class ValidationError(SantaError):
    """Malformed input."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class AccessDeniedError(SantaError):
    """Caller is not allowed to see this resource."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "ACCESS_DENIED", ErrorCategory.ACCESS_DENIED,
            ErrorSeverity.WARNING, context, 403,
        )


class NotFoundError(SantaError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class DrawNotFoundError(NotFoundError):
    """Draw id does not resolve to a stored draw."""
    def __init__(self, draw_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.draw_id = draw_id
        super().__init__("Draw", draw_id, ctx)
        self.code = "DRAW_NOT_FOUND"


class ConflictError(SantaError):
    """Operation conflicts with the current persisted state."""
    def __init__(
        self, message: str, code: str = "CONFLICT",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class MatchesAlreadyExistError(ConflictError):
    """Draw is already matched. Terminal state: the caller must not retry."""
    def __init__(self, draw_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.draw_id = draw_id
        super().__init__(
            "Matches have already been generated for this draw",
            "MATCHES_ALREADY_EXIST", ctx,
        )


class InsufficientParticipantsError(SantaError):
    """Matching needs more participants than the draw has."""
    def __init__(self, required: int, actual: int, context: ErrorContext | None = None):
        super().__init__(
            f"Insufficient participants. At least {required} participants "
            f"are required for matching (got {actual})",
            "INSUFFICIENT_PARTICIPANTS", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )
        self.required = required
        self.actual = actual

    def to_response(self) -> dict:
        response = super().to_response()
        response["error"].update(required=self.required, actual=self.actual)
        return response


# ─── Infrastructure errors (500-level) ──────────────────────────

class PersistenceError(SantaError):
    """Storage write or read failed."""
    def __init__(
        self, message: str, operation: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Database {operation} failed: {message}",
            "PERSISTENCE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.operation = operation


class ParticipantCreationFailedError(PersistenceError):
    """Participant insert failed; the draw row has been rolled back."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(message, "insert_participants", context)
        self.code = "PARTICIPANT_CREATION_FAILED"


class ProvisioningError(SantaError):
    """Identity provisioning could not be attempted or failed."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "PROVISIONING_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 502,
        )


class IdentityServiceError(ProvisioningError):
    """Identity/invitation HTTP API call failed."""
    def __init__(
        self,
        message: str,
        api_error_type: str,
        status_code: int | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(f"Identity API error ({api_error_type}): {message}", context)
        self.code = "IDENTITY_API_ERROR"
        self.severity = ErrorSeverity.CRITICAL
        self.http_status = 503
        self.api_error_type = api_error_type
        self.status_code = status_code


# ─── Internal invariant violations ──────────────────────────────

class InvalidAssignmentError(SantaError):
    """A generated assignment is not a derangement. Never a caller error."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_ASSIGNMENT", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 500,
        )
