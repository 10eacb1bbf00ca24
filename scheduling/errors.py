"""Domain error codes shared by the scheduling and invoicing apps."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    STUDIO_NOT_FOUND = "STUDIO_NOT_FOUND"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    INVOICE_NOT_FOUND = "INVOICE_NOT_FOUND"
    INVALID_TEMPLATE = "INVALID_TEMPLATE"
    INVALID_SESSION = "INVALID_SESSION"
    INVALID_RATE = "INVALID_RATE"
    INVALID_PERIOD = "INVALID_PERIOD"
    INVALID_SESSION_TRANSITION = "INVALID_SESSION_TRANSITION"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    NOTHING_TO_INVOICE = "NOTHING_TO_INVOICE"
    SESSION_CONFLICT = "SESSION_CONFLICT"
    INVOICE_EXISTS = "INVOICE_EXISTS"
    INVOICE_NUMBER_CONFLICT = "INVOICE_NUMBER_CONFLICT"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(DomainError):
    """Input rejected before any write."""


class NotFoundError(DomainError):
    """Operation on a missing studio, template, session or invoice."""


class ConflictError(DomainError):
    """A uniqueness constraint was violated by the write."""


class StudioNotFoundError(NotFoundError):
    """Raised when a studio is not found."""

    def __init__(self, studio_id) -> None:
        super().__init__(
            code=ErrorCode.STUDIO_NOT_FOUND,
            message="Studio not found",
        )
        self.studio_id = studio_id


class TemplateNotFoundError(NotFoundError):
    """Raised when a recurrence template is not found."""

    def __init__(self, template_id) -> None:
        super().__init__(
            code=ErrorCode.TEMPLATE_NOT_FOUND,
            message="Template not found",
        )
        self.template_id = template_id


class SessionNotFoundError(NotFoundError):
    """Raised when a session is not found."""

    def __init__(self, session_id) -> None:
        super().__init__(
            code=ErrorCode.SESSION_NOT_FOUND,
            message="Session not found",
        )
        self.session_id = session_id


class InvalidTemplateError(ValidationError):
    """Raised when template data is malformed (e.g. end before start)."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_TEMPLATE, message=message)


class InvalidSessionError(ValidationError):
    """Raised when session data is malformed."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_SESSION, message=message)


class InvalidRateError(ValidationError):
    """Raised when an hourly rate is not positive."""

    def __init__(self, rate) -> None:
        super().__init__(
            code=ErrorCode.INVALID_RATE,
            message="Hourly rate must be positive",
        )
        self.rate = rate


class InvalidSessionTransitionError(ValidationError):
    """Raised when a completed or cancelled session is changed again."""

    def __init__(self, current_status: str, target_status: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_SESSION_TRANSITION,
            message=f"Cannot change session from {current_status} to {target_status}",
        )
        self.current_status = current_status
        self.target_status = target_status


class SessionConflictError(ConflictError):
    """Raised when a session already exists for the studio at that start time."""

    def __init__(self, studio_id, start_datetime) -> None:
        super().__init__(
            code=ErrorCode.SESSION_CONFLICT,
            message="A session already exists for this studio at this time",
        )
        self.studio_id = studio_id
        self.start_datetime = start_datetime
