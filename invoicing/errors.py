"""Invoice-specific domain errors."""

from scheduling.errors import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)


class InvoiceNotFoundError(NotFoundError):
    """Raised when an invoice is not found."""

    def __init__(self, invoice_id) -> None:
        super().__init__(
            code=ErrorCode.INVOICE_NOT_FOUND,
            message="Invoice not found",
        )
        self.invoice_id = invoice_id


class InvalidPeriodError(ValidationError):
    """Raised when a billing month or year is out of range."""

    def __init__(self, month, year) -> None:
        super().__init__(
            code=ErrorCode.INVALID_PERIOD,
            message=f"Invalid billing period {month}/{year}",
        )
        self.month = month
        self.year = year


class NothingToInvoiceError(ValidationError):
    """Raised when a studio has no completed sessions in the period."""

    def __init__(self, studio_id, month, year) -> None:
        super().__init__(
            code=ErrorCode.NOTHING_TO_INVOICE,
            message=f"No completed sessions to invoice for {month:02d}/{year}",
        )
        self.studio_id = studio_id
        self.month = month
        self.year = year


class InvalidStatusTransitionError(ValidationError):
    """Raised when a payment status change is not allowed."""

    def __init__(self, current_status: str, target_status: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_STATUS_TRANSITION,
            message=f"Cannot change payment status from {current_status} to {target_status}",
        )
        self.current_status = current_status
        self.target_status = target_status


class InvoiceAlreadyExistsError(ConflictError):
    """Raised when the studio already has an invoice for the period."""

    def __init__(self, studio_id, month, year) -> None:
        super().__init__(
            code=ErrorCode.INVOICE_EXISTS,
            message=f"An invoice already exists for {month:02d}/{year}",
        )
        self.studio_id = studio_id
        self.month = month
        self.year = year


class InvoiceNumberConflictError(ConflictError):
    """Raised when the allocated invoice number is already taken."""

    def __init__(self, invoice_number: str) -> None:
        super().__init__(
            code=ErrorCode.INVOICE_NUMBER_CONFLICT,
            message=f"Invoice number {invoice_number} is already in use",
        )
        self.invoice_number = invoice_number
