"""Exception types and known API error codes shared across the console client."""

# Error codes the API returns that callers handle specifically
INVALID_STAGE_FOR_STATUS = "INVALID_STAGE_FOR_STATUS"
INVALID_PHONE = "INVALID_PHONE"
CANNOT_CHANGE_SELF_ROLE = "CANNOT_CHANGE_SELF_ROLE"
# A 2xx response whose body could not be decoded
INVALID_RESPONSE = "INVALID_RESPONSE"


class ConsoleError(Exception):
    """Base class for every error raised by crm_console."""


class LocalValidationError(ConsoleError):
    """A request rejected before any network call."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        field_errors: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.field_errors = field_errors or {}


class TransitionValidationError(LocalValidationError):
    """A status transition that fails the local transition rules."""

    def __init__(self, field_errors: dict[str, str]):
        message = "; ".join(field_errors.values()) or "Invalid transition"
        super().__init__(message, code="INVALID_TRANSITION", field_errors=field_errors)
