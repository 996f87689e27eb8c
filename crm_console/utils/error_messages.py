"""
Turn errors into what a form or notification should show.

Known API codes get targeted handling (a field error, a field reset, a specific
message); everything else falls back to to_user_message.
"""

from dataclasses import dataclass, field
from typing import Literal

from crm_console.errors import (
    CANNOT_CHANGE_SELF_ROLE,
    INVALID_PHONE,
    INVALID_STAGE_FOR_STATUS,
    LocalValidationError,
)
from crm_console.services.api_client import ApiError, to_user_message
from crm_console.utils.crm_copy import CrmCopy, get_crm_copy

Action = Literal[
    "create_learner",
    "edit_learner",
    "change_stage",
    "transition",
    "add_note",
    "delete_note",
    "change_role",
    "update_settings",
]


@dataclass
class ErrorNotice:
    message: str
    field_errors: dict[str, str] = field(default_factory=dict)
    reset_fields: list[str] = field(default_factory=list)
    retryable: bool = False


def _forbidden_message(action: Action | None, copy: CrmCopy) -> str:
    if action == "add_note":
        return f"You can only add notes to {copy.plural} you own."
    if action == "delete_note":
        return "You can only delete your own note"
    return "You do not have permission to perform this action"


def describe_error(error: object, action: Action | None = None, copy: CrmCopy | None = None) -> ErrorNotice:
    """Map an error to a user-facing notice."""
    copy = copy or get_crm_copy()

    if isinstance(error, LocalValidationError):
        return ErrorNotice(message=error.message, field_errors=dict(error.field_errors))

    if not isinstance(error, ApiError):
        return ErrorNotice(message=to_user_message(error))

    if isinstance(error.details, dict) and error.details:
        field_errors = {str(k): str(v) for k, v in error.details.items()}
        return ErrorNotice(message="Please fix the errors below", field_errors=field_errors)

    if error.code == INVALID_STAGE_FOR_STATUS:
        return ErrorNotice(
            message=error.message or "Invalid stage for current status",
            reset_fields=["stage"],
        )

    if error.code == INVALID_PHONE:
        return ErrorNotice(
            message=to_user_message(error),
            field_errors={"phone": "Please enter a valid phone number"},
            retryable=True,
        )

    if error.code == CANNOT_CHANGE_SELF_ROLE:
        return ErrorNotice(message="You cannot change your own role")

    if error.status == 403:
        return ErrorNotice(message=_forbidden_message(action, copy))

    return ErrorNotice(message=to_user_message(error), retryable=True)
