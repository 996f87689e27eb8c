"""
Person Status Machine
Which status a person may move to next, and what each move must carry.
"""

from crm_console.errors import TransitionValidationError
from crm_console.models.api.person_request import TransitionRequest
from crm_console.models.domain.enums import PersonStatus
from crm_console.models.domain.person import Person

# Legal moves: current status -> statuses it may transition to.
# No status is terminal: ALUMNI and DISCONTINUED both have a way back.
ALLOWED_TRANSITIONS: dict[PersonStatus, tuple[PersonStatus, ...]] = {
    PersonStatus.SUSPECT: (PersonStatus.LEAD,),
    PersonStatus.LEAD: (PersonStatus.CANDIDATE_FREE,),
    PersonStatus.CANDIDATE_FREE: (
        PersonStatus.CANDIDATE_PAID,
        PersonStatus.ALUMNI,
        PersonStatus.DEFERRED,
        PersonStatus.DISCONTINUED,
    ),
    PersonStatus.CANDIDATE_PAID: (
        PersonStatus.ALUMNI,
        PersonStatus.DEFERRED,
        PersonStatus.DISCONTINUED,
    ),
    PersonStatus.ALUMNI: (PersonStatus.DEFERRED,),
    PersonStatus.DEFERRED: (PersonStatus.CANDIDATE_FREE, PersonStatus.CANDIDATE_PAID),
    PersonStatus.DISCONTINUED: (PersonStatus.CANDIDATE_FREE,),
}

# New people always enter here
ENTRY_STATUS = PersonStatus.SUSPECT


def allowed_targets(status: PersonStatus | str) -> tuple[PersonStatus, ...]:
    """Statuses reachable in one move from `status`; empty for anything unknown."""
    try:
        return ALLOWED_TRANSITIONS.get(PersonStatus(status), ())
    except ValueError:
        return ()


def can_transition(current: PersonStatus | str, target: PersonStatus | str) -> bool:
    try:
        return PersonStatus(target) in allowed_targets(current)
    except ValueError:
        return False


def _blank(value: str | None) -> bool:
    return not (value or "").strip()


def validate_transition(current: PersonStatus | str, request: TransitionRequest) -> None:
    """
    Check a proposed transition before it is submitted.

    All problems are collected so a form can show them together.

    Raises:
        TransitionValidationError: With a field -> message map
    """
    errors: dict[str, str] = {}
    targets = allowed_targets(current)
    current_name = getattr(current, "value", current)

    if not targets:
        errors["toStatus"] = f"No transitions available from {current_name}"
    elif request.to_status not in targets:
        errors["toStatus"] = (
            f"Invalid target status {request.to_status.value} from {current_name}"
        )

    if _blank(request.reason):
        errors["reason"] = "Reason is required"

    if request.to_status == PersonStatus.DEFERRED:
        if request.deferred_until is None:
            errors["deferredUntil"] = "Deferral date is required"
        if _blank(request.deferred_reason):
            errors["deferredReason"] = "Deferral reason is required"

    if request.to_status == PersonStatus.DISCONTINUED:
        if _blank(request.discontinue_reason):
            errors["discontinueReason"] = "Discontinuation reason is required"

    if errors:
        raise TransitionValidationError(errors)


def reconcile_stage(
    stage: str | None,
    status: PersonStatus | str,
    stages_by_status: dict[str, list[str]] | None,
) -> str | None:
    """Keep `stage` only if it is configured for `status`."""
    if not stage:
        return None
    key = getattr(status, "value", status)
    if stage in (stages_by_status or {}).get(key, []):
        return stage
    return None


def apply_status_change(
    person: Person,
    status: PersonStatus,
    stages_by_status: dict[str, list[str]] | None,
) -> Person:
    """Copy of `person` in `status`, with a stage that does not belong there cleared."""
    return person.model_copy(
        update={
            "status": status,
            "stage": reconcile_stage(person.stage, status, stages_by_status),
        }
    )
