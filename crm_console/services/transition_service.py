"""
Status transitions: validated locally, submitted, then the person's cache scope
is invalidated.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import TypeAdapter

from crm_console.auth.context import AuthContext
from crm_console.core.status_machine import apply_status_change, validate_transition
from crm_console.infrastructure.observability.logging import get_logger
from crm_console.models.api.person_request import TransitionRequest
from crm_console.models.domain.enums import PersonStatus
from crm_console.models.domain.person import Person, TransitionRecord
from crm_console.services import cache_keys
from crm_console.services.base_service import BaseService
from crm_console.services.people_service import PERSON_ADAPTER
from crm_console.services.query_cache import QueryResult
from crm_console.services.settings_service import SETTINGS_ADAPTER

logger = get_logger(__name__)

TRANSITIONS_ADAPTER = TypeAdapter(list[TransitionRecord])


class TransitionService(BaseService):
    async def list(self, auth: AuthContext, person_id: str) -> QueryResult[list[TransitionRecord]]:
        """Transition history for one person, oldest first."""

        async def load() -> list[TransitionRecord]:
            data = await self._call(auth, f"/people/{person_id}/transitions")
            return TRANSITIONS_ADAPTER.validate_python(data or [])

        return await self.cache.fetch(
            cache_keys.transitions(person_id),
            load,
            TRANSITIONS_ADAPTER,
            enabled=auth.is_authenticated and bool(person_id),
        )

    async def transition(
        self,
        auth: AuthContext,
        person: Person,
        request: TransitionRequest,
        stages_by_status: dict[str, list[str]] | None = None,
    ) -> Person:
        """
        Move a person to a new status.

        Validation happens before any request. On success the returned person
        carries the server's status and history, with a stage that is not
        configured for the new status cleared; people lists, this person's
        detail and transition history are invalidated.

        Raises:
            TransitionValidationError: If the move or its payload is invalid
            ApiError: If the API rejects it (cache untouched)
        """
        validate_transition(person.status, request)

        async def call() -> Person:
            data = await self._call(
                auth,
                f"/people/{person.id}/transition",
                method="POST",
                body=request.to_payload(),
            )
            return PERSON_ADAPTER.validate_python(data)

        updated = await self.cache.mutate(call, invalidates=cache_keys.person_scope(person.id))
        logger.info(
            "Person transitioned",
            person_id=person.id,
            from_status=person.status.value,
            to_status=updated.status.value,
        )

        updated = _with_history(updated, request)

        if stages_by_status is None:
            cached = await self.cache.peek(cache_keys.SETTINGS, SETTINGS_ADAPTER)
            stages_by_status = cached.stages_by_status if cached else None
        if stages_by_status is None:
            return updated
        return apply_status_change(updated, PersonStatus(updated.status), stages_by_status)


def _with_history(person: Person, request: TransitionRequest) -> Person:
    """Ensure the confirmed transition is the last history entry of the returned person."""
    history = list(person.transitions)
    if history and history[-1].to_status == request.to_status:
        return person
    history.append(
        TransitionRecord(
            to_status=request.to_status,
            reason=request.reason.strip(),
            deferred_until=request.deferred_until,
            deferred_reason=request.deferred_reason,
            discontinue_reason=request.discontinue_reason,
            created_at=datetime.now(UTC),
        )
    )
    return person.model_copy(update={"transitions": history})
