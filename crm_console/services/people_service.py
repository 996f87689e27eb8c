"""
People service: list, detail, create, patch and stage updates.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import TypeAdapter

from crm_console.auth.context import AuthContext
from crm_console.config import settings
from crm_console.errors import INVALID_STAGE_FOR_STATUS
from crm_console.infrastructure.observability.logging import get_logger
from crm_console.models.api.person_request import (
    CreatePersonRequest,
    PatchPersonRequest,
    PeopleFilters,
    StagePatchRequest,
)
from crm_console.models.domain.person import Person
from crm_console.services import cache_keys
from crm_console.services.api_client import ApiClient, ApiError
from crm_console.services.base_service import BaseService
from crm_console.services.query_cache import QueryCache, QueryResult

logger = get_logger(__name__)

PERSON_ADAPTER = TypeAdapter(Person)
PEOPLE_ADAPTER = TypeAdapter(list[Person])


@dataclass
class StageChangeResult:
    """Outcome of a stage change. A rejected stage is reported, not raised."""

    applied: bool
    stage: str | None
    message: str


class PeopleService(BaseService):
    """People list/detail reads and profile mutations."""

    def __init__(self, client: ApiClient, cache: QueryCache, stage_patch_mode: str | None = None):
        super().__init__(client, cache)
        self.stage_patch_mode = stage_patch_mode or settings.STAGE_PATCH_MODE
        # None until the dedicated stage endpoint has been tried once
        self._dedicated_stage_endpoint: bool | None = None

    async def list(self, auth: AuthContext, filters: PeopleFilters | None = None) -> QueryResult[list[Person]]:
        filters = filters or PeopleFilters()

        async def load() -> list[Person]:
            data = await self._call(auth, "/people", params=filters.to_params())
            return PEOPLE_ADAPTER.validate_python(data or [])

        return await self.cache.fetch(
            cache_keys.people_list(filters),
            load,
            PEOPLE_ADAPTER,
            enabled=auth.is_authenticated,
        )

    async def get(self, auth: AuthContext, person_id: str | None) -> QueryResult[Person]:
        async def load() -> Person:
            return PERSON_ADAPTER.validate_python(await self._call(auth, f"/people/{person_id}"))

        return await self.cache.fetch(
            cache_keys.person(person_id or ""),
            load,
            PERSON_ADAPTER,
            enabled=auth.is_authenticated and bool(person_id),
        )

    async def create(self, auth: AuthContext, request: CreatePersonRequest) -> Person:
        """Create a person. Invalidates every people list."""

        async def call() -> Person:
            data = await self._call(auth, "/people", method="POST", body=request.to_wire())
            return PERSON_ADAPTER.validate_python(data)

        person = await self.cache.mutate(call, invalidates=[cache_keys.PEOPLE])
        logger.info("Person created", person_id=person.id, status=person.status.value)
        return person

    async def patch(self, auth: AuthContext, person_id: str, request: PatchPersonRequest) -> Person:
        """Patch profile fields. Invalidates people lists and this person's detail."""

        async def call() -> Person:
            data = await self._call(
                auth, f"/people/{person_id}", method="PATCH", body=request.to_wire()
            )
            return PERSON_ADAPTER.validate_python(data)

        return await self.cache.mutate(
            call,
            invalidates=[cache_keys.PEOPLE, cache_keys.person(person_id)],
        )

    def _use_dedicated_stage_endpoint(self) -> bool:
        if self.stage_patch_mode == "dedicated":
            return True
        if self.stage_patch_mode == "generic":
            return False
        return self._dedicated_stage_endpoint is not False

    async def patch_stage(self, auth: AuthContext, person_id: str, stage: str | None) -> None:
        """
        Set a person's stage.

        In `negotiate` mode the dedicated learners endpoint is tried first; a 404
        marks it unsupported for this service and the generic people PATCH is
        used from then on.

        Raises:
            ApiError: Including INVALID_STAGE_FOR_STATUS when the stage does not
                belong to the person's status
        """
        body = StagePatchRequest(stage=stage).to_wire()

        async def call() -> None:
            if self._use_dedicated_stage_endpoint():
                try:
                    await self._call(auth, f"/learners/{person_id}/stage", method="PATCH", body=body)
                    self._dedicated_stage_endpoint = True
                    return
                except ApiError as e:
                    if self.stage_patch_mode != "negotiate" or e.status != 404 or self._dedicated_stage_endpoint:
                        raise
                    self._dedicated_stage_endpoint = False
                    logger.warning(
                        "Dedicated stage endpoint not available, using people PATCH",
                        person_id=person_id,
                    )
            await self._call(auth, f"/people/{person_id}", method="PATCH", body=body)

        await self.cache.mutate(
            call,
            invalidates=[cache_keys.PEOPLE, cache_keys.person(person_id)],
        )

    async def change_stage(self, auth: AuthContext, person_id: str, stage: str | None) -> StageChangeResult:
        """
        Stage change for forms: an invalid stage for the current status resets the
        field and returns a message instead of raising. Other errors propagate.
        """
        try:
            await self.patch_stage(auth, person_id, stage)
        except ApiError as e:
            if e.code != INVALID_STAGE_FOR_STATUS:
                raise
            logger.info("Stage rejected for current status", person_id=person_id, stage=stage)
            return StageChangeResult(
                applied=False,
                stage=None,
                message=e.message or "Invalid stage for current status",
            )
        return StageChangeResult(applied=True, stage=stage, message="Stage updated")
