"""
Console settings (singleton) and counselors.
"""

from __future__ import annotations

from typing import Literal

from pydantic import TypeAdapter

from crm_console.auth.context import AuthContext
from crm_console.infrastructure.observability.logging import get_logger
from crm_console.models.api.settings_request import (
    CreateCounselorRequest,
    SettingsPatch,
    SourcesPayload,
    StagesPayload,
    UpdateCounselorRequest,
)
from crm_console.models.domain.settings import ConsoleSettings, Counselor
from crm_console.services import cache_keys
from crm_console.services.base_service import BaseService
from crm_console.services.query_cache import QueryResult

logger = get_logger(__name__)

SETTINGS_ADAPTER = TypeAdapter(ConsoleSettings)
COUNSELORS_ADAPTER = TypeAdapter(list[Counselor])

CounselorFilter = Literal["all", "active", "inactive"]


class SettingsService(BaseService):
    async def get(self, auth: AuthContext) -> QueryResult[ConsoleSettings]:
        async def load() -> ConsoleSettings:
            return SETTINGS_ADAPTER.validate_python(await self._call(auth, "/settings") or {})

        return await self.cache.fetch(
            cache_keys.SETTINGS, load, SETTINGS_ADAPTER, enabled=auth.is_authenticated
        )

    async def patch(self, auth: AuthContext, request: SettingsPatch) -> ConsoleSettings:
        """Patch settings; the response replaces the cached singleton."""

        async def call() -> ConsoleSettings:
            data = await self._call(auth, "/settings", method="PATCH", body=request.to_wire())
            return SETTINGS_ADAPTER.validate_python(data)

        async def store(value: ConsoleSettings) -> None:
            await self.cache.set_data(cache_keys.SETTINGS, value, SETTINGS_ADAPTER)

        return await self.cache.mutate(call, set_data=store)

    async def update_sources(self, auth: AuthContext, sources: list[str]) -> None:
        body = SourcesPayload(sources=sources).to_wire()

        async def call() -> None:
            await self._call(auth, "/settings/sources", method="PATCH", body=body)

        await self.cache.mutate(call, invalidates=[cache_keys.SETTINGS])

    async def update_stages(self, auth: AuthContext, stages_by_status: dict[str, list[str]]) -> None:
        body = StagesPayload(stages_by_status=stages_by_status).to_wire()

        async def call() -> None:
            await self._call(auth, "/settings/stages", method="PATCH", body=body)

        await self.cache.mutate(call, invalidates=[cache_keys.SETTINGS])


def _active_param(active_filter: CounselorFilter) -> str:
    if active_filter == "all":
        return "all"
    return "true" if active_filter == "active" else "false"


class CounselorService(BaseService):
    async def list(self, auth: AuthContext, active_filter: CounselorFilter = "all") -> QueryResult[list[Counselor]]:
        async def load() -> list[Counselor]:
            data = await self._call(auth, "/counselors", params={"active": _active_param(active_filter)})
            return [Counselor.from_api(item) for item in data or []]

        return await self.cache.fetch(
            cache_keys.counselors(active_filter),
            load,
            COUNSELORS_ADAPTER,
            enabled=auth.is_authenticated,
        )

    async def create(self, auth: AuthContext, request: CreateCounselorRequest) -> Counselor:
        async def call() -> Counselor:
            data = await self._call(
                auth, "/counselors", method="POST", body=request.model_dump(mode="json", by_alias=True)
            )
            return Counselor.from_api(data)

        return await self.cache.mutate(call, invalidates=[cache_keys.COUNSELORS])

    async def update(self, auth: AuthContext, counselor_id: str, request: UpdateCounselorRequest) -> Counselor:
        async def call() -> Counselor:
            data = await self._call(
                auth, f"/counselors/{counselor_id}", method="PATCH", body=request.to_wire()
            )
            return Counselor.from_api(data)

        return await self.cache.mutate(call, invalidates=[cache_keys.COUNSELORS])

    async def delete(self, auth: AuthContext, counselor_id: str) -> None:
        async def call() -> None:
            await self._call(auth, f"/counselors/{counselor_id}", method="DELETE")

        await self.cache.mutate(call, invalidates=[cache_keys.COUNSELORS])
