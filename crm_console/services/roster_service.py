"""
Roster list and CSV export.
"""

from __future__ import annotations

from pydantic import TypeAdapter

from crm_console.auth.context import AuthContext
from crm_console.infrastructure.observability.logging import get_logger
from crm_console.models.domain.person import RosterPerson
from crm_console.services import cache_keys
from crm_console.services.api_client import ApiError
from crm_console.services.base_service import API_PREFIX, BaseService
from crm_console.services.query_cache import QueryResult

logger = get_logger(__name__)

CSV_CONTENT_TYPE = "text/csv"
UNEXPECTED_CONTENT_TYPE = "UNEXPECTED_CONTENT_TYPE"

ROSTER_ADAPTER = TypeAdapter(list[RosterPerson])


class RosterService(BaseService):
    async def list(self, auth: AuthContext) -> QueryResult[list[RosterPerson]]:
        async def load() -> list[RosterPerson]:
            return ROSTER_ADAPTER.validate_python(await self._call(auth, "/roster") or [])

        return await self.cache.fetch(cache_keys.ROSTER, load, ROSTER_ADAPTER, enabled=auth.is_authenticated)

    async def export_csv(self, auth: AuthContext) -> bytes:
        """
        Download the roster as CSV.

        Raises:
            ApiError: On a non-2xx response, or UNEXPECTED_CONTENT_TYPE when the
                body is not text/csv (e.g. an HTML page from a misrouted request)
        """
        response = await self.client.request(
            f"{API_PREFIX}/roster",
            params={"format": "csv"},
            accept=CSV_CONTENT_TYPE,
            token=auth.access_token,
        )

        content_type = response.headers.get("content-type", "")
        if CSV_CONTENT_TYPE not in content_type:
            preview = response.text[:200]
            logger.error("Roster export returned non-CSV content", content_type=content_type or "unknown")
            raise ApiError(
                f"Unexpected content-type: {content_type or 'unknown'}. Body: {preview}",
                status=response.status_code,
                code=UNEXPECTED_CONTENT_TYPE,
            )

        logger.info("Roster exported", size_bytes=len(response.content))
        return response.content
