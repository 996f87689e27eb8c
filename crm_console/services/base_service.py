from crm_console.auth.context import AuthContext
from crm_console.services.api_client import ApiClient
from crm_console.services.query_cache import QueryCache

API_PREFIX = "/api/v1"


class BaseService:
    """Shared wiring: one API client and one query cache per console."""

    def __init__(self, client: ApiClient, cache: QueryCache):
        self.client = client
        self.cache = cache

    async def _call(self, auth: AuthContext, path: str, **kwargs):
        return await self.client.fetch_json(f"{API_PREFIX}{path}", token=auth.access_token, **kwargs)
