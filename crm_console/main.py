"""
Console wiring: config -> API client -> query cache -> services.
"""

from crm_console.config import settings
from crm_console.infrastructure.observability.logging import get_logger
from crm_console.services.api_client import ApiClient
from crm_console.services.cache_store import CacheStore, create_cache_store
from crm_console.services.metrics_service import MetricsService
from crm_console.services.notes_service import NotesService
from crm_console.services.people_service import PeopleService
from crm_console.services.query_cache import QueryCache
from crm_console.services.roster_service import RosterService
from crm_console.services.settings_service import CounselorService, SettingsService
from crm_console.services.transition_service import TransitionService
from crm_console.services.user_service import UserService

logger = get_logger(__name__)


class Console:
    """All services sharing one API client and one query cache."""

    def __init__(self, client: ApiClient, cache: QueryCache):
        self.client = client
        self.cache = cache
        self.people = PeopleService(client, cache)
        self.transitions = TransitionService(client, cache)
        self.notes = NotesService(client, cache)
        self.settings = SettingsService(client, cache)
        self.counselors = CounselorService(client, cache)
        self.users = UserService(client, cache)
        self.metrics = MetricsService(client, cache)
        self.roster = RosterService(client, cache)

    async def close(self) -> None:
        """Close the HTTP client and the cache store."""
        await self.client.close()
        await self.cache.store.close()
        logger.info("Console closed")

    async def __aenter__(self) -> "Console":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


def create_console(
    client: ApiClient | None = None,
    store: CacheStore | None = None,
) -> Console:
    """Build a console from settings; pass a client or store to override either."""
    client = client or ApiClient()
    cache = QueryCache(store or create_cache_store())
    logger.info(
        "Console created",
        environment=settings.environment,
        api_base_url=client.base_url,
        cache_backend=type(cache.store).__name__,
    )
    return Console(client, cache)
