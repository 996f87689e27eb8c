import jwt
import pytest

from crm_console.auth.context import AuthContext
from crm_console.services.api_client import ApiClient
from crm_console.services.query_cache import QueryCache

BASE_URL = "http://api.test"
SIGNING_KEY = "test-signing-key-that-is-long-enough-for-hs256"


@pytest.fixture
def make_token():
    def _make(**claims) -> str:
        return jwt.encode(claims, SIGNING_KEY, algorithm="HS256")

    return _make


@pytest.fixture
def auth_for(make_token):
    def _auth(role: str, user_id: str = "user-123") -> AuthContext:
        return AuthContext(
            access_token=make_token(oid=user_id, roles=[role]),
            role=role,
            user_id=user_id,
        )

    return _auth


@pytest.fixture
def admin_auth(auth_for):
    return auth_for("ADMIN", "admin-1")


@pytest.fixture
def sales_auth(auth_for):
    return auth_for("SALES", "sales-1")


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}
        self.closed = False

    async def ping(self) -> bool:
        return True

    async def set(self, key: str, value: str) -> bool:
        self.store[key] = value
        return True

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def delete(self, key: str) -> int:
        return 1 if self.store.pop(key, None) is not None else 0

    async def scan_iter(self, match: str | None = None):
        prefix = (match or "").rstrip("*")
        for key in list(self.store):
            if key.startswith(prefix):
                yield key

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def api_client():
    return ApiClient(base_url=BASE_URL)


@pytest.fixture
def cache():
    return QueryCache()
