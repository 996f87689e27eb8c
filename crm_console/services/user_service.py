"""
Signed-in profile (/me) and user administration.
"""

from __future__ import annotations

from pydantic import TypeAdapter

from crm_console.auth.context import AuthContext
from crm_console.auth.rbac import same_id
from crm_console.errors import CANNOT_CHANGE_SELF_ROLE, LocalValidationError
from crm_console.infrastructure.observability.logging import get_logger
from crm_console.models.api.user_request import UpdateMeRequest, UpdateUserRoleRequest, UsersQuery
from crm_console.models.domain.enums import Role
from crm_console.models.domain.user import UserProfile, UserRoleDescription, UsersPage
from crm_console.services import cache_keys
from crm_console.services.base_service import BaseService
from crm_console.services.query_cache import QueryResult

logger = get_logger(__name__)

PROFILE_ADAPTER = TypeAdapter(UserProfile)
USERS_PAGE_ADAPTER = TypeAdapter(UsersPage)
ROLE_DESCRIPTIONS_ADAPTER = TypeAdapter(list[UserRoleDescription])


class UserService(BaseService):
    async def me(self, auth: AuthContext) -> QueryResult[UserProfile]:
        async def load() -> UserProfile:
            return PROFILE_ADAPTER.validate_python(await self._call(auth, "/me"))

        return await self.cache.fetch(cache_keys.ME, load, PROFILE_ADAPTER, enabled=auth.is_authenticated)

    async def update_me(self, auth: AuthContext, request: UpdateMeRequest) -> UserProfile:
        """Update the profile; the response is stored as the cached /me entry."""

        async def call() -> UserProfile:
            data = await self._call(auth, "/me", method="PATCH", body=request.to_wire())
            return PROFILE_ADAPTER.validate_python(data)

        async def store(profile: UserProfile) -> None:
            await self.cache.set_data(cache_keys.ME, profile, PROFILE_ADAPTER)

        return await self.cache.mutate(call, set_data=store)

    async def list(self, auth: AuthContext, query: UsersQuery | None = None) -> QueryResult[UsersPage]:
        query = query or UsersQuery()

        async def load() -> UsersPage:
            data = await self._call(auth, "/users", params=query.to_params())
            return USERS_PAGE_ADAPTER.validate_python(data or {})

        return await self.cache.fetch(
            cache_keys.users(query), load, USERS_PAGE_ADAPTER, enabled=auth.is_authenticated
        )

    async def role_descriptions(self, auth: AuthContext) -> QueryResult[list[UserRoleDescription]]:
        async def load() -> list[UserRoleDescription]:
            return ROLE_DESCRIPTIONS_ADAPTER.validate_python(await self._call(auth, "/users/roles") or [])

        return await self.cache.fetch(
            cache_keys.ROLE_DESCRIPTIONS,
            load,
            ROLE_DESCRIPTIONS_ADAPTER,
            enabled=auth.is_authenticated,
        )

    async def update_role(self, auth: AuthContext, user_id: str, role: Role | str) -> None:
        """
        Change another user's role.

        Raises:
            LocalValidationError: CANNOT_CHANGE_SELF_ROLE when targeting yourself
            ApiError: If the API rejects the change
        """
        if same_id(auth.user_id, user_id):
            raise LocalValidationError(
                "You cannot change your own role",
                code=CANNOT_CHANGE_SELF_ROLE,
                field_errors={"role": "You cannot change your own role"},
            )
        body = UpdateUserRoleRequest(role=Role(role)).to_wire()

        async def call() -> None:
            await self._call(auth, f"/users/{user_id}/role", method="PATCH", body=body)

        await self.cache.mutate(call, invalidates=[cache_keys.USERS])
        logger.info("User role updated", user_id=user_id, role=body["role"])
