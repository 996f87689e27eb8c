from pydantic import Field

from crm_console.models.domain.base import WireModel
from crm_console.models.domain.enums import Role


class UpdateMeRequest(WireModel):
    """Request body for updating the signed-in user's profile."""

    display_name: str | None = Field(default=None, max_length=100)


class UpdateUserRoleRequest(WireModel):
    role: Role


class UsersQuery(WireModel):
    q: str | None = None
    page: int | None = Field(default=None, ge=1)
    page_size: int | None = Field(default=None, ge=1)
