from datetime import datetime

from pydantic import Field

from crm_console.models.domain.base import WireModel


class UserProfile(WireModel):
    """The signed-in user, as returned by /me."""

    id: str
    email: str
    display_name: str | None = None
    role: str
    first_login_at: datetime | None = None
    last_login_at: datetime | None = None


class AppUser(WireModel):
    id: str
    email: str
    display_name: str | None = None
    role: str
    created_at: datetime | None = None
    last_active_at: datetime | None = None


class UsersPage(WireModel):
    items: list[AppUser] = Field(default_factory=list)
    total: int = 0


class UserRoleDescription(WireModel):
    key: str
    label: str
    description: str
