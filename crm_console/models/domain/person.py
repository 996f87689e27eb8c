from datetime import date, datetime

from pydantic import ConfigDict, Field

from crm_console.models.domain.base import WireModel
from crm_console.models.domain.enums import PersonStatus

# Deferral dates may be plain dates or full timestamps
DateOrDatetime = date | datetime


class UserRef(WireModel):
    """Reference to an application user (owner or author)."""

    id: str
    email: str | None = None
    display_name: str | None = None


class TransitionRecord(WireModel):
    """Immutable record of one status change."""

    model_config = ConfigDict(frozen=True)

    to_status: PersonStatus
    reason: str | None = None
    deferred_until: DateOrDatetime | None = None
    deferred_reason: str | None = None
    discontinue_reason: str | None = None
    created_at: datetime | None = None


class Person(WireModel):
    """A tracked individual moving through the status pipeline."""

    id: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    city: str | None = None
    linkedin_url: str | None = None
    source: str | None = None
    stage: str | None = None
    status: PersonStatus
    owner_user_id: str | None = None
    owner: UserRef | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    transitions: list[TransitionRecord] = Field(default_factory=list)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    @property
    def owner_id(self) -> str | None:
        """Owner id from the flat field, else from the embedded owner."""
        if self.owner_user_id:
            return self.owner_user_id
        return self.owner.id if self.owner else None


class RosterPerson(WireModel):
    id: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
