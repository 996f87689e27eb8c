from typing import Any

from pydantic import Field, field_validator

from crm_console.models.domain.base import WireModel
from crm_console.models.domain.enums import PersonStatus
from crm_console.models.domain.person import DateOrDatetime


class CreatePersonRequest(WireModel):
    """Request body for creating a person. The server makes the creator the owner."""

    first_name: str = Field(..., min_length=1)
    last_name: str | None = None
    email: str = Field(..., min_length=3)
    phone: str | None = None
    city: str | None = None
    linkedin_url: str | None = None
    source: str | None = None
    stage: str | None = None
    status: PersonStatus | None = None


class PatchPersonRequest(WireModel):
    """Partial update of profile fields."""

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    city: str | None = None
    linkedin_url: str | None = None
    source: str | None = None
    stage: str | None = None


class StagePatchRequest(WireModel):
    stage: str | None


class TransitionRequest(WireModel):
    """A proposed status change. Validated locally before it is sent."""

    to_status: PersonStatus
    reason: str = ""
    deferred_until: DateOrDatetime | None = None
    deferred_reason: str | None = None
    discontinue_reason: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Body for the transition endpoint; only fields relevant to the target are sent."""
        payload: dict[str, Any] = {
            "toStatus": self.to_status.value,
            "reason": self.reason.strip(),
        }
        if self.to_status == PersonStatus.DEFERRED:
            payload["deferredUntil"] = self.deferred_until.isoformat() if self.deferred_until else None
            payload["deferredReason"] = (self.deferred_reason or "").strip()
        if self.to_status == PersonStatus.DISCONTINUED:
            payload["discontinueReason"] = (self.discontinue_reason or "").strip()
        return payload


class PeopleFilters(WireModel):
    """Filters for the people list. Each distinct combination is its own cache entry."""

    status: PersonStatus | None = None
    stage: str | None = None
    source: str | None = None
    q: str | None = None
    owner_user_id: str | None = None

    @field_validator("stage", "source", "q", "owner_user_id")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None
