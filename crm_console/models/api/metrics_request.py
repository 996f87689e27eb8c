from typing import Literal

from crm_console.models.domain.base import WireModel


class OwnerFilter(WireModel):
    owner_user_id: str | None = None


class MetricsRange(WireModel):
    """Date-range filter shared by the time-series metrics endpoints."""

    start: str | None = None
    end: str | None = None
    granularity: Literal["day", "week", "month"] | None = None
    tz: str | None = None
    owner_user_id: str | None = None


class LeadOwnersQuery(WireModel):
    status: str = "LEAD"
    start: str | None = None
    end: str | None = None
    granularity: Literal["day", "week"] = "day"
    tz: str | None = None
