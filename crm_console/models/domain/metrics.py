from typing import Literal

from pydantic import ConfigDict, Field

from crm_console.models.domain.base import WireModel

Granularity = Literal["day", "week", "month"]


class SourceCount(WireModel):
    source: str
    count: int


class MetricsSummary(WireModel):
    counts_by_status: dict[str, int] = Field(default_factory=dict)
    promotions_last7d: int = Field(default=0, alias="promotionsLast7d")
    top_sources: list[SourceCount] = Field(default_factory=list)


class LabelCount(WireModel):
    label: str
    count: int


class Funnel(WireModel):
    stages: list[LabelCount] = Field(default_factory=list)


class StageDistribution(WireModel):
    items: list[LabelCount] = Field(default_factory=list)


class StatusTrendPoint(WireModel):
    """One bucket of the status trend series: a date plus a count per status."""

    model_config = ConfigDict(extra="allow")

    date: str

    @property
    def counts(self) -> dict[str, int]:
        return {k: int(v) for k, v in (self.model_extra or {}).items()}


class StatusTrends(WireModel):
    granularity: Granularity = "day"
    start: str | None = None
    end: str | None = None
    series: list[StatusTrendPoint] = Field(default_factory=list)


class TransitionPoint(WireModel):
    date: str
    transition: Literal["PROMOTED", "DEMOTED"]
    count: int


class LeadOwnerRow(WireModel):
    date: str
    owner: str
    count: int


class LeadOwnerSeries(WireModel):
    status: str = "LEAD"
    granularity: Literal["day", "week"] = "day"
    start: str | None = None
    end: str | None = None
    series: list[LeadOwnerRow] = Field(default_factory=list)
