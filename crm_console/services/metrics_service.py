"""
Read-only dashboard aggregates.

Each endpoint has exactly one decode function. The funnel and stage-distribution
endpoints have answered in several shapes over time; the accepted shapes are
listed on the decoder.
"""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter

from crm_console.auth.context import AuthContext
from crm_console.infrastructure.observability.logging import get_logger
from crm_console.models.api.metrics_request import LeadOwnersQuery, MetricsRange, OwnerFilter
from crm_console.models.domain.metrics import (
    Funnel,
    LabelCount,
    LeadOwnerSeries,
    MetricsSummary,
    StageDistribution,
    StatusTrends,
    TransitionPoint,
)
from crm_console.services import cache_keys
from crm_console.services.base_service import BaseService
from crm_console.services.query_cache import QueryResult

logger = get_logger(__name__)

SUMMARY_ADAPTER = TypeAdapter(MetricsSummary)
FUNNEL_ADAPTER = TypeAdapter(Funnel)
STAGE_DISTRIBUTION_ADAPTER = TypeAdapter(StageDistribution)
STATUS_TRENDS_ADAPTER = TypeAdapter(StatusTrends)
TRANSITION_POINTS_ADAPTER = TypeAdapter(list[TransitionPoint])
LEAD_OWNERS_ADAPTER = TypeAdapter(LeadOwnerSeries)


def _label_count(item: dict, label_keys: tuple[str, ...], default_label: str) -> LabelCount:
    label = next((item[k] for k in label_keys if item.get(k) is not None), default_label)
    count = next((item[k] for k in ("count", "value") if item.get(k) is not None), 0)
    return LabelCount(label=str(label), count=int(count))


def _from_mapping(raw: dict) -> list[LabelCount]:
    return [LabelCount(label=str(k), count=int(v)) for k, v in raw.items()]


def decode_funnel(raw: Any) -> Funnel:
    """
    Accepted shapes:
        {"stages": [{"label", "count"}]}
        [{"label"|"name", "count"|"value"}]
        {"<label>": <count>, ...}
    Anything else decodes to an empty funnel.
    """
    if isinstance(raw, dict) and isinstance(raw.get("stages"), list):
        return Funnel(stages=[_label_count(i, ("label", "name"), "") for i in raw["stages"]])
    if isinstance(raw, list):
        return Funnel(stages=[_label_count(i, ("label", "name"), "") for i in raw])
    if isinstance(raw, dict):
        return Funnel(stages=_from_mapping(raw))
    return Funnel()


def decode_stage_distribution(raw: Any) -> StageDistribution:
    """
    Accepted shapes:
        {"items": [{"label"|"stage"|"name", "count"|"value"}]}
        {"stages": [{"stage"|"name", "count"|"value"}]}
        {"<stage>": <count>, ...}
    Missing labels become "Unknown".
    """
    if isinstance(raw, dict) and isinstance(raw.get("items"), list):
        items = [_label_count(i, ("label", "stage", "name"), "Unknown") for i in raw["items"]]
    elif isinstance(raw, dict) and isinstance(raw.get("stages"), list):
        items = [_label_count(i, ("stage", "name"), "Unknown") for i in raw["stages"]]
    elif isinstance(raw, dict):
        items = _from_mapping(raw)
    else:
        items = []
    return StageDistribution(items=items)


def decode_summary(raw: Any) -> MetricsSummary:
    return SUMMARY_ADAPTER.validate_python(raw or {})


def decode_status_trends(raw: Any) -> StatusTrends:
    return STATUS_TRENDS_ADAPTER.validate_python(raw or {})


def decode_transitions(raw: Any) -> list[TransitionPoint]:
    return TRANSITION_POINTS_ADAPTER.validate_python(raw or [])


def decode_lead_owners(raw: Any) -> LeadOwnerSeries:
    return LEAD_OWNERS_ADAPTER.validate_python(raw or {})


class MetricsService(BaseService):
    async def _metric(self, auth, key, path, params, decode, adapter) -> QueryResult:
        async def load():
            return decode(await self._call(auth, path, params=params))

        return await self.cache.fetch(key, load, adapter, enabled=auth.is_authenticated)

    async def summary(self, auth: AuthContext) -> QueryResult[MetricsSummary]:
        return await self._metric(
            auth, cache_keys.METRICS_SUMMARY, "/metrics/summary", None, decode_summary, SUMMARY_ADAPTER
        )

    async def funnel(self, auth: AuthContext, owner_user_id: str | None = None) -> QueryResult[Funnel]:
        params = OwnerFilter(owner_user_id=owner_user_id)
        return await self._metric(
            auth,
            cache_keys.metrics("funnel", params),
            "/metrics/funnel",
            params.to_params(),
            decode_funnel,
            FUNNEL_ADAPTER,
        )

    async def stage_distribution(
        self, auth: AuthContext, owner_user_id: str | None = None
    ) -> QueryResult[StageDistribution]:
        params = OwnerFilter(owner_user_id=owner_user_id)
        return await self._metric(
            auth,
            cache_keys.metrics("stage-distribution", params),
            "/metrics/stage-distribution",
            params.to_params(),
            decode_stage_distribution,
            STAGE_DISTRIBUTION_ADAPTER,
        )

    async def status_trends(self, auth: AuthContext, params: MetricsRange | None = None) -> QueryResult[StatusTrends]:
        params = params or MetricsRange()
        return await self._metric(
            auth,
            cache_keys.metrics("status-trends", params),
            "/metrics/status-trends",
            params.to_params(),
            decode_status_trends,
            STATUS_TRENDS_ADAPTER,
        )

    async def transitions(
        self, auth: AuthContext, params: MetricsRange | None = None
    ) -> QueryResult[list[TransitionPoint]]:
        params = params or MetricsRange()
        return await self._metric(
            auth,
            cache_keys.metrics("transitions", params),
            "/metrics/transitions",
            params.to_params(),
            decode_transitions,
            TRANSITION_POINTS_ADAPTER,
        )

    async def lead_owners(self, auth: AuthContext, params: LeadOwnersQuery | None = None) -> QueryResult[LeadOwnerSeries]:
        params = params or LeadOwnersQuery()
        return await self._metric(
            auth,
            cache_keys.metrics("lead-owners", params),
            "/metrics/lead-owners",
            params.to_params(),
            decode_lead_owners,
            LEAD_OWNERS_ADAPTER,
        )
