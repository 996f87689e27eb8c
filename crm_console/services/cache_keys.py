"""Query keys for every cached read. Prefixes are what mutations invalidate."""

from typing import Any

from crm_console.services.query_cache import QueryKey, make_key

PEOPLE: QueryKey = ("people",)
PERSON: QueryKey = ("person",)
TRANSITIONS: QueryKey = ("transitions",)
NOTES: QueryKey = ("learnerNotes",)
SETTINGS: QueryKey = ("settings",)
COUNSELORS: QueryKey = ("counselors",)
USERS: QueryKey = ("users",)
ROLE_DESCRIPTIONS: QueryKey = ("userRoleDescriptions",)
ME: QueryKey = ("me",)
METRICS: QueryKey = ("metrics",)
METRICS_SUMMARY: QueryKey = ("metricsSummary",)
ROSTER: QueryKey = ("roster",)


def people_list(filters: Any) -> QueryKey:
    return make_key(*PEOPLE, filters)


def person(person_id: str) -> QueryKey:
    return make_key(*PERSON, person_id)


def transitions(person_id: str) -> QueryKey:
    return make_key(*TRANSITIONS, person_id)


def notes(person_id: str) -> QueryKey:
    return make_key(*NOTES, person_id)


def counselors(active_filter: str) -> QueryKey:
    return make_key(*COUNSELORS, active_filter)


def users(query: Any) -> QueryKey:
    return make_key(*USERS, query)


def metrics(name: str, params: Any = None) -> QueryKey:
    return make_key(*METRICS, name, params)


def person_scope(person_id: str) -> tuple[QueryKey, ...]:
    """Everything a status or profile change on one person can affect."""
    return (PEOPLE, person(person_id), transitions(person_id))
