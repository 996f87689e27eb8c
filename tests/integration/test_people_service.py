import json

import pytest

from crm_console.auth.context import AuthContext
from crm_console.models.api.person_request import CreatePersonRequest, PatchPersonRequest, PeopleFilters
from crm_console.models.domain.enums import PersonStatus
from crm_console.services import cache_keys
from crm_console.services.api_client import ApiError
from crm_console.services.people_service import PERSON_ADAPTER, PeopleService

PERSON = {"id": "p-1", "firstName": "Ana", "email": "ana@example.com", "status": "LEAD", "stage": "Contacted"}


@pytest.mark.asyncio
async def test_list_is_cached_until_create_invalidates(httpx_mock, api_client, cache, sales_auth):
    service = PeopleService(api_client, cache)
    httpx_mock.add_response(method="GET", url="http://api.test/api/v1/people?status=LEAD", json=[PERSON])
    httpx_mock.add_response(
        method="POST",
        url="http://api.test/api/v1/people",
        json={**PERSON, "id": "p-2", "status": "SUSPECT"},
    )
    httpx_mock.add_response(
        method="GET",
        url="http://api.test/api/v1/people?status=LEAD",
        json=[PERSON, {**PERSON, "id": "p-3"}],
    )
    filters = PeopleFilters(status=PersonStatus.LEAD)

    first = await service.list(sales_auth, filters)
    cached = await service.list(sales_auth, filters)
    created = await service.create(sales_auth, CreatePersonRequest(first_name="Bo", email="bo@example.com"))
    refreshed = await service.list(sales_auth, filters)
    await api_client.close()

    assert [p.id for p in first.data] == ["p-1"]
    assert cached.from_cache
    assert created.status == PersonStatus.SUSPECT
    assert [p.id for p in refreshed.data] == ["p-1", "p-3"]
    post = httpx_mock.get_requests(method="POST")[0]
    assert json.loads(post.content) == {"firstName": "Bo", "email": "bo@example.com"}


@pytest.mark.asyncio
async def test_reads_stay_idle_without_token(api_client, cache):
    service = PeopleService(api_client, cache)

    assert (await service.list(AuthContext.anonymous())).is_idle
    await api_client.close()


@pytest.mark.asyncio
async def test_get_without_id_is_idle(api_client, cache, sales_auth):
    service = PeopleService(api_client, cache)

    assert (await service.get(sales_auth, None)).is_idle
    await api_client.close()


@pytest.mark.asyncio
async def test_patch_invalidates_detail_and_lists(httpx_mock, api_client, cache, sales_auth):
    service = PeopleService(api_client, cache)
    await cache.set_data(cache_keys.person("p-1"), PERSON_ADAPTER.validate_python(PERSON), PERSON_ADAPTER)
    httpx_mock.add_response(
        method="PATCH", url="http://api.test/api/v1/people/p-1", json={**PERSON, "city": "Lisbon"}
    )

    updated = await service.patch(sales_auth, "p-1", PatchPersonRequest(city="Lisbon"))
    await api_client.close()

    assert updated.city == "Lisbon"
    assert await cache.is_stale(cache_keys.person("p-1")) is True


@pytest.mark.asyncio
async def test_failed_patch_leaves_cache_untouched(httpx_mock, api_client, cache, sales_auth):
    service = PeopleService(api_client, cache)
    await cache.set_data(cache_keys.person("p-1"), PERSON_ADAPTER.validate_python(PERSON), PERSON_ADAPTER)
    httpx_mock.add_response(
        method="PATCH",
        url="http://api.test/api/v1/people/p-1",
        status_code=400,
        json={"error": {"code": "INVALID_PHONE", "message": "Phone is invalid"}},
    )

    with pytest.raises(ApiError) as exc:
        await service.patch(sales_auth, "p-1", PatchPersonRequest(phone="abc"))
    await api_client.close()

    assert exc.value.code == "INVALID_PHONE"
    assert await cache.is_stale(cache_keys.person("p-1")) is False


@pytest.mark.asyncio
async def test_stage_endpoint_negotiated_once(httpx_mock, api_client, cache, sales_auth):
    service = PeopleService(api_client, cache, stage_patch_mode="negotiate")
    httpx_mock.add_response(method="PATCH", url="http://api.test/api/v1/learners/p-1/stage", status_code=404)
    httpx_mock.add_response(method="PATCH", url="http://api.test/api/v1/people/p-1", json=PERSON)
    httpx_mock.add_response(method="PATCH", url="http://api.test/api/v1/people/p-1", json=PERSON)

    await service.patch_stage(sales_auth, "p-1", "Qualified")
    await service.patch_stage(sales_auth, "p-1", "Contacted")
    await api_client.close()

    paths = [r.url.path for r in httpx_mock.get_requests()]
    assert paths == [
        "/api/v1/learners/p-1/stage",
        "/api/v1/people/p-1",
        "/api/v1/people/p-1",
    ]
    assert json.loads(httpx_mock.get_requests()[-1].content) == {"stage": "Contacted"}


@pytest.mark.asyncio
async def test_dedicated_stage_endpoint_does_not_fall_back(httpx_mock, api_client, cache, sales_auth):
    service = PeopleService(api_client, cache, stage_patch_mode="dedicated")
    httpx_mock.add_response(method="PATCH", url="http://api.test/api/v1/learners/p-1/stage", status_code=404)

    with pytest.raises(ApiError):
        await service.patch_stage(sales_auth, "p-1", "Qualified")
    await api_client.close()


@pytest.mark.asyncio
async def test_rejected_stage_is_reported_not_raised(httpx_mock, api_client, cache, sales_auth):
    service = PeopleService(api_client, cache, stage_patch_mode="generic")
    httpx_mock.add_response(
        method="PATCH",
        url="http://api.test/api/v1/people/p-1",
        status_code=400,
        json={"error": {"code": "INVALID_STAGE_FOR_STATUS", "message": "Stage not valid for LEAD"}},
    )

    result = await service.change_stage(sales_auth, "p-1", "Alumni Mixer")
    await api_client.close()

    assert result.applied is False
    assert result.stage is None
    assert result.message == "Stage not valid for LEAD"


@pytest.mark.asyncio
async def test_stage_clear_sends_explicit_null(httpx_mock, api_client, cache, sales_auth):
    service = PeopleService(api_client, cache, stage_patch_mode="generic")
    httpx_mock.add_response(method="PATCH", url="http://api.test/api/v1/people/p-1", json=PERSON)

    result = await service.change_stage(sales_auth, "p-1", None)
    await api_client.close()

    assert result.applied
    assert json.loads(httpx_mock.get_requests()[0].content) == {"stage": None}


@pytest.mark.asyncio
async def test_malformed_person_is_reported_as_invalid_response(httpx_mock, api_client, cache, sales_auth):
    service = PeopleService(api_client, cache)
    httpx_mock.add_response(method="GET", url="http://api.test/api/v1/people/p-1", json={"id": "p-1"})

    result = await service.get(sales_auth, "p-1")
    await api_client.close()

    assert result.is_error
    assert isinstance(result.error, ApiError)
    assert result.error.code == "INVALID_RESPONSE"
