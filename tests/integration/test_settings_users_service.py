import json

import pytest

from crm_console.errors import LocalValidationError
from crm_console.models.api.settings_request import CreateCounselorRequest, SettingsPatch
from crm_console.models.api.user_request import UpdateMeRequest, UsersQuery
from crm_console.services import cache_keys
from crm_console.services.settings_service import CounselorService, SettingsService
from crm_console.services.user_service import UserService

SETTINGS = {
    "sources": ["Web", "Referral"],
    "stagesByStatus": {"LEAD": ["Contacted"]},
    "meetingLink": "https://meet.test/a",
}


@pytest.mark.asyncio
async def test_settings_patch_replaces_cached_singleton(httpx_mock, api_client, cache, admin_auth):
    service = SettingsService(api_client, cache)
    httpx_mock.add_response(method="GET", url="http://api.test/api/v1/settings", json=SETTINGS)
    httpx_mock.add_response(
        method="PATCH",
        url="http://api.test/api/v1/settings",
        json={**SETTINGS, "meetingLink": "https://meet.test/b"},
    )

    await service.get(admin_auth)
    await service.patch(admin_auth, SettingsPatch(meeting_link="https://meet.test/b"))
    cached = await service.get(admin_auth)
    await api_client.close()

    assert cached.from_cache
    assert cached.data.meeting_link == "https://meet.test/b"
    assert cached.data.stages_for("LEAD") == ["Contacted"]
    assert json.loads(httpx_mock.get_requests(method="PATCH")[0].content) == {
        "meetingLink": "https://meet.test/b"
    }


@pytest.mark.asyncio
async def test_update_stages_invalidates_settings(httpx_mock, api_client, cache, admin_auth):
    service = SettingsService(api_client, cache)
    httpx_mock.add_response(method="GET", url="http://api.test/api/v1/settings", json=SETTINGS)
    httpx_mock.add_response(method="PATCH", url="http://api.test/api/v1/settings/stages", json={})

    await service.get(admin_auth)
    await service.update_stages(admin_auth, {"LEAD": ["Contacted", "Qualified"]})
    await api_client.close()

    assert json.loads(httpx_mock.get_requests(method="PATCH")[0].content) == {
        "stagesByStatus": {"LEAD": ["Contacted", "Qualified"]}
    }
    assert await cache.is_stale(cache_keys.SETTINGS) is True


@pytest.mark.asyncio
async def test_counselors_accept_legacy_active_flag(httpx_mock, api_client, cache, admin_auth):
    service = CounselorService(api_client, cache)
    httpx_mock.add_response(
        method="GET",
        url="http://api.test/api/v1/counselors?active=true",
        json=[
            {"id": "c-1", "name": "Kim", "embedUrl": "https://cal.test/kim", "active": False},
            {"id": "c-2", "name": "Lee", "embedUrl": "https://cal.test/lee"},
        ],
    )
    httpx_mock.add_response(
        method="POST",
        url="http://api.test/api/v1/counselors",
        json={"id": "c-3", "name": "Max", "embedUrl": "https://cal.test/max", "isActive": True},
    )

    result = await service.list(admin_auth, "active")
    created = await service.create(
        admin_auth, CreateCounselorRequest(name="Max", embed_url="https://cal.test/max")
    )
    await api_client.close()

    assert [c.is_active for c in result.data] == [False, True]
    assert created.is_active
    assert await cache.is_stale(cache_keys.counselors("active")) is True


@pytest.mark.asyncio
async def test_cannot_change_own_role(api_client, cache, auth_for):
    service = UserService(api_client, cache)
    auth = auth_for("SUPER_ADMIN", "Admin-7")

    with pytest.raises(LocalValidationError) as exc:
        await service.update_role(auth, " admin-7 ", "USER")
    await api_client.close()

    assert exc.value.code == "CANNOT_CHANGE_SELF_ROLE"


@pytest.mark.asyncio
async def test_update_role_invalidates_users(httpx_mock, api_client, cache, auth_for):
    service = UserService(api_client, cache)
    auth = auth_for("SUPER_ADMIN", "admin-7")
    httpx_mock.add_response(
        method="GET",
        url="http://api.test/api/v1/users?page=1",
        json={"items": [{"id": "u-2", "email": "u2@example.com", "role": "USER"}], "total": 1},
    )
    httpx_mock.add_response(method="PATCH", url="http://api.test/api/v1/users/u-2/role", json={})

    page = await service.list(auth, UsersQuery(page=1))
    await service.update_role(auth, "u-2", "SALES")
    await api_client.close()

    assert page.data.total == 1
    assert json.loads(httpx_mock.get_requests(method="PATCH")[0].content) == {"role": "SALES"}
    assert await cache.is_stale(cache_keys.users(UsersQuery(page=1))) is True


@pytest.mark.asyncio
async def test_update_me_stores_profile(httpx_mock, api_client, cache, sales_auth):
    service = UserService(api_client, cache)
    httpx_mock.add_response(
        method="PATCH",
        url="http://api.test/api/v1/me",
        json={"id": "sales-1", "email": "sam@example.com", "displayName": "Sam", "role": "SALES"},
    )

    await service.update_me(sales_auth, UpdateMeRequest(display_name="Sam"))
    me = await service.me(sales_auth)
    await api_client.close()

    assert me.from_cache
    assert me.data.display_name == "Sam"
