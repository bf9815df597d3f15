"""
API tests for GET /api/analytics/combined.

The reference date is pinned through a dependency override so period windows
do not drift with the wall clock.
"""
from __future__ import annotations

from datetime import date

import pytest
from httpx import AsyncClient

from finance_tracker.access.policy import Permission
from finance_tracker.analytics.routes import today
from finance_tracker.main import app

URL = "/api/analytics/combined"


@pytest.fixture
def on_day():
    def pin(day: date) -> None:
        app.dependency_overrides[today] = lambda: day

    pin(date(2024, 2, 1))
    yield pin
    app.dependency_overrides.pop(today, None)


@pytest.mark.asyncio
async def test_requires_token(client: AsyncClient, world, on_day) -> None:
    response = await client.get(URL)
    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize("period", ["1YEAR", "2years", "1day", "invalid"])
async def test_unknown_period_is_400(client: AsyncClient, world, on_day, period: str) -> None:
    response = await client.get(URL, params={"period": period}, headers=world.editor.headers)

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["message"] == "Invalid time period"
    assert error["details"][0]["field"] == "period"


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["", "?period="])
async def test_missing_or_empty_period_defaults_to_one_year(
    client: AsyncClient, world, on_day, query: str
) -> None:
    response = await client.get(URL + query, headers=world.reader.headers)
    assert response.status_code == 200
    assert response.json()["period"] == "1year"


@pytest.mark.asyncio
async def test_linked_profile_portfolio(client: AsyncClient, world, on_day) -> None:
    response = await client.get(URL, params={"period": "3months"}, headers=world.reader.headers)

    assert response.status_code == 200
    body = response.json()
    assert body["profile_count"] == 1
    assert body["total_assets"] == 2099.99
    assert [p["date"] for p in body["chart_data"]] == ["2024-01-10", "2024-01-20"]
    assert body["chart_data"][0]["direct_equity"] == 1000.5
    assert body["chart_data"][0]["total_assets"] == 1250.5
    assert body["risk_distribution"] == [
        {"name": "High/Medium Risk", "value": 2000.0, "percentage": 95.24},
        {"name": "Low Risk", "value": 99.99, "percentage": 4.76},
    ]
    assert body["message"] is None


@pytest.mark.asyncio
async def test_user_without_links_gets_message(client: AsyncClient, world, on_day) -> None:
    response = await client.get(URL, headers=world.outsider.headers)

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "No profiles linked to your account"
    assert body["chart_data"] == []
    assert body["risk_distribution"] == []
    assert body["total_assets"] == 0.0


@pytest.mark.asyncio
async def test_period_without_entries_gets_message(client: AsyncClient, world, on_day) -> None:
    on_day(date(2024, 3, 15))
    response = await client.get(URL, params={"period": "30days"}, headers=world.editor.headers)

    assert response.status_code == 200
    assert response.json()["message"] == (
        "No financial data available for the selected time period (30days)"
    )


@pytest.mark.asyncio
async def test_combines_profiles_and_honours_profile_filter(
    client: AsyncClient, world, seed, on_day
) -> None:
    personal = await seed.profile(world.editor, name="Personal")
    await seed.entry(personal, "2024-01-20", created_by=world.editor.id, direct_equity=500)
    foreign = await seed.profile(world.outsider, name="Outsider")
    await seed.entry(foreign, "2024-01-20", created_by=world.outsider.id, ppf=7)

    everything = await client.get(URL, headers=world.editor.headers)
    only_family = await client.get(
        URL, params={"profileIds": f"{world.profile_id},{foreign}"}, headers=world.editor.headers
    )

    body = everything.json()
    assert body["profile_count"] == 2
    assert body["total_assets"] == 2599.99
    assert body["chart_data"][-1]["direct_equity"] == 2500.0
    assert body["chart_data"][-1]["ppf"] == 0.0
    assert only_family.json()["profile_count"] == 1
    assert only_family.json()["total_assets"] == 2099.99


@pytest.mark.asyncio
async def test_admin_sees_every_profile(client: AsyncClient, world, seed, on_day) -> None:
    other = await seed.profile(world.outsider, name="Outsider")
    await seed.entry(other, "2024-01-15", created_by=world.outsider.id, nps=100)

    response = await client.get(URL, headers=world.admin.headers)

    assert response.json()["profile_count"] == 2
    assert response.json()["total_assets"] == 2199.99


@pytest.mark.asyncio
async def test_read_link_is_enough(client: AsyncClient, world, seed, on_day) -> None:
    viewer = await seed.user(name="Viewer")
    await seed.link(viewer, world.profile_id, Permission.read)

    response = await client.get(URL, headers=viewer.headers)

    assert response.json()["profile_count"] == 1
