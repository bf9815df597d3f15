"""
Tests for the entry form controller.

Two transports:
  - ASGITransport against the real app (scenario tests with the `world` fixture)
  - httpx.MockTransport with an async handler (debounce, races, failures)
"""
from __future__ import annotations

import asyncio
import json
from datetime import date
from decimal import Decimal
from typing import Optional, Union

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

from finance_tracker.client.api import EntryApiClient
from finance_tracker.client.form_controller import EntryFormController, FormState, Notification
from finance_tracker.main import app

DEBOUNCE = 0.02


def _token(headers: dict[str, str]) -> str:
    return headers["Authorization"].split(" ", 1)[1]


# ---------------------------------------------------------------------------
# Mock API
# ---------------------------------------------------------------------------

class FakeEntryApi:
    """
    Serves by-date/before-date from an in-memory map and stores POSTed entries.

    delays      per-date latency for the date lookups
    save_delay  latency for POST before the entry is stored
    fail_with   a response returned, or an exception raised, for every request
    """

    def __init__(
        self,
        entries: dict[str, dict],
        delays: Optional[dict[str, float]] = None,
        save_delay: float = 0.0,
        fail_with: Union[httpx.Response, Exception, None] = None,
    ) -> None:
        self.entries = entries
        self.delays = delays or {}
        self.save_delay = save_delay
        self.fail_with = fail_with
        self.calls: list[tuple[str, Optional[str]]] = []

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return await self._create(request)
        day = request.url.params.get("date")
        self.calls.append((request.url.path.rsplit("/", 1)[-1], day))
        if day in self.delays:
            await asyncio.sleep(self.delays[day])
        if isinstance(self.fail_with, Exception):
            raise self.fail_with
        if self.fail_with is not None:
            return self.fail_with
        if request.url.path.endswith("/by-date"):
            return httpx.Response(200, json={"entry": self.entries.get(day)})
        if request.url.path.endswith("/before-date"):
            prior = sorted(d for d in self.entries if d < day)
            return httpx.Response(200, json={"entry": self.entries[prior[-1]] if prior else None})
        return httpx.Response(404, json={"error": {"code": "NOT_FOUND", "message": "Not Found"}})

    async def _create(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        day = body["entry_date"]
        self.calls.append(("create", day))
        await asyncio.sleep(self.save_delay)
        entry = _entry(f"e-new-{day}", day, **body["high_medium_risk"], **body["low_risk"])
        self.entries[day] = entry
        return httpx.Response(201, json={"entry": entry})


def _entry(entry_id: str, day: str, **values: float) -> dict:
    return {"id": entry_id, "entry_date": day, **values}


@pytest_asyncio.fixture
async def fake_api():
    clients: list[httpx.AsyncClient] = []

    def build(fake: FakeEntryApi) -> EntryApiClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(fake.handler), base_url="http://test")
        clients.append(http)
        return EntryApiClient(http, token="test-token")

    yield build
    for http in clients:
        await http.aclose()


def _controller(api: EntryApiClient) -> tuple[EntryFormController, list[Notification]]:
    seen: list[Notification] = []
    controller = EntryFormController(api, "profile-1", notify=seen.append, debounce_seconds=DEBOUNCE)
    return controller, seen


# ---------------------------------------------------------------------------
# Scenario against the real app
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def app_http(db_schema):
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http


@pytest.mark.asyncio
async def test_scenario_fallback_exact_and_blank(app_http, world) -> None:
    api = EntryApiClient(app_http, token=_token(world.reader.headers))
    seen: list[Notification] = []
    controller = EntryFormController(api, world.profile_id, notify=seen.append, debounce_seconds=DEBOUNCE)

    controller.on_date_input("15/01/2024")
    await controller.wait_idle()
    assert controller.state is FormState.RESOLVED_FALLBACK
    assert controller.source_date == date(2024, 1, 10)
    assert controller.values["direct_equity"] == Decimal("1000.5")
    assert controller.loaded_entry is None
    assert seen[-1].title == "Previous Entry Loaded"
    assert "10/01/2024" in seen[-1].description
    assert "15/01/2024" not in seen[-1].description

    controller.on_date_input("20/01/2024")
    await controller.wait_idle()
    assert controller.state is FormState.RESOLVED_EXACT
    assert controller.loaded_entry["id"] == world.entry_jan20
    assert seen[-1].title == "Entry Loaded"
    assert "20/01/2024" in seen[-1].description

    controller.on_date_input("05/01/2024")
    await controller.wait_idle()
    assert controller.state is FormState.RESOLVED_NONE
    assert set(controller.values.values()) == {Decimal("0.00")}
    assert len(seen) == 2


@pytest.mark.asyncio
async def test_read_only_user_sees_explanatory_message_on_save(app_http, world) -> None:
    api = EntryApiClient(app_http, token=_token(world.reader.headers))
    controller, seen = _controller(api)
    controller.profile_id = world.profile_id

    await controller.select_date("01/03/2024")
    controller.set_value("ppf", 10)
    saved = await controller.save()

    assert saved is None
    assert seen[-1].title == "Access Denied"
    assert "Edit permission is required" in seen[-1].description
    assert seen[-1].variant == "destructive"


@pytest.mark.asyncio
async def test_save_creates_then_updates(app_http, world) -> None:
    api = EntryApiClient(app_http, token=_token(world.editor.headers))
    controller, seen = _controller(api)
    controller.profile_id = world.profile_id

    await controller.select_date("01/03/2024")
    assert controller.state is FormState.RESOLVED_FALLBACK
    controller.set_value("ppf", "12.50")
    created = await controller.save()

    assert created is not None
    assert created["entry_date"] == "2024-03-01"
    assert created["ppf"] == 12.5
    assert created["direct_equity"] == 2000.0   # carried over from the 20/01 fallback
    assert controller.state is FormState.RESOLVED_EXACT
    assert date(2024, 3, 1) in controller.entry_dates
    assert seen[-1].title == "Success"

    controller.set_value("ppf", 13)
    updated = await controller.save()
    assert updated["id"] == created["id"]
    assert updated["ppf"] == 13.0


@pytest.mark.asyncio
async def test_load_entry_dates_and_prefill_latest(app_http, world) -> None:
    api = EntryApiClient(app_http, token=_token(world.reader.headers))
    controller, _ = _controller(api)
    controller.profile_id = world.profile_id

    dates = await controller.load_entry_dates()
    latest = await controller.prefill_latest()

    assert dates == {date(2024, 1, 10), date(2024, 1, 20)}
    assert latest["id"] == world.entry_jan20
    assert controller.values["bank_balance"] == Decimal("99.99")
    assert controller.state is FormState.IDLE


# ---------------------------------------------------------------------------
# Input handling
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_partial_and_invalid_input_is_inert(fake_api) -> None:
    fake = FakeEntryApi({"2024-01-10": _entry("e-10", "2024-01-10")})
    controller, seen = _controller(fake_api(fake))

    for text in ["1", "15/0", "15/01/20", "31/02/2024", "not a date"]:
        controller.on_date_input(text)
    await asyncio.sleep(DEBOUNCE * 3)
    await controller.wait_idle()

    assert fake.calls == []
    assert seen == []
    assert controller.state is FormState.IDLE


@pytest.mark.asyncio
async def test_debounce_fires_once_for_last_value(fake_api) -> None:
    fake = FakeEntryApi({"2024-01-16": _entry("e-16", "2024-01-16")})
    controller, seen = _controller(fake_api(fake))

    controller.on_date_input("15/01/2024")
    controller.on_date_input("16/01/2024")
    await controller.wait_idle()

    assert fake.calls == [("by-date", "2024-01-16")]
    assert controller.entry_date == date(2024, 1, 16)
    assert [n.title for n in seen] == ["Entry Loaded"]


@pytest.mark.asyncio
async def test_invalid_text_cancels_pending_timer(fake_api) -> None:
    fake = FakeEntryApi({})
    controller, _ = _controller(fake_api(fake))

    controller.on_date_input("15/01/2024")
    controller.on_date_input("15/01/202")
    await asyncio.sleep(DEBOUNCE * 3)
    await controller.wait_idle()

    assert fake.calls == []


@pytest.mark.asyncio
async def test_exact_hit_does_not_query_before_date(fake_api) -> None:
    fake = FakeEntryApi({"2024-01-20": _entry("e-20", "2024-01-20")})
    controller, _ = _controller(fake_api(fake))

    await controller.select_date(date(2024, 1, 20))

    assert fake.calls == [("by-date", "2024-01-20")]


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_later_date_wins_over_slow_earlier_resolution(fake_api) -> None:
    fake = FakeEntryApi(
        {
            "2024-01-10": _entry("e-10", "2024-01-10", nps=1.0),
            "2024-01-20": _entry("e-20", "2024-01-20", nps=2.0),
        },
        delays={"2024-01-10": 0.2},
    )
    controller, seen = _controller(fake_api(fake))

    slow = asyncio.create_task(controller.select_date("10/01/2024"))
    await asyncio.sleep(0.05)   # slow request is in flight
    first_generation = controller.generation
    await controller.select_date("20/01/2024")
    await slow
    await controller.wait_idle()

    assert controller.generation == first_generation + 1
    assert controller.state is FormState.RESOLVED_EXACT
    assert controller.loaded_entry["id"] == "e-20"
    assert controller.values["nps"] == Decimal("2.0")
    assert [n.description for n in seen] == ["Loaded the existing entry for 20/01/2024."]


@pytest.mark.asyncio
async def test_slow_save_does_not_overwrite_newer_date(fake_api) -> None:
    fake = FakeEntryApi({"2024-01-20": _entry("e-20", "2024-01-20", nps=2.0)}, save_delay=0.2)
    controller, seen = _controller(fake_api(fake))
    await controller.select_date("10/01/2024")
    assert controller.state is FormState.RESOLVED_NONE
    controller.set_value("nps", 1)

    saving = asyncio.create_task(controller.save())
    await asyncio.sleep(0.05)   # POST is in flight
    await controller.select_date("20/01/2024")
    saved = await saving

    assert saved["entry_date"] == "2024-01-10"
    assert controller.entry_date == date(2024, 1, 20)
    assert controller.state is FormState.RESOLVED_EXACT
    assert controller.loaded_entry["id"] == "e-20"
    assert controller.values["nps"] == Decimal("2.0")
    assert controller.entry_dates == {date(2024, 1, 10)}
    assert [n.title for n in seen] == ["Entry Loaded", "Success"]


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_forbidden_keeps_last_good_state_and_shows_server_message(fake_api) -> None:
    fake = FakeEntryApi({"2024-01-20": _entry("e-20", "2024-01-20", nps=2.0)})
    controller, seen = _controller(fake_api(fake))
    await controller.select_date("20/01/2024")

    fake.fail_with = httpx.Response(
        403,
        json={"error": {"code": "FORBIDDEN", "message": "You do not have permission to access this profile.", "details": []}},
    )
    await controller.select_date("25/01/2024")

    assert controller.state is FormState.RESOLVED_EXACT
    assert controller.values["nps"] == Decimal("2.0")
    assert seen[-1] == Notification(
        "Access Denied", "You do not have permission to access this profile.", "destructive"
    )


@pytest.mark.asyncio
async def test_server_error_notifies_once_without_retry(fake_api) -> None:
    fake = FakeEntryApi({}, fail_with=httpx.Response(500, json={"error": {"code": "INTERNAL_ERROR", "message": "boom"}}))
    controller, seen = _controller(fake_api(fake))

    await controller.select_date("20/01/2024")

    assert len(fake.calls) == 1
    assert [(n.title, n.variant) for n in seen] == [("Error", "destructive")]
    assert controller.state is FormState.IDLE


@pytest.mark.asyncio
async def test_save_validation_error_sends_nothing(fake_api) -> None:
    fake = FakeEntryApi({})
    controller, seen = _controller(fake_api(fake))
    await controller.select_date("20/01/2024")
    calls_before = len(fake.calls)

    controller.set_value("bank_balance", -1)
    controller.set_value("nps", "1.005")
    assert await controller.save() is None

    assert len(fake.calls) == calls_before
    assert seen[-1].title == "Validation Error"
    assert controller.validation_errors == {
        "bank_balance": "Value cannot be negative",
        "nps": "Maximum 2 decimal places allowed",
    }


@pytest.mark.asyncio
async def test_save_without_date_is_rejected(fake_api) -> None:
    controller, seen = _controller(fake_api(FakeEntryApi({})))
    assert await controller.save() is None
    assert controller.validation_errors == {"entry_date": "Entry date is required"}
    assert seen[-1].title == "Validation Error"


@pytest.mark.asyncio
async def test_save_rejects_amount_beyond_storable_range(fake_api) -> None:
    fake = FakeEntryApi({})
    controller, _ = _controller(fake_api(fake))
    await controller.select_date("20/01/2024")

    controller.set_value("direct_equity", 1e30)
    assert await controller.save() is None

    assert ("create", "2024-01-20") not in fake.calls
    assert controller.validation_errors == {"direct_equity": "Maximum value is 9,999,999,999,999.99"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "failure",
    [
        httpx.Response(200, text="<html>maintenance</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.TooManyRedirects("Exceeded maximum allowed redirects."),
    ],
)
async def test_unreadable_responses_notify_and_restore_state(fake_api, failure) -> None:
    fake = FakeEntryApi({}, fail_with=failure)
    controller, seen = _controller(fake_api(fake))

    await controller.select_date("20/01/2024")

    assert controller.state is FormState.IDLE
    assert controller.entry_date is None
    assert [(n.title, n.variant) for n in seen] == [("Error", "destructive")]
