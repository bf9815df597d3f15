"""
form_controller.py — state machine behind the financial entry form.

    IDLE ──date committed──▶ LOADING(date) ──▶ RESOLVED_EXACT
                                ▲          ├─▶ RESOLVED_FALLBACK
                                │          └─▶ RESOLVED_NONE
                                └──────── next committed date

Typed DD/MM/YYYY text is debounced: a date is committed only after the input has
been quiet for debounce_seconds and only if the text is a complete, real date.
Each committed date starts a new resolution cycle with a fresh generation number;
a cycle applies its result only if its generation is still current, and the
previous in-flight cycle is cancelled. The last committed date always wins.

Resolution per cycle (two requests at most, no retries):
  1. by-date      → exact entry  → populate, notify "Entry Loaded" (requested date)
  2. before-date  → prior entry  → populate, notify "Previous Entry Loaded" (its own date)
  3. neither      → blank form, no notification

On a failed request the form keeps its last-good values and state and shows
one destructive notification (403 carries the server's explanation).
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional, Union

from finance_tracker.client.api import ApiError, EntryApiClient
from finance_tracker.client.dates import from_wire, parse_display_date, to_display
from finance_tracker.config import settings
from finance_tracker.entries.money import (
    ZERO,
    has_at_most_two_decimals,
    is_within_limit,
    to_decimal,
)
from finance_tracker.models.financial_entry import (
    HIGH_MEDIUM_RISK_FIELDS,
    LOW_RISK_FIELDS,
    MONEY_FIELDS,
)

logger = logging.getLogger(__name__)


class FormState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    RESOLVED_EXACT = "resolved_exact"
    RESOLVED_FALLBACK = "resolved_fallback"
    RESOLVED_NONE = "resolved_none"


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: str = "default"   # "default" or "destructive"


Notifier = Callable[[Notification], None]


def blank_values() -> dict[str, Decimal]:
    return {name: ZERO for name in MONEY_FIELDS}


def values_from_entry(entry: dict[str, Any]) -> dict[str, Decimal]:
    """Form values from a serialized entry; missing or null fields become 0."""
    return {name: to_decimal(entry.get(name)) for name in MONEY_FIELDS}


class EntryFormController:
    """
    Client-side controller for one profile's entry form.

    Must be driven from inside a running event loop: on_date_input schedules
    asyncio tasks. Tests and callers can await wait_idle() to let pending
    debounce timers and resolutions finish.
    """

    def __init__(
        self,
        api: EntryApiClient,
        profile_id: str,
        notify: Optional[Notifier] = None,
        debounce_seconds: Optional[float] = None,
    ) -> None:
        self.api = api
        self.profile_id = profile_id
        self.debounce_seconds = (
            settings.client_debounce_seconds if debounce_seconds is None else debounce_seconds
        )
        self._notify_callback = notify

        self.state = FormState.IDLE
        self.entry_date: Optional[date] = None
        self.values = blank_values()
        self.loaded_entry: Optional[dict[str, Any]] = None   # exact entry being edited
        self.source_date: Optional[date] = None              # date the values came from
        self.entry_dates: set[date] = set()
        self.validation_errors: dict[str, str] = {}
        self.notifications: list[Notification] = []

        self._generation = 0
        self._settled_state = FormState.IDLE
        self._settled_date: Optional[date] = None
        self._debounce_task: Optional[asyncio.Task] = None
        self._resolve_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Date input
    # ------------------------------------------------------------------

    @property
    def generation(self) -> int:
        return self._generation

    def on_date_input(self, text: str) -> None:
        """
        Handle a keystroke in the date field.

        Any input restarts the quiet period. Text that is not a complete real
        DD/MM/YYYY date only cancels the pending timer: no request, no notification.
        """
        self._cancel_debounce()
        target = parse_display_date(text)
        if target is None:
            return
        self._debounce_task = asyncio.create_task(self._debounced_commit(target))

    async def select_date(self, target: Union[date, str]) -> None:
        """Commit a date immediately (calendar pick) and wait for its resolution."""
        if isinstance(target, str):
            parsed = parse_display_date(target)
            if parsed is None:
                return
            target = parsed
        self._cancel_debounce()
        task = self._commit(target)
        await asyncio.gather(task, return_exceptions=True)

    async def wait_idle(self) -> None:
        """Wait until no debounce timer or resolution is pending."""
        while True:
            pending = [
                task
                for task in (self._debounce_task, self._resolve_task)
                if task is not None and not task.done()
            ]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self) -> None:
        """Cancel any pending work (form closed)."""
        self._cancel_debounce()
        if self._resolve_task is not None and not self._resolve_task.done():
            self._resolve_task.cancel()
        await self.wait_idle()

    def _cancel_debounce(self) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None

    async def _debounced_commit(self, target: date) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self._commit(target)

    def _commit(self, target: date) -> asyncio.Task:
        self._generation += 1
        if self._resolve_task is not None and not self._resolve_task.done():
            self._resolve_task.cancel()
        self.entry_date = target
        self.state = FormState.LOADING
        self._resolve_task = asyncio.create_task(self._resolve(target, self._generation))
        return self._resolve_task

    # ------------------------------------------------------------------
    # Resolution cycle
    # ------------------------------------------------------------------

    async def _resolve(self, target: date, generation: int) -> None:
        try:
            exact = await self.api.get_entry_by_date(self.profile_id, target)
            if generation != self._generation:
                return
            if exact is not None:
                self._apply(FormState.RESOLVED_EXACT, exact, target)
                self._notify(
                    Notification(
                        title="Entry Loaded",
                        description=f"Loaded the existing entry for {to_display(target)}.",
                    )
                )
                return

            fallback = await self.api.get_entry_before_date(self.profile_id, target)
            if generation != self._generation:
                return
            if fallback is not None:
                fallback_date = from_wire(fallback["entry_date"])
                self._apply(FormState.RESOLVED_FALLBACK, fallback, fallback_date)
                self._notify(
                    Notification(
                        title="Previous Entry Loaded",
                        description=f"Pre-filled with values from {to_display(fallback_date)}.",
                    )
                )
                return

            self._apply(FormState.RESOLVED_NONE, None, None)
        except ApiError as exc:
            if generation != self._generation:
                return
            logger.info(
                "Date resolution failed profile_id=%s date=%s status=%s",
                self.profile_id,
                target.isoformat(),
                exc.status_code,
            )
            self.state = self._settled_state
            self.entry_date = self._settled_date
            self._notify_failure(exc, "Failed to load the entry for the selected date.")

    def _apply(
        self,
        state: FormState,
        entry: Optional[dict[str, Any]],
        source_date: Optional[date],
    ) -> None:
        self.state = state
        self._settled_state = state
        self._settled_date = self.entry_date
        self.values = values_from_entry(entry) if entry is not None else blank_values()
        self.loaded_entry = entry if state is FormState.RESOLVED_EXACT else None
        self.source_date = source_date
        self.validation_errors = {}

    # ------------------------------------------------------------------
    # Supplementary loads
    # ------------------------------------------------------------------

    async def load_entry_dates(self) -> set[date]:
        """Refresh the calendar highlight set. On failure the previous set is kept."""
        try:
            self.entry_dates = set(await self.api.list_entry_dates(self.profile_id))
        except ApiError as exc:
            logger.warning(
                "Loading entry dates failed profile_id=%s status=%s",
                self.profile_id,
                exc.status_code,
            )
        return self.entry_dates

    async def prefill_latest(self) -> Optional[dict[str, Any]]:
        """
        Pre-fill the form with the latest entry's values when the form opens.

        Ignored if a date resolution started in the meantime.
        """
        generation = self._generation
        try:
            latest = await self.api.get_latest_entry(self.profile_id)
        except ApiError as exc:
            logger.warning(
                "Loading latest entry failed profile_id=%s status=%s",
                self.profile_id,
                exc.status_code,
            )
            return None
        if latest is None or generation != self._generation:
            return None
        self.values = values_from_entry(latest)
        self.source_date = from_wire(latest["entry_date"])
        return latest

    # ------------------------------------------------------------------
    # Editing and saving
    # ------------------------------------------------------------------

    def set_value(self, name: str, value: Any) -> None:
        if name not in self.values:
            raise KeyError(name)
        self.validation_errors.pop(name, None)
        self.values[name] = to_decimal(value)

    def validate(self) -> bool:
        errors: dict[str, str] = {}
        if self.entry_date is None:
            errors["entry_date"] = "Entry date is required"
        for name, value in self.values.items():
            if value < 0:
                errors[name] = "Value cannot be negative"
            elif not is_within_limit(value):
                errors[name] = "Maximum value is 9,999,999,999,999.99"
            elif not has_at_most_two_decimals(value):
                errors[name] = "Maximum 2 decimal places allowed"
        self.validation_errors = errors
        return not errors

    async def save(self) -> Optional[dict[str, Any]]:
        """
        Persist the form: PUT when editing the loaded exact entry, POST otherwise.

        Returns the saved entry, or None when validation or the request failed.
        If another date was committed while the request was in flight, the saved
        entry only joins entry_dates; the form keeps the newer date's state.
        """
        if not self.validate():
            self._notify(
                Notification(
                    title="Validation Error",
                    description="Please fix the errors in the form before submitting.",
                    variant="destructive",
                )
            )
            return None

        generation = self._generation
        high_medium_risk = {name: float(self.values[name]) for name in HIGH_MEDIUM_RISK_FIELDS}
        low_risk = {name: float(self.values[name]) for name in LOW_RISK_FIELDS}
        try:
            if self.state is FormState.RESOLVED_EXACT and self.loaded_entry is not None:
                saved = await self.api.update_entry(
                    self.loaded_entry["id"], high_medium_risk, low_risk
                )
            else:
                saved = await self.api.create_entry(
                    self.profile_id, self.entry_date, high_medium_risk, low_risk
                )
        except ApiError as exc:
            self._notify_failure(exc, "Failed to save entry.")
            return None

        saved_date = from_wire(saved["entry_date"])
        self.entry_dates.add(saved_date)
        if generation == self._generation:
            self._apply(FormState.RESOLVED_EXACT, saved, saved_date)
        else:
            logger.info(
                "Saved entry superseded by a newer date entry_id=%s entry_date=%s",
                saved["id"],
                saved_date.isoformat(),
            )
        self._notify(
            Notification(title="Success", description="Financial entry saved successfully")
        )
        return saved

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _notify(self, notification: Notification) -> None:
        self.notifications.append(notification)
        if self._notify_callback is not None:
            self._notify_callback(notification)

    def _notify_failure(self, exc: ApiError, fallback_message: str) -> None:
        if exc.is_forbidden:
            notification = Notification("Access Denied", exc.message, "destructive")
        elif exc.status_code == 409:
            notification = Notification("Error", exc.message, "destructive")
        else:
            notification = Notification("Error", fallback_message, "destructive")
        self._notify(notification)
