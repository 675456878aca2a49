"""
Daily deadline alert job.

For every client with alerting enabled:
1. validate the stored row into a tax profile
2. compute the calendar window (run year plus neighbouring years with tables)
3. keep upcoming events whose days-until exactly equals an alert offset
4. send one consolidated notification with a bounded timeout

Each client is an isolated failure domain and ends in exactly one
outcome; only a failure to load the client list aborts the run.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Any, Optional, Union
from zoneinfo import ZoneInfo

from tax_calendar.cache import CalendarCache
from tax_calendar.deadlines import DeadlineEngine, TaxEvent
from tax_calendar.notifications import (
    AlertNotification,
    DeliveryResult,
    EventLine,
    NotificationSender,
)
from tax_calendar.profiles import ClientRecord
from tax_calendar.queries import DateLike, as_day, days_until, upcoming
from tax_calendar.store import ClientStore, ClientStoreError

logger = logging.getLogger("tax_calendar.scheduler")

DEFAULT_HORIZON_DAYS = 30
DEFAULT_DISPATCH_TIMEOUT = 10.0


@dataclass(frozen=True)
class MatchedEvent:
    event: TaxEvent
    days_until: int

    def to_line(self) -> EventLine:
        return EventLine(
            title=self.event.title,
            due_date=self.event.due_date,
            event_type=self.event.event_type.value,
            days_until=self.days_until,
            description=self.event.description,
        )


# ---------------------------------------------------------------------------
# Per-client outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AlertSent:
    client_id: str
    client_name: str
    destinations: tuple[str, ...]
    events: tuple[MatchedEvent, ...]
    message_id: Optional[str] = None


@dataclass(frozen=True)
class NothingDue:
    client_id: str
    client_name: str


@dataclass(frozen=True)
class ClientSkipped:
    client_id: str
    client_name: str
    reason: str


@dataclass(frozen=True)
class ClientFailed:
    client_id: str
    client_name: str
    stage: str
    error: str


ClientOutcome = Union[AlertSent, NothingDue, ClientSkipped, ClientFailed]


@dataclass
class AlertRun:
    """Outcome of one scheduler invocation."""

    run_date: date
    outcomes: list[ClientOutcome] = field(default_factory=list)

    @property
    def clients_checked(self) -> int:
        return len(self.outcomes)

    @property
    def alerts_sent(self) -> list[AlertSent]:
        return [o for o in self.outcomes if isinstance(o, AlertSent)]

    @property
    def failures(self) -> list[ClientFailed]:
        return [o for o in self.outcomes if isinstance(o, ClientFailed)]

    @property
    def skipped(self) -> list[ClientSkipped]:
        return [o for o in self.outcomes if isinstance(o, ClientSkipped)]

    def summary(self) -> dict[str, Any]:
        """The trigger endpoint's response body."""
        return {
            "success": True,
            "runDate": self.run_date.isoformat(),
            "clientsChecked": self.clients_checked,
            "alertsTriggered": [
                {
                    "clientId": sent.client_id,
                    "client": sent.client_name,
                    "emails": list(sent.destinations),
                    "events": len(sent.events),
                }
                for sent in self.alerts_sent
            ],
            "failures": len(self.failures),
        }


def _resolve_tz(tz: Union[str, tzinfo, None]) -> Optional[tzinfo]:
    if isinstance(tz, str):
        return ZoneInfo(tz)
    return tz


class AlertScheduler:
    def __init__(
        self,
        store: ClientStore,
        sender: NotificationSender,
        engine: Optional[DeadlineEngine] = None,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        dispatch_timeout: float = DEFAULT_DISPATCH_TIMEOUT,
        tz: Union[str, tzinfo, None] = None,
    ) -> None:
        self.store = store
        self.sender = sender
        self.engine = engine or DeadlineEngine()
        self.horizon_days = horizon_days
        self.dispatch_timeout = dispatch_timeout
        self.tz = _resolve_tz(tz)

    def today(self) -> date:
        return datetime.now(self.tz).date()

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self, today: Optional[DateLike] = None) -> AlertRun:
        """
        Evaluate every alerting client for the run date.

        Raises ClientStoreError when the client list cannot be loaded;
        every other failure is recorded as that client's outcome.
        """
        run_date = as_day(today) if today is not None else self.today()
        logger.info("Starting deadline alert run for %s", run_date.isoformat())
        if not self.engine.tables.has_year(run_date.year):
            logger.warning(
                "No tax calendar for %d; every client will fail until its table ships",
                run_date.year,
            )

        try:
            rows = list(self.store.fetch_alert_clients())
        except ClientStoreError:
            raise
        except Exception as exc:
            raise ClientStoreError(f"Failed to load clients: {exc}") from exc

        run = AlertRun(run_date=run_date)
        cache = CalendarCache(self.engine, run_date)
        for row in rows:
            run.outcomes.append(self._process(row, run_date, cache))

        logger.info(
            "Alert run %s: %d clients checked, %d alerts sent, %d skipped, %d failed",
            run_date.isoformat(),
            run.clients_checked,
            len(run.alerts_sent),
            len(run.skipped),
            len(run.failures),
        )
        return run

    def _process(self, row: Any, today: date, cache: CalendarCache) -> ClientOutcome:
        client_id = "?"
        client_name = "?"
        stage = "evaluate"
        try:
            record = ClientRecord.from_dict(row)
            client_id, client_name = record.client_id, record.name

            if not record.email_alert:
                return ClientSkipped(client_id, client_name, "email alerts disabled")
            if not record.alert_config.has_destinations:
                return ClientSkipped(client_id, client_name, "no destination addresses")

            matches = self.evaluate_client(record, today, cache)
            if not matches:
                return NothingDue(client_id, client_name)

            stage = "dispatch"
            notification = AlertNotification(
                destinations=record.alert_config.destinations,
                client_name=client_name,
                client_id=client_id,
                client_nit=record.nit,
                run_date=today,
                events=tuple(m.to_line() for m in matches),
            )
            result = self._dispatch(notification)
            if not result.ok:
                logger.warning(
                    "Alert for client %s (%s) not delivered: %s",
                    client_id,
                    client_name,
                    result.error,
                )
                return ClientFailed(
                    client_id, client_name, stage, result.error or "delivery failed"
                )

            logger.info(
                "Alert sent to client %s (%s) for %d events",
                client_id,
                client_name,
                len(matches),
            )
            return AlertSent(
                client_id=client_id,
                client_name=client_name,
                destinations=record.alert_config.destinations,
                events=tuple(matches),
                message_id=result.message_id,
            )
        except Exception as exc:
            logger.exception(
                "Client %s (%s) failed during %s", client_id, client_name, stage
            )
            return ClientFailed(client_id, client_name, stage, f"{type(exc).__name__}: {exc}")

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate_client(
        self,
        record: ClientRecord,
        today: DateLike,
        cache: Optional[CalendarCache] = None,
    ) -> list[MatchedEvent]:
        """
        Events due exactly N days from today, for each configured offset N.

        ProfileError and UnsupportedYearError propagate to the caller.
        """
        day = as_day(today)
        cache = cache or CalendarCache(self.engine, day)
        profile = record.to_profile()

        events: list[TaxEvent] = []
        for year in self.engine.window_years(day):
            events.extend(cache.obligations(profile, year, day))

        offsets = set(record.alert_config.alert_days)
        matches: list[MatchedEvent] = []
        for event in upcoming(events, day, self.horizon_days):
            remaining = days_until(event.due_date, day)
            if remaining in offsets:
                matches.append(MatchedEvent(event, remaining))
        return matches

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _dispatch(self, notification: AlertNotification) -> DeliveryResult:
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="alert-dispatch")
        future = executor.submit(self.sender.send, notification)
        try:
            return future.result(timeout=self.dispatch_timeout)
        except FutureTimeout:
            logger.error(
                "Notification for client %s timed out after %.1fs",
                notification.client_id,
                self.dispatch_timeout,
            )
            return DeliveryResult(
                ok=False, error=f"timed out after {self.dispatch_timeout}s"
            )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
