"""
Run-scoped calendar cache.

Clients that share a profile (same NIT digit group, classification and
flags) get the same calendar, so a scheduler run memoizes engine output
per (profile, year). The cache belongs to a single run date and is
passed explicitly; there is no module-level state.
"""

from __future__ import annotations

from datetime import date
from typing import Callable, Hashable, Optional

from tax_calendar.deadlines import ClientTaxProfile, DeadlineEngine, TaxEvent


class TimeScopedCache:
    """A dict that empties itself whenever it is used for a new day."""

    def __init__(self, scope: date) -> None:
        self.scope = scope
        self._entries: dict[Hashable, object] = {}
        self.hits = 0
        self.misses = 0

    def rescope(self, scope: date) -> None:
        if scope != self.scope:
            self._entries.clear()
            self.scope = scope

    def get_or_compute(
        self, scope: date, key: Hashable, compute: Callable[[], object]
    ) -> object:
        self.rescope(scope)
        if key in self._entries:
            self.hits += 1
            return self._entries[key]
        self.misses += 1
        value = compute()
        self._entries[key] = value
        return value

    def __len__(self) -> int:
        return len(self._entries)


class CalendarCache(TimeScopedCache):
    """Memoized DeadlineEngine.compute_obligations for one run date."""

    def __init__(self, engine: DeadlineEngine, scope: date) -> None:
        super().__init__(scope)
        self.engine = engine

    def obligations(
        self,
        profile: ClientTaxProfile,
        year: int,
        scope: Optional[date] = None,
    ) -> tuple[TaxEvent, ...]:
        # Errors are not cached; the next client with this profile re-raises.
        return self.get_or_compute(
            scope or self.scope,
            (profile, year),
            lambda: tuple(self.engine.compute_obligations(profile, year)),
        )
