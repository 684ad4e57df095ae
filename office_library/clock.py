"""Date sources for the lending rules.

Services never call ``date.today()`` directly; they ask the clock they were
built with, so tests can pin "today" to a known day.
"""

from __future__ import annotations

from datetime import date, timedelta


class SystemClock:
    """Wall-clock date."""

    def today(self) -> date:
        return date.today()


class FixedClock:
    """A clock that stays on one day until moved."""

    def __init__(self, day: date) -> None:
        self.day = day

    def today(self) -> date:
        return self.day

    def advance(self, days: int = 1) -> date:
        self.day = self.day + timedelta(days=days)
        return self.day

    def set(self, day: date) -> None:
        self.day = day
