"""Data models for OJP stop-event departures."""

import math
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_countdown(display_time: datetime | None, now: datetime | None = None) -> str:
    """Format the time until departure the way station boards show it.

    Returns "0'" when due, "<n>'" (rounded up) within the hour, local "HH:MM"
    beyond that, and "" when the departure has no time.
    """
    if display_time is None:
        return ""
    if now is None:
        now = datetime.now(timezone.utc)
    if display_time.tzinfo is None:
        display_time = display_time.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    minutes = (display_time - now).total_seconds() / 60
    if minutes <= 0:
        return "0'"
    if minutes < 60:
        return f"{math.ceil(minutes)}'"
    return display_time.astimezone().strftime("%H:%M")


class RawDeparture(BaseModel):
    """Fields extracted from one StopEvent, before defaults are applied.

    None means the node was absent or unparseable.
    """

    line: str | None = None
    destination: str | None = None
    transport_mode: str | None = None
    platform: str | None = None
    timetabled_time: datetime | None = None
    estimated_time: datetime | None = None
    is_accessible: bool = False


class Departure(BaseModel):
    """Represents one upcoming departure, ready for display."""

    model_config = ConfigDict(frozen=True)

    line: str = "?"
    destination: str = "?"
    transport_mode: str = ""
    platform: str = ""
    scheduled_time: datetime | None = None
    display_time: datetime | None = None
    is_realtime: bool = False
    is_late: bool = False
    is_accessible: bool = False
    line_background_color: str = "#FFFFFF"
    line_text_color: str = "#000000"

    @property
    def delay_minutes(self) -> int:
        """Whole minutes between scheduled and displayed time."""
        if not self.is_realtime or self.scheduled_time is None or self.display_time is None:
            return 0
        return math.floor((self.display_time - self.scheduled_time).total_seconds() / 60)

    def formatted_time(self, now: datetime | None = None) -> str:
        """Return the countdown string shown on the board."""
        return format_countdown(self.display_time, now)


class VbzData(BaseModel):
    """One poll result: either a list of departures or an error."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=_utcnow)
    station_name: str | None = None
    departures: tuple[Departure, ...] = ()
    has_error: bool = False
    error_message: str | None = None

    @classmethod
    def success(
        cls,
        departures: tuple[Departure, ...] | list[Departure] = (),
        station_name: str | None = None,
        timestamp: datetime | None = None,
    ) -> "VbzData":
        return cls(
            timestamp=timestamp or _utcnow(),
            station_name=station_name or None,
            departures=tuple(departures),
        )

    @classmethod
    def failure(cls, message: str, timestamp: datetime | None = None) -> "VbzData":
        """Error snapshots never carry departures."""
        return cls(
            timestamp=timestamp or _utcnow(),
            has_error=True,
            error_message=message,
        )
