"""Derived display fields for parsed departures."""

from datetime import datetime, timedelta
from types import MappingProxyType
from typing import NamedTuple

from .models import Departure, RawDeparture

LATE_THRESHOLD = timedelta(minutes=3)
ACCESSIBLE_CODE = "A__NF"


class LineColors(NamedTuple):
    background: str
    text: str


DEFAULT_LINE_COLORS = LineColors("#FFFFFF", "#000000")

# VBZ network colors, keyed by published line name.
LINE_COLORS = MappingProxyType(
    {
        # Trams
        "2": LineColors("#E30613", "#FFFFFF"),
        "3": LineColors("#007A33", "#FFFFFF"),
        "4": LineColors("#3F2985", "#FFFFFF"),
        "5": LineColors("#7F5629", "#FFFFFF"),
        "6": LineColors("#E88D23", "#FFFFFF"),
        "7": LineColors("#1D1D1B", "#FFFFFF"),
        "8": LineColors("#8BC63E", "#FFFFFF"),
        "9": LineColors("#3F2985", "#FFFFFF"),
        "10": LineColors("#DC005D", "#FFFFFF"),
        "11": LineColors("#007A33", "#FFFFFF"),
        "12": LineColors("#009EE0", "#FFFFFF"),
        "13": LineColors("#F6C90E", "#000000"),
        "14": LineColors("#009EE0", "#FFFFFF"),
        "15": LineColors("#E30613", "#FFFFFF"),
        "17": LineColors("#A3238E", "#FFFFFF"),
        # Trolleybuses
        "31": LineColors("#009EE0", "#FFFFFF"),
        "32": LineColors("#1D1D1B", "#FFFFFF"),
        "33": LineColors("#E88D23", "#FFFFFF"),
        "34": LineColors("#8BC63E", "#FFFFFF"),
        "46": LineColors("#E30613", "#FFFFFF"),
        "72": LineColors("#DC005D", "#FFFFFF"),
    }
)


def resolve_line_colors(line: str | None) -> LineColors:
    """Look up the badge colors for a line, white/black when unknown."""
    if line is None:
        return DEFAULT_LINE_COLORS
    return LINE_COLORS.get(line, DEFAULT_LINE_COLORS)


def is_late(scheduled: datetime | None, estimated: datetime | None) -> bool:
    """A departure is late when the estimate is at least three minutes behind."""
    if scheduled is None or estimated is None:
        return False
    return estimated - scheduled >= LATE_THRESHOLD


def enrich_departure(raw: RawDeparture) -> Departure:
    """Turn extracted fields into a display-ready departure."""
    estimated = raw.estimated_time
    is_realtime = estimated is not None
    display_time = estimated if is_realtime else raw.timetabled_time
    colors = resolve_line_colors(raw.line)

    return Departure(
        line=raw.line if raw.line is not None else "?",
        destination=raw.destination if raw.destination is not None else "?",
        transport_mode=(raw.transport_mode or "").lower(),
        platform=raw.platform or "",
        scheduled_time=raw.timetabled_time,
        display_time=display_time,
        is_realtime=is_realtime,
        is_late=is_late(raw.timetabled_time, estimated),
        is_accessible=raw.is_accessible,
        line_background_color=colors.background,
        line_text_color=colors.text,
    )
