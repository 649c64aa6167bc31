"""Parse OJP StopEventResponse documents into departure snapshots.

The response nests each departure several levels deep::

    StopEventResult/StopEvent
        Service   -> PublishedLineName/Text, DestinationText/Text,
                     Mode/PtMode, Attribute/Code
        ThisCall/CallAtStop
                  -> StopPointName/Text, PlannedQuay/Text, EstimatedQuay/Text,
                     ServiceDeparture/TimetabledTime, ServiceDeparture/EstimatedTime

Every lookup below is a first-descendant search, so intermediate wrapper
elements the API adds between these nodes do not matter.
"""

import logging
import xml.etree.ElementTree as ET
from datetime import datetime, timezone

from .enrichment import ACCESSIBLE_CODE, enrich_departure
from .logging_config import VERBOSE
from .models import Departure, RawDeparture, VbzData

logger = logging.getLogger(__name__)

NS = {
    "ojp": "http://www.vdv.de/ojp",
    "siri": "http://www.siri.org.uk/siri",
}


def _find(node: ET.Element | None, path: str) -> ET.Element | None:
    """First descendant matching an ojp-prefixed path, or None."""
    if node is None:
        return None
    return node.find(f".//{path}", NS)


def _text(node: ET.Element | None, path: str) -> str | None:
    """Text of the <Text> child under the first match of path."""
    element = _find(_find(node, path), "ojp:Text")
    if element is None:
        return None
    return "".join(element.itertext())


def _value(node: ET.Element | None, path: str) -> str | None:
    element = _find(node, path)
    if element is None:
        return None
    return "".join(element.itertext())


def parse_timestamp(raw: str | None) -> datetime | None:
    """Parse an xs:dateTime value; None when missing or malformed.

    Values without an offset are taken as UTC.
    """
    if not raw or not raw.strip():
        return None
    value = raw.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        logger.debug("Ignoring malformed timestamp %r", raw)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _has_accessible_attribute(service: ET.Element) -> bool:
    for attribute in service.iterfind(".//ojp:Attribute", NS):
        if _value(attribute, "ojp:Code") == ACCESSIBLE_CODE:
            return True
    return False


def _parse_stop_event(stop_event: ET.Element) -> tuple[RawDeparture, str | None]:
    """Extract one departure and the station name it was called at."""
    raw = RawDeparture()
    station_name = None

    service = _find(stop_event, "ojp:Service")
    if service is not None:
        raw.line = _text(service, "ojp:PublishedLineName")
        raw.destination = _text(service, "ojp:DestinationText")
        mode = _find(service, "ojp:Mode")
        if mode is not None:
            raw.transport_mode = _value(mode, "ojp:PtMode")
        raw.is_accessible = _has_accessible_attribute(service)

    call_at_stop = _find(_find(stop_event, "ojp:ThisCall"), "ojp:CallAtStop")
    if call_at_stop is not None:
        station_name = _text(call_at_stop, "ojp:StopPointName")

        estimated_quay = _text(call_at_stop, "ojp:EstimatedQuay")
        raw.platform = estimated_quay or _text(call_at_stop, "ojp:PlannedQuay")

        service_departure = _find(call_at_stop, "ojp:ServiceDeparture")
        if service_departure is not None:
            raw.timetabled_time = parse_timestamp(
                _value(service_departure, "ojp:TimetabledTime")
            )
            raw.estimated_time = parse_timestamp(
                _value(service_departure, "ojp:EstimatedTime")
            )

    return raw, station_name


def parse_response(content: str | bytes, timestamp: datetime | None = None) -> VbzData:
    """Parse a StopEventResponse into a snapshot.

    Departures keep document order. Any failure during the walk yields an
    error snapshot and the departures parsed up to that point are dropped.
    TODO: decide whether departures parsed before a failure should be
    surfaced as a partial result instead of being discarded.
    """
    departures: list[Departure] = []
    station_name = ""

    try:
        root = ET.fromstring(content)
        for result in root.iterfind(".//ojp:StopEventResult", NS):
            stop_event = _find(result, "ojp:StopEvent")
            if stop_event is None:
                continue

            raw, call_station = _parse_stop_event(stop_event)
            if not station_name and call_station:
                station_name = call_station

            departures.append(enrich_departure(raw))
    except Exception as e:
        logger.error("XML parse error: %s", e, exc_info=True)
        logger.log(VERBOSE, "Failed XML: %s", content)
        return VbzData.failure(f"Parse error: {e}", timestamp=timestamp)

    logger.debug("Parsed %d departures for %r", len(departures), station_name)
    return VbzData.success(departures, station_name=station_name, timestamp=timestamp)
