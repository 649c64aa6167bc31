"""Builds OJP 2020 StopEventRequest bodies."""

from datetime import datetime, timezone
from xml.sax.saxutils import escape

REQUESTOR_REF = "vbz-mcp"

_STOP_EVENT_REQUEST = """<?xml version="1.0" encoding="UTF-8"?>
<OJP xmlns="http://www.vdv.de/ojp" xmlns:siri="http://www.siri.org.uk/siri" version="1.0">
    <OJPRequest>
        <siri:ServiceRequest>
            <siri:RequestTimestamp>{timestamp}</siri:RequestTimestamp>
            <siri:RequestorRef>{requestor}</siri:RequestorRef>
            <OJPStopEventRequest>
                <siri:RequestTimestamp>{timestamp}</siri:RequestTimestamp>
                <Location>
                    <PlaceRef>
                        <siri:StopPointRef>{stop_point_id}</siri:StopPointRef>
                        <LocationName>
                            <Text>Stop</Text>
                        </LocationName>
                    </PlaceRef>
                    <DepArrTime>{timestamp}</DepArrTime>
                </Location>
                <Params>
                    <NumberOfResults>{number_of_results}</NumberOfResults>
                    <StopEventType>departure</StopEventType>
                    <IncludePreviousCalls>false</IncludePreviousCalls>
                    <IncludeOnwardCalls>false</IncludeOnwardCalls>
                    <IncludeRealtimeData>true</IncludeRealtimeData>
                </Params>
            </OJPStopEventRequest>
        </siri:ServiceRequest>
    </OJPRequest>
</OJP>"""


def format_timestamp(instant: datetime) -> str:
    """Format an instant as UTC with second precision, e.g. 2024-02-07T14:30:00Z.

    Naive datetimes are taken to be UTC already.
    """
    if instant.tzinfo is not None:
        instant = instant.astimezone(timezone.utc)
    return instant.strftime("%Y-%m-%dT%H:%M:%SZ")


def build_stop_event_request(
    stop_point_id: str,
    number_of_results: int,
    now: datetime | None = None,
) -> str:
    """Build the XML body asking for the next departures at a stop.

    Args:
        stop_point_id: DiDok stop number (e.g. "8591067")
        number_of_results: How many departures to request
        now: Request instant (default: current UTC time)

    Returns:
        The request document as a string.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    return _STOP_EVENT_REQUEST.format(
        timestamp=format_timestamp(now),
        requestor=REQUESTOR_REF,
        stop_point_id=escape(str(stop_point_id)),
        number_of_results=int(number_of_results),
    )
