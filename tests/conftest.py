"""Shared OJP response fixtures."""

import pytest

OJP_HEADER = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<OJP xmlns="http://www.vdv.de/ojp" xmlns:siri="http://www.siri.org.uk/siri" version="1.0">'
    "<OJPResponse><siri:ServiceDelivery>"
    "<siri:ResponseTimestamp>2024-02-07T09:59:00Z</siri:ResponseTimestamp>"
    "<OJPStopEventDelivery>"
)
OJP_FOOTER = "</OJPStopEventDelivery></siri:ServiceDelivery></OJPResponse></OJP>"


def stop_event_result(
    line="2",
    destination="Farbhof",
    mode="tram",
    station="Zürich, Bahnhofplatz/HB",
    planned_quay="D",
    estimated_quay=None,
    timetabled="2024-02-07T10:00:00Z",
    estimated=None,
    attributes=(),
    with_service_departure=True,
):
    """Render one StopEventResult in the shape the OJP 2020 API returns."""
    quay = f"<PlannedQuay><Text>{planned_quay}</Text></PlannedQuay>" if planned_quay else ""
    if estimated_quay:
        quay += f"<EstimatedQuay><Text>{estimated_quay}</Text></EstimatedQuay>"

    departure = ""
    if with_service_departure:
        departure = "<ServiceDeparture>"
        if timetabled is not None:
            departure += f"<TimetabledTime>{timetabled}</TimetabledTime>"
        if estimated is not None:
            departure += f"<EstimatedTime>{estimated}</EstimatedTime>"
        departure += "</ServiceDeparture>"

    attrs = "".join(
        f"<Attribute><Text><Text>Low-floor</Text></Text><Code>{code}</Code></Attribute>"
        for code in attributes
    )
    line_xml = (
        f"<PublishedLineName><Text>{line}</Text></PublishedLineName>" if line is not None else ""
    )
    dest_xml = (
        f"<DestinationText><Text>{destination}</Text></DestinationText>"
        if destination is not None
        else ""
    )
    mode_xml = f"<Mode><PtMode>{mode}</PtMode></Mode>" if mode is not None else ""
    station_xml = (
        f"<StopPointName><Text>{station}</Text></StopPointName>" if station is not None else ""
    )

    return (
        "<StopEventResult><ResultId>1</ResultId><StopEvent>"
        "<ThisCall><CallAtStop>"
        "<siri:StopPointRef>8503000</siri:StopPointRef>"
        f"{station_xml}{quay}{departure}"
        "</CallAtStop></ThisCall>"
        "<Service>"
        f"{mode_xml}{line_xml}{attrs}{dest_xml}"
        "</Service>"
        "</StopEvent></StopEventResult>"
    )


def ojp_response(*results: str) -> str:
    return OJP_HEADER + "".join(results) + OJP_FOOTER


@pytest.fixture
def sample_response():
    """Two departures: a delayed low-floor tram and an on-time bus."""
    return ojp_response(
        stop_event_result(
            line="2",
            destination="Farbhof",
            timetabled="2024-02-07T10:00:00Z",
            estimated="2024-02-07T10:04:00Z",
            attributes=("A__NF",),
        ),
        stop_event_result(
            line="31",
            destination="Hegianwandweg",
            mode="trolleyBus",
            planned_quay="B",
            estimated_quay="C",
            timetabled="2024-02-07T10:05:00Z",
        ),
    )


@pytest.fixture
def make_stop_event():
    return stop_event_result


@pytest.fixture
def make_response():
    return ojp_response
