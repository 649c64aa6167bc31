"""Tests for StopEventResponse parsing."""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from vbz_mcp import ojp_parser
from vbz_mcp.ojp_parser import parse_response, parse_timestamp


class TestTimestamps:
    def test_z_suffix(self):
        assert parse_timestamp("2024-02-07T10:00:00Z") == datetime(
            2024, 2, 7, 10, 0, tzinfo=timezone.utc
        )

    def test_offset(self):
        parsed = parse_timestamp("2024-02-07T11:00:00+01:00")
        assert parsed == datetime(2024, 2, 7, 10, 0, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert parse_timestamp("2024-02-07T10:00:00").tzinfo is timezone.utc

    @pytest.mark.parametrize("raw", [None, "", "   ", "not a time", "2024-13-45T99:00:00Z"])
    def test_invalid_is_none(self, raw):
        assert parse_timestamp(raw) is None


class TestParseResponse:
    def test_parses_departures_in_document_order(self, sample_response):
        data = parse_response(sample_response)

        assert not data.has_error
        assert data.error_message is None
        assert data.station_name == "Zürich, Bahnhofplatz/HB"
        assert [dep.line for dep in data.departures] == ["2", "31"]

        tram, bus = data.departures
        assert tram.destination == "Farbhof"
        assert tram.transport_mode == "tram"
        assert tram.platform == "D"
        assert tram.is_accessible
        assert tram.is_realtime
        assert tram.is_late
        assert tram.scheduled_time == datetime(2024, 2, 7, 10, 0, tzinfo=timezone.utc)
        assert tram.display_time == datetime(2024, 2, 7, 10, 4, tzinfo=timezone.utc)
        assert tram.line_background_color == "#E30613"

        assert bus.transport_mode == "trolleybus"
        assert bus.platform == "C"
        assert not bus.is_accessible
        assert not bus.is_realtime
        assert bus.display_time == bus.scheduled_time

    def test_accepts_bytes(self, sample_response):
        data = parse_response(sample_response.encode("utf-8"))
        assert len(data.departures) == 2

    def test_no_results_is_empty_success(self, make_response):
        data = parse_response(make_response())
        assert not data.has_error
        assert data.departures == ()
        assert data.station_name is None

    def test_missing_service_fields_default(self, make_response, make_stop_event):
        data = parse_response(
            make_response(make_stop_event(line=None, destination=None, mode=None, planned_quay=None))
        )
        dep = data.departures[0]
        assert dep.line == "?"
        assert dep.destination == "?"
        assert dep.transport_mode == ""
        assert dep.platform == ""
        assert dep.line_background_color == "#FFFFFF"

    def test_result_without_stop_event_is_skipped(self, make_response, make_stop_event):
        data = parse_response(
            make_response("<StopEventResult><ResultId>0</ResultId></StopEventResult>", make_stop_event())
        )
        assert len(data.departures) == 1

    def test_missing_service_departure_keeps_departure_without_time(
        self, make_response, make_stop_event
    ):
        data = parse_response(make_response(make_stop_event(with_service_departure=False)))
        dep = data.departures[0]
        assert dep.display_time is None
        assert dep.scheduled_time is None
        assert dep.formatted_time() == ""

    def test_malformed_estimate_is_ignored(self, make_response, make_stop_event):
        data = parse_response(
            make_response(make_stop_event(estimated="soon", timetabled="2024-02-07T10:00:00Z"))
        )
        dep = data.departures[0]
        assert not data.has_error
        assert not dep.is_realtime
        assert dep.display_time == datetime(2024, 2, 7, 10, 0, tzinfo=timezone.utc)

    def test_malformed_timetabled_time_is_omitted(self, make_response, make_stop_event):
        data = parse_response(make_response(make_stop_event(timetabled="garbage")))
        dep = data.departures[0]
        assert dep.scheduled_time is None
        assert dep.display_time is None

    def test_estimate_at_boundary(self, make_response, make_stop_event):
        data = parse_response(
            make_response(
                make_stop_event(timetabled="2024-02-07T10:00:00Z", estimated="2024-02-07T10:03:00Z"),
                make_stop_event(timetabled="2024-02-07T10:00:00Z", estimated="2024-02-07T10:02:59Z"),
            )
        )
        assert [dep.is_late for dep in data.departures] == [True, False]

    def test_first_station_name_wins(self, make_response, make_stop_event):
        data = parse_response(
            make_response(
                make_stop_event(station=None),
                make_stop_event(station="Zürich, Central"),
                make_stop_event(station="Zürich, Bellevue"),
            )
        )
        assert data.station_name == "Zürich, Central"

    def test_accessibility_needs_exact_code(self, make_response, make_stop_event):
        data = parse_response(
            make_response(
                make_stop_event(attributes=("A__FS", "A__NF")),
                make_stop_event(attributes=("A__FS", "A__NFX")),
            )
        )
        assert [dep.is_accessible for dep in data.departures] == [True, False]

    def test_duplicates_are_kept(self, make_response, make_stop_event):
        event = make_stop_event()
        data = parse_response(make_response(event, event))
        assert len(data.departures) == 2
        assert data.departures[0] == data.departures[1]

    def test_snapshot_timestamp_can_be_given(self, make_response):
        stamp = datetime(2024, 2, 7, 9, 59, tzinfo=timezone.utc)
        assert parse_response(make_response(), timestamp=stamp).timestamp == stamp

    def test_snapshot_timestamp_defaults_to_now(self, make_response):
        data = parse_response(make_response())
        assert datetime.now(timezone.utc) - data.timestamp < timedelta(seconds=5)


class TestParseErrors:
    def test_malformed_xml_is_error_snapshot(self, caplog):
        with caplog.at_level(ojp_parser.VERBOSE, logger="vbz_mcp.ojp_parser"):
            data = parse_response("<OJP><StopEventResult>")

        assert data.has_error
        assert data.error_message.startswith("Parse error: ")
        assert data.departures == ()
        assert any(record.levelno == ojp_parser.VERBOSE for record in caplog.records)

    def test_raw_xml_not_logged_above_verbose(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="vbz_mcp.ojp_parser"):
            parse_response("<OJP>secret-payload")
        assert all("secret-payload" not in record.getMessage() for record in caplog.records)

    def test_failure_mid_walk_discards_parsed_departures(
        self, monkeypatch, make_response, make_stop_event
    ):
        real_enrich = ojp_parser.enrich_departure
        calls = []

        def flaky_enrich(raw):
            calls.append(raw)
            if len(calls) == 2:
                raise ValueError("unexpected node")
            return real_enrich(raw)

        monkeypatch.setattr(ojp_parser, "enrich_departure", flaky_enrich)
        data = parse_response(make_response(make_stop_event(), make_stop_event(), make_stop_event()))

        assert len(calls) == 2
        assert data.has_error
        assert data.error_message == "Parse error: unexpected node"
        assert data.departures == ()
        assert data.station_name is None
