"""
Tests for tracker records and speed/duration point construction
"""
from datetime import datetime, timezone

import pytest

from telemetry_node.influx.models import (
    DURATION_MEASUREMENT,
    SCHEMA,
    SPEED_MEASUREMENT,
    TrackerRecord,
    build_point_pair,
    duration_credit,
    to_point,
)

FIX_TIME = datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


class TestTrackerRecord:
    def test_from_mapping_keeps_known_fields(self, raw_record):
        record = TrackerRecord.from_mapping({**raw_record, "imei": 356307042441013, "hdop": "0.9"})
        assert record.gs == "5"
        assert record.imei == "356307042441013"
        assert record.position_utc == "150324"
        assert record.extra == {"hdop": "0.9"}

    def test_tags_concatenate_hemisphere_and_value(self, raw_record):
        record = TrackerRecord.from_mapping(raw_record)
        assert record.tags() == {
            "unit": "356307042441013",
            "lat": "N4530.1234",
            "long": "E01230.5678",
        }

    def test_tags_render_missing_parts_as_empty(self):
        record = TrackerRecord(gs="1", imei="42", lat="4530.1")
        assert record.tags() == {"unit": "42", "lat": "4530.1", "long": ""}

    def test_speed_parses_padded_string(self):
        assert TrackerRecord(gs=" 12.5 ").speed == 12.5


class TestDurationCredit:
    @pytest.mark.parametrize("speed, expected", [(5.0, 30), (2.01, 30), (2.0, 0), (1.0, 0), (0.0, 0)])
    def test_moving_threshold(self, speed, expected):
        assert duration_credit(speed, 30) == expected

    def test_uses_configured_interval(self):
        assert duration_credit(80.0, 45) == 45


class TestPointPair:
    def test_pair_shares_tags_and_time(self, raw_record):
        speed, duration = build_point_pair(TrackerRecord.from_mapping(raw_record), FIX_TIME, 30)

        assert speed["measurement"] == SPEED_MEASUREMENT
        assert duration["measurement"] == DURATION_MEASUREMENT
        assert speed["tags"] == duration["tags"]
        assert speed["time"] == duration["time"] == FIX_TIME
        assert speed["fields"] == {"value": 5.0}
        assert duration["fields"] == {"value": 30}

    def test_stationary_record_gets_zero_duration(self, raw_record):
        record = TrackerRecord.from_mapping({**raw_record, "gs": "1"})
        _, duration = build_point_pair(record, FIX_TIME, 30)
        assert duration["fields"] == {"value": 0}


class TestSchema:
    def test_declares_two_measurements(self):
        assert set(SCHEMA) == {"speed", "duration"}
        assert SCHEMA["speed"].fields == {"value": float}
        assert SCHEMA["duration"].fields == {"value": int}
        assert SCHEMA["speed"].tags == SCHEMA["duration"].tags == ("unit", "lat", "long")

    def test_coerce_fields_casts_and_drops_undeclared(self):
        assert SCHEMA["speed"].coerce_fields({"value": "5", "other": 1}) == {"value": 5.0}


class TestToPoint:
    def test_duration_point_line_protocol(self, raw_record):
        _, duration = build_point_pair(TrackerRecord.from_mapping(raw_record), FIX_TIME, 30)
        line = to_point(duration).to_line_protocol()

        assert line.startswith("duration,")
        assert "unit=356307042441013" in line
        assert "lat=N4530.1234" in line
        assert "value=30i" in line
        assert line.endswith(" 1710504000")

    def test_undeclared_tags_are_skipped(self):
        point_dict = {
            "measurement": "speed",
            "tags": {"unit": "42", "driver": "x"},
            "fields": {"value": 3},
            "time": FIX_TIME,
        }
        line = to_point(point_dict).to_line_protocol()
        assert "driver" not in line
        assert "unit=42" in line
