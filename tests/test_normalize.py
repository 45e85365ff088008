"""Tests for raw record normalization (positions, static snapshots, detections)."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from polarwatch.modules.normalize import (
    map_detection_record,
    map_position_record,
    map_static_record,
    parse_timestamp_flexible,
)
from polarwatch.schemas.base import AISClassEnum

UTC = timezone.utc


class TestParseTimestamp:
    @pytest.mark.parametrize("raw,expected", [
        ("2025-03-01T12:00:00Z", datetime(2025, 3, 1, 12, 0, tzinfo=UTC)),
        ("2025-03-01T13:00:00+01:00", datetime(2025, 3, 1, 12, 0, tzinfo=UTC)),
        ("2025-03-01T12:00:00", datetime(2025, 3, 1, 12, 0, tzinfo=UTC)),
        ("2025-03-01 12:00:00", datetime(2025, 3, 1, 12, 0, tzinfo=UTC)),
        ("03/01/2025 12:00:00", datetime(2025, 3, 1, 12, 0, tzinfo=UTC)),
        ("202503011200", datetime(2025, 3, 1, 12, 0, tzinfo=UTC)),
        (1740830400, datetime(2025, 3, 1, 12, 0, tzinfo=UTC)),
        (1740830400000, datetime(2025, 3, 1, 12, 0, tzinfo=UTC)),
        ("1740830400", datetime(2025, 3, 1, 12, 0, tzinfo=UTC)),
    ])
    def test_formats(self, raw, expected):
        assert parse_timestamp_flexible(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "not a date", 12345, True, "209913991200"])
    def test_unparseable(self, raw):
        assert parse_timestamp_flexible(raw) is None

    def test_naive_datetime_gets_utc(self):
        assert parse_timestamp_flexible(datetime(2025, 3, 1, 12)).tzinfo == UTC


class TestPositionRecord:
    def test_dict_with_aliases(self):
        p = map_position_record({
            "MMSI": 257000001,
            "time": "2025-03-01T12:00:00Z",
            "lat": 70.1,
            "lon": 19.9,
            "sog": "11.5",
            "cog": 45,
            "shipname": "NORDKAPP",
            "shiptype": "Fishing",
        })
        assert p is not None
        assert p.mmsi == "257000001"
        assert p.speed == 11.5
        assert p.heading == 45.0
        assert p.vessel_name == "NORDKAPP"
        assert p.vessel_type == "Fishing"

    def test_compact_array(self):
        row = [257000001, "2025-03-01T12:00:00Z", 19.9, 70.1, 90.0, 8.0, None, None, None, 88]
        p = map_position_record(row)
        assert (p.latitude, p.longitude) == (70.1, 19.9)
        assert p.speed == 8.0
        assert p.heading == 88.0

    @pytest.mark.parametrize("record", [
        {"mmsi": "257000001", "timestamp": 1740830400, "lat": 70.1, "lon": 19.9, "sog": 102.3},
        [257000001, "2025-03-01T12:00:00Z", 19.9, 70.1, 90.0, "102.3", None, None, None, 88],
    ])
    def test_speed_not_available_is_zero(self, record):
        assert map_position_record(record).speed == 0.0

    def test_compact_heading_not_available_uses_course(self):
        row = [257000001, "2025-03-01T12:00:00Z", 19.9, 70.1, 90.0, 8.0, None, None, None, 511]
        assert map_position_record(row).heading == 90.0

    def test_heading_511_is_dropped(self):
        p = map_position_record({"mmsi": "1", "timestamp": 1740830400, "lat": 1, "lon": 1, "heading": 511})
        assert p.heading is None

    def test_missing_speed_is_zero(self):
        p = map_position_record({"mmsi": "1", "timestamp": 1740830400, "lat": 1, "lon": 1})
        assert p.speed == 0.0

    @pytest.mark.parametrize("rec", [
        {"mmsi": "1", "timestamp": 1740830400, "lat": 91, "lon": 1},
        {"mmsi": "1", "timestamp": 1740830400, "lat": 1, "lon": 181},
        {"mmsi": "1", "timestamp": "garbage", "lat": 1, "lon": 1},
        {"timestamp": 1740830400, "lat": 1, "lon": 1},
        {"mmsi": "1", "timestamp": 1740830400, "lat": "nan", "lon": 1},
        {"mmsi": "1", "timestamp": 1740830400, "lat": 1, "lon": 1, "speed": -3},
        [1, 2, 3],
        "not a record",
    ])
    def test_rejected(self, rec):
        assert map_position_record(rec) is None


class TestStaticRecord:
    def test_full_record(self):
        info = map_static_record({
            "mmsi": 257000001,
            "name": "NORDKAPP",
            "callsign": "LAXX",
            "imo": "9876543",
            "shipTypeText": "Fishing",
            "shipType": 30,
            "dimension_to_bow": 20,
            "dimension_to_stern": 15,
            "dimension_to_port": 4,
            "dimension_to_starboard": 5,
            "class": "a",
            "timestamp": "2025-03-01T12:00:00Z",
        }, "257000001")
        assert info.mmsi == "257000001"
        assert info.imo == 9876543
        assert info.ship_type == "Fishing"
        assert info.ship_type_code == 30
        assert info.length == 35.0
        assert info.beam == 9.0
        assert info.ais_class == AISClassEnum.A
        assert info.stat_timestamp == datetime(2025, 3, 1, 12, 0, tzinfo=UTC)

    def test_list_takes_first(self):
        info = map_static_record([{"name": "A"}, {"name": "B"}], "257000001")
        assert info.name == "A"
        assert info.mmsi == "257000001"

    def test_explicit_length_wins(self):
        info = map_static_record({"length": 120, "dimension_to_bow": 1, "dimension_to_stern": 1}, "1")
        assert info.length == 120.0

    def test_numeric_type_is_a_code(self):
        info = map_static_record({"type": 84}, "1")
        assert info.ship_type is None
        assert info.ship_type_code == 84

    def test_unknown_class_dropped(self):
        assert map_static_record({"class": "X"}, "1").ais_class is None

    @pytest.mark.parametrize("rec", [None, [], "text"])
    def test_unusable(self, rec):
        assert map_static_record(rec, "1") is None


class TestDetectionRecord:
    def test_aliases(self):
        det = map_detection_record({
            "id": "trk-7",
            "lat": 70.0,
            "lng": 20.0,
            "ts": "2025-03-01T12:00:00Z",
            "confidence": 0.8,
            "type": "Tanker",
            "sensor": "SAR",
            "length_m": 210,
        })
        assert det.track_id == "trk-7"
        assert det.mmsi is None
        assert det.confidence == 0.8
        assert det.inferred_type == "Tanker"
        assert det.source == "SAR"
        assert det.length_estimate_m == 210.0

    def test_confidence_out_of_range_dropped(self):
        det = map_detection_record({"lat": 1, "lon": 1, "timestamp": 1740830400, "confidence": 87})
        assert det is not None
        assert det.confidence is None

    @pytest.mark.parametrize("rec", [
        {"lon": 1, "timestamp": 1740830400},
        {"lat": 1, "lon": 1},
        ["not", "a", "dict"],
    ])
    def test_rejected(self, rec):
        assert map_detection_record(rec) is None
