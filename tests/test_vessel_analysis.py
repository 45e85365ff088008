"""End-to-end tests for window analysis: grouping, classification, anomalies, reports."""
from __future__ import annotations

import logging

from builders import NM_PER_DEG_LAT, make_detection, make_position, stationary_track, transit_track
from polarwatch.modules.classifier import ClassifierConfig
from polarwatch.modules.vessel_analysis import (
    analyze_vessel,
    analyze_window,
    attribute_detections,
    group_positions_by_identity,
)
from polarwatch.schemas.base import (
    ConsistencyCodeEnum,
    DarkVesselAnomalyTypeEnum,
    VesselClassification,
)
from polarwatch.schemas.position import StaticInfo


class TestGrouping:
    def test_first_seen_order(self):
        positions = [
            make_position(mmsi="B", minutes=0),
            make_position(mmsi="A", minutes=1),
            make_position(mmsi="B", minutes=2),
        ]
        grouped = group_positions_by_identity(positions)
        assert list(grouped) == ["B", "A"]
        assert len(grouped["B"]) == 2

    def test_empty(self):
        assert group_positions_by_identity([]) == {}


class TestAnalyzeVessel:
    def test_transit_vessel(self, transit_positions):
        track = transit_positions
        vessel = analyze_vessel("257000001", list(reversed(track)))
        assert vessel.classification == VesselClassification.TRANSIT
        assert vessel.metrics.point_count == 7
        assert vessel.positions == track

    def test_stationary_vessel(self, stationary_positions):
        vessel = analyze_vessel("257000002", stationary_positions)
        assert vessel.classification == VesselClassification.STATIONARY
        assert vessel.rationale == "Very low average speed and minimal positional drift"

    def test_keeps_static_info(self):
        info = StaticInfo(mmsi="257000002", ship_type="Fishing", length=30.0)
        vessel = analyze_vessel("257000002", stationary_track(), static_info=info)
        assert vessel.static_info == info

    def test_config_dwell_threshold_reaches_metrics(self):
        cfg = ClassifierConfig(dwell_speed_threshold=20.0)
        vessel = analyze_vessel("257000001", transit_track(), config=cfg)
        assert vessel.metrics.dwell_ratio == 1.0


class TestAttribution:
    def test_by_mmsi(self):
        det = make_detection(lat=75.0, mmsi="257000001")
        assert attribute_detections(transit_track(), [det]) == {"257000001": [det]}

    def test_by_nearest_match(self):
        det = make_detection(minutes=30, lat=60.5 + 0.2 / NM_PER_DEG_LAT, lon=5.5)
        attributed = attribute_detections(transit_track() + stationary_track(), [det])
        assert attributed == {"257000002": [det]}

    def test_unmatched_left_out(self):
        assert attribute_detections(transit_track(), [make_detection(lat=80.0)]) == {}


class TestAnalyzeWindow:
    def test_full_window(self):
        positions = transit_track() + stationary_track()
        statics = {
            "257000001": StaticInfo(mmsi="257000001", ship_type="Fishing", length=40.0),
            "257000002": StaticInfo(mmsi="257000002", ship_type="Tanker", length=180.0),
        }
        detections = [
            # explained by the stationary vessel, but sensor says cargo
            make_detection(minutes=30, lat=60.5, lon=5.5, inferred_type="cargo"),
            # nothing nearby
            make_detection(minutes=30, lat=62.0, lon=8.0, inferred_type="tanker", source="SAR"),
        ]

        result = analyze_window(
            positions, detections, static_lookup=statics.get, forced_dark_mmsis=[],
        )

        assert [v.mmsi for v in result.vessels] == ["257000001", "257000002"]
        assert [v.classification for v in result.vessels] == [
            VesselClassification.TRANSIT, VesselClassification.STATIONARY,
        ]
        assert [a.type for a in result.anomalies] == [DarkVesselAnomalyTypeEnum.NO_AIS_MATCH]
        assert result.anomalies[0].detection == detections[1]

        reports = {r.mmsi: r for r in result.reports}
        assert reports["257000001"].issues == []
        assert [i.code for i in reports["257000002"].issues] == [ConsistencyCodeEnum.TYPE_MISMATCH]

        counts = result.classification_counts()
        assert counts[VesselClassification.TRANSIT] == 1
        assert counts[VesselClassification.STATIONARY] == 1
        assert counts[VesselClassification.UNKNOWN] == 0

    def test_single_point_vessel(self):
        result = analyze_window([make_position(mmsi="257000003")], forced_dark_mmsis=[])
        assert result.vessels[0].classification == VesselClassification.UNKNOWN
        assert [a.type for a in result.anomalies] == [DarkVesselAnomalyTypeEnum.AIS_GAP]

    def test_empty_window(self):
        result = analyze_window([], [], forced_dark_mmsis=[])
        assert result.vessels == []
        assert result.anomalies == []
        assert result.reports == []

    def test_failing_static_lookup_is_logged(self, caplog):
        def lookup(mmsi):
            raise RuntimeError("service down")

        with caplog.at_level(logging.WARNING):
            result = analyze_window(transit_track(), static_lookup=lookup, forced_dark_mmsis=[])

        assert result.vessels[0].static_info is None
        assert result.vessels[0].classification == VesselClassification.TRANSIT
        assert "service down" in caplog.text
