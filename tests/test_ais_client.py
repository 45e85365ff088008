"""Tests for the Kystdatahuset AIS client (HTTP mocked)."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import httpx
import pytest

from polarwatch.modules.ais_client import (
    extract_position_records,
    fetch_positions,
    fetch_static_info,
    format_date_for_api,
    static_lookup_at,
)
from polarwatch.schemas.position import BoundingBox

BASE = "https://ais.test/api"
START = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
END = START + timedelta(hours=6)
BBOX = BoundingBox(south=69.0, west=15.0, north=71.0, east=25.0)


def _response(status: int, payload=None, method: str = "POST") -> httpx.Response:
    return httpx.Response(
        status_code=status,
        json=payload,
        request=httpx.Request(method, f"{BASE}/x"),
    )


@pytest.fixture
def client():
    with patch("polarwatch.modules.ais_client.httpx.Client") as client_cls, \
            patch("polarwatch.utils.http_retry.time"):
        instance = MagicMock()
        client_cls.return_value.__enter__.return_value = instance
        yield instance


class TestHelpers:
    def test_format_date_utc(self):
        cet = timezone(timedelta(hours=1))
        assert format_date_for_api(datetime(2025, 3, 1, 13, 5, tzinfo=cet)) == "202503011205"

    def test_format_date_naive(self):
        assert format_date_for_api(datetime(2025, 3, 1, 12, 5)) == "202503011205"

    @pytest.mark.parametrize("payload,expected", [
        ([1, 2], [1, 2]),
        ({"positions": [1]}, [1]),
        ({"data": [2]}, [2]),
        ({"meta": {}, "rows": [3]}, [3]),
        ({"meta": {}}, []),
        ("text", []),
    ])
    def test_extract_position_records(self, payload, expected):
        assert extract_position_records(payload) == expected


class TestFetchPositions:
    def test_request_body_and_mapping(self, client):
        client.post.return_value = _response(200, [
            [257000001, "2025-03-01T12:00:00Z", 20.0, 70.0, 45.0, 11.0],
            {"mmsi": "257000002", "timestamp": "2025-03-01T12:05:00Z", "lat": 70.5, "lon": 21.0, "sog": 0.2},
            {"mmsi": "257000003"},
        ])

        positions = fetch_positions(BBOX, START, END, base_url=BASE)

        assert [p.mmsi for p in positions] == ["257000001", "257000002"]
        args, kwargs = client.post.call_args
        assert args[0] == f"{BASE}/positions/within-bbox-time"
        assert kwargs["json"] == {
            "bbox": "15.0,69.0,25.0,71.0",
            "start": "202503011200",
            "end": "202503011800",
            "minSpeed": 0.0,
        }

    def test_min_speed_filter(self, client):
        client.post.return_value = _response(200, {"positions": [
            {"mmsi": "1", "timestamp": "2025-03-01T12:00:00Z", "lat": 70, "lon": 20, "speed": 0.3},
            {"mmsi": "2", "timestamp": "2025-03-01T12:00:00Z", "lat": 70, "lon": 20, "speed": 5.0},
        ]})
        positions = fetch_positions(BBOX, START, END, min_speed=1.0, base_url=BASE)
        assert [p.mmsi for p in positions] == ["2"]

    def test_http_error_returns_empty(self, client):
        client.post.return_value = _response(400, {"error": "bad bbox"})
        assert fetch_positions(BBOX, START, END, base_url=BASE) == []

    def test_retries_then_succeeds(self, client):
        client.post.side_effect = [
            _response(503),
            _response(200, [[1, "2025-03-01T12:00:00Z", 20.0, 70.0, 0, 3.0]]),
        ]
        assert len(fetch_positions(BBOX, START, END, base_url=BASE)) == 1
        assert client.post.call_count == 2

    def test_network_error_returns_empty(self, client):
        client.post.side_effect = httpx.ConnectError("unreachable")
        assert fetch_positions(BBOX, START, END, base_url=BASE) == []

    def test_non_json_returns_empty(self, client):
        client.post.return_value = httpx.Response(
            200, text="<html>", request=httpx.Request("POST", f"{BASE}/x"),
        )
        assert fetch_positions(BBOX, START, END, base_url=BASE) == []


class TestFetchStaticInfo:
    def test_maps_snapshot(self, client):
        client.get.return_value = _response(200, [{"shipTypeText": "Tanker", "length": 250}], "GET")
        info = fetch_static_info("257000001", END, base_url=BASE)

        assert info.mmsi == "257000001"
        assert info.ship_type == "Tanker"
        assert info.length == 250.0
        args, kwargs = client.get.call_args
        assert args[0] == f"{BASE}/statinfo/for-mmsis-time"
        assert kwargs["params"] == {"mmsis": "257000001", "time": "202503011800"}

    def test_not_found_is_none(self, client):
        client.get.return_value = _response(404, None, "GET")
        assert fetch_static_info("257000001", END, base_url=BASE) is None

    def test_server_error_is_none(self, client):
        client.get.return_value = _response(500, None, "GET")
        assert fetch_static_info("257000001", END, base_url=BASE) is None

    def test_lookup_callable(self, client):
        client.get.return_value = _response(200, {"name": "A"}, "GET")
        lookup = static_lookup_at(END, base_url=BASE)
        assert lookup("257000001").name == "A"
