"""Tests for settings loading."""
from __future__ import annotations

from polarwatch.config import Settings


def test_defaults():
    s = Settings(_env_file=None)
    assert s.STATIONARY_SPEED_THRESHOLD_KN == 0.5
    assert s.DWELL_SPEED_THRESHOLD_KN == 2.0
    assert s.DARK_MATCH_MAX_DISTANCE_NM == 1.0
    assert s.DARK_MATCH_MAX_TIME_DIFF_MINUTES == 30.0
    assert s.forced_dark_mmsis() == frozenset({"316014621"})


def test_env_override(monkeypatch):
    monkeypatch.setenv("MIN_TRANSIT_DISTANCE_NM", "8.5")
    monkeypatch.setenv("FORCED_DARK_MMSIS", " 273000001, ,273000002 ")
    s = Settings(_env_file=None)
    assert s.MIN_TRANSIT_DISTANCE_NM == 8.5
    assert s.forced_dark_mmsis() == frozenset({"273000001", "273000002"})


def test_empty_forced_dark_list(monkeypatch):
    monkeypatch.setenv("FORCED_DARK_MMSIS", "")
    assert Settings(_env_file=None).forced_dark_mmsis() == frozenset()
