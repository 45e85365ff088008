"""Trajectory metrics engine.

Turns one vessel's AIS position reports into aggregate motion statistics:
distance travelled, speed profile, heading dispersion and dwell ratio.

Algorithm:
  1. Load positions into a Polars DataFrame with an input-order index.
  2. Sort by (timestamp, index) so equal timestamps keep input order.
  3. Sum haversine legs over consecutive sorted points.
  4. Speed mean / max / population std-dev and dwell ratio via Polars.
  5. Circular std-dev of headings when at least two are reported.

Rounding (presentation only, computation is full precision):
  distance 3 dp, speed stats and heading std-dev 2 dp, dwell ratio 3 dp.
"""
from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

import polars as pl

from polarwatch.config import settings
from polarwatch.schemas.analysis import TrajectoryMetrics
from polarwatch.schemas.position import PositionReport
from polarwatch.utils.geo import distance_nm

logger = logging.getLogger(__name__)

# ── Constants ──────────────────────────────────────────────────────────────────

# Heading std-dev reported when headings cancel out (mean resultant length ~ 0).
# sqrt(-2 ln R) diverges as R -> 0, so every result is capped at this value.
CIRCULAR_STD_CAP_DEG: float = 360.0

# Resultant lengths at or below this are treated as fully dispersed
_MIN_RESULTANT_LENGTH: float = 1e-12


# ── Helpers ────────────────────────────────────────────────────────────────────

def sort_positions(positions: Sequence[PositionReport]) -> list[PositionReport]:
    """Return positions ascending by timestamp; ties keep input order."""
    if not positions:
        return []
    df = pl.DataFrame(
        {
            "idx": list(range(len(positions))),
            "ts": [p.timestamp.timestamp() for p in positions],
        },
        schema={"idx": pl.Int64, "ts": pl.Float64},
    )
    order = df.sort(["ts", "idx"])["idx"].to_list()
    return [positions[i] for i in order]


def circular_std_deg(headings: Sequence[float]) -> float:
    """Circular standard deviation of headings in degrees.

    Returns CIRCULAR_STD_CAP_DEG when the headings cancel out.
    """
    n = len(headings)
    rad = [math.radians(h) for h in headings]
    sum_sin = sum(math.sin(r) for r in rad)
    sum_cos = sum(math.cos(r) for r in rad)
    resultant = math.hypot(sum_sin, sum_cos) / n
    if resultant <= _MIN_RESULTANT_LENGTH:
        return CIRCULAR_STD_CAP_DEG
    resultant = min(resultant, 1.0)
    circ_std = math.degrees(math.sqrt(max(0.0, -2.0 * math.log(resultant))))
    return min(circ_std, CIRCULAR_STD_CAP_DEG)


def _track_distance_nm(ordered: Sequence[PositionReport]) -> float:
    total = 0.0
    for prev, cur in zip(ordered, ordered[1:]):
        total += distance_nm(prev.latitude, prev.longitude, cur.latitude, cur.longitude)
    return total


# ── Main entry point ───────────────────────────────────────────────────────────

def compute_trajectory_metrics(
    mmsi: str,
    positions: Sequence[PositionReport],
    dwell_speed_threshold: Optional[float] = None,
) -> TrajectoryMetrics:
    """Compute aggregate motion statistics for one vessel.

    Args:
        mmsi: Vessel identity the positions belong to.
        positions: Position reports in any order; may be empty.
        dwell_speed_threshold: Speed (kn) below which a sample counts as
            dwelling. Defaults to settings.DWELL_SPEED_THRESHOLD_KN.

    Returns:
        TrajectoryMetrics. Empty input yields the zero-valued metrics with
        epoch start/end times.
    """
    if not positions:
        return TrajectoryMetrics(mmsi=mmsi)

    threshold = (
        settings.DWELL_SPEED_THRESHOLD_KN
        if dwell_speed_threshold is None
        else dwell_speed_threshold
    )
    ordered = sort_positions(positions)

    speeds = pl.DataFrame({"speed": [float(p.speed) for p in ordered]}, schema={"speed": pl.Float64})
    stats = speeds.select(
        pl.col("speed").mean().alias("avg_speed"),
        pl.col("speed").max().alias("max_speed"),
        pl.col("speed").std(ddof=0).alias("speed_std_dev"),
        (pl.col("speed") < threshold).cast(pl.Float64).mean().alias("dwell_ratio"),
    ).row(0, named=True)

    headings = [p.heading for p in ordered if p.heading is not None]
    heading_std: Optional[float] = None
    if len(headings) > 1:
        heading_std = round(circular_std_deg(headings), 2)

    start_time = ordered[0].timestamp
    end_time = ordered[-1].timestamp
    duration_hours = (end_time - start_time).total_seconds() / 3600.0

    metrics = TrajectoryMetrics(
        mmsi=mmsi,
        point_count=len(ordered),
        start_time=start_time,
        end_time=end_time,
        duration_hours=duration_hours,
        total_distance_nm=round(_track_distance_nm(ordered), 3),
        avg_speed=round(stats["avg_speed"], 2),
        max_speed=round(stats["max_speed"], 2),
        speed_std_dev=round(stats["speed_std_dev"] or 0.0, 2),
        heading_std_dev=heading_std,
        dwell_ratio=round(stats["dwell_ratio"], 3),
    )
    logger.debug(
        "MMSI %s: %d points, %.3f nm over %.2f h",
        mmsi, metrics.point_count, metrics.total_distance_nm, duration_hours,
    )
    return metrics
