"""Shared pytest fixtures."""
import pytest

from builders import stationary_track, transit_track


@pytest.fixture
def transit_positions():
    """Seven-point northbound track at 12 kn."""
    return transit_track()


@pytest.fixture
def stationary_positions():
    """Five-point track holding position for two hours."""
    return stationary_track()
