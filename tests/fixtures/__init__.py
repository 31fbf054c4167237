"""Test fixtures package."""

from .sample_data import (
    SAMPLE_REFUEL_DATA,
    SCENARIO_A,
    SCENARIO_B,
    create_refuels,
)

__all__ = [
    "SAMPLE_REFUEL_DATA",
    "SCENARIO_A",
    "SCENARIO_B",
    "create_refuels",
]
