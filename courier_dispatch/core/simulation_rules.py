"""Simulation Rules — pure probability and timing rules behind one simulation tick.

Invariants:
    - All functions are PURE: randomness enters only as pre-drawn rolls in [0, 1)
    - Outcome split probabilities sum to 1.0 (checked by SimulationTuning)
    - A courier never finishes an order faster than the physical travel time

Design Decisions:
    - Rolls passed in (not a Random instance): rules are testable with literal
      numbers, and simulation_engine.py owns the RNG
    - Tuning values are demo knobs, exposed through Settings
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from courier_dispatch.core.entities import Delivery


class SimulatedOutcome(str, Enum):
    DELIVER = "deliver"
    REFUSE = "refuse"
    CANCEL = "cancel"


@dataclass(frozen=True)
class SimulationTuning:
    failure_rate_per_minute: float = 0.40
    assign_probability: float = 0.5
    deliver_probability: float = 0.90
    refuse_probability: float = 0.05
    cancel_probability: float = 0.05
    manager_cancel_probability: float = 0.01
    min_buffer_minutes: int = 5
    max_buffer_minutes: int = 20

    def __post_init__(self):
        total = (
            self.deliver_probability + self.refuse_probability
            + self.cancel_probability
        )
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"outcome probabilities must sum to 1.0, got {total}")
        if not 0.0 <= self.failure_rate_per_minute <= 1.0:
            raise ValueError("failure_rate_per_minute must be within [0, 1]")
        if self.min_buffer_minutes > self.max_buffer_minutes:
            raise ValueError("min_buffer_minutes exceeds max_buffer_minutes")


def assignment_success_probability(
    failure_rate_per_minute: float, interval_minutes: int,
) -> float:
    """Chance an idle courier finds work within one tick interval."""
    return 1.0 - failure_rate_per_minute ** max(1, interval_minutes)


def is_cooling_down(last_closed: Delivery | None, now: datetime) -> bool:
    """Rest equals the duration of the courier's most recently completed delivery."""
    if last_closed is None or last_closed.end_time is None:
        return False
    rest = last_closed.end_time - last_closed.start_time
    return now < last_closed.end_time + rest


def completion_threshold(travel: timedelta, buffer_minutes: int) -> timedelta:
    return travel + timedelta(minutes=buffer_minutes)


def pick_outcome(tuning: SimulationTuning, roll: float) -> SimulatedOutcome:
    if roll < tuning.deliver_probability:
        return SimulatedOutcome.DELIVER
    if roll < tuning.deliver_probability + tuning.refuse_probability:
        return SimulatedOutcome.REFUSE
    return SimulatedOutcome.CANCEL
