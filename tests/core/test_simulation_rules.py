"""Tests for simulation rules — probabilities, cool-down and outcome split."""

from datetime import timedelta

import pytest

from courier_dispatch.core.domain_types import DeliveryId, DeliveryStatus, DeliveryType
from courier_dispatch.core.entities import Delivery
from courier_dispatch.core.simulation_rules import (
    SimulatedOutcome, SimulationTuning, assignment_success_probability,
    completion_threshold, is_cooling_down, pick_outcome,
)

from tests.support import CLOCK


def _closed(minutes: int) -> Delivery:
    return Delivery(
        id=DeliveryId(1), order_id=1, courier_id=5, delivery_type=DeliveryType.CAR,
        start_time=CLOCK, completion_status=DeliveryStatus.COMPLETED,
        end_time=CLOCK + timedelta(minutes=minutes),
    )


def test_default_tuning_is_valid():
    tuning = SimulationTuning()
    assert tuning.deliver_probability + tuning.refuse_probability + tuning.cancel_probability == pytest.approx(1.0)


def test_outcome_split_must_sum_to_one():
    with pytest.raises(ValueError):
        SimulationTuning(deliver_probability=0.5)


def test_buffer_bounds_must_be_ordered():
    with pytest.raises(ValueError):
        SimulationTuning(min_buffer_minutes=30, max_buffer_minutes=10)


@pytest.mark.parametrize(("interval", "expected"), [
    (1, 0.60),
    (2, 0.84),
    (0, 0.60),
])
def test_assignment_success_grows_with_interval(interval, expected):
    assert assignment_success_probability(0.40, interval) == pytest.approx(expected)


def test_no_cool_down_without_history():
    assert not is_cooling_down(None, CLOCK)


def test_cool_down_lasts_as_long_as_last_delivery():
    last = _closed(20)
    assert is_cooling_down(last, CLOCK + timedelta(minutes=39))
    assert not is_cooling_down(last, CLOCK + timedelta(minutes=40))


def test_completion_threshold_adds_buffer():
    assert completion_threshold(timedelta(minutes=6), 5) == timedelta(minutes=11)


@pytest.mark.parametrize(("roll", "expected"), [
    (0.0, SimulatedOutcome.DELIVER),
    (0.899, SimulatedOutcome.DELIVER),
    (0.90, SimulatedOutcome.REFUSE),
    (0.949, SimulatedOutcome.REFUSE),
    (0.951, SimulatedOutcome.CANCEL),
    (0.999, SimulatedOutcome.CANCEL),
])
def test_pick_outcome_follows_split(roll, expected):
    assert pick_outcome(SimulationTuning(), roll) is expected
