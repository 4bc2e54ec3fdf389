"""Admin Service — clock, config, on-demand ticks and observer plumbing."""

from dataclasses import replace
from datetime import timedelta

import pytest

from courier_dispatch.core.domain_types import CourierStatus, TimeUnit
from courier_dispatch.core.errors import InvalidValueError

from tests.support import CLOCK


def test_forward_clock_in_hours(system):
    assert system.admin.forward_clock(3, TimeUnit.HOUR) == CLOCK + timedelta(hours=3)
    assert system.admin.get_clock() == CLOCK + timedelta(hours=3)


def test_forward_clock_sweeps_inactive_couriers(system, make_courier):
    courier = system.couriers.create(make_courier())
    system.admin.forward_clock(2, TimeUnit.MONTH)
    assert system.couriers.status_of(courier.id) is CourierStatus.INACTIVE


def test_set_config_returns_changed_fields(system):
    config = replace(system.admin.get_config(), car_speed=40.0, on_foot_speed=5.0)
    assert sorted(system.admin.set_config(config)) == ["car_speed", "on_foot_speed"]


def test_start_simulator_sets_interval_first(system, ctx):
    system.admin.start_simulator(interval_minutes=5)
    assert ctx.config.get("simulator_interval_minutes") == 5
    system.admin.stop_simulator()


def test_start_simulator_rejects_zero_interval(system):
    with pytest.raises(InvalidValueError):
        system.admin.start_simulator(interval_minutes=0)
    assert not system.admin.simulator_running


def test_run_simulation_tick_forwards_one_interval(system):
    report = system.admin.run_simulation_tick()
    assert not report.skipped
    assert report.clock == CLOCK + timedelta(minutes=1)


def test_clock_and_config_observers(system):
    clock_calls, config_calls = [], []

    def on_clock():
        clock_calls.append(system.admin.get_clock())

    def on_config():
        config_calls.append(1)

    system.admin.add_clock_observer(on_clock)
    system.admin.add_config_observer(on_config)
    system.admin.forward_clock(10)
    system.admin.set_config(replace(system.admin.get_config(), car_speed=55.0))

    system.admin.remove_clock_observer(on_clock)
    system.admin.remove_config_observer(on_config)
    system.admin.forward_clock(10)
    system.admin.set_config(replace(system.admin.get_config(), car_speed=60.0))

    assert clock_calls == [CLOCK + timedelta(minutes=10)]
    assert config_calls == [1]
