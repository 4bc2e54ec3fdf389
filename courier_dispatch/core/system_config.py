"""System Config — the virtual clock plus tunable dispatch parameters.

Invariants:
    - SystemConfig is immutable; ConfigStore swaps whole values under its lock
    - diff_config() returns only fields whose values actually differ
    - advance_clock() never moves backwards and clamps month/year overflow to
      the last valid day (Jan 31 + 1 month -> Feb 28/29)

Design Decisions:
    - Pure value + pure helpers here, locking and notification in services/config_store.py
    - Durations stored as timedelta: arithmetic against the clock needs no unit juggling
"""

import calendar
from dataclasses import dataclass, fields
from datetime import datetime, timedelta

from courier_dispatch.core.domain_types import TimeUnit


DEFAULT_CLOCK = datetime(2025, 1, 1, 8, 0)


@dataclass(frozen=True)
class SystemConfig:
    """Process-wide dispatch configuration. Speeds in km/h, distances in km."""
    clock: datetime = DEFAULT_CLOCK
    car_speed: float = 30.0
    motorcycle_speed: float = 35.0
    bicycle_speed: float = 15.0
    on_foot_speed: float = 4.0
    max_delivery_time: timedelta = timedelta(hours=2)
    risk_range: timedelta = timedelta(minutes=90)
    inactivity_range: timedelta = timedelta(days=30)
    simulator_interval_minutes: int = 1
    max_delivery_distance: float | None = 50.0
    company_address: str | None = None
    company_latitude: float | None = None
    company_longitude: float | None = None

    @property
    def has_company_location(self) -> bool:
        return self.company_latitude is not None and self.company_longitude is not None


CONFIG_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(SystemConfig))


def diff_config(old: SystemConfig, new: SystemConfig) -> list[str]:
    """Names of fields whose values differ between two configs."""
    return [
        name for name in CONFIG_FIELDS
        if getattr(old, name) != getattr(new, name)
    ]


def validate_config(config: SystemConfig) -> str | None:
    """Return an error message for an unusable config, or None. Pure."""
    for name in ("car_speed", "motorcycle_speed", "bicycle_speed", "on_foot_speed"):
        if getattr(config, name) < 0:
            return f"{name} must not be negative"
    if config.max_delivery_time <= timedelta(0):
        return "max_delivery_time must be positive"
    if config.risk_range < timedelta(0):
        return "risk_range must not be negative"
    if config.risk_range > config.max_delivery_time:
        return "risk_range must not exceed max_delivery_time"
    if config.inactivity_range <= timedelta(0):
        return "inactivity_range must be positive"
    if config.simulator_interval_minutes < 1:
        return "simulator_interval_minutes must be at least 1"
    if config.max_delivery_distance is not None and config.max_delivery_distance < 0:
        return "max_delivery_distance must not be negative"
    if config.company_latitude is not None and not -90 <= config.company_latitude <= 90:
        return "company_latitude out of range"
    if config.company_longitude is not None and not -180 <= config.company_longitude <= 180:
        return "company_longitude out of range"
    return None


def _add_months(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def advance_clock(clock: datetime, amount: int, unit: TimeUnit) -> datetime:
    """Move the clock forward by amount units. Negative amounts are rejected."""
    if amount < 0:
        raise ValueError("clock can only move forward")
    unit = TimeUnit(unit)
    if unit is TimeUnit.MINUTE:
        return clock + timedelta(minutes=amount)
    if unit is TimeUnit.HOUR:
        return clock + timedelta(hours=amount)
    if unit is TimeUnit.DAY:
        return clock + timedelta(days=amount)
    if unit is TimeUnit.MONTH:
        return _add_months(clock, amount)
    return _add_months(clock, amount * 12)
