"""Admin Schemas — clock, config and simulator contracts.

Invariants:
    - Durations travel as whole minutes on the wire
    - ConfigBody.to_config() merges over the current config: absent fields keep
      their value, so a partial PUT never resets unrelated settings
"""

from dataclasses import replace
from datetime import datetime, timedelta

from pydantic import BaseModel, Field

from courier_dispatch.core.domain_types import TimeUnit
from courier_dispatch.core.system_config import SystemConfig
from courier_dispatch.services.simulation_engine import TickReport


class ClockResponse(BaseModel):
    clock: datetime


class ForwardClockRequest(BaseModel):
    amount: int = Field(ge=0, le=100_000)
    unit: TimeUnit = TimeUnit.MINUTE


class ConfigBody(BaseModel):
    car_speed: float | None = Field(None, ge=0)
    motorcycle_speed: float | None = Field(None, ge=0)
    bicycle_speed: float | None = Field(None, ge=0)
    on_foot_speed: float | None = Field(None, ge=0)
    max_delivery_minutes: int | None = Field(None, gt=0)
    risk_range_minutes: int | None = Field(None, ge=0)
    inactivity_range_days: int | None = Field(None, gt=0)
    simulator_interval_minutes: int | None = Field(None, ge=1)
    max_delivery_distance: float | None = Field(None, ge=0)
    company_address: str | None = Field(None, max_length=300)
    company_latitude: float | None = Field(None, ge=-90, le=90)
    company_longitude: float | None = Field(None, ge=-180, le=180)

    def to_config(self, current: SystemConfig) -> SystemConfig:
        given = self.model_dump(exclude_unset=True)
        changes = {}
        for key, value in given.items():
            if key == "max_delivery_minutes":
                changes["max_delivery_time"] = timedelta(minutes=value)
            elif key == "risk_range_minutes":
                changes["risk_range"] = timedelta(minutes=value)
            elif key == "inactivity_range_days":
                changes["inactivity_range"] = timedelta(days=value)
            else:
                changes[key] = value
        return replace(current, **changes)


class ConfigResponse(BaseModel):
    clock: datetime
    car_speed: float
    motorcycle_speed: float
    bicycle_speed: float
    on_foot_speed: float
    max_delivery_minutes: float
    risk_range_minutes: float
    inactivity_range_days: float
    simulator_interval_minutes: int
    max_delivery_distance: float | None
    company_address: str | None
    company_latitude: float | None
    company_longitude: float | None

    @classmethod
    def from_config(cls, config: SystemConfig) -> "ConfigResponse":
        return cls(
            clock=config.clock,
            car_speed=config.car_speed,
            motorcycle_speed=config.motorcycle_speed,
            bicycle_speed=config.bicycle_speed,
            on_foot_speed=config.on_foot_speed,
            max_delivery_minutes=config.max_delivery_time.total_seconds() / 60,
            risk_range_minutes=config.risk_range.total_seconds() / 60,
            inactivity_range_days=config.inactivity_range.total_seconds() / 86400,
            simulator_interval_minutes=config.simulator_interval_minutes,
            max_delivery_distance=config.max_delivery_distance,
            company_address=config.company_address,
            company_latitude=config.company_latitude,
            company_longitude=config.company_longitude,
        )


class ConfigUpdateResponse(BaseModel):
    changed: list[str]
    config: ConfigResponse


class SimulatorStartRequest(BaseModel):
    interval_minutes: int | None = Field(None, ge=1)


class SimulatorStatusResponse(BaseModel):
    running: bool
    clock: datetime
    interval_minutes: int


class TickReportResponse(BaseModel):
    skipped: bool
    clock: datetime | None
    assigned: list[tuple[int, int]]
    picked_up: list[int]
    delivered: list[int]
    refused: list[int]
    cancelled: list[int]
    cooling_down: list[int]
    deactivated: list[int]
    expired: list[int]
    errors: int

    @classmethod
    def from_report(cls, report: TickReport) -> "TickReportResponse":
        return cls(
            skipped=report.skipped,
            clock=report.clock,
            assigned=report.assigned,
            picked_up=report.picked_up,
            delivered=report.delivered,
            refused=report.refused,
            cancelled=report.cancelled,
            cooling_down=report.cooling_down,
            deactivated=report.deactivated,
            expired=report.expired,
            errors=report.errors,
        )
