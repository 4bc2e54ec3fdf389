"""System Config ORM — the single configuration row (id = 1).

Durations are stored in whole minutes.
"""

from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from courier_dispatch.db.base import Base


class SystemConfigRow(Base):
    __tablename__ = "system_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    clock: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    car_speed: Mapped[float] = mapped_column(Float, nullable=False)
    motorcycle_speed: Mapped[float] = mapped_column(Float, nullable=False)
    bicycle_speed: Mapped[float] = mapped_column(Float, nullable=False)
    on_foot_speed: Mapped[float] = mapped_column(Float, nullable=False)
    max_delivery_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    risk_range_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    inactivity_range_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    simulator_interval_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    max_delivery_distance: Mapped[float | None] = mapped_column(Float, nullable=True)
    company_address: Mapped[str | None] = mapped_column(String(300), nullable=True)
    company_latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    company_longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
