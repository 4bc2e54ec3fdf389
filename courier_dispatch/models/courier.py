"""Courier ORM — persists courier identity, contact, vehicle and location.

Invariants:
    - id is the natural key supplied by the caller (no autoincrement)
    - is_active is the only stored status input; CourierStatus is derived
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from courier_dispatch.db.base import Base


class CourierRow(Base):
    __tablename__ = "couriers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    max_delivery_distance: Mapped[float | None] = mapped_column(Float, nullable=True)
    delivery_type: Mapped[str] = mapped_column(String(20), nullable=False)
    start_working_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
