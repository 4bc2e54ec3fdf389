"""Delivery ORM — one row per courier attempt at an order.

Invariants:
    - delivery_type is a snapshot of the courier's vehicle at creation
    - completion_status and end_time are written together
"""

from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from courier_dispatch.db.base import Base


class DeliveryRow(Base):
    __tablename__ = "deliveries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    courier_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    delivery_type: Mapped[str] = mapped_column(String(20), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    completion_status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    actual_distance: Mapped[float | None] = mapped_column(Float, nullable=True)
