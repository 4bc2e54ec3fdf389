"""Initial schema — orders, couriers, deliveries, system_config.

Revision ID: 001_initial
Revises: None
Create Date: 2025-01-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "couriers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False, server_default=""),
        sa.Column("email", sa.String(200), nullable=False, server_default=""),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("max_delivery_distance", sa.Float, nullable=True),
        sa.Column("delivery_type", sa.String(20), nullable=False),
        sa.Column("start_working_date", sa.DateTime, nullable=False),
        sa.Column("latitude", sa.Float, nullable=False),
        sa.Column("longitude", sa.Float, nullable=False),
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("order_type", sa.String(20), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("address", sa.String(300), nullable=False),
        sa.Column("latitude", sa.Float, nullable=False),
        sa.Column("longitude", sa.Float, nullable=False),
        sa.Column("customer_name", sa.String(120), nullable=False),
        sa.Column("customer_phone", sa.String(20), nullable=False, server_default=""),
        sa.Column("weight", sa.Float, nullable=False),
        sa.Column("volume", sa.Float, nullable=False, server_default="0"),
        sa.Column("is_fragile", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("courier_id", sa.Integer, nullable=True),
        sa.Column("courier_associated_date", sa.DateTime, nullable=True),
        sa.Column("pickup_date", sa.DateTime, nullable=True),
        sa.Column("delivery_date", sa.DateTime, nullable=True),
    )
    op.create_index("ix_orders_courier_id", "orders", ["courier_id"])

    op.create_table(
        "deliveries",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("order_id", sa.Integer, nullable=False),
        sa.Column("courier_id", sa.Integer, nullable=False),
        sa.Column("delivery_type", sa.String(20), nullable=False),
        sa.Column("start_time", sa.DateTime, nullable=False),
        sa.Column("completion_status", sa.String(30), nullable=True),
        sa.Column("end_time", sa.DateTime, nullable=True),
        sa.Column("actual_distance", sa.Float, nullable=True),
    )
    op.create_index("ix_deliveries_order_id", "deliveries", ["order_id"])
    op.create_index("ix_deliveries_courier_id", "deliveries", ["courier_id"])

    op.create_table(
        "system_config",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("clock", sa.DateTime, nullable=False),
        sa.Column("car_speed", sa.Float, nullable=False),
        sa.Column("motorcycle_speed", sa.Float, nullable=False),
        sa.Column("bicycle_speed", sa.Float, nullable=False),
        sa.Column("on_foot_speed", sa.Float, nullable=False),
        sa.Column("max_delivery_minutes", sa.Integer, nullable=False),
        sa.Column("risk_range_minutes", sa.Integer, nullable=False),
        sa.Column("inactivity_range_minutes", sa.Integer, nullable=False),
        sa.Column("simulator_interval_minutes", sa.Integer, nullable=False),
        sa.Column("max_delivery_distance", sa.Float, nullable=True),
        sa.Column("company_address", sa.String(300), nullable=True),
        sa.Column("company_latitude", sa.Float, nullable=True),
        sa.Column("company_longitude", sa.Float, nullable=True),
    )


def downgrade() -> None:
    op.drop_table("system_config")
    op.drop_index("ix_deliveries_courier_id", table_name="deliveries")
    op.drop_index("ix_deliveries_order_id", table_name="deliveries")
    op.drop_table("deliveries")
    op.drop_index("ix_orders_courier_id", table_name="orders")
    op.drop_table("orders")
    op.drop_table("couriers")
