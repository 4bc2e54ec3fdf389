"""ORM Models — SQLAlchemy declarative models for orders, couriers, deliveries, config.

Invariants:
    - All models inherit from Base (db/base.py)
    - Rows hold source fields only; no derived status column exists anywhere

Design Decisions:
    - One file per entity for locality
    - No foreign keys from deliveries to couriers: delivery history outlives a
      deleted courier and is read with an "Unknown" placeholder
"""

from courier_dispatch.models.order import OrderRow  # noqa: F401
from courier_dispatch.models.courier import CourierRow  # noqa: F401
from courier_dispatch.models.delivery import DeliveryRow  # noqa: F401
from courier_dispatch.models.system_config import SystemConfigRow  # noqa: F401
