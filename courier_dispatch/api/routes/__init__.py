"""Route Modules — one file per resource (health, orders, couriers, admin).

Invariants:
    - Each module defines its own APIRouter with prefix and tags
    - The DispatchSystem is obtained via api/dependencies.py, never imported globally
"""
