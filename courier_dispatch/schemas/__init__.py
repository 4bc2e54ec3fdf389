"""Pydantic Schemas — request/response contracts for the dispatch API.

Invariants:
    - Request schemas validate shape and ranges; business rules stay in core/
    - Response schemas are built from snapshots, so every derived status is fresh
    - Domain enums from core/domain_types.py are used directly as field types
"""
