"""Infrastructure Layer — stores, HTTP clients and cross-cutting primitives.

Invariants:
    - Store failures surface as StoreError; services translate them
    - Network calls are bounded by timeouts and degrade instead of failing
"""
