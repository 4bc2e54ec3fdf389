"""Database Infrastructure — sync engine/session factory and SQLAlchemy Base.

Invariants:
    - One engine per SqlStore (created from settings.database_url)
    - All sessions are synchronous: store calls run inside the dispatch lock
"""
