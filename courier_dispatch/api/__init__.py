"""API Layer — FastAPI routes over the dispatch services, plus error handlers.

Invariants:
    - Routes registered explicitly in main.py
    - Routes hold no business rules: each one calls a single service operation
"""
