"""Courier Dispatch — virtual-clock delivery dispatch engine.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
