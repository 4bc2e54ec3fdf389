"""Core Layer — pure dispatch rules: entities, status derivation, transition checks.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, db/ or models/
    - No IO, no threads, no wall clock: `now` and random rolls are always passed in
"""
