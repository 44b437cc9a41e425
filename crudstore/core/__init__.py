"""Core Layer — pure record/query logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, infrastructure/, db/ or models/
    - All functions are pure and deterministic (clock and randomness injected
      at the call sites that need them)

Design Decisions:
    - Functional core separated from imperative shell: the service engine
      awaits the store, core decides what to ask it
"""
