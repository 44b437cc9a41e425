"""Services Layer — the async record service engine.

Invariants:
    - Services orchestrate store calls; decisions are delegated to core/
    - Every store call is awaited in sequence (no fan-out)
"""
