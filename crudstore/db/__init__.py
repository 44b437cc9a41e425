"""Database Infrastructure — SQLAlchemy declarative Base.

Invariants:
    - All sessions are async (AsyncSession)

Design Decisions:
    - aiosqlite driver by default: the store is embedded, no server process
"""
