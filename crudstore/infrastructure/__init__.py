"""Infrastructure Layer — database sessions, reference document store, logging.

Invariants:
    - All SQLAlchemy exceptions leave this layer as DatabaseError
    - Infrastructure depends on core/ contracts, never on services/
"""
