"""ORM Models — SQLAlchemy declarative models backing the reference store.

Design Decisions:
    - All models imported here so Base.metadata is complete before
      create_all runs
"""

from crudstore.models.document import StoredDocument  # noqa: F401
