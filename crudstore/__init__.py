"""crudstore — uniform CRUD service over an embedded document store.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Empty __init__.py: explicit imports only, no star exports
      (entry points: crudstore.services.record_service, crudstore.main)
"""
