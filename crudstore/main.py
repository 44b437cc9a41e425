"""Bootstrap — wires settings, logging, database and store into a RecordService.

Invariants:
    - Explicit call, never run at import time
    - The session manager is initialized once per process (init_db); later
      calls reuse it
    - Per-call options win over process settings (e.g. paginate)

Design Decisions:
    - Async because schema creation needs the engine: callers already run
      inside an event loop
"""

import logging
from typing import Any

from crudstore.config import Settings, get_settings
from crudstore.infrastructure import database as db_module
from crudstore.infrastructure.document_store import SqlDocumentStore
from crudstore.infrastructure.observability import setup_logging
from crudstore.services.record_service import RecordService

logger = logging.getLogger(__name__)


async def build_service(
    collection: str, settings: Settings | None = None, **options: Any,
) -> RecordService:
    """Build a RecordService over the `collection` of the configured database."""
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_format)

    manager = db_module.db_manager
    if manager is None:
        manager = db_module.init_db(settings.database_url, echo=settings.database_echo)
        await manager.create_schema()

    store = SqlDocumentStore(manager, collection, schema=options.pop("schema", None))
    options.setdefault("paginate", {
        "default": settings.paginate_default, "max": settings.paginate_max,
    })
    service = RecordService({"model": store, **options})
    logger.info(
        "Service ready for collection %s", collection,
        extra={"collection": collection, "id_field": service.id_field},
    )
    return service
