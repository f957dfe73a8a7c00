"""Database infrastructure — engine, ORM models, and repositories."""

from marketplace_escrow.infrastructure.database.engine import (
    close_db,
    get_async_session,
    init_db,
)
from marketplace_escrow.infrastructure.database.orm_models import (
    Base,
    ItemRow,
    StateChangedRow,
)
from marketplace_escrow.infrastructure.database.repositories import (
    EventRepository,
    ItemRepository,
)

__all__ = [
    "Base",
    "ItemRow",
    "StateChangedRow",
    "EventRepository",
    "ItemRepository",
    "get_async_session",
    "init_db",
    "close_db",
]
