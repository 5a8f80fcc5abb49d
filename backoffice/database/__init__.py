from backoffice.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from backoffice.database.engine import async_session, engine
from backoffice.database.session import get_db

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "async_session",
    "engine",
    "get_db",
]
