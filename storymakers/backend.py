"""
Backend client and its accessor.

`BackendClient` bundles the database engine, a session factory and the object
store. `BackendAccessor` builds exactly one client per process on first use
and hands the same instance to every caller; construction failures are logged
and reported as None so pages can degrade to a message.
"""
import logging
from typing import Optional

from sqlalchemy import event
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from .config import Settings
from .errors import ConfigurationError
from .models import Base
from .storage import build_storage

logger = logging.getLogger(__name__)


class BackendClient:
    def __init__(self, engine, storage, settings: Settings):
        self.engine = engine
        self.storage = storage
        self.settings = settings
        self.session_factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def create_schema(self):
        """Create missing tables; migrations are the normal path, this is for dev and tests"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self):
        await self.engine.dispose()


def _emit_explicit_begin(engine):
    # sqlite drivers defer BEGIN until the first write, which breaks SAVEPOINT
    @event.listens_for(engine.sync_engine, 'connect')
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, 'begin')
    def _on_begin(conn):
        conn.exec_driver_sql('BEGIN')


def build_client(settings: Settings) -> BackendClient:
    problems = settings.problems()
    if problems:
        raise ConfigurationError('; '.join(problems))
    try:
        engine = create_async_engine(settings.database_url, future=True, echo=False)
    except (ArgumentError, ImportError) as e:
        # unknown dialect or the async driver package is not installed
        raise ConfigurationError(f'Database driver unavailable: {e}')
    if engine.dialect.name == 'sqlite':
        _emit_explicit_begin(engine)
    return BackendClient(engine, build_storage(settings), settings)


class BackendAccessor:
    """Lazily builds and memoizes the single BackendClient"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings.from_env()
        self._client: Optional[BackendClient] = None

    def get(self) -> Optional[BackendClient]:
        if self._client is None:
            try:
                self._client = build_client(self.settings)
            except ConfigurationError as e:
                logger.error(f'Backend client not initialized: {e}')
                return None
            logger.info('Backend client initialized')
        return self._client

    async def close(self):
        if self._client is not None:
            await self._client.dispose()
            self._client = None
