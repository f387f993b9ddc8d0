import asyncio
import enum
import logging
import os
from typing import Awaitable, Callable, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import declarative_base

from .config import Configuration, ConnectionSettings
from .errors import ConfigIncomplete, ConnectionFailed

logger = logging.getLogger(__name__)

Base = declarative_base()


class PoolState(enum.Enum):
    ABSENT = "absent"
    IN_FLIGHT = "in_flight"
    ESTABLISHED = "established"


def build_url(settings: ConnectionSettings) -> URL:
    return URL.create(
        "mssql+aioodbc",
        username=settings.user,
        password=settings.password,
        host=settings.server,
        database=settings.database,
        query={
            "driver": settings.driver,
            "Encrypt": "yes" if settings.encrypt else "no",
            "TrustServerCertificate": "yes" if settings.trust_server_certificate else "no",
        },
    )


async def connect(settings: ConnectionSettings) -> AsyncEngine:
    """Create the engine and make sure the server actually answers."""
    engine = create_async_engine(build_url(settings), pool_pre_ping=True)
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        await engine.dispose()
        raise
    return engine


def _mark_retrieved(task: asyncio.Future) -> None:
    # Every waiter may have been cancelled; read the error so asyncio
    # does not report it as never retrieved
    if not task.cancelled():
        task.exception()


class PoolManager:
    """
    Owns the single shared database pool.

    The pool is created on the first get_pool() call, not at construction,
    so secrets can be published into the configuration first. The pending
    connect task is stored before anything is awaited: callers that arrive
    while it runs wait on that same task instead of opening a second pool.
    A failed attempt puts the manager back to ABSENT and the next call
    starts over.

    Everything that talks to the database goes through get_pool(); nobody
    else should hold on to the engine.
    """

    def __init__(
        self,
        configuration: Configuration,
        connect: Callable[[ConnectionSettings], Awaitable[AsyncEngine]] = connect,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self._configuration = configuration
        self._connect = connect
        self._environ = os.environ if environ is None else environ
        self._pool = None
        self._pending: Optional[asyncio.Future] = None

    @property
    def state(self) -> PoolState:
        if self._pool is not None:
            return PoolState.ESTABLISHED
        if self._pending is not None:
            return PoolState.IN_FLIGHT
        return PoolState.ABSENT

    async def get_pool(self) -> AsyncEngine:
        if self._pool is not None:
            return self._pool

        if self._pending is None:
            try:
                settings = ConnectionSettings.from_configuration(self._configuration, self._environ)
            except ConfigIncomplete as e:
                logger.error("Database Connection Failed: %s", e)
                raise

            logger.info("Connecting to SQL Database...")
            logger.info(
                "Server: %s, Database: %s, User: %s",
                settings.server, settings.database, settings.user,
            )
            self._pending = asyncio.ensure_future(self._establish(settings))
            self._pending.add_done_callback(_mark_retrieved)

        # One caller giving up must not cancel the attempt the others wait on
        return await asyncio.shield(self._pending)

    async def _establish(self, settings: ConnectionSettings) -> AsyncEngine:
        try:
            pool = await self._connect(settings)
        except Exception as e:
            self._pending = None
            logger.error("Database Connection Failed: %s", e)
            if isinstance(e, ConnectionFailed):
                raise
            raise ConnectionFailed(f"Database connection failed: {e}") from e

        self._pool = pool
        self._pending = None
        logger.info("Connected to SQL Database")
        return pool

    async def close(self) -> None:
        # Let an in-flight attempt land first so its engine gets disposed too
        pending = self._pending
        if pending is not None:
            await asyncio.wait({pending})

        pool, self._pool = self._pool, None
        if pool is not None:
            await pool.dispose()
            logger.info("Database pool disposed")
