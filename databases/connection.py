"""Open bounded, single-use connections to a sink engine.

Every connection is owned by the ``with`` block that opened it and is closed,
together with its engine, on every exit path. There is no pooling.
"""

import logging
import os
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError, NoSuchModuleError
from sqlalchemy.pool import NullPool

from .base import DialectAdapter
from .errors import ConnectionFailed, DriverUnavailable, MissingCredentials, NullConnection
from .models import ConnectionDescriptor

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_STATEMENT_TIMEOUT = 60.0


def _env_seconds(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}, using {default}")
        return default
    return value if value > 0 else default


def connect_timeout() -> float:
    """Seconds allowed for connection acquisition (SINK_CONNECT_TIMEOUT)."""
    return _env_seconds("SINK_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT)


def statement_timeout() -> float:
    """Seconds allowed for a single statement round trip (SINK_STATEMENT_TIMEOUT)."""
    return _env_seconds("SINK_STATEMENT_TIMEOUT", DEFAULT_STATEMENT_TIMEOUT)


def create_sink_engine(
    adapter: DialectAdapter,
    descriptor: ConnectionDescriptor,
    connect_seconds: float,
    statement_seconds: float,
) -> Engine:
    """Create a non-pooling engine for one descriptor. Loading the dialect is idempotent."""
    try:
        return create_engine(
            adapter.sqlalchemy_url(descriptor),
            poolclass=NullPool,
            **adapter.engine_options(descriptor, connect_seconds, statement_seconds),
        )
    except (NoSuchModuleError, ImportError) as e:
        raise DriverUnavailable(
            f"{adapter.name} driver is not available: {e}", url=descriptor.redacted_url()
        ) from e


@contextmanager
def open_connection(
    adapter: DialectAdapter,
    url: str,
    user: str,
    password: Optional[str],
    connect_seconds: Optional[float] = None,
    statement_seconds: Optional[float] = None,
) -> Iterator[Connection]:
    """Validate ``url``, connect, and yield a live connection.

    Raises:
        ValidationError: the URL fails the adapter's rules (no I/O attempted).
        ConnectionFailed: driver missing, authentication or network failure.
    """
    if not url or not url.strip() or not user or not user.strip():
        raise MissingCredentials("URL or username cannot be empty")
    descriptor = adapter.parse_url(url.strip()).with_credentials(user, password)
    safe_url = descriptor.redacted_url()

    engine = create_sink_engine(
        adapter,
        descriptor,
        connect_seconds if connect_seconds is not None else connect_timeout(),
        statement_seconds if statement_seconds is not None else statement_timeout(),
    )
    try:
        try:
            conn = engine.connect()
        except (NoSuchModuleError, ImportError) as e:
            raise DriverUnavailable(f"{adapter.name} driver is not available: {e}", url=safe_url) from e
        except Exception as e:
            detail = e.orig if isinstance(e, DBAPIError) and e.orig is not None else e
            logger.error(f"get {adapter.name} connection error for url={safe_url}: {detail}")
            raise ConnectionFailed(
                f"get {adapter.name} connection error, please check JDBC URL, username or password. "
                f"other error msg: {detail}",
                url=safe_url,
            ) from e
        if conn is None or conn.closed:
            raise NullConnection(
                f"get {adapter.name} connection failed, please contact administrator", url=safe_url
            )
        logger.info(f"get {adapter.name} connection success, url={safe_url}")
        try:
            yield conn
        finally:
            conn.close()
    finally:
        engine.dispose()
