"""Run DDL statements on an open sink connection."""

import logging
from typing import Iterable

from sqlalchemy.engine import Connection
from sqlalchemy.exc import DBAPIError
from thrift.Thrift import TException

from .errors import StatementError

logger = logging.getLogger(__name__)

# Failures a statement can end with. Besides DBAPI errors, transport timeouts
# reach the caller unwrapped: requests exceptions and socket timeouts are
# OSError, thrift transport errors are TException.
DRIVER_ERRORS = (DBAPIError, OSError, TException)


def driver_message(e: Exception) -> str:
    if isinstance(e, DBAPIError) and e.orig is not None:
        return str(e.orig)
    return str(e) or type(e).__name__


def _rollback(conn: Connection) -> None:
    # A timed-out connection may fail to roll back too; the statement error wins.
    try:
        conn.rollback()
    except DRIVER_ERRORS as e:
        logger.warning(f"rollback after failed statement also failed: {driver_message(e)}")


def execute(conn: Connection, sql: str) -> None:
    """Execute one statement and commit it."""
    try:
        conn.exec_driver_sql(sql)
        conn.commit()
    except DRIVER_ERRORS as e:
        _rollback(conn)
        raise StatementError(sql, driver_message(e)) from e
    logger.info(f"execute sql [{sql}] success")


def execute_batch(conn: Connection, statements: Iterable[str], transactional: bool = True) -> None:
    """Execute ``statements`` in order, stopping at the first failure.

    With ``transactional`` the whole batch runs in one transaction that is
    committed only if every statement succeeds; the connection is back in its
    default mode afterwards either way. Without it (engines that have no DDL
    transactions) each statement is applied on its own, so statements before
    a failure stay applied.
    """
    statements = list(statements)
    if not statements:
        return

    if not transactional:
        for index, sql in enumerate(statements):
            try:
                conn.exec_driver_sql(sql)
                conn.commit()
            except DRIVER_ERRORS as e:
                _rollback(conn)
                raise StatementError(sql, driver_message(e), index=index) from e
        logger.info(f"execute sql {statements} success (non-transactional)")
        return

    failure = None
    try:
        if conn.in_transaction():
            conn.commit()
        with conn.begin():
            for index, sql in enumerate(statements):
                try:
                    conn.exec_driver_sql(sql)
                except DRIVER_ERRORS as e:
                    failure = StatementError(sql, driver_message(e), index=index)
                    raise failure from e
    except DRIVER_ERRORS as e:
        # begin, commit or rollback of the batch transaction failed
        if failure is not None:
            raise failure from e
        raise StatementError("COMMIT", driver_message(e)) from e
    logger.info(f"execute sql {statements} success")
