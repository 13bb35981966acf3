"""
Bring a sink database to a desired schema.

The functions here take an open connection and are idempotent: existing
databases and tables are left alone, and only columns that are missing are
added, in the order they are declared. They raise SinkError subclasses;
SinkSchemaService wraps them with a connection per call and turns errors into
a failed ExecutionResult.
"""

import logging
from typing import Callable, List, Optional

from sqlalchemy.engine import Connection

from .base import DialectAdapter
from .connection import open_connection
from .errors import SinkError
from .executor import execute, execute_batch
from .models import ColumnDescriptor, ExecutionResult, TableDescriptor

logger = logging.getLogger(__name__)


def create_db(conn: Connection, adapter: DialectAdapter, database: str) -> ExecutionResult:
    if adapter.database_exists(conn, database):
        logger.info(f"the database [{database}] already exists, nothing to create")
        return ExecutionResult(success=True)
    sql = adapter.create_database_sql(database)
    execute(conn, sql)
    logger.info(f"success to create {adapter.name} database [{database}]")
    return ExecutionResult(success=True, executed=[sql])


def create_table(conn: Connection, adapter: DialectAdapter, table: TableDescriptor) -> ExecutionResult:
    """Create ``table`` if absent and return its columns as the engine reports them."""
    executed: List[str] = []
    if adapter.table_exists(conn, table.database, table.name):
        logger.info(f"the table [{table.database}.{table.name}] already exists, nothing to create")
    else:
        sql = adapter.create_table_sql(table)
        execute(conn, sql)
        executed.append(sql)
        logger.info(f"success to create {adapter.name} table [{table.database}.{table.name}]")
    columns = adapter.get_columns(conn, table.database, table.name)
    return ExecutionResult(success=True, columns=columns, executed=executed)


def missing_columns(conn: Connection, adapter: DialectAdapter, table: TableDescriptor) -> List[ColumnDescriptor]:
    """Columns of ``table`` the engine does not have yet, in declaration order."""
    return [c for c in table.columns if not adapter.column_exists(conn, table.database, table.name, c.name)]


def add_columns(conn: Connection, adapter: DialectAdapter, table: TableDescriptor) -> ExecutionResult:
    """Add the columns of ``table`` that are missing. Existing columns are never altered."""
    missing = missing_columns(conn, adapter, table)
    if not missing:
        logger.info(f"all columns of [{table.database}.{table.name}] already exist, nothing to add")
        return ExecutionResult(success=True)
    statements = adapter.add_columns_sql(table, missing)
    execute_batch(conn, statements, transactional=adapter.transactional_batch)
    logger.info(
        f"success to add columns {[c.name for c in missing]} to {adapter.name} table [{table.database}.{table.name}]"
    )
    return ExecutionResult(success=True, columns=missing, executed=statements)


def ensure_table(conn: Connection, adapter: DialectAdapter, table: TableDescriptor) -> ExecutionResult:
    """Create database and table as needed, then add any missing columns."""
    executed: List[str] = []
    executed += create_db(conn, adapter, table.database).executed
    created = create_table(conn, adapter, table)
    executed += created.executed
    if not created.executed:
        executed += add_columns(conn, adapter, table).executed
    columns = adapter.get_columns(conn, table.database, table.name)
    return ExecutionResult(success=True, columns=columns, executed=executed)


def get_tables(conn: Connection, adapter: DialectAdapter, database: str) -> ExecutionResult:
    return ExecutionResult(success=True, tables=adapter.get_tables(conn, database))


def get_columns(conn: Connection, adapter: DialectAdapter, database: str, table: str) -> ExecutionResult:
    return ExecutionResult(success=True, columns=adapter.get_columns(conn, database, table))


def run_operation(operation: Callable[[], ExecutionResult], description: str) -> ExecutionResult:
    """Run ``operation`` and report a SinkError as a failed result instead of raising."""
    try:
        return operation()
    except SinkError as e:
        logger.error(f"{description} failed: {e}")
        return ExecutionResult.failure(e)


class SinkSchemaService:
    """Schema operations against one sink URL. Each call opens its own connection."""

    def __init__(
        self,
        adapter: DialectAdapter,
        url: str,
        user: str,
        password: Optional[str] = None,
        connect_seconds: Optional[float] = None,
        statement_seconds: Optional[float] = None,
    ):
        self.adapter = adapter
        self.url = url
        self.user = user
        self.password = password
        self.connect_seconds = connect_seconds
        self.statement_seconds = statement_seconds

    def _call(self, operation, *args) -> ExecutionResult:
        def run() -> ExecutionResult:
            with open_connection(
                self.adapter,
                self.url,
                self.user,
                self.password,
                connect_seconds=self.connect_seconds,
                statement_seconds=self.statement_seconds,
            ) as conn:
                return operation(conn, self.adapter, *args)

        return run_operation(run, f"{self.adapter.name} {operation.__name__}")

    def create_db(self, database: str) -> ExecutionResult:
        return self._call(create_db, database)

    def create_table(self, table: TableDescriptor) -> ExecutionResult:
        return self._call(create_table, table)

    def add_columns(self, table: TableDescriptor) -> ExecutionResult:
        return self._call(add_columns, table)

    def ensure_table(self, table: TableDescriptor) -> ExecutionResult:
        return self._call(ensure_table, table)

    def get_tables(self, database: str) -> ExecutionResult:
        return self._call(get_tables, database)

    def get_columns(self, database: str, table: str) -> ExecutionResult:
        return self._call(get_columns, database, table)
