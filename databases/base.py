"""
Dialect adapter base class for sink schema reconciliation.

Each target engine (MySQL, Hive, ClickHouse) implements this interface to
provide URL validation rules, driver settings, existence checks and DDL
synthesis. SQL builders are pure and deterministic; the existence checks take
an open SQLAlchemy connection and never treat "not found" as an error.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.engine import URL, Connection
from .errors import QueryError
from .executor import DRIVER_ERRORS, driver_message
from .identifiers import check_identifier
from .models import ColumnDescriptor, ConnectionDescriptor, TableDescriptor
from .urls import parse_jdbc_url

logger = logging.getLogger(__name__)

Query = Tuple[str, Dict[str, Any]]


class DialectAdapter(ABC):
    """Abstract base for sink engine adapters."""

    name: str = ""
    jdbc_scheme: str = ""
    drivername: str = ""
    allowed_hosts: Optional[Pattern[str]] = None
    # Whether a multi-statement DDL batch can run inside one transaction.
    transactional_batch: bool = False

    def parse_url(self, url: str) -> ConnectionDescriptor:
        return parse_jdbc_url(url, self.jdbc_scheme, self.allowed_hosts)

    def sqlalchemy_url(self, descriptor: ConnectionDescriptor) -> URL:
        return URL.create(
            self.drivername,
            username=descriptor.user,
            password=descriptor.password,
            host=descriptor.host,
            port=descriptor.port,
            database=descriptor.database,
        )

    @abstractmethod
    def engine_options(
        self, descriptor: ConnectionDescriptor, connect_timeout: float, statement_timeout: float
    ) -> Dict[str, Any]:
        """Extra ``create_engine`` kwargs that bound connect and statement time."""
        pass

    def quote_identifier(self, name: str, kind: str = "identifier") -> str:
        return f"`{check_identifier(name, kind)}`"

    def quote_table(self, database: str, table: str) -> str:
        return f"{self.quote_identifier(database, 'database')}.{self.quote_identifier(table, 'table')}"

    @abstractmethod
    def column_definition(self, column: ColumnDescriptor) -> str:
        pass

    @abstractmethod
    def create_database_sql(self, database: str) -> str:
        pass

    @abstractmethod
    def create_table_sql(self, table: TableDescriptor) -> str:
        pass

    @abstractmethod
    def describe_table_sql(self, database: str, table: str) -> str:
        pass

    @abstractmethod
    def add_columns_sql(self, table: TableDescriptor, columns: Sequence[ColumnDescriptor]) -> List[str]:
        """Statements that append ``columns`` in order. Empty input yields no statements."""
        pass

    @abstractmethod
    def database_exists_query(self, database: str) -> Query:
        pass

    @abstractmethod
    def table_exists_query(self, database: str, table: str) -> Query:
        pass

    @abstractmethod
    def list_tables_query(self, database: str) -> Query:
        pass

    def column_exists_query(self, database: str, table: str, column: str) -> Optional[Query]:
        """Return None when the engine has no catalog query for columns."""
        return None

    def database_exists(self, conn: Connection, database: str) -> bool:
        check_identifier(database, "database")
        rows = self._fetch(conn, *self.database_exists_query(database))
        result = self.rows_contain(rows, database)
        logger.info(f"check db exist for db={database}, result={result}")
        return result

    def table_exists(self, conn: Connection, database: str, table: str) -> bool:
        check_identifier(database, "database")
        check_identifier(table, "table")
        rows = self._fetch(conn, *self.table_exists_query(database, table))
        result = self.rows_contain(rows, table)
        logger.info(f"check table exist for db={database} table={table}, result={result}")
        return result

    def column_exists(self, conn: Connection, database: str, table: str, column: str) -> bool:
        check_identifier(column, "column")
        query = self.column_exists_query(database, table, column)
        if query is None:
            result = column.lower() in {c.name.lower() for c in self.get_columns(conn, database, table)}
        else:
            result = self._has_row(conn, *query)
        logger.info(f"check column exist for db={database} table={table} column={column}, result={result}")
        return result

    def get_tables(self, conn: Connection, database: str) -> List[str]:
        check_identifier(database, "database")
        rows = self._fetch(conn, *self.list_tables_query(database))
        return sorted(str(r[0]) for r in rows)

    def get_columns(self, conn: Connection, database: str, table: str) -> List[ColumnDescriptor]:
        sql = self.describe_table_sql(database, table)
        columns: List[ColumnDescriptor] = []
        for row in self._fetch(conn, sql, {}):
            if self.is_end_of_columns(row):
                break
            column = self.row_to_column(row)
            if column is not None:
                columns.append(column)
        return columns

    def is_end_of_columns(self, row: Sequence[Any]) -> bool:
        """Whether ``row`` closes the column section of a describe result."""
        return False

    @abstractmethod
    def row_to_column(self, row: Sequence[Any]) -> Optional[ColumnDescriptor]:
        """Map a describe row to a column. Return None to skip the row."""
        pass

    def _fetch(self, conn: Connection, sql: str, params: Dict[str, Any]) -> List[Sequence[Any]]:
        try:
            return list(conn.execute(text(sql), params).fetchall())
        except DRIVER_ERRORS as e:
            raise QueryError(f"{self.name} query failed: {driver_message(e)}", sql=sql) from e

    def rows_contain(self, rows: List[Sequence[Any]], name: str) -> bool:
        """Whether a catalog lookup for ``name`` found it. Exact-match catalogs: any row."""
        return len(rows) > 0

    def _has_row(self, conn: Connection, sql: str, params: Dict[str, Any]) -> bool:
        return len(self._fetch(conn, sql, params)) > 0


def opt_str(value: Any) -> Optional[str]:
    """Normalise a nullable driver value: None and empty strings become None."""
    if value is None:
        return None
    value = str(value)
    return value or None

