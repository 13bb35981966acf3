"""Hive dialect adapter.

Connections go through PyHive on a thrift socket that carries an explicit
timeout, since ``hive.connect`` has no timeout argument of its own. Hive DDL
is not transactional: a failed batch may leave earlier statements applied.
"""

import re
from typing import Any, Dict, List, Optional, Sequence

import thrift_sasl
from pyhive import hive
from pyhive.sasl_compat import PureSASLClient
from thrift.transport import TSocket

from .base import DialectAdapter, Query, opt_str
from .errors import InvalidIdentifier
from .identifiers import check_type, quote_literal
from .models import ColumnDescriptor, ConnectionDescriptor, TableDescriptor

DEFAULT_FIELD_DELIMITER = "\\001"
DEFAULT_STORED_AS = "TEXTFILE"
STORAGE_FORMATS = ("TEXTFILE", "SEQUENCEFILE", "ORC", "PARQUET", "AVRO", "RCFILE")

# A single printable character or an octal escape such as \001
_DELIMITER = re.compile(r"\\[0-7]{3}|[^'\\\s]")


def open_hive_connection(descriptor: ConnectionDescriptor, timeout: float):
    """Open a PyHive connection whose socket reads and connects are bounded by ``timeout``."""
    socket = TSocket.TSocket(descriptor.host, descriptor.port)
    socket.setTimeout(int(timeout * 1000))

    def sasl_factory():
        return PureSASLClient(
            descriptor.host,
            mechanism="PLAIN",
            username=descriptor.user,
            password=descriptor.password or "x",
        )

    transport = thrift_sasl.TSaslClientTransport(sasl_factory, "PLAIN", socket)
    return hive.connect(
        thrift_transport=transport,
        username=descriptor.user,
        database=descriptor.database or "default",
    )


class HiveAdapter(DialectAdapter):
    """Hive dialect adapter (PyHive driver)."""

    name = "hive"
    jdbc_scheme = "jdbc:hive2"
    drivername = "hive"
    transactional_batch = False

    def engine_options(
        self, descriptor: ConnectionDescriptor, connect_timeout: float, statement_timeout: float
    ) -> Dict[str, Any]:
        # One socket timeout covers both; use the longer so statements are not cut short.
        timeout = max(connect_timeout, statement_timeout)
        return {"creator": lambda: open_hive_connection(descriptor, timeout)}

    def column_definition(self, column: ColumnDescriptor) -> str:
        sql = f"{self.quote_identifier(column.name, 'column')} {check_type(column.type)}"
        if column.comment:
            sql += f" COMMENT {quote_literal(column.comment)}"
        return sql

    def create_database_sql(self, database: str) -> str:
        return f"CREATE DATABASE IF NOT EXISTS {self.quote_identifier(database, 'database')}"

    def create_table_sql(self, table: TableDescriptor) -> str:
        regular = [c for c in table.columns if not c.partition]
        partitions = [c for c in table.columns if c.partition]
        body = ",\n    ".join(self.column_definition(c) for c in regular)
        sql = f"CREATE TABLE IF NOT EXISTS {self.quote_table(table.database, table.name)} (\n    {body}\n)"
        if table.comment:
            sql += f"\nCOMMENT {quote_literal(table.comment)}"
        if partitions:
            sql += f"\nPARTITIONED BY ({', '.join(self.column_definition(c) for c in partitions)})"
        delimiter = table.field_delimiter or DEFAULT_FIELD_DELIMITER
        if not _DELIMITER.fullmatch(delimiter):
            raise InvalidIdentifier(f"Invalid field delimiter: {delimiter!r}")
        stored_as = (table.stored_as or DEFAULT_STORED_AS).upper()
        if stored_as not in STORAGE_FORMATS:
            raise InvalidIdentifier(f"Invalid storage format: {table.stored_as!r}")
        sql += f"\nROW FORMAT DELIMITED FIELDS TERMINATED BY '{delimiter}'"
        sql += f"\nSTORED AS {stored_as}"
        return sql

    def describe_table_sql(self, database: str, table: str) -> str:
        return f"DESCRIBE {self.quote_table(database, table)}"

    def add_columns_sql(self, table: TableDescriptor, columns: Sequence[ColumnDescriptor]) -> List[str]:
        if not columns:
            return []
        defs = ", ".join(self.column_definition(c) for c in columns)
        return [f"ALTER TABLE {self.quote_table(table.database, table.name)} ADD COLUMNS ({defs})"]

    def database_exists_query(self, database: str) -> Query:
        return "SHOW DATABASES LIKE :pattern", {"pattern": database}

    def table_exists_query(self, database: str, table: str) -> Query:
        return f"SHOW TABLES IN {self.quote_identifier(database, 'database')} LIKE :pattern", {"pattern": table}

    def list_tables_query(self, database: str) -> Query:
        return f"SHOW TABLES IN {self.quote_identifier(database, 'database')}", {}

    def rows_contain(self, rows: List[Sequence[Any]], name: str) -> bool:
        # LIKE is a pattern match (`_` may be a wildcard), so compare names exactly.
        return any(str(row[0]).strip().lower() == name.lower() for row in rows)

    def is_end_of_columns(self, row: Sequence[Any]) -> bool:
        # DESCRIBE appends "# Partition Information" after a blank row; those
        # partition columns were already listed above it.
        name = (row[0] or "").strip()
        return not name or name.startswith("#")

    def row_to_column(self, row: Sequence[Any]) -> Optional[ColumnDescriptor]:
        return ColumnDescriptor(
            name=str(row[0]).strip(),
            type=str(row[1]).strip(),
            comment=opt_str(row[2].strip() if isinstance(row[2], str) else row[2]),
        )
