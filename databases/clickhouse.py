"""ClickHouse dialect adapter.

ClickHouse has no DDL transactions: each ``ALTER TABLE ... ADD COLUMN`` is
applied on its own, so a failed batch can leave earlier columns added.
"""

import re
from typing import Any, Dict, List, Optional, Sequence

from .base import DialectAdapter, Query, opt_str
from .errors import InvalidIdentifier
from .identifiers import check_expression, check_type, quote_literal
from .models import ColumnDescriptor, ConnectionDescriptor, TableDescriptor

# Deployment targets a ClickHouse sink may point at.
CLICKHOUSE_ALLOWED_HOSTS = re.compile(r"localhost|192\.168\.1\.\d{1,3}|10\.0\.0\.\d{1,3}")

# Engine-managed retention column. It is appended by create_table_sql when a
# table has a TTL and is hidden from introspection results.
RETENTION_COLUMN = "inlong_ttl_date_time"

DEFAULT_TABLE_ENGINE = "MergeTree()"
DEFAULT_KINDS = ("DEFAULT", "MATERIALIZED", "ALIAS", "EPHEMERAL")
TTL_UNITS = ("SECOND", "MINUTE", "HOUR", "DAY", "WEEK", "MONTH", "QUARTER", "YEAR")


class ClickhouseAdapter(DialectAdapter):
    """ClickHouse dialect adapter (clickhouse-sqlalchemy HTTP driver)."""

    name = "clickhouse"
    jdbc_scheme = "jdbc:clickhouse"
    drivername = "clickhouse+http"
    allowed_hosts = CLICKHOUSE_ALLOWED_HOSTS
    transactional_batch = False

    def engine_options(
        self, descriptor: ConnectionDescriptor, connect_timeout: float, statement_timeout: float
    ) -> Dict[str, Any]:
        # The HTTP transport hands a single timeout to requests for connect and read.
        return {"connect_args": {"timeout": max(connect_timeout, statement_timeout)}}

    def _on_cluster(self, cluster: Optional[str]) -> str:
        if not cluster:
            return ""
        return f" ON CLUSTER {self.quote_identifier(cluster, 'cluster')}"

    def column_definition(self, column: ColumnDescriptor) -> str:
        parts = [self.quote_identifier(column.name, "column"), check_type(column.type)]
        if column.default_expr:
            kind = (column.default_kind or "DEFAULT").upper()
            if kind not in DEFAULT_KINDS:
                raise InvalidIdentifier(f"Invalid default kind: {column.default_kind!r}")
            parts.append(f"{kind} {check_expression(column.default_expr, 'default expression')}")
        elif column.default_value is not None:
            parts.append(f"DEFAULT {quote_literal(column.default_value)}")
        if column.comment:
            parts.append(f"COMMENT {quote_literal(column.comment)}")
        if column.compression_codec:
            codec = check_expression(column.compression_codec, "compression codec")
            parts.append(codec if codec.upper().startswith("CODEC(") else f"CODEC({codec})")
        if column.ttl_expr:
            parts.append(f"TTL {check_expression(column.ttl_expr, 'TTL expression')}")
        return " ".join(parts)

    def create_database_sql(self, database: str) -> str:
        return f"CREATE DATABASE IF NOT EXISTS {self.quote_identifier(database, 'database')}"

    def create_table_sql(self, table: TableDescriptor) -> str:
        lines = [self.column_definition(c) for c in table.columns]
        ttl_clause = ""
        if table.ttl is not None:
            unit = table.ttl_unit.upper()
            if unit not in TTL_UNITS or table.ttl <= 0:
                raise InvalidIdentifier(f"Invalid table TTL: {table.ttl} {table.ttl_unit}")
            retention = self.quote_identifier(RETENTION_COLUMN, "column")
            lines.append(f"{retention} DateTime DEFAULT now()")
            ttl_clause = f"\nTTL {retention} + INTERVAL {table.ttl} {unit}"

        body = ",\n    ".join(lines)
        sql = (
            f"CREATE TABLE IF NOT EXISTS {self.quote_table(table.database, table.name)}"
            f"{self._on_cluster(table.cluster)} (\n    {body}\n)"
        )
        sql += f"\nENGINE = {check_expression(table.engine or DEFAULT_TABLE_ENGINE, 'table engine')}"
        if table.partition_by:
            sql += f"\nPARTITION BY {check_expression(table.partition_by, 'partition key')}"
        if table.order_by:
            sql += f"\nORDER BY ({', '.join(self.quote_identifier(k, 'column') for k in table.order_by)})"
        else:
            sql += "\nORDER BY tuple()"
        if table.primary_key:
            sql += f"\nPRIMARY KEY ({', '.join(self.quote_identifier(k, 'column') for k in table.primary_key)})"
        sql += ttl_clause
        if table.comment:
            sql += f"\nCOMMENT {quote_literal(table.comment)}"
        return sql

    def describe_table_sql(self, database: str, table: str) -> str:
        return f"DESC TABLE {self.quote_table(database, table)}"

    def add_columns_sql(self, table: TableDescriptor, columns: Sequence[ColumnDescriptor]) -> List[str]:
        prefix = f"ALTER TABLE {self.quote_table(table.database, table.name)}{self._on_cluster(table.cluster)}"
        return [f"{prefix} ADD COLUMN {self.column_definition(c)}" for c in columns]

    def database_exists_query(self, database: str) -> Query:
        return "SELECT name FROM system.databases WHERE name = :database", {"database": database}

    def table_exists_query(self, database: str, table: str) -> Query:
        return (
            "SELECT name FROM system.tables WHERE database = :database AND name = :table",
            {"database": database, "table": table},
        )

    def column_exists_query(self, database: str, table: str, column: str) -> Optional[Query]:
        return (
            "SELECT name FROM system.columns WHERE database = :database AND table = :table AND name = :column",
            {"database": database, "table": table, "column": column},
        )

    def list_tables_query(self, database: str) -> Query:
        return "SELECT name FROM system.tables WHERE database = :database", {"database": database}

    def row_to_column(self, row: Sequence[Any]) -> Optional[ColumnDescriptor]:
        # DESC TABLE: name, type, default_type, default_expression, comment,
        # codec_expression, ttl_expression
        if row[0] == RETENTION_COLUMN:
            return None
        return ColumnDescriptor(
            name=str(row[0]),
            type=str(row[1]),
            default_kind=opt_str(row[2]),
            default_expr=opt_str(row[3]),
            comment=opt_str(row[4]),
            compression_codec=opt_str(row[5]),
            ttl_expr=opt_str(row[6]),
        )
