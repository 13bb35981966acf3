"""MySQL dialect adapter."""

from typing import Any, Dict, List, Optional, Sequence

from .base import DialectAdapter, Query, opt_str
from .identifiers import check_expression, check_type, quote_literal
from .models import ColumnDescriptor, ConnectionDescriptor, TableDescriptor

DEFAULT_ENGINE = "InnoDB"
DEFAULT_CHARSET = "utf8mb4"


class MysqlAdapter(DialectAdapter):
    """MySQL dialect adapter (PyMySQL driver)."""

    name = "mysql"
    jdbc_scheme = "jdbc:mysql"
    drivername = "mysql+pymysql"
    transactional_batch = True

    def engine_options(
        self, descriptor: ConnectionDescriptor, connect_timeout: float, statement_timeout: float
    ) -> Dict[str, Any]:
        return {
            "connect_args": {
                "connect_timeout": connect_timeout,
                "read_timeout": statement_timeout,
                "write_timeout": statement_timeout,
            }
        }

    def column_definition(self, column: ColumnDescriptor) -> str:
        parts = [self.quote_identifier(column.name, "column"), check_type(column.type)]
        if not column.nullable:
            parts.append("NOT NULL")
        if column.default_value is not None:
            parts.append(f"DEFAULT {quote_literal(column.default_value)}")
        if column.comment:
            parts.append(f"COMMENT {quote_literal(column.comment)}")
        return " ".join(parts)

    def create_database_sql(self, database: str) -> str:
        return f"CREATE DATABASE IF NOT EXISTS {self.quote_identifier(database, 'database')}"

    def create_table_sql(self, table: TableDescriptor) -> str:
        lines = [self.column_definition(c) for c in table.columns]
        if table.primary_key:
            keys = ", ".join(self.quote_identifier(k, "column") for k in table.primary_key)
            lines.append(f"PRIMARY KEY ({keys})")
        body = ",\n    ".join(lines)
        engine = check_expression(table.engine or DEFAULT_ENGINE, "table engine")
        charset = check_expression(table.charset or DEFAULT_CHARSET, "charset")
        sql = (
            f"CREATE TABLE IF NOT EXISTS {self.quote_table(table.database, table.name)} (\n    {body}\n)"
            f" ENGINE={engine} DEFAULT CHARSET={charset}"
        )
        if table.comment:
            sql += f" COMMENT={quote_literal(table.comment)}"
        return sql

    def describe_table_sql(self, database: str, table: str) -> str:
        # Identifiers are validated by quote_table; the values go in as literals.
        self.quote_table(database, table)
        return (
            "SELECT COLUMN_NAME, COLUMN_TYPE, COLUMN_COMMENT, IS_NULLABLE, COLUMN_DEFAULT "
            "FROM information_schema.COLUMNS "
            f"WHERE TABLE_SCHEMA = {quote_literal(database)} AND TABLE_NAME = {quote_literal(table)} "
            "ORDER BY ORDINAL_POSITION"
        )

    def add_columns_sql(self, table: TableDescriptor, columns: Sequence[ColumnDescriptor]) -> List[str]:
        qt = self.quote_table(table.database, table.name)
        return [f"ALTER TABLE {qt} ADD COLUMN {self.column_definition(c)}" for c in columns]

    def database_exists_query(self, database: str) -> Query:
        return (
            "SELECT SCHEMA_NAME FROM information_schema.SCHEMATA WHERE SCHEMA_NAME = :database",
            {"database": database},
        )

    def table_exists_query(self, database: str, table: str) -> Query:
        return (
            "SELECT TABLE_NAME FROM information_schema.TABLES "
            "WHERE TABLE_SCHEMA = :database AND TABLE_NAME = :table",
            {"database": database, "table": table},
        )

    def column_exists_query(self, database: str, table: str, column: str) -> Optional[Query]:
        return (
            "SELECT COLUMN_NAME FROM information_schema.COLUMNS "
            "WHERE TABLE_SCHEMA = :database AND TABLE_NAME = :table AND COLUMN_NAME = :column",
            {"database": database, "table": table, "column": column},
        )

    def list_tables_query(self, database: str) -> Query:
        return (
            "SELECT TABLE_NAME FROM information_schema.TABLES "
            "WHERE TABLE_SCHEMA = :database AND TABLE_TYPE = 'BASE TABLE'",
            {"database": database},
        )

    def row_to_column(self, row: Sequence[Any]) -> Optional[ColumnDescriptor]:
        return ColumnDescriptor(
            name=str(row[0]),
            type=str(row[1]),
            comment=opt_str(row[2]),
            nullable=str(row[3]).upper() != "NO",
            default_value=None if row[4] is None else str(row[4]),
        )
