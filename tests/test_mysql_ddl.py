import pytest
from sqlalchemy.exc import DBAPIError

from databases.errors import InvalidIdentifier, QueryError
from databases.models import ColumnDescriptor, TableDescriptor


def _orders(**kwargs):
    return TableDescriptor(
        database="sales",
        name="orders",
        columns=(
            ColumnDescriptor("id", "BIGINT", comment="order id", nullable=False),
            ColumnDescriptor("amount", "DECIMAL(10,2)", default_value="0"),
        ),
        **kwargs,
    )


def test_create_database_sql(mysql):
    assert mysql.create_database_sql("sales") == "CREATE DATABASE IF NOT EXISTS `sales`"


def test_create_table_sql_keeps_column_order_and_options(mysql):
    sql = mysql.create_table_sql(_orders(primary_key=("id",), comment="orders"))

    assert sql == (
        "CREATE TABLE IF NOT EXISTS `sales`.`orders` (\n"
        "    `id` BIGINT NOT NULL COMMENT 'order id',\n"
        "    `amount` DECIMAL(10,2) DEFAULT '0',\n"
        "    PRIMARY KEY (`id`)\n"
        ") ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COMMENT='orders'"
    )


def test_create_table_sql_is_deterministic(mysql):
    assert mysql.create_table_sql(_orders()) == mysql.create_table_sql(_orders())


def test_add_columns_sql_is_one_statement_per_column(mysql):
    statements = mysql.add_columns_sql(
        _orders(), [ColumnDescriptor("b", "INT"), ColumnDescriptor("c", "VARCHAR(20)", comment="it's c")]
    )

    assert statements == [
        "ALTER TABLE `sales`.`orders` ADD COLUMN `b` INT",
        "ALTER TABLE `sales`.`orders` ADD COLUMN `c` VARCHAR(20) COMMENT 'it\\'s c'",
    ]
    assert mysql.add_columns_sql(_orders(), []) == []


def test_describe_uses_information_schema_in_ordinal_order(mysql):
    sql = mysql.describe_table_sql("sales", "orders")

    assert "FROM information_schema.COLUMNS" in sql
    assert "TABLE_SCHEMA = 'sales' AND TABLE_NAME = 'orders'" in sql
    assert sql.endswith("ORDER BY ORDINAL_POSITION")


def test_injection_through_names_is_rejected(mysql):
    with pytest.raises(InvalidIdentifier):
        mysql.create_database_sql("sales`; DROP DATABASE mysql; --")
    with pytest.raises(InvalidIdentifier):
        mysql.describe_table_sql("sales", "orders' OR '1'='1")
    with pytest.raises(InvalidIdentifier):
        mysql.add_columns_sql(_orders(), [ColumnDescriptor("b", "INT; DROP TABLE x")])


def test_existence_checks_bind_values(mysql, make_conn):
    conn = make_conn(responder=lambda sql, params: [("x",)])

    assert mysql.database_exists(conn, "sales") is True
    assert mysql.table_exists(conn, "sales", "orders") is True
    assert mysql.column_exists(conn, "sales", "orders", "id") is True

    sql, params = conn.queries[-1]
    assert ":column" in sql
    assert params == {"database": "sales", "table": "orders", "column": "id"}


def test_not_found_is_false_not_an_error(mysql, make_conn):
    conn = make_conn()

    assert mysql.database_exists(conn, "sales") is False
    assert mysql.table_exists(conn, "sales", "orders") is False
    assert mysql.column_exists(conn, "sales", "orders", "id") is False


def test_query_failure_raises_query_error(mysql, make_conn):
    def broken(sql, params):
        raise DBAPIError(sql, params, Exception("Lost connection to MySQL server"))

    with pytest.raises(QueryError) as exc:
        mysql.database_exists(make_conn(responder=broken), "sales")
    assert "Lost connection" in str(exc.value)
    assert "SCHEMATA" in exc.value.sql


def test_get_columns_maps_information_schema_rows(mysql, make_conn):
    rows = [("id", "bigint", "order id", "NO", None), ("amount", "decimal(10,2)", "", "YES", "0.00")]
    conn = make_conn(responder=lambda sql, params: rows)

    columns = mysql.get_columns(conn, "sales", "orders")

    assert [c.name for c in columns] == ["id", "amount"]
    assert columns[0].nullable is False and columns[0].comment == "order id"
    assert columns[1].comment is None and columns[1].default_value == "0.00"


def test_get_tables_is_sorted(mysql, make_conn):
    conn = make_conn(responder=lambda sql, params: [("orders",), ("customers",)])

    assert mysql.get_tables(conn, "sales") == ["customers", "orders"]


def test_engine_options_bound_connect_and_statements(mysql):
    options = mysql.engine_options(None, 5, 30)

    assert options == {"connect_args": {"connect_timeout": 5, "read_timeout": 30, "write_timeout": 30}}
