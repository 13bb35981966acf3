from unittest.mock import MagicMock

from databases.errors import StatementError
from databases.models import ColumnDescriptor, TableDescriptor
from databases.reconcile import SinkSchemaService, add_columns, create_db, create_table, ensure_table, run_operation


def _table(*names):
    return TableDescriptor("sales", "orders", tuple(ColumnDescriptor(n, "INT") for n in names))


def test_create_db_is_idempotent(mysql, mysql_catalog):
    catalog, conn = mysql_catalog()

    first = create_db(conn, mysql, "sales")
    second = create_db(conn, mysql, "sales")

    assert first.success and first.executed == ["CREATE DATABASE IF NOT EXISTS `sales`"]
    assert second.success and second.executed == []
    assert conn.executed == ["CREATE DATABASE IF NOT EXISTS `sales`"]
    assert "sales" in catalog.databases


def test_create_table_returns_resulting_columns(mysql, mysql_catalog):
    _, conn = mysql_catalog(databases={"sales"})

    result = create_table(conn, mysql, _table("a", "b"))
    again = create_table(conn, mysql, _table("a", "b"))

    assert len(result.executed) == 1
    assert [c.name for c in result.columns] == ["a", "b"]
    assert again.executed == []
    assert [c.name for c in again.columns] == ["a", "b"]


def test_add_columns_adds_only_missing_in_declaration_order(mysql, mysql_catalog):
    _, conn = mysql_catalog(databases={"sales"}, tables={("sales", "orders"): [("a", "INT")]})

    result = add_columns(conn, mysql, _table("a", "b", "c"))

    assert result.success
    assert [c.name for c in result.columns] == ["b", "c"]
    assert conn.executed == [
        "ALTER TABLE `sales`.`orders` ADD COLUMN `b` INT",
        "ALTER TABLE `sales`.`orders` ADD COLUMN `c` INT",
    ]
    assert conn.begins == 1


def test_add_columns_with_existing_subset_runs_no_ddl(mysql, mysql_catalog):
    _, conn = mysql_catalog(
        databases={"sales"}, tables={("sales", "orders"): [("a", "INT"), ("b", "INT"), ("c", "INT")]}
    )

    result = add_columns(conn, mysql, _table("c", "a"))

    assert result.success and result.executed == [] and result.columns == []
    assert conn.executed == []


def test_add_columns_twice_is_idempotent(mysql, mysql_catalog):
    _, conn = mysql_catalog(databases={"sales"}, tables={("sales", "orders"): [("a", "INT")]})

    add_columns(conn, mysql, _table("a", "b"))
    second = add_columns(conn, mysql, _table("a", "b"))

    assert second.executed == []
    assert len(conn.executed) == 1


def test_hive_add_columns_is_one_non_transactional_statement(hive, make_conn):
    conn = make_conn(responder=lambda sql, params: [("a", "int", "")])

    table = TableDescriptor("dw", "events", (ColumnDescriptor("a", "int"), ColumnDescriptor("b", "int")))

    result = add_columns(conn, hive, table)

    assert conn.executed == ["ALTER TABLE `dw`.`events` ADD COLUMNS (`b` int)"]
    assert conn.begins == 0
    assert [c.name for c in result.columns] == ["b"]


def test_ensure_table_creates_everything_from_scratch(mysql, mysql_catalog):
    _, conn = mysql_catalog()

    result = ensure_table(conn, mysql, _table("a", "b"))

    assert result.success
    assert result.executed[0] == "CREATE DATABASE IF NOT EXISTS `sales`"
    assert result.executed[1].startswith("CREATE TABLE IF NOT EXISTS `sales`.`orders`")
    assert [c.name for c in result.columns] == ["a", "b"]


def test_run_operation_turns_sink_errors_into_failed_results():
    def boom():
        raise StatementError("ALTER TABLE x", "Duplicate column name 'b'", index=0)

    result = run_operation(boom, "mysql add_columns")

    assert result.success is False
    assert result.error_type == "StatementError"
    assert result.error_kind == "execution"
    assert "Duplicate column name" in result.error


def test_service_rejects_disallowed_host_without_connecting(clickhouse, monkeypatch):
    create_engine = MagicMock()
    monkeypatch.setattr("databases.connection.create_engine", create_engine)
    service = SinkSchemaService(clickhouse, "jdbc:clickhouse://203.0.113.9:8123/x", "default", "pw")

    result = service.create_db("x")

    assert result.success is False
    assert result.error_type == "HostNotAllowed"
    assert result.error_kind == "validation"
    create_engine.assert_not_called()


def test_service_opens_and_closes_a_connection_per_call(mysql, mysql_catalog, monkeypatch):
    _, conn = mysql_catalog(databases={"sales"})
    engine = MagicMock()
    engine.connect.return_value = conn
    monkeypatch.setattr("databases.connection.create_engine", MagicMock(return_value=engine))
    service = SinkSchemaService(mysql, "jdbc:mysql://10.0.0.5:3306/sales", "etl", "pw")

    result = service.get_tables("sales")

    assert result.success and result.tables == []
    assert conn.closed is True
    engine.dispose.assert_called_once()


def test_query_timeout_is_a_failed_result_not_a_raw_exception(clickhouse, monkeypatch, make_conn):
    def stalled(sql, params):
        raise TimeoutError("Read timed out. (read timeout=1.0)")

    conn = make_conn(responder=stalled)
    engine = MagicMock()
    engine.connect.return_value = conn
    monkeypatch.setattr("databases.connection.create_engine", MagicMock(return_value=engine))
    service = SinkSchemaService(clickhouse, "jdbc:clickhouse://localhost:8123/x", "default", "", statement_seconds=1)

    result = service.create_db("x")

    assert result.success is False
    assert result.error_type == "QueryError"
    assert result.error_kind == "query"
    assert "Read timed out" in result.error
    assert conn.closed is True


def test_ddl_timeout_is_a_failed_result(clickhouse, monkeypatch, make_conn):
    conn = make_conn(fail_on="CREATE DATABASE", fail_with=TimeoutError("Read timed out"))
    engine = MagicMock()
    engine.connect.return_value = conn
    monkeypatch.setattr("databases.connection.create_engine", MagicMock(return_value=engine))
    service = SinkSchemaService(clickhouse, "jdbc:clickhouse://localhost:8123/x", "default", "")

    result = service.create_db("x")

    assert result.success is False
    assert result.error_type == "StatementError"
    assert result.error_kind == "execution"
