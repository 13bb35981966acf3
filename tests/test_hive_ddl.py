import pytest

from databases.errors import InvalidIdentifier
from databases.models import ColumnDescriptor, TableDescriptor


def _events(**kwargs):
    return TableDescriptor(
        database="dw",
        name="events",
        columns=(
            ColumnDescriptor("id", "bigint"),
            ColumnDescriptor("name", "string", comment="user name"),
            ColumnDescriptor("dt", "string", partition=True),
        ),
        **kwargs,
    )


def test_create_table_sql_puts_partition_columns_last(hive):
    sql = hive.create_table_sql(_events(comment="events"))

    assert sql == (
        "CREATE TABLE IF NOT EXISTS `dw`.`events` (\n"
        "    `id` bigint,\n"
        "    `name` string COMMENT 'user name'\n"
        ")\n"
        "COMMENT 'events'\n"
        "PARTITIONED BY (`dt` string)\n"
        "ROW FORMAT DELIMITED FIELDS TERMINATED BY '\\001'\n"
        "STORED AS TEXTFILE"
    )


def test_create_table_sql_with_custom_format(hive):
    sql = hive.create_table_sql(_events(field_delimiter=",", stored_as="orc"))

    assert "FIELDS TERMINATED BY ','" in sql
    assert sql.endswith("STORED AS ORC")


@pytest.mark.parametrize("options", [{"field_delimiter": "';"}, {"stored_as": "JSON; DROP"}])
def test_unsafe_table_options_are_rejected(hive, options):
    with pytest.raises(InvalidIdentifier):
        hive.create_table_sql(_events(**options))


def test_add_columns_sql_is_a_single_statement(hive):
    statements = hive.add_columns_sql(
        _events(), [ColumnDescriptor("b", "int"), ColumnDescriptor("c", "string", comment="x")]
    )

    assert statements == ["ALTER TABLE `dw`.`events` ADD COLUMNS (`b` int, `c` string COMMENT 'x')"]
    assert hive.add_columns_sql(_events(), []) == []


def test_describe_and_catalog_queries(hive):
    assert hive.describe_table_sql("dw", "events") == "DESCRIBE `dw`.`events`"
    assert hive.database_exists_query("dw") == ("SHOW DATABASES LIKE :pattern", {"pattern": "dw"})
    assert hive.table_exists_query("dw", "events") == ("SHOW TABLES IN `dw` LIKE :pattern", {"pattern": "events"})


def test_get_columns_stops_at_partition_section(hive, make_conn):
    rows = [
        ("id", "bigint", ""),
        ("name", "string", "user name"),
        ("dt", "string", None),
        ("", None, None),
        ("# Partition Information", None, None),
        ("# col_name", "data_type", "comment"),
        ("dt", "string", ""),
    ]
    conn = make_conn(responder=lambda sql, params: rows)

    columns = hive.get_columns(conn, "dw", "events")

    assert [c.name for c in columns] == ["id", "name", "dt"]
    assert columns[0].comment is None
    assert columns[1].comment == "user name"


def test_column_exists_falls_back_to_describe(hive, make_conn):
    conn = make_conn(responder=lambda sql, params: [("id", "bigint", ""), ("Name", "string", "")])

    assert hive.column_exists(conn, "dw", "events", "name") is True
    assert hive.column_exists(conn, "dw", "events", "missing") is False
    assert conn.queries[0][0] == "DESCRIBE `dw`.`events`"


def test_engine_options_use_a_bounded_creator(hive, monkeypatch):
    opened = []
    monkeypatch.setattr("databases.hive.open_hive_connection", lambda d, t: opened.append((d, t)) or "conn")

    options = hive.engine_options("descriptor", 10, 60)

    assert options["creator"]() == "conn"
    assert opened == [("descriptor", 60)]


def test_existence_checks_compare_names_exactly(hive, make_conn):
    # LIKE 'db_a' can also match 'dbxa'
    conn = make_conn(responder=lambda sql, params: [("dbxa",)])
    assert hive.database_exists(conn, "db_a") is False
    assert hive.table_exists(conn, "dw", "ev_1") is False

    conn = make_conn(responder=lambda sql, params: [("dbxa",), ("DB_A",)])
    assert hive.database_exists(conn, "db_a") is True


def test_query_timeout_becomes_query_error(hive, make_conn):
    from thrift.transport.TTransport import TTransportException

    from databases.errors import QueryError

    def stalled(sql, params):
        raise TTransportException(type=TTransportException.TIMED_OUT, message="read timed out")

    with pytest.raises(QueryError) as exc:
        hive.get_columns(make_conn(responder=stalled), "dw", "events")
    assert exc.value.sql == "DESCRIBE `dw`.`events`"
