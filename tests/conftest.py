import re
from contextlib import contextmanager

import pytest
from sqlalchemy.exc import DBAPIError

from databases.clickhouse import ClickhouseAdapter
from databases.hive import HiveAdapter
from databases.mysql import MysqlAdapter


class FakeResult:
    def __init__(self, rows):
        self._rows = list(rows)

    def fetchall(self):
        return list(self._rows)


class FakeConnection:
    """Stands in for a SQLAlchemy Connection.

    ``responder(sql, params)`` answers introspection queries; ``on_execute(sql)``
    sees every DDL statement that ran. ``fail_on`` makes DDL containing that
    text raise DBAPIError like a driver would, or ``fail_with`` when given.
    """

    def __init__(self, responder=None, on_execute=None, fail_on=None, fail_with=None):
        self.responder = responder or (lambda sql, params: [])
        self.on_execute = on_execute
        self.fail_on = fail_on
        self.fail_with = fail_with
        self.queries = []
        self.executed = []
        self.commits = 0
        self.rollbacks = 0
        self.begins = 0
        self.closed = False
        self._in_tx = False

    def execute(self, clause, params=None):
        self._in_tx = True
        sql = str(clause)
        self.queries.append((sql, dict(params or {})))
        return FakeResult(self.responder(sql, dict(params or {})))

    def exec_driver_sql(self, sql):
        self._in_tx = True
        if self.fail_on and self.fail_on in sql:
            if self.fail_with is not None:
                raise self.fail_with
            raise DBAPIError(sql, None, Exception(f"engine rejected: {self.fail_on}"))
        self.executed.append(sql)
        if self.on_execute is not None:
            self.on_execute(sql)

    def in_transaction(self):
        return self._in_tx

    def commit(self):
        self.commits += 1
        self._in_tx = False

    def rollback(self):
        self.rollbacks += 1
        self._in_tx = False

    @contextmanager
    def begin(self):
        self.begins += 1
        self._in_tx = True
        try:
            yield self
        except Exception:
            self.rollback()
            raise
        self.commit()

    def close(self):
        self.closed = True


class MysqlCatalog:
    """In-memory information_schema that follows the DDL run against it."""

    _CREATE_DB = re.compile(r"CREATE DATABASE IF NOT EXISTS `(\w+)`")
    _CREATE_TABLE = re.compile(r"CREATE TABLE IF NOT EXISTS `(\w+)`\.`(\w+)` \((.*)\) ENGINE", re.S)
    _ADD_COLUMN = re.compile(r"ALTER TABLE `(\w+)`\.`(\w+)` ADD COLUMN `(\w+)` (\S+)")

    def __init__(self, databases=(), tables=None):
        self.databases = set(databases)
        # (database, table) -> [(name, type)]
        self.tables = {k: list(v) for k, v in (tables or {}).items()}

    def __call__(self, sql, params):
        if "information_schema.SCHEMATA" in sql:
            return [(params["database"],)] if params["database"] in self.databases else []
        if "information_schema.COLUMNS" in sql and ":column" in sql:
            cols = self.tables.get((params["database"], params["table"]), [])
            return [(n,) for n, _ in cols if n == params["column"]]
        if "ORDER BY ORDINAL_POSITION" in sql:
            m = re.search(r"TABLE_SCHEMA = '(\w+)' AND TABLE_NAME = '(\w+)'", sql)
            cols = self.tables.get((m.group(1), m.group(2)), [])
            return [(n, t, "", "YES", None) for n, t in cols]
        if "information_schema.TABLES" in sql and ":table" in sql:
            return [(params["table"],)] if (params["database"], params["table"]) in self.tables else []
        if "information_schema.TABLES" in sql:
            return [(t,) for db, t in self.tables if db == params["database"]]
        raise AssertionError(f"unexpected query: {sql}")

    def apply(self, sql):
        m = self._CREATE_DB.match(sql)
        if m:
            self.databases.add(m.group(1))
            return
        m = self._CREATE_TABLE.match(sql)
        if m:
            cols = re.findall(r"`(\w+)` ([^\s,]+)", m.group(3))
            self.tables[(m.group(1), m.group(2))] = cols
            return
        m = self._ADD_COLUMN.match(sql)
        if m:
            self.tables[(m.group(1), m.group(2))].append((m.group(3), m.group(4)))


@pytest.fixture
def mysql():
    return MysqlAdapter()


@pytest.fixture
def hive():
    return HiveAdapter()


@pytest.fixture
def clickhouse():
    return ClickhouseAdapter()


@pytest.fixture
def make_conn():
    def _make(responder=None, on_execute=None, fail_on=None, fail_with=None):
        return FakeConnection(responder=responder, on_execute=on_execute, fail_on=fail_on, fail_with=fail_with)

    return _make


@pytest.fixture
def mysql_catalog():
    def _make(databases=(), tables=None):
        catalog = MysqlCatalog(databases, tables)
        return catalog, FakeConnection(responder=catalog, on_execute=catalog.apply)

    return _make
