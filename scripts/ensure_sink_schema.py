#!/usr/bin/env python3
"""
Bring a sink (MySQL, Hive or ClickHouse) in line with a schema JSON file.
For each table: create the database and table if missing, then add missing columns.

Usage:
  python scripts/ensure_sink_schema.py --engine mysql --url jdbc:mysql://10.0.0.5:3306/sales \\
      --user etl --password-env SINK_PASSWORD schema.json

schema.json is either a list of tables or {"tables": [...]}; each table is
{"database", "table" (or "name"), "columns": [{"name", "type", ...}], ...}.
"""
import argparse
import json
import logging
import os
import sys
from pathlib import Path

_scripts = Path(__file__).resolve().parent
_root = _scripts.parent
for _p in (_scripts, _root):
    if str(_p) not in sys.path:
        sys.path.insert(0, str(_p))

from keyvault_loader import load_env

from databases import get_adapter, supported_engines
from databases.models import TableDescriptor
from databases.reconcile import SinkSchemaService


def load_tables(path: Path, default_database: str = None) -> list:
    with open(path, encoding="utf-8") as f:
        schema = json.load(f)
    entries = schema.get("tables", []) if isinstance(schema, dict) else schema
    tables = []
    if not isinstance(entries, list):
        raise ValueError("expected a list of tables")
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValueError(f"table entry must be an object, got {entry!r}")
        if default_database and not entry.get("database"):
            entry = {**entry, "database": default_database}
        tables.append(TableDescriptor.from_dict(entry))
    return tables


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create missing sink databases, tables and columns from schema JSON")
    parser.add_argument("--engine", required=True, choices=supported_engines(), help="Sink engine")
    parser.add_argument("--url", required=True, help="JDBC URL, e.g. jdbc:mysql://host:3306/db")
    parser.add_argument("--user", required=True, help="Sink username")
    parser.add_argument("--password-env", default="SINK_PASSWORD", help="Env var holding the sink password")
    parser.add_argument("--database", help="Database for tables that do not name one")
    parser.add_argument("schema", type=Path, help="Schema JSON file")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    load_env()

    try:
        tables = load_tables(args.schema, args.database)
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        print(f"ERROR: cannot read {args.schema}: {e}", file=sys.stderr)
        return 1

    service = SinkSchemaService(get_adapter(args.engine), args.url, args.user, os.environ.get(args.password_env))
    failed = 0
    for table in tables:
        result = service.ensure_table(table)
        name = f"{table.database}.{table.name}"
        if not result.success:
            failed += 1
            print(f"  {name}: FAILED - {result.error}", file=sys.stderr)
            continue
        status = f"{len(result.executed)} statement(s)" if result.executed else "up to date"
        print(f"  {name}: {status}, {len(result.columns)} column(s)")

    print(f"Done. {len(tables) - failed} of {len(tables)} table(s) in line with {args.schema}")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
