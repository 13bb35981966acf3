"""API routes: create and inspect sink databases, tables and columns."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from api.auth import require_bearer_token
from databases import get_adapter, supported_engines
from databases.models import ColumnDescriptor, ExecutionResult, TableDescriptor
from databases.reconcile import SinkSchemaService

router = APIRouter(prefix="/api/sinks", tags=["sinks"], dependencies=[Depends(require_bearer_token)])

# HTTP status per error family of a failed ExecutionResult.
ERROR_STATUS = {
    "validation": 400,
    "connection": 502,
    "query": 500,
    "execution": 500,
}


class SinkConnection(BaseModel):
    url: str
    username: str
    password: str | None = None


class DatabaseRequest(SinkConnection):
    database: str


class TableRequest(SinkConnection):
    table: dict[str, Any]


class ColumnsRequest(SinkConnection):
    database: str
    table: str
    columns: list[dict[str, Any]] = Field(default_factory=list)


class TableRef(SinkConnection):
    database: str
    table: str


def _service(engine: str, body: SinkConnection) -> SinkSchemaService:
    adapter = get_adapter(engine)
    if adapter is None:
        raise HTTPException(
            status_code=404,
            detail={"detail": "Unknown sink engine", "engine": engine, "supported": list(supported_engines())},
        )
    return SinkSchemaService(adapter, body.url, body.username, body.password)


def _table_descriptor(data: dict[str, Any]) -> TableDescriptor:
    try:
        return TableDescriptor.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail={"detail": f"Invalid table description: {e}"}) from e


def _respond(result: ExecutionResult):
    if result.success:
        return result.to_dict()
    return JSONResponse(status_code=ERROR_STATUS.get(result.error_kind, 500), content=result.to_dict())


@router.post("/{engine}/databases")
def create_database(engine: str, body: DatabaseRequest):
    """Create the database unless it already exists."""
    return _respond(_service(engine, body).create_db(body.database))


@router.post("/{engine}/tables")
def create_table(engine: str, body: TableRequest):
    """Create the table unless it already exists; returns its columns."""
    service = _service(engine, body)
    return _respond(service.create_table(_table_descriptor(body.table)))


@router.post("/{engine}/columns")
def add_columns(engine: str, body: ColumnsRequest):
    """Add the columns the table does not have yet, in the order given."""
    service = _service(engine, body)
    table = _table_descriptor({"database": body.database, "name": body.table, "columns": body.columns})
    return _respond(service.add_columns(table))


@router.post("/{engine}/tables/list")
def list_tables(engine: str, body: DatabaseRequest):
    return _respond(_service(engine, body).get_tables(body.database))


@router.post("/{engine}/columns/list")
def list_columns(engine: str, body: TableRef):
    return _respond(_service(engine, body).get_columns(body.database, body.table))
