"""Descriptors passed into and returned from the sink connectors.

All descriptors are immutable. They are built per call (from a connection
string, an API body or a schema JSON file) and discarded afterwards; nothing
here is cached between operations.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import ConnectionFailed, QueryError, ValidationError


@dataclass(frozen=True)
class ConnectionDescriptor:
    scheme: str
    host: str
    port: int
    database: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    def with_credentials(self, user: Optional[str], password: Optional[str]) -> "ConnectionDescriptor":
        return ConnectionDescriptor(self.scheme, self.host, self.port, self.database, user, password)

    def redacted_url(self) -> str:
        """Connection string safe to log: scheme, host, port and database only."""
        url = f"{self.scheme}://{self.host}:{self.port}"
        if self.database:
            url += f"/{self.database}"
        return url


@dataclass(frozen=True)
class ColumnDescriptor:
    """One column, either desired (DDL input) or observed (introspection output).

    ``default_value`` is a literal and is quoted when rendered.
    ``default_expr`` is a raw engine expression (ClickHouse), rendered after
    ``default_kind`` (DEFAULT, MATERIALIZED or ALIAS).
    """

    name: str
    type: str
    comment: Optional[str] = None
    nullable: bool = True
    default_value: Optional[str] = None
    default_kind: Optional[str] = None
    default_expr: Optional[str] = None
    compression_codec: Optional[str] = None
    ttl_expr: Optional[str] = None
    partition: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ColumnDescriptor":
        return cls(
            name=data["name"],
            type=data["type"],
            comment=data.get("comment"),
            nullable=bool(data.get("nullable", True)),
            default_value=_opt_str(data.get("default_value")),
            default_kind=data.get("default_kind"),
            default_expr=data.get("default_expr"),
            compression_codec=data.get("compression_codec"),
            ttl_expr=data.get("ttl_expr"),
            partition=bool(data.get("partition", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class TableDescriptor:
    """Desired end-state of one table. Column order is significant."""

    database: str
    name: str
    columns: Tuple[ColumnDescriptor, ...]
    comment: Optional[str] = None
    primary_key: Tuple[str, ...] = ()
    # MySQL
    engine: Optional[str] = None
    charset: Optional[str] = None
    # Hive
    field_delimiter: Optional[str] = None
    stored_as: Optional[str] = None
    # ClickHouse
    order_by: Tuple[str, ...] = ()
    partition_by: Optional[str] = None
    cluster: Optional[str] = None
    ttl: Optional[int] = None
    ttl_unit: str = "DAY"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TableDescriptor":
        ttl = data.get("ttl")
        return cls(
            database=data["database"],
            name=data.get("name") or data["table"],
            columns=tuple(ColumnDescriptor.from_dict(c) for c in data.get("columns", [])),
            comment=data.get("comment"),
            primary_key=tuple(data.get("primary_key") or ()),
            engine=data.get("engine"),
            charset=data.get("charset"),
            field_delimiter=data.get("field_delimiter"),
            stored_as=data.get("stored_as"),
            order_by=tuple(data.get("order_by") or ()),
            partition_by=data.get("partition_by"),
            cluster=data.get("cluster"),
            ttl=int(ttl) if ttl is not None else None,
            ttl_unit=data.get("ttl_unit") or "DAY",
        )

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]


@dataclass
class ExecutionResult:
    """Outcome of one orchestration call, returned to the caller as-is."""

    success: bool
    columns: List[ColumnDescriptor] = field(default_factory=list)
    tables: List[str] = field(default_factory=list)
    executed: List[str] = field(default_factory=list)
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_kind: Optional[str] = None

    @classmethod
    def failure(cls, exc: Exception) -> "ExecutionResult":
        return cls(success=False, error=str(exc), error_type=type(exc).__name__, error_kind=error_kind(exc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "columns": [c.to_dict() for c in self.columns],
            "tables": list(self.tables),
            "executed": list(self.executed),
            "error": self.error,
            "error_type": self.error_type,
            "error_kind": self.error_kind,
        }


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def error_kind(exc: Exception) -> str:
    """Family of a sink error: validation, connection, query or execution."""
    if isinstance(exc, ValidationError):
        return "validation"
    if isinstance(exc, ConnectionFailed):
        return "connection"
    if isinstance(exc, QueryError):
        return "query"
    return "execution"
