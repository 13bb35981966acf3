"""Error taxonomy for sink schema operations.

Every error is terminal for the operation that raised it; nothing here is
retried internally. Messages carry the offending URL, host or SQL but never
the password.
"""

from typing import Optional


class SinkError(Exception):
    """Base class for all sink connector errors."""


class ValidationError(SinkError):
    """Connection string or descriptor rejected before any I/O."""


class MissingCredentials(ValidationError):
    pass


class MalformedScheme(ValidationError):
    pass


class MalformedAuthority(ValidationError):
    pass


class MalformedHostPort(ValidationError):
    pass


class InvalidPort(ValidationError):
    pass


class HostNotAllowed(ValidationError):
    pass


class InvalidIdentifier(ValidationError):
    """A database, table, column, type or expression token is unsafe to interpolate."""


class ConnectionFailed(SinkError):
    """Driver could not produce a usable connection."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class DriverUnavailable(ConnectionFailed):
    pass


class NullConnection(ConnectionFailed):
    pass


class QueryError(SinkError):
    """An introspection query failed (connectivity or syntax, never "not found")."""

    def __init__(self, message: str, sql: Optional[str] = None):
        super().__init__(message)
        self.sql = sql


class ExecutionError(SinkError):
    """A DDL statement or batch failed."""


class StatementError(ExecutionError):
    def __init__(self, sql: str, engine_message: str, index: Optional[int] = None):
        where = f" (statement {index + 1} of batch)" if index is not None else ""
        super().__init__(f"execute sql failed{where}: {engine_message} [sql: {sql}]")
        self.sql = sql
        self.engine_message = engine_message
        self.index = index
