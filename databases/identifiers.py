"""Safe tokens for hand-built DDL.

DDL cannot use bind parameters for names, so every identifier, type and
expression is checked against an allow-listed character set before it is
interpolated. String literals (comments, default values) are escaped instead.
"""

import re

from .errors import InvalidIdentifier

_IDENTIFIER = re.compile(r"[A-Za-z0-9_]{1,128}")
_TYPE = re.compile(r"[A-Za-z][A-Za-z0-9_ ]*(?:[(<][A-Za-z0-9_ ,()<>:.'=+/-]*[)>])?")
_FORBIDDEN = ("--", "/*", "*/", ";", "`", "\\")


def check_identifier(name: str, kind: str = "identifier") -> str:
    """Return ``name`` unchanged if it is a plain word, else raise InvalidIdentifier."""
    if not isinstance(name, str) or not _IDENTIFIER.fullmatch(name):
        raise InvalidIdentifier(f"Invalid {kind} name: {name!r}")
    return name


def check_type(type_name: str) -> str:
    """Accept scalar and parameterised types: ``INT``, ``Decimal(10, 2)``, ``array<string>``."""
    if (
        not isinstance(type_name, str)
        or not _TYPE.fullmatch(type_name.strip())
        or _has_forbidden(type_name)
        or type_name.count("'") % 2
    ):
        raise InvalidIdentifier(f"Invalid column type: {type_name!r}")
    return type_name.strip()


def check_expression(expr: str, kind: str = "expression") -> str:
    """Accept a single engine expression (default, TTL, codec, partition key)."""
    if (
        not isinstance(expr, str)
        or not expr.strip()
        or _has_forbidden(expr)
        or expr.count("'") % 2
        or any(ord(ch) < 32 for ch in expr)
    ):
        raise InvalidIdentifier(f"Invalid {kind}: {expr!r}")
    return expr.strip()


def quote_literal(value: str) -> str:
    """Single-quote a string literal, backslash-escaping quotes and backslashes."""
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def _has_forbidden(text: str) -> bool:
    return any(token in text for token in _FORBIDDEN)
