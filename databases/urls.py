"""Parse and validate ``scheme://host:port[/database]`` connection strings.

Pure string handling: nothing here resolves names or opens sockets.
"""

import re
from typing import Optional, Pattern

from .errors import HostNotAllowed, InvalidPort, MalformedAuthority, MalformedHostPort, MalformedScheme
from .models import ConnectionDescriptor

MIN_PORT = 1
MAX_PORT = 65535

# Parameters after the database segment: "?k=v" (MySQL, ClickHouse) or ";k=v" (Hive)
_PATH_PARAMS = re.compile(r"[?;]")


def parse_jdbc_url(
    url: str,
    expected_scheme: str,
    allowed_hosts: Optional[Pattern[str]] = None,
) -> ConnectionDescriptor:
    """Validate ``url`` against ``expected_scheme`` and split it into a descriptor.

    Args:
        url: Connection string, e.g. ``jdbc:mysql://10.0.0.5:3306/sales``.
        expected_scheme: Required prefix, e.g. ``jdbc:mysql``.
        allowed_hosts: Optional pattern the host must fully match.

    Raises:
        MalformedScheme, MalformedAuthority, MalformedHostPort, InvalidPort,
        HostNotAllowed.
    """
    if not url or not url.startswith(expected_scheme):
        raise MalformedScheme(f"JDBC URL is invalid, it should start with {expected_scheme}")

    rest = url[len(expected_scheme):]
    if not rest.startswith("://"):
        raise MalformedAuthority(f"Invalid JDBC URL format, expected {expected_scheme}://host:port[/database]")
    authority, _, path = rest[3:].partition("/")
    if not authority:
        raise MalformedAuthority(f"Invalid JDBC URL format, no host:port found after {expected_scheme}://")

    parts = authority.split(":")
    if len(parts) != 2 or not parts[0]:
        raise MalformedHostPort(f"Invalid host:port format in JDBC URL: {authority}")
    host, port_text = parts

    if not (port_text.isascii() and port_text.isdigit()):
        raise InvalidPort(f"Invalid port number format in JDBC URL: {port_text}")
    port = int(port_text)
    if port < MIN_PORT or port > MAX_PORT:
        raise InvalidPort(f"Invalid port number in JDBC URL: {port}")

    if allowed_hosts is not None and not allowed_hosts.fullmatch(host):
        raise HostNotAllowed(f"Invalid host in JDBC URL: {host}")

    database = _PATH_PARAMS.split(path, maxsplit=1)[0] or None
    return ConnectionDescriptor(scheme=expected_scheme, host=host, port=port, database=database)
