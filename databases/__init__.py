"""Sink engine adapters for schema reconciliation."""

from typing import Optional

from .base import DialectAdapter
from .clickhouse import ClickhouseAdapter
from .hive import HiveAdapter
from .mysql import MysqlAdapter

_ADAPTERS = {
    "mysql": MysqlAdapter,
    "hive": HiveAdapter,
    "clickhouse": ClickhouseAdapter,
}


def get_adapter(engine_name: str) -> Optional[DialectAdapter]:
    """Get the dialect adapter for the given sink engine.

    Args:
        engine_name: Sink engine name (mysql, hive, clickhouse). Case-insensitive.

    Returns:
        DialectAdapter instance or None if the engine is not supported.
    """
    adapter_cls = _ADAPTERS.get((engine_name or "").lower())
    if adapter_cls is None:
        return None
    return adapter_cls()


def supported_engines() -> tuple:
    """Return tuple of supported sink engine names."""
    return tuple(_ADAPTERS.keys())
