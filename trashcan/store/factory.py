# trashcan/store/factory.py
"""
Factory function for creating node stores.
"""

import logging
from typing import Optional

from trashcan.store.base import NodeStore

logger = logging.getLogger(__name__)

# Global singleton instance
_node_store: Optional[NodeStore] = None


def get_node_store(
    provider_name: Optional[str] = None,
    **kwargs,
) -> NodeStore:
    """
    Get or create the node store instance.

    Args:
        provider_name: 'sql' or 'memory' (default from TRASHCAN_STORE_PROVIDER)
        **kwargs: Additional arguments for the provider

    Returns:
        NodeStore instance (singleton)
    """
    global _node_store

    if _node_store is not None:
        return _node_store

    if provider_name is None:
        from trashcan.config import get_settings

        provider_name = get_settings().TRASHCAN_STORE_PROVIDER

    name = provider_name.lower().strip()

    if name == "sql":
        from trashcan.database import init_db
        from trashcan.store.sql_provider import SqlNodeStore

        init_db()
        _node_store = SqlNodeStore(**kwargs)
    elif name == "memory":
        from trashcan.store.memory_provider import InMemoryNodeStore

        _node_store = InMemoryNodeStore(**kwargs)
    else:
        raise ValueError(f"Unknown node store provider: {name}. Available: sql, memory")

    logger.info(f"Node store initialized: {_node_store.name}")
    return _node_store


def set_node_store(store: NodeStore) -> None:
    """
    Set a custom node store (useful for testing).
    """
    global _node_store
    _node_store = store


def reset_node_store() -> None:
    """
    Reset the node store singleton (for testing).
    """
    global _node_store
    _node_store = None
