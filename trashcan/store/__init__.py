# trashcan/store/__init__.py
"""
Node store interface and providers.

Providers:
- memory: InMemoryNodeStore (development and tests)
- sql: SqlNodeStore (SQLAlchemy, `nodes` table)
"""

from trashcan.store.base import ChildAssoc, DeleteOutcome, NodeRef, NodeStore
from trashcan.store.factory import get_node_store, reset_node_store, set_node_store
from trashcan.store.memory_provider import InMemoryNodeStore

__all__ = [
    "NodeStore",
    "NodeRef",
    "ChildAssoc",
    "DeleteOutcome",
    "InMemoryNodeStore",
    "get_node_store",
    "set_node_store",
    "reset_node_store",
]
