# trashcan/__init__.py
"""
Trashcan cleaner: index-free reclamation of archived (soft-deleted) nodes.

Packages:
- services: retention policy, selection, batch deletion, cycle coordination
- store: node store interface and its in-memory / SQL providers
- routers: admin HTTP endpoints
- cli: operator commands
"""

__version__ = "0.1.0"
