# trashcan/services/seeding.py
"""
Fill the trashcan with archived nodes, for development and tests.

Each seeded item is a folder with `children` content nodes. The children
are archived before their parent, so every node ends up as its own direct
child of the archive root: seeding N items with C children each puts
N * (C + 1) nodes in the trashcan.
"""

import logging
from datetime import datetime

from trashcan.constants import NodeTypes, StoreRefs
from trashcan.security import SecurityContext, user_context
from trashcan.store.base import NodeRef, NodeStore

logger = logging.getLogger(__name__)


def seed_trashcan(
    store: NodeStore,
    count: int,
    children: int = 0,
    archived_at: datetime | None = None,
    ctx: SecurityContext | None = None,
    workspace_store_ref: str = StoreRefs.WORKSPACE,
    archive_store_ref: str = StoreRefs.ARCHIVE,
) -> list[NodeRef]:
    """
    Create and archive `count` folders with `children` documents each.

    Returns:
        Archive refs of every node put in the trashcan, in archive order
    """
    if count < 0 or children < 0:
        raise ValueError("count and children must be non-negative")

    ctx = ctx or user_context("admin")
    workspace_root = store.ensure_store(workspace_store_ref)
    store.ensure_store(archive_store_ref)

    archived: list[NodeRef] = []
    with store.transaction():
        for i in range(count):
            folder = store.create_node(ctx, workspace_root, NodeTypes.FOLDER, f"folder-{i}")
            documents = [
                store.create_node(ctx, folder, NodeTypes.CONTENT, f"folder-{i}-doc-{j}")
                for j in range(children)
            ]
            for document in documents:
                archived.append(store.archive_node(ctx, document, archive_store_ref, archived_at))
            archived.append(store.archive_node(ctx, folder, archive_store_ref, archived_at))

    logger.info(f"Seeded {len(archived)} archived nodes ({count} folders, {children} children each)")
    return archived
