# trashcan/models.py
"""
Node store database model.

Tables:
- nodes: every node of every store. A store root has no parent; the direct
  children of the archive store root are the trashcan contents.
"""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import backref, relationship

from trashcan.database import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Node(Base):
    """A node in a store hierarchy."""
    __tablename__ = "nodes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    store_ref = Column(String(255), nullable=False)  # e.g. "archive://SpacesStore"
    parent_id = Column(Integer, ForeignKey("nodes.id", ondelete="CASCADE"), nullable=True)

    # Native association order among siblings; reassigned when a node is archived
    assoc_index = Column(Integer, nullable=False, default=0)

    node_type = Column(String(64), nullable=False)
    name = Column(String(255), nullable=False)
    owner = Column(String(255), nullable=True)

    archived_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    children = relationship(
        "Node",
        cascade="all, delete-orphan",
        order_by="Node.assoc_index",
        backref=backref("parent", remote_side=[id]),
    )

    __table_args__ = (
        Index("ix_nodes_parent_assoc", "parent_id", "assoc_index"),
        Index("ix_nodes_store_ref", "store_ref"),
    )

    def __repr__(self) -> str:
        return f"<Node {self.store_ref}/{self.id} {self.node_type} {self.name!r}>"
