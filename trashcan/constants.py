# trashcan/constants.py
"""
Centralized constants for the trashcan cleaner.

Store references, node type tags and property keys follow the content
repository naming ("prefix:localName").
"""


class CleanerDefaults:
    """Default values for a cleaner instance."""

    MAX_ITEMS_PER_CYCLE = 1000          # Nodes selected/deleted per clean() call
    SUB_BATCH_SIZE = 100                # Nodes deleted per transaction
    KEEP_PERIOD = "P0D"                 # Non-positive: every archived node is eligible
    MAX_RETRIES = 3                     # Attempts per transaction on conflict
    RETRY_MIN_WAIT_SECONDS = 0.1        # First backoff step
    RETRY_MAX_WAIT_SECONDS = 5.0        # Backoff cap
    PROGRESS_LOG_EVERY = 5              # Log chunk progress every N chunks


class StoreRefs:
    """Well-known store references."""

    ARCHIVE = "archive://SpacesStore"   # Holds soft-deleted nodes
    WORKSPACE = "workspace://SpacesStore"


class NodeTypes:
    """Node type tags."""

    STORE_ROOT = "sys:store_root"
    ARCHIVE_USER = "sys:archiveUser"    # Per-user placeholder under the archive root
    CONTENT = "cm:content"
    FOLDER = "cm:folder"


class NodeProperties:
    """Property keys readable through NodeStore.get_property()."""

    NAME = "cm:name"
    OWNER = "cm:owner"
    ARCHIVED_DATE = "sys:archivedDate"


# Structural types that are never user data and must never be reclaimed
PROTECTED_NODE_TYPES = frozenset({NodeTypes.ARCHIVE_USER})

# Principal used for all reclamation work
SYSTEM_USER_NAME = "System"
