# trashcan/services/__init__.py
"""
Trashcan cleaning services.

Services:
- retention_policy: Keep-period parsing and eligibility
- selector: Eligible item selection over the archive root
- batch_deleter: Chunked transactional deletion
- cleaner: Cycle coordination
- job: Scheduler entry point
"""

from trashcan.services.batch_deleter import BatchDeleter, DeletionResult, partition
from trashcan.services.cleaner import CycleResult, CycleState, TrashcanCleaner
from trashcan.services.retention_policy import RetentionPolicy, format_keep_period, is_eligible, parse_keep_period
from trashcan.services.selector import EligibleItemSelector, SelectionMode, TraversalOrder, TypeFilter
from trashcan.services.transactions import TransactionHelper

__all__ = [
    # Policy
    "RetentionPolicy",
    "parse_keep_period",
    "format_keep_period",
    "is_eligible",
    # Selection
    "EligibleItemSelector",
    "SelectionMode",
    "TraversalOrder",
    "TypeFilter",
    # Deletion
    "BatchDeleter",
    "DeletionResult",
    "partition",
    "TransactionHelper",
    # Coordination
    "TrashcanCleaner",
    "CycleResult",
    "CycleState",
]
