# trashcan/errors.py
"""
Exception hierarchy for the trashcan cleaner.

- InvalidArgumentError: bad configuration, raised at construction time
- StoreError and subclasses: failures reported by a node store
- CycleFailedError: a cleanup cycle stopped on a failed delete chunk

A node that is already gone is not an error; stores report it as
DeleteOutcome.NOT_FOUND.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from trashcan.services.cleaner import CycleResult


class TrashcanError(Exception):
    """Base class for all trashcan cleaner errors."""


class InvalidArgumentError(TrashcanError, ValueError):
    """Raised when the cleaner is configured with an invalid value."""


class StoreError(TrashcanError):
    """Base class for errors raised by a node store."""


class TransientStoreConflict(StoreError):
    """Concurrent modification or lock conflict. Safe to retry."""


class UnrecoverableStoreError(StoreError):
    """Any store failure that retrying will not fix."""


class PermissionDeniedError(StoreError):
    """The security context may not perform the requested operation."""


class CycleFailedError(TrashcanError):
    """
    Raised by TrashcanCleaner.clean() when deletion stopped on a failed chunk.

    Chunks committed before the failure stay deleted; `result` carries the
    partial counts for reporting.
    """

    def __init__(self, message: str, result: "CycleResult"):
        super().__init__(message)
        self.result = result
