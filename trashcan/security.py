# trashcan/security.py
"""
Explicit security contexts.

Every store call receives the identity it runs as. Reclamation always runs
as the system principal, because the users who owned archived content may
no longer exist.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from trashcan.constants import SYSTEM_USER_NAME

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SecurityContext:
    """Identity a store operation runs as."""

    principal: str
    is_system: bool = False

    def can_modify(self, owner: str | None) -> bool:
        """System may modify anything; users only what they own."""
        return self.is_system or (owner is not None and owner == self.principal)


SYSTEM_CONTEXT = SecurityContext(principal=SYSTEM_USER_NAME, is_system=True)


def user_context(username: str) -> SecurityContext:
    """Context for an ordinary user."""
    return SecurityContext(principal=username, is_system=False)


def run_as_system(work: Callable[[SecurityContext], T]) -> T:
    """Run `work` with the system context passed in explicitly."""
    logger.debug("Elevating to system context")
    return work(SYSTEM_CONTEXT)
