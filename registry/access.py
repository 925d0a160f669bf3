"""
NFT Collection Registry - Access Control and Reentrancy Protection

This module provides the administrator gate and the non-reentrancy lock that
brackets every state-mutating entry point of a collection.
"""

import logging
from contextlib import contextmanager
from typing import Optional

from .exceptions import InvalidOwnerError, ReentrantCallError, UnauthorizedError
from .schema import is_null_identity, normalize_identity


class ReentrancyGuard:
    """Non-reentrant lock with scoped acquisition."""

    def __init__(self, name: str = "unnamed"):
        self.name = name
        self._entered = False
        self._operation: Optional[str] = None
        self.logger = logging.getLogger(__name__)

    @property
    def entered(self) -> bool:
        """Whether an operation currently holds the guard."""
        return self._entered

    def enter(self, operation: str = "") -> None:
        """Acquire the guard or fail if a call is already in progress."""
        if self._entered:
            self.logger.warning(
                f"Reentrant call to '{operation}' on {self.name} while '{self._operation}' is in progress"
            )
            raise ReentrantCallError("ReentrancyGuard: reentrant call")

        self._entered = True
        self._operation = operation

    def exit(self) -> None:
        """Release the guard."""
        self._entered = False
        self._operation = None

    @contextmanager
    def guard(self, operation: str = ""):
        """Hold the guard for the duration of the block, releasing on every exit path."""
        self.enter(operation)
        try:
            yield
        finally:
            self.exit()


class AccessGate:
    """Single-administrator authorization."""

    def __init__(self, administrator: str):
        if is_null_identity(administrator):
            raise InvalidOwnerError("Ownable: new owner is the zero address")

        self._administrator = normalize_identity(administrator)
        self.logger = logging.getLogger(__name__)

    @property
    def administrator(self) -> str:
        return self._administrator

    def is_administrator(self, caller: Optional[str]) -> bool:
        return normalize_identity(caller) == self._administrator

    def authorize(self, caller: Optional[str]) -> str:
        """
        Require the caller to be the administrator.

        Args:
            caller: Identity invoking the operation

        Returns:
            Normalized caller identity

        Raises:
            UnauthorizedError: If the caller is not the administrator
        """
        if not self.is_administrator(caller):
            self.logger.warning(f"Rejected admin operation from {normalize_identity(caller)}")
            raise UnauthorizedError("Ownable: caller is not the owner")
        return self._administrator

    def transfer_administration(self, caller: Optional[str], new_administrator: Optional[str]) -> str:
        """Hand the administrator role to a new identity and return the previous one."""
        self.authorize(caller)

        if is_null_identity(new_administrator):
            raise InvalidOwnerError("Ownable: new owner is the zero address")

        previous = self._administrator
        self._administrator = normalize_identity(new_administrator)
        self.logger.info(f"Administrator changed: {previous} -> {self._administrator}")
        return previous
