"""
NFT Collection Registry - Ownership Ledger

This module tracks which identity owns each live token, per-owner balances,
single-token delegates and owner-wide operator approvals. Every mutation
validates all of its preconditions before touching any map.
"""

import logging
from typing import Dict, List, Optional, Set

from .exceptions import (
    InvalidInputError, InvalidOwnerError, OwnerMismatchError,
    TokenExistsError, TokenNotFoundError, UnauthorizedError
)
from .schema import ZERO_ADDRESS, is_null_identity, normalize_identity


class OwnershipRegistry:
    """Token ownership, balances and approvals."""

    def __init__(self):
        self.owners: Dict[int, str] = {}
        self.balances: Dict[str, int] = {}
        self.token_approvals: Dict[int, str] = {}
        self.operator_approvals: Dict[str, Set[str]] = {}
        self.logger = logging.getLogger(__name__)

    # Queries

    def exists(self, token_id: int) -> bool:
        return token_id in self.owners

    def require_exists(self, token_id: int) -> str:
        """Return the owner of a live token or raise TokenNotFoundError."""
        owner = self.owners.get(token_id)
        if owner is None:
            raise TokenNotFoundError("ERC721: invalid token ID")
        return owner

    def owner_of(self, token_id: int) -> str:
        return self.require_exists(token_id)

    def balance_of(self, owner: Optional[str]) -> int:
        if is_null_identity(owner):
            raise InvalidInputError("ERC721: address zero is not a valid owner")
        return self.balances.get(normalize_identity(owner), 0)

    def get_approved(self, token_id: int) -> str:
        """Get the approved delegate of a token, ZERO_ADDRESS when none."""
        self.require_exists(token_id)
        return self.token_approvals.get(token_id, ZERO_ADDRESS)

    def is_approved_for_all(self, owner: Optional[str], operator: Optional[str]) -> bool:
        operators = self.operator_approvals.get(normalize_identity(owner), set())
        return normalize_identity(operator) in operators

    def is_authorized(self, token_id: int, caller: Optional[str]) -> bool:
        """
        Check whether caller may move or destroy a token.

        Args:
            token_id: Token ID
            caller: Identity attempting the operation

        Returns:
            True if caller is the owner, the approved delegate, or an operator of the owner

        Raises:
            TokenNotFoundError: If the token is not live
        """
        owner = self.require_exists(token_id)
        caller_norm = normalize_identity(caller)

        if is_null_identity(caller_norm):
            return False

        return (
            caller_norm == owner
            or self.token_approvals.get(token_id) == caller_norm
            or self.is_approved_for_all(owner, caller_norm)
        )

    def tokens_of(self, owner: Optional[str]) -> List[int]:
        owner_norm = normalize_identity(owner)
        return sorted(token_id for token_id, holder in self.owners.items() if holder == owner_norm)

    def total_balance(self) -> int:
        return sum(self.balances.values())

    # Mutations

    def create(self, token_id: int, owner: Optional[str]) -> str:
        """
        Insert a new live token.

        Raises:
            TokenExistsError: If the ID is already live
            InvalidOwnerError: If owner is the null identity
        """
        if token_id in self.owners:
            raise TokenExistsError("Token already exists")

        if is_null_identity(owner):
            raise InvalidOwnerError("Cannot mint to zero address")

        owner_norm = normalize_identity(owner)
        self.owners[token_id] = owner_norm
        self.token_approvals.pop(token_id, None)
        self.balances[owner_norm] = self.balances.get(owner_norm, 0) + 1
        return owner_norm

    def destroy(self, token_id: int) -> str:
        """Remove a live token and return its prior owner."""
        owner = self.require_exists(token_id)

        del self.owners[token_id]
        self.token_approvals.pop(token_id, None)
        self._decrement_balance(owner)
        return owner

    def transfer(self, token_id: int, from_addr: Optional[str], to_addr: Optional[str]) -> str:
        """
        Reassign a live token to a new owner, clearing its delegate.

        Raises:
            TokenNotFoundError: If the token is not live
            OwnerMismatchError: If from_addr is not the current owner
            InvalidOwnerError: If to_addr is the null identity
        """
        owner = self.require_exists(token_id)
        from_norm = normalize_identity(from_addr)
        to_norm = normalize_identity(to_addr)

        if owner != from_norm:
            raise OwnerMismatchError("ERC721: transfer from incorrect owner")

        if is_null_identity(to_norm):
            raise InvalidOwnerError("ERC721: transfer to the zero address")

        self.token_approvals.pop(token_id, None)
        self._decrement_balance(from_norm)
        self.balances[to_norm] = self.balances.get(to_norm, 0) + 1
        self.owners[token_id] = to_norm
        return to_norm

    def approve(self, token_id: int, caller: Optional[str], delegate: Optional[str]) -> str:
        """
        Set or clear the single-token delegate and return the token owner.

        Passing the null identity as delegate clears the approval.
        """
        owner = self.require_exists(token_id)
        caller_norm = normalize_identity(caller)
        delegate_norm = normalize_identity(delegate)

        if delegate_norm == owner:
            raise InvalidInputError("ERC721: approval to current owner")

        if caller_norm != owner and not self.is_approved_for_all(owner, caller_norm):
            raise UnauthorizedError("ERC721: approve caller is not token owner or approved for all")

        if is_null_identity(delegate_norm):
            self.token_approvals.pop(token_id, None)
        else:
            self.token_approvals[token_id] = delegate_norm
        return owner

    def set_operator_approval(self, owner: Optional[str], operator: Optional[str], approved: bool) -> None:
        owner_norm = normalize_identity(owner)
        operator_norm = normalize_identity(operator)

        if owner_norm == operator_norm:
            raise InvalidInputError("ERC721: approve to caller")

        if approved:
            self.operator_approvals.setdefault(owner_norm, set()).add(operator_norm)
        else:
            operators = self.operator_approvals.get(owner_norm)
            if operators is not None:
                operators.discard(operator_norm)
                if not operators:
                    del self.operator_approvals[owner_norm]

    def _decrement_balance(self, owner: str) -> None:
        remaining = self.balances.get(owner, 0) - 1
        if remaining > 0:
            self.balances[owner] = remaining
        else:
            self.balances.pop(owner, None)
