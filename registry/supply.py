"""
NFT Collection Registry - Supply Management

This module enforces the supply cap, the valid token ID range and the
issuance pause flag of a collection.
"""

import logging
from typing import Any, Dict, Optional

from .exceptions import (
    MintingPausedError, SupplyExceededError, TokenIdOutOfRangeError
)


class SupplyController:
    """Supply cap, ID range and pause state for one collection."""

    def __init__(
        self,
        max_supply: int,
        min_token_id: int = 1,
        max_token_id: Optional[int] = None,
        total_supply: int = 0,
        mint_paused: bool = False
    ):
        """
        Initialize supply controller.

        Args:
            max_supply: Maximum number of simultaneously live tokens
            min_token_id: Lowest valid token ID (inclusive)
            max_token_id: Highest valid token ID (inclusive), defaults to the first max_supply IDs
            total_supply: Number of currently live tokens
            mint_paused: Initial issuance pause flag
        """
        if max_supply <= 0:
            raise ValueError("Maximum supply must be positive")

        self.max_supply = max_supply
        self.min_token_id = min_token_id
        self.max_token_id = min_token_id + max_supply - 1 if max_token_id is None else max_token_id
        self.total_supply = total_supply
        self.mint_paused = mint_paused
        self.logger = logging.getLogger(__name__)

    @property
    def remaining_supply(self) -> int:
        return self.max_supply - self.total_supply

    def is_in_range(self, token_id: int) -> bool:
        return self.min_token_id <= token_id <= self.max_token_id

    def validate_mintable(self, token_id: int) -> None:
        """
        Check that one more token with this ID may be issued.

        Raises:
            SupplyExceededError: If the supply cap has been reached
            TokenIdOutOfRangeError: If the ID is outside the valid range
        """
        if self.total_supply >= self.max_supply:
            raise SupplyExceededError("Maximum supply reached")

        if isinstance(token_id, bool) or not isinstance(token_id, int) or not self.is_in_range(token_id):
            raise TokenIdOutOfRangeError("Token ID out of valid range")

    def check_not_paused(self) -> None:
        """Fail while issuance is paused."""
        if self.mint_paused:
            raise MintingPausedError("Minting is currently paused")

    def record_mint(self) -> None:
        if self.total_supply >= self.max_supply:
            raise SupplyExceededError("Maximum supply reached")
        self.total_supply += 1

    def record_burn(self) -> None:
        if self.total_supply <= 0:
            raise ValueError("Total supply cannot go below zero")
        self.total_supply -= 1

    def set_paused(self, paused: bool) -> None:
        """Set the issuance pause flag unconditionally."""
        self.mint_paused = bool(paused)
        self.logger.info(f"Minting {'paused' if self.mint_paused else 'resumed'}")

    def get_supply_info(self) -> Dict[str, Any]:
        """Get supply figures for reporting."""
        return {
            'max_supply': self.max_supply,
            'total_supply': self.total_supply,
            'remaining_supply': self.remaining_supply,
            'utilization_percent': round(self.total_supply / self.max_supply * 100, 2),
            'min_token_id': self.min_token_id,
            'max_token_id': self.max_token_id,
            'mint_paused': self.mint_paused,
        }
