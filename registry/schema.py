"""
NFT Collection Registry - Schema Models

This module defines the Pydantic models for collection configuration, audit
events and persisted collection snapshots, together with the identity
helpers shared by every ledger component.
"""

import re
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


ZERO_ADDRESS = "0x" + "0" * 40

DEFAULT_URI_SUFFIX = ".json"


def normalize_identity(identity: Optional[str]) -> str:
    """Normalize an identity for comparison; the null identity becomes ZERO_ADDRESS."""
    if identity is None:
        return ZERO_ADDRESS
    normalized = identity.strip().lower()
    return normalized or ZERO_ADDRESS


def is_null_identity(identity: Optional[str]) -> bool:
    """Check whether an identity is the null identity."""
    return normalize_identity(identity) == ZERO_ADDRESS


class EventType(str, Enum):
    """Audit event type enumeration."""
    TRANSFER = "Transfer"
    APPROVAL = "Approval"
    APPROVAL_FOR_ALL = "ApprovalForAll"
    MINT_PAUSED = "MintPaused"
    BASE_URI_UPDATED = "BaseURIUpdated"
    TOKEN_BURNED = "TokenBurned"
    OWNERSHIP_TRANSFERRED = "OwnershipTransferred"


class CollectionConfig(BaseModel):
    """Immutable parameters of a collection, fixed at creation."""

    name: str = Field(..., min_length=1, max_length=100, description="Collection name")
    symbol: str = Field(..., min_length=1, max_length=10, description="Collection symbol")
    max_supply: int = Field(..., gt=0, description="Maximum number of live tokens")
    administrator: str = Field(..., description="Identity permitted to mint and configure")
    base_uri: str = Field(default="", description="Initial base URI for token metadata")
    min_token_id: int = Field(default=1, ge=0, description="Lowest valid token ID")
    max_token_id: Optional[int] = Field(None, ge=0, description="Highest valid token ID (defaults to min_token_id + max_supply - 1)")
    uri_suffix: str = Field(default=DEFAULT_URI_SUFFIX, description="Suffix appended to base-URI derived URIs")

    @field_validator('symbol')
    @classmethod
    def validate_symbol(cls, v):
        """Validate symbol format."""
        if not re.match(r'^[A-Za-z0-9]+$', v):
            raise ValueError('Symbol must contain only letters and numbers')
        return v.upper()

    @field_validator('administrator')
    @classmethod
    def validate_administrator(cls, v):
        """Validate administrator identity."""
        if is_null_identity(v):
            raise ValueError('Administrator cannot be the zero address')
        return normalize_identity(v)

    @model_validator(mode='after')
    def validate_token_range(self):
        """Resolve the default ID range and check it can hold the full supply."""
        if self.max_token_id is None:
            self.max_token_id = self.min_token_id + self.max_supply - 1

        if self.min_token_id > self.max_token_id:
            raise ValueError('Minimum token ID cannot exceed maximum token ID')

        if self.max_token_id - self.min_token_id + 1 < self.max_supply:
            raise ValueError('Token ID range is smaller than maximum supply')

        return self


class CollectionEvent(BaseModel):
    """A single append-only audit record."""

    model_config = ConfigDict(frozen=True)

    sequence: int = Field(..., ge=0, description="Position in the audit trail")
    event_type: EventType
    timestamp: float = Field(..., description="Environment-supplied timestamp")
    args: Dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a flat dictionary for display."""
        return {
            "sequence": self.sequence,
            "event": self.event_type.value,
            "timestamp": self.timestamp,
            **self.args,
        }


class CollectionSnapshot(BaseModel):
    """Complete serializable state of one collection."""

    config: CollectionConfig
    administrator: str
    total_supply: int = Field(default=0, ge=0)
    mint_paused: bool = False
    base_uri: str = ""
    owners: Dict[int, str] = Field(default_factory=dict)
    balances: Dict[str, int] = Field(default_factory=dict)
    token_approvals: Dict[int, str] = Field(default_factory=dict)
    operator_approvals: Dict[str, List[str]] = Field(default_factory=dict)
    token_uris: Dict[int, str] = Field(default_factory=dict)
    events: List[CollectionEvent] = Field(default_factory=list)
