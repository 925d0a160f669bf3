"""
NFT Collection Registry - Ownership Ledger

This package provides a bounded, single-administrator NFT collection: token
issuance under a supply cap, ownership transfer and delegation, burning,
metadata URI resolution and an append-only audit trail.
"""

from .access import AccessGate, ReentrancyGuard
from .events import EventEmitter
from .exceptions import (
    RegistryError,
    UnauthorizedError,
    InvalidInputError,
    InvalidOwnerError,
    TokenIdOutOfRangeError,
    OwnerMismatchError,
    StateConflictError,
    TokenExistsError,
    SupplyExceededError,
    MintingPausedError,
    TokenNotFoundError,
    ReentrantCallError,
    IntegrityError
)
from .lifecycle import NFTCollection
from .metadata import MetadataResolver, decimal_string
from .ownership import OwnershipRegistry
from .schema import (
    ZERO_ADDRESS,
    CollectionConfig,
    CollectionEvent,
    CollectionSnapshot,
    EventType,
    is_null_identity,
    normalize_identity
)
from .supply import SupplyController

__version__ = "1.0.0"

__all__ = [
    # Collection
    "NFTCollection",
    "CollectionConfig",
    "CollectionSnapshot",

    # Components
    "AccessGate",
    "ReentrancyGuard",
    "SupplyController",
    "OwnershipRegistry",
    "MetadataResolver",
    "EventEmitter",
    "decimal_string",

    # Events and identities
    "CollectionEvent",
    "EventType",
    "ZERO_ADDRESS",
    "is_null_identity",
    "normalize_identity",

    # Errors
    "RegistryError",
    "UnauthorizedError",
    "InvalidInputError",
    "InvalidOwnerError",
    "TokenIdOutOfRangeError",
    "OwnerMismatchError",
    "StateConflictError",
    "TokenExistsError",
    "SupplyExceededError",
    "MintingPausedError",
    "TokenNotFoundError",
    "ReentrantCallError",
    "IntegrityError"
]
