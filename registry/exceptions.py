"""
NFT Collection Registry - Exceptions

This module defines the failure taxonomy raised by the ownership ledger.
Every exception carries the human-readable reason that callers display
verbatim.
"""


class RegistryError(Exception):
    """Base exception for all registry operation failures."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class UnauthorizedError(RegistryError):
    """Raised when the caller lacks the required role or delegation."""
    pass


class InvalidInputError(RegistryError):
    """Raised when an argument is malformed or not acceptable."""
    pass


class InvalidOwnerError(InvalidInputError):
    """Raised when the null identity is used as a token owner."""
    pass


class TokenIdOutOfRangeError(InvalidInputError):
    """Raised when a token ID falls outside the collection's valid range."""
    pass


class OwnerMismatchError(InvalidInputError):
    """Raised when the stated owner is not the token's current owner."""
    pass


class StateConflictError(RegistryError):
    """Raised when the operation conflicts with current collection state."""
    pass


class TokenExistsError(StateConflictError):
    """Raised when minting a token ID that is already live."""
    pass


class SupplyExceededError(StateConflictError):
    """Raised when the supply cap has been reached."""
    pass


class MintingPausedError(StateConflictError):
    """Raised when minting while issuance is paused."""
    pass


class TokenNotFoundError(RegistryError):
    """Raised when operating on a token that is not live."""
    pass


class ReentrantCallError(RegistryError):
    """Raised when a mutating entry point is re-entered mid-operation."""
    pass


class IntegrityError(RegistryError):
    """Raised when collection state violates a ledger invariant."""
    pass
