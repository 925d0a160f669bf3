"""
NFT Collection Registry - Token Metadata Resolution

This module computes the metadata URI of each live token from a per-token
override or the collection base URI.
"""

import logging
from typing import Dict

from .exceptions import InvalidInputError, TokenNotFoundError
from .ownership import OwnershipRegistry
from .schema import DEFAULT_URI_SUFFIX


def decimal_string(value: int) -> str:
    """
    Render a non-negative integer in canonical decimal form.

    Args:
        value: Non-negative integer

    Returns:
        Decimal digits without sign, padding or separators ("0" for zero)

    Raises:
        InvalidInputError: If value is negative or not an integer
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"Expected a non-negative integer, got {type(value).__name__}")
    if value < 0:
        raise InvalidInputError(f"Expected a non-negative integer, got {value}")

    if value == 0:
        return "0"

    digits = []
    while value:
        value, remainder = divmod(value, 10)
        digits.append(chr(ord('0') + remainder))
    return ''.join(reversed(digits))


class MetadataResolver:
    """Per-token URI overrides and the collection base URI."""

    def __init__(
        self,
        ownership: OwnershipRegistry,
        base_uri: str = "",
        uri_suffix: str = DEFAULT_URI_SUFFIX
    ):
        self.ownership = ownership
        self.base_uri = base_uri
        self.uri_suffix = uri_suffix
        self.token_uris: Dict[int, str] = {}
        self.logger = logging.getLogger(__name__)

    def _require_live(self, token_id: int) -> None:
        if not self.ownership.exists(token_id):
            raise TokenNotFoundError("Token does not exist")

    def resolve(self, token_id: int) -> str:
        """
        Resolve the metadata URI of a live token.

        The per-token override wins; otherwise the URI is derived from the
        base URI, and it is empty when no base URI is configured.
        """
        self._require_live(token_id)

        override = self.token_uris.get(token_id)
        if override:
            return override

        if self.base_uri:
            return f"{self.base_uri}{decimal_string(token_id)}{self.uri_suffix}"

        return ""

    def set_override(self, token_id: int, uri: str) -> None:
        self._require_live(token_id)
        if uri:
            self.token_uris[token_id] = uri
        else:
            self.token_uris.pop(token_id, None)

    def clear_override(self, token_id: int) -> None:
        self.token_uris.pop(token_id, None)

    def set_base_uri(self, uri: str) -> None:
        self.base_uri = uri or ""
        self.logger.info(f"Base URI set to '{self.base_uri}'")
