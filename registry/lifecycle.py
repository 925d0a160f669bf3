"""
NFT Collection Registry - Collection Lifecycle

This module composes the access gate, supply controller, ownership ledger,
metadata resolver and event trail into the public entry points of a single
bounded NFT collection. Each entry point validates every precondition before
mutating state, so a failed call leaves the collection untouched.
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional

from .access import AccessGate, ReentrancyGuard
from .events import EventCallback, EventEmitter
from .exceptions import (
    IntegrityError, InvalidInputError, TokenNotFoundError, UnauthorizedError
)
from .metadata import MetadataResolver
from .ownership import OwnershipRegistry
from .schema import (
    ZERO_ADDRESS, CollectionConfig, CollectionEvent, CollectionSnapshot,
    EventType, is_null_identity, normalize_identity
)
from .supply import SupplyController


# hook(operator, from_address, token_id, data) -> True to accept the token
ReceiverHook = Callable[[str, str, int, bytes], Any]


class NFTCollection:
    """
    A bounded NFT collection with a single administrator.

    Every mutating entry point takes the caller identity as its first
    argument; the execution environment is responsible for supplying it.
    """

    def __init__(self, config: CollectionConfig, clock: Optional[Callable[[], float]] = None):
        """
        Initialize an empty collection.

        Args:
            config: Collection parameters
            clock: Zero-argument callable supplying event timestamps
        """
        self.config = config
        self.access = AccessGate(config.administrator)
        self.supply = SupplyController(
            max_supply=config.max_supply,
            min_token_id=config.min_token_id,
            max_token_id=config.max_token_id
        )
        self.ownership = OwnershipRegistry()
        self.metadata = MetadataResolver(self.ownership, config.base_uri, config.uri_suffix)
        self.events = EventEmitter(clock)

        self._guard = ReentrancyGuard(name=config.symbol)
        self._receivers: Dict[str, ReceiverHook] = {}
        self.logger = logging.getLogger(__name__)

    @classmethod
    def create(
        cls,
        name: str,
        symbol: str,
        max_supply: int,
        administrator: str,
        base_uri: str = "",
        clock: Optional[Callable[[], float]] = None,
        **config_options: Any
    ) -> 'NFTCollection':
        """Build a collection from keyword parameters."""
        config = CollectionConfig(
            name=name,
            symbol=symbol,
            max_supply=max_supply,
            administrator=administrator,
            base_uri=base_uri,
            **config_options
        )
        return cls(config, clock=clock)

    # ==================== Collection Properties ====================

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def symbol(self) -> str:
        return self.config.symbol

    @property
    def administrator(self) -> str:
        return self.access.administrator

    @property
    def max_supply(self) -> int:
        return self.supply.max_supply

    @property
    def total_supply(self) -> int:
        return self.supply.total_supply

    @property
    def min_token_id(self) -> int:
        return self.supply.min_token_id

    @property
    def max_token_id(self) -> int:
        return self.supply.max_token_id

    @property
    def mint_paused(self) -> bool:
        return self.supply.mint_paused

    @property
    def base_uri(self) -> str:
        return self.metadata.base_uri

    # ==================== Views ====================

    def token_uri(self, token_id: int) -> str:
        return self.metadata.resolve(token_id)

    def owner_of(self, token_id: int) -> str:
        return self.ownership.owner_of(token_id)

    def balance_of(self, owner: str) -> int:
        return self.ownership.balance_of(owner)

    def get_approved(self, token_id: int) -> str:
        return self.ownership.get_approved(token_id)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return self.ownership.is_approved_for_all(owner, operator)

    def exists(self, token_id: int) -> bool:
        return self.ownership.exists(token_id)

    def tokens_of_owner(self, owner: str) -> List[int]:
        return self.ownership.tokens_of(owner)

    # ==================== Minting ====================

    def safe_mint(self, caller: str, to: str, token_id: int, data: bytes = b"") -> int:
        """
        Mint a new token to a recipient.

        Args:
            caller: Must be the administrator
            to: Recipient identity
            token_id: Token ID to issue
            data: Opaque payload forwarded to the recipient's receiver hook

        Returns:
            The minted token ID
        """
        operator = self.access.authorize(caller)
        with self._guard.guard("safe_mint"):
            return self._mint(operator, to, token_id, None, data)

    def safe_mint_with_uri(self, caller: str, to: str, token_id: int, uri: str) -> int:
        """Mint a new token and record a per-token metadata URI."""
        operator = self.access.authorize(caller)
        with self._guard.guard("safe_mint_with_uri"):
            return self._mint(operator, to, token_id, uri, b"")

    def _mint(self, operator: str, to: str, token_id: int, uri: Optional[str], data: bytes) -> int:
        self.supply.check_not_paused()
        self.supply.validate_mintable(token_id)

        to_norm = normalize_identity(to)
        with self._rollback_on_error(active=to_norm in self._receivers):
            owner = self.ownership.create(token_id, to_norm)
            self.supply.record_mint()
            if uri:
                self.metadata.set_override(token_id, uri)
            self._check_on_received(operator, ZERO_ADDRESS, owner, token_id, data)

        self.events.emit(
            EventType.TRANSFER,
            from_address=ZERO_ADDRESS,
            to_address=owner,
            token_id=token_id
        )
        self.logger.info(f"Minted token {token_id} to {owner} ({self.total_supply}/{self.max_supply})")
        return token_id

    # ==================== Transfers ====================

    def transfer_from(self, caller: str, from_addr: str, to_addr: str, token_id: int) -> None:
        """
        Move a token between identities.

        Args:
            caller: Owner, approved delegate, or operator of the owner
            from_addr: Current owner
            to_addr: New owner
            token_id: Token ID
        """
        with self._guard.guard("transfer_from"):
            self._require_authorized(caller, token_id)
            to_norm = self.ownership.transfer(token_id, from_addr, to_addr)
            self._emit_transfer(normalize_identity(from_addr), to_norm, token_id)

    def safe_transfer_from(
        self,
        caller: str,
        from_addr: str,
        to_addr: str,
        token_id: int,
        data: bytes = b""
    ) -> None:
        """Move a token and require a registered receiver hook to accept it."""
        with self._guard.guard("safe_transfer_from"):
            self._require_authorized(caller, token_id)

            to_norm = normalize_identity(to_addr)
            with self._rollback_on_error(active=to_norm in self._receivers):
                self.ownership.transfer(token_id, from_addr, to_norm)
                self._check_on_received(
                    normalize_identity(caller), normalize_identity(from_addr), to_norm, token_id, data
                )

            self._emit_transfer(normalize_identity(from_addr), to_norm, token_id)

    def _require_authorized(self, caller: str, token_id: int) -> None:
        if not self.ownership.is_authorized(token_id, caller):
            raise UnauthorizedError("ERC721: caller is not token owner or approved")

    def _emit_transfer(self, from_addr: str, to_addr: str, token_id: int) -> None:
        self.events.emit(
            EventType.TRANSFER,
            from_address=from_addr,
            to_address=to_addr,
            token_id=token_id
        )
        self.logger.debug(f"Transferred token {token_id}: {from_addr} -> {to_addr}")

    # ==================== Approvals ====================

    def approve(self, caller: str, delegate: str, token_id: int) -> None:
        """Approve a delegate for one token; the null identity clears the approval."""
        with self._guard.guard("approve"):
            owner = self.ownership.approve(token_id, caller, delegate)
            self.events.emit(
                EventType.APPROVAL,
                owner=owner,
                approved=normalize_identity(delegate),
                token_id=token_id
            )
            self.logger.debug(f"Token {token_id} delegate set to {normalize_identity(delegate)}")

    def set_approval_for_all(self, caller: str, operator: str, approved: bool) -> None:
        """Grant or revoke an operator for every token the caller holds."""
        with self._guard.guard("set_approval_for_all"):
            owner = normalize_identity(caller)
            self.ownership.set_operator_approval(owner, operator, approved)
            self.events.emit(
                EventType.APPROVAL_FOR_ALL,
                owner=owner,
                operator=normalize_identity(operator),
                approved=bool(approved)
            )
            self.logger.debug(f"Operator {normalize_identity(operator)} for {owner}: {bool(approved)}")

    # ==================== Burning ====================

    def burn(self, caller: str, token_id: int) -> None:
        """
        Destroy a live token.

        Args:
            caller: Owner, approved delegate, or operator of the owner
            token_id: Token ID

        Raises:
            TokenNotFoundError: If the token is not live
            UnauthorizedError: If the caller may not act on the token
        """
        with self._guard.guard("burn"):
            if not self.ownership.exists(token_id):
                raise TokenNotFoundError("Token does not exist")

            if not self.ownership.is_authorized(token_id, caller):
                self.logger.warning(f"Rejected burn of token {token_id} by {normalize_identity(caller)}")
                raise UnauthorizedError("Not authorized to burn this token")

            prior_owner = self.ownership.destroy(token_id)
            self.metadata.clear_override(token_id)
            self.supply.record_burn()

            self.events.emit(
                EventType.TRANSFER,
                from_address=prior_owner,
                to_address=ZERO_ADDRESS,
                token_id=token_id
            )
            self.events.emit(EventType.TOKEN_BURNED, token_id=token_id, owner=prior_owner)
            self.logger.info(f"Burned token {token_id} owned by {prior_owner}")

    # ==================== Admin Functions ====================

    def pause_minting(self, caller: str, paused: bool) -> None:
        """Pause or resume issuance. Transfers, approvals and burns are unaffected."""
        self.access.authorize(caller)
        with self._guard.guard("pause_minting"):
            self.supply.set_paused(paused)
            self.events.emit(EventType.MINT_PAUSED, paused=self.supply.mint_paused)

    def set_base_uri(self, caller: str, base_uri: str) -> None:
        self.access.authorize(caller)
        with self._guard.guard("set_base_uri"):
            self.metadata.set_base_uri(base_uri)
            self.events.emit(EventType.BASE_URI_UPDATED, base_uri=self.metadata.base_uri)

    def transfer_ownership(self, caller: str, new_administrator: str) -> None:
        """Hand the administrator role to another identity."""
        with self._guard.guard("transfer_ownership"):
            previous = self.access.transfer_administration(caller, new_administrator)
            self.events.emit(
                EventType.OWNERSHIP_TRANSFERRED,
                previous_owner=previous,
                new_owner=self.access.administrator
            )

    # ==================== Receivers & Observers ====================

    def register_receiver(self, identity: str, hook: ReceiverHook) -> None:
        """Register the hook that must accept safe mints and transfers to identity."""
        if is_null_identity(identity):
            raise InvalidInputError("Cannot register a receiver for the zero address")
        self._receivers[normalize_identity(identity)] = hook

    def unregister_receiver(self, identity: str) -> None:
        self._receivers.pop(normalize_identity(identity), None)

    def add_event_callback(self, callback: EventCallback) -> None:
        self.events.add_event_callback(callback)

    def get_events(self, event_type: Optional[EventType] = None,
                   token_id: Optional[int] = None) -> List[CollectionEvent]:
        return self.events.get_events(event_type=event_type, token_id=token_id)

    def _check_on_received(self, operator: str, from_addr: str, to_addr: str,
                           token_id: int, data: bytes) -> None:
        hook = self._receivers.get(to_addr)
        if hook is None:
            return

        if hook(operator, from_addr, token_id, data) is not True:
            raise InvalidInputError("ERC721: transfer to non ERC721Receiver implementer")

    @contextmanager
    def _rollback_on_error(self, active: bool = True):
        """Restore ledger state if the block raises."""
        if not active:
            yield
            return

        saved = self._capture_state()
        try:
            yield
        except Exception:
            self._restore_state(saved)
            raise

    def _capture_state(self) -> Dict[str, Any]:
        return {
            'owners': dict(self.ownership.owners),
            'balances': dict(self.ownership.balances),
            'token_approvals': dict(self.ownership.token_approvals),
            'operator_approvals': {k: set(v) for k, v in self.ownership.operator_approvals.items()},
            'token_uris': dict(self.metadata.token_uris),
            'base_uri': self.metadata.base_uri,
            'total_supply': self.supply.total_supply,
            'mint_paused': self.supply.mint_paused,
        }

    def _restore_state(self, state: Dict[str, Any]) -> None:
        self.ownership.owners = state['owners']
        self.ownership.balances = state['balances']
        self.ownership.token_approvals = state['token_approvals']
        self.ownership.operator_approvals = state['operator_approvals']
        self.metadata.token_uris = state['token_uris']
        self.metadata.base_uri = state['base_uri']
        self.supply.total_supply = state['total_supply']
        self.supply.mint_paused = state['mint_paused']

    # ==================== Integrity & Serialization ====================

    def find_invariant_violations(self) -> List[str]:
        """List every violated ledger invariant; empty when consistent."""
        violations = []
        owners = self.ownership.owners
        balances = self.ownership.balances

        if self.supply.total_supply > self.supply.max_supply:
            violations.append(
                f"Total supply {self.supply.total_supply} exceeds maximum {self.supply.max_supply}"
            )

        out_of_range = sorted(t for t in owners if not self.supply.is_in_range(t))
        if out_of_range:
            violations.append(f"Token IDs out of range: {out_of_range}")

        null_owned = sorted(t for t, owner in owners.items() if is_null_identity(owner))
        if null_owned:
            violations.append(f"Tokens owned by the zero address: {null_owned}")

        if len(owners) != self.supply.total_supply:
            violations.append(
                f"Live token count {len(owners)} does not match total supply {self.supply.total_supply}"
            )

        if sum(balances.values()) != self.supply.total_supply:
            violations.append(
                f"Sum of balances {sum(balances.values())} does not match total supply {self.supply.total_supply}"
            )

        counted: Dict[str, int] = {}
        for owner in owners.values():
            counted[owner] = counted.get(owner, 0) + 1
        mismatched = sorted(
            holder for holder in set(counted) | set(balances)
            if counted.get(holder, 0) != balances.get(holder, 0)
        )
        if mismatched:
            violations.append(f"Balances inconsistent with ownership for: {mismatched}")

        stale_approvals = sorted(t for t in self.ownership.token_approvals if t not in owners)
        if stale_approvals:
            violations.append(f"Approvals recorded for burned tokens: {stale_approvals}")

        stale_uris = sorted(t for t in self.metadata.token_uris if t not in owners)
        if stale_uris:
            violations.append(f"URI overrides recorded for burned tokens: {stale_uris}")

        return violations

    def check_invariants(self) -> None:
        """Raise IntegrityError if any ledger invariant is violated."""
        violations = self.find_invariant_violations()
        if violations:
            raise IntegrityError("; ".join(violations))

    def collection_info(self) -> Dict[str, Any]:
        """Get a summary of the collection."""
        return {
            'name': self.name,
            'symbol': self.symbol,
            'administrator': self.administrator,
            'base_uri': self.base_uri,
            'uri_suffix': self.metadata.uri_suffix,
            'holders': len(self.ownership.balances),
            'event_count': len(self.events),
            **self.supply.get_supply_info(),
        }

    def snapshot(self) -> CollectionSnapshot:
        """Capture the complete collection state."""
        return CollectionSnapshot(
            config=self.config,
            administrator=self.administrator,
            total_supply=self.supply.total_supply,
            mint_paused=self.supply.mint_paused,
            base_uri=self.metadata.base_uri,
            owners=dict(self.ownership.owners),
            balances=dict(self.ownership.balances),
            token_approvals=dict(self.ownership.token_approvals),
            operator_approvals={
                owner: sorted(operators)
                for owner, operators in self.ownership.operator_approvals.items()
            },
            token_uris=dict(self.metadata.token_uris),
            events=self.events.get_events()
        )

    @classmethod
    def from_snapshot(
        cls,
        snapshot: CollectionSnapshot,
        clock: Optional[Callable[[], float]] = None
    ) -> 'NFTCollection':
        """
        Rebuild a collection from a snapshot.

        Raises:
            IntegrityError: If the restored state violates a ledger invariant
        """
        collection = cls(snapshot.config, clock=clock)
        collection.access = AccessGate(snapshot.administrator)
        collection.supply.total_supply = snapshot.total_supply
        collection.supply.mint_paused = snapshot.mint_paused
        collection.metadata.base_uri = snapshot.base_uri
        collection.metadata.token_uris = dict(snapshot.token_uris)
        collection.ownership.owners = {
            token_id: normalize_identity(owner) for token_id, owner in snapshot.owners.items()
        }
        collection.ownership.balances = {
            normalize_identity(owner): count for owner, count in snapshot.balances.items()
        }
        collection.ownership.token_approvals = {
            token_id: normalize_identity(delegate)
            for token_id, delegate in snapshot.token_approvals.items()
        }
        collection.ownership.operator_approvals = {
            normalize_identity(owner): {normalize_identity(op) for op in operators}
            for owner, operators in snapshot.operator_approvals.items()
            if operators
        }
        collection.events.load(snapshot.events)

        collection.check_invariants()
        return collection
