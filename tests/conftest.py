"""
Pytest configuration and fixtures for NFT registry tests.
"""

import pytest

from registry.lifecycle import NFTCollection
from registry.schema import CollectionConfig
from registry.storage import CollectionStorage


ADMIN = "0x" + "ad" * 20
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b0" * 20
CAROL = "0x" + "c0" * 20
MALLORY = "0x" + "e0" * 20

MAX_SUPPLY = 100
COLLECTION_NAME = "TestNFT"
COLLECTION_SYMBOL = "TNFT"
BASE_URI = "https://example.com/metadata/"


class FakeClock:
    """Deterministic, non-decreasing clock."""

    def __init__(self, start: float = 1_700_000_000.0, step: float = 1.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        current = self.now
        self.now += self.step
        return current


@pytest.fixture
def clock():
    """Create deterministic clock."""
    return FakeClock()


@pytest.fixture
def collection_config():
    """Create the standard test collection configuration."""
    return CollectionConfig(
        name=COLLECTION_NAME,
        symbol=COLLECTION_SYMBOL,
        max_supply=MAX_SUPPLY,
        administrator=ADMIN,
        base_uri=BASE_URI
    )


@pytest.fixture
def collection(collection_config, clock):
    """Create an empty collection."""
    return NFTCollection(collection_config, clock=clock)


@pytest.fixture
def minted_collection(collection):
    """Collection with token 1 minted to ALICE."""
    collection.safe_mint(ADMIN, ALICE, 1)
    return collection


@pytest.fixture
def small_collection(clock):
    """Collection with a supply of three tokens."""
    return NFTCollection.create(
        name="Small",
        symbol="SML",
        max_supply=3,
        administrator=ADMIN,
        base_uri=BASE_URI,
        clock=clock
    )


@pytest.fixture
def collection_storage(tmp_path):
    """Create collection storage in a temporary directory."""
    return CollectionStorage(storage_dir=tmp_path / "data", backup_count=3)


def assert_ledger_consistent(collection: NFTCollection) -> None:
    """Assert supply and balance invariants hold."""
    assert collection.total_supply <= collection.max_supply
    assert sum(collection.ownership.balances.values()) == collection.total_supply
    assert collection.find_invariant_violations() == []
