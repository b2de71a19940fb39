"""Shared test fixtures for the Ledger Custody test suite.

Provides:
    - A funded devnet ledger and an in-memory state store
    - One deployed instance of each custody contract
    - A runtime wired to the same ledger and store
"""

from __future__ import annotations

import hashlib

import pytest

from ledger_custody.contracts import HashEscrow, MultisigVault, TimelockWallet
from ledger_custody.infrastructure.ledger import InMemoryLedger
from ledger_custody.infrastructure.memory_store import InMemoryStateStore
from ledger_custody.infrastructure.replay import InMemoryReplayGuard
from ledger_custody.services.runtime import CustodyRuntime

MEMBERS = ["m1", "m2", "m3", "m4", "m5"]
SECRET = b"correct horse battery staple"


# ---------------------------------------------------------------------------
# Ledger Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def ledger() -> InMemoryLedger:
    """Return a devnet ledger at height 0 with a few funded accounts."""
    return InMemoryLedger(
        balances={"alice": 1_000, "bob": 500, "dave": 1_000, **{m: 100 for m in MEMBERS}},
    )


@pytest.fixture
def store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def members() -> list[str]:
    return list(MEMBERS)


@pytest.fixture
def secret() -> bytes:
    return SECRET


@pytest.fixture
def secret_digest() -> bytes:
    """sha256 of the shared test secret."""
    return hashlib.sha256(SECRET).digest()


# ---------------------------------------------------------------------------
# Contract Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def wallet(ledger: InMemoryLedger, store: InMemoryStateStore) -> TimelockWallet:
    return TimelockWallet.deploy("w1", ledger, store)


@pytest.fixture
def vault(ledger: InMemoryLedger, store: InMemoryStateStore) -> MultisigVault:
    return MultisigVault.deploy("v1", ledger, store)


@pytest.fixture
def started_vault(vault: MultisigVault, members: list[str]) -> MultisigVault:
    """A 4-of-5 vault holding 1000 deposited by alice."""
    vault.start("m1", members, 4)
    vault.deposit("alice", 1_000)
    return vault


@pytest.fixture
def escrow(ledger: InMemoryLedger, store: InMemoryStateStore) -> HashEscrow:
    return HashEscrow.deploy("e1", ledger, store)


# ---------------------------------------------------------------------------
# Runtime Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def runtime(ledger: InMemoryLedger, store: InMemoryStateStore) -> CustodyRuntime:
    return CustodyRuntime(ledger=ledger, store=store, replay_guard=InMemoryReplayGuard())
