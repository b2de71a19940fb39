"""Custody policy variants built on the shared transition executor."""

from ledger_custody.contracts.base import CustodyContract, Transition
from ledger_custody.contracts.hash_escrow import HashEscrow
from ledger_custody.contracts.multisig import MultisigVault, VoteOutcome
from ledger_custody.contracts.timelock import TimelockWallet

__all__ = [
    "CustodyContract",
    "Transition",
    "HashEscrow",
    "MultisigVault",
    "VoteOutcome",
    "TimelockWallet",
]
