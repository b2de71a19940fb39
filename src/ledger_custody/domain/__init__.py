"""Domain layer — pure custody rules with zero framework dependencies."""

from ledger_custody.domain.enums import (
    ContractKind,
    ErrorKind,
    EscrowOperation,
    EscrowState,
    EventType,
    MultisigOperation,
    ProofRule,
    TimelockOperation,
    TimelockState,
)
from ledger_custody.domain.exceptions import (
    CustodyError,
    InstanceNotFoundError,
    InsufficientFundsError,
)
from ledger_custody.domain.ledger_protocol import Ledger, StateStore, TransferReceipt
from ledger_custody.domain.records import (
    CustodyEvent,
    HashEscrowRecord,
    MultisigRecord,
    Proposal,
    TimelockRecord,
    WithdrawalAction,
)

__all__ = [
    "ContractKind",
    "ErrorKind",
    "EscrowOperation",
    "EscrowState",
    "EventType",
    "MultisigOperation",
    "ProofRule",
    "TimelockOperation",
    "TimelockState",
    "CustodyError",
    "InstanceNotFoundError",
    "InsufficientFundsError",
    "Ledger",
    "StateStore",
    "TransferReceipt",
    "CustodyEvent",
    "HashEscrowRecord",
    "MultisigRecord",
    "Proposal",
    "TimelockRecord",
    "WithdrawalAction",
]
