"""Domain enumerations for the custody primitives.

These enums define the canonical states, operations and error kinds used
throughout the system. They are framework-agnostic (no SQLAlchemy, no FastAPI
imports).
"""

import enum


class ContractKind(enum.StrEnum):
    """The three custody policy variants."""

    TIMELOCK = "timelock"
    MULTISIG = "multisig"
    HASH_ESCROW = "hash_escrow"


class TimelockState(enum.StrEnum):
    """Lifecycle states of a time-locked wallet.

    See domain/state_machine.py for the transition table.
    """

    EMPTY = "EMPTY"
    LOCKED = "LOCKED"
    WITHDRAWN = "WITHDRAWN"


class EscrowState(enum.StrEnum):
    """Lifecycle states of a hash/condition-gated escrow.

    RELEASED and REFUNDED are terminal and mutually exclusive.
    """

    EMPTY = "EMPTY"
    LOCKED = "LOCKED"
    RELEASED = "RELEASED"
    REFUNDED = "REFUNDED"


class ProposalStatus(enum.StrEnum):
    """Lifecycle states of a multisig withdrawal proposal."""

    PENDING = "PENDING"
    EXECUTED = "EXECUTED"


class ProofRule(enum.StrEnum):
    """How a HashEscrow compares a presented proof against its commitment."""

    EXACT = "exact"
    SHA256 = "sha256"
    SHA256D = "sha256d"


# --- Operations ---
#
# One closed enum per contract kind. The runtime matches on these
# exhaustively, so an operation cannot reach a contract without passing
# through its guarded entry point.


class TimelockOperation(enum.StrEnum):
    LOCK = "lock"
    WITHDRAW = "withdraw"
    GET_STATUS = "get-status"
    GET_UNLOCK_HEIGHT = "get-unlock-height"
    GET_BALANCE = "get-balance"


class MultisigOperation(enum.StrEnum):
    START = "start"
    DEPOSIT = "deposit"
    PROPOSE = "propose"
    VOTE = "vote"
    EXECUTE = "execute"
    GET_STATUS = "get-status"
    GET_PROPOSAL = "get-proposal"
    GET_VOTE = "get-vote"
    GET_VOTE_COUNT = "get-vote-count"
    GET_COUNT = "get-count"
    GET_BALANCE = "get-balance"


class EscrowOperation(enum.StrEnum):
    LOCK = "lock"
    RELEASE = "release"
    REFUND = "refund"
    BIND_BENEFICIARY = "bind-beneficiary"
    GET_STATUS = "get-status"


READ_ONLY_OPERATIONS: frozenset[str] = frozenset(
    {
        TimelockOperation.GET_STATUS,
        TimelockOperation.GET_UNLOCK_HEIGHT,
        TimelockOperation.GET_BALANCE,
        MultisigOperation.GET_STATUS,
        MultisigOperation.GET_PROPOSAL,
        MultisigOperation.GET_VOTE,
        MultisigOperation.GET_VOTE_COUNT,
        MultisigOperation.GET_COUNT,
        MultisigOperation.GET_BALANCE,
        EscrowOperation.GET_STATUS,
    }
)


class ErrorKind(enum.StrEnum):
    """Caller-visible error kinds.

    Every CustodyError carries exactly one of these. Several concrete
    exceptions may share a kind (e.g. AlreadyLocked and AlreadyStarted are
    both ALREADY_INITIALIZED).
    """

    ALREADY_INITIALIZED = "ALREADY_INITIALIZED"
    UNAUTHORIZED = "UNAUTHORIZED"
    THRESHOLD_NOT_MET = "THRESHOLD_NOT_MET"
    PREMATURE_CONDITION = "PREMATURE_CONDITION"
    INVALID_PROOF = "INVALID_PROOF"
    ALREADY_VOTED = "ALREADY_VOTED"
    ALREADY_EXECUTED = "ALREADY_EXECUTED"
    UNKNOWN_PROPOSAL = "UNKNOWN_PROPOSAL"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    INVALID_STATE = "INVALID_STATE"
    INVALID_THRESHOLD = "INVALID_THRESHOLD"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    INSTANCE_NOT_FOUND = "INSTANCE_NOT_FOUND"
    DUPLICATE_TRANSACTION = "DUPLICATE_TRANSACTION"


class EventType(enum.StrEnum):
    """Types of audit events appended to an instance's trail.

    Every successful mutating invocation produces at least one event, saved
    together with the new record.
    """

    # Timelock
    TIMELOCK_LOCKED = "TIMELOCK_LOCKED"
    TIMELOCK_WITHDRAWN = "TIMELOCK_WITHDRAWN"

    # Multisig
    VAULT_STARTED = "VAULT_STARTED"
    VAULT_DEPOSIT = "VAULT_DEPOSIT"
    PROPOSAL_CREATED = "PROPOSAL_CREATED"
    VOTE_CAST = "VOTE_CAST"
    PROPOSAL_EXECUTED = "PROPOSAL_EXECUTED"

    # Escrow
    ESCROW_LOCKED = "ESCROW_LOCKED"
    ESCROW_BENEFICIARY_BOUND = "ESCROW_BENEFICIARY_BOUND"
    ESCROW_RELEASED = "ESCROW_RELEASED"
    ESCROW_REFUNDED = "ESCROW_REFUNDED"
