"""Persisted state records, one per custody instance.

Records are immutable. A transition never edits a record in place: it builds
the successor with ``dataclasses.replace`` and hands it to the State Store,
so a failed invocation cannot leave a half-written record behind.

Member and vote sets are frozensets, so a duplicate voter can never be
recorded twice.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from ledger_custody.domain.enums import (
    ContractKind,
    EscrowState,
    EventType,
    ProofRule,
    ProposalStatus,
    TimelockState,
)
from ledger_custody.domain.exceptions import AlreadyVotedError


def custody_account(kind: ContractKind, instance_id: str) -> str:
    """Ledger account that holds the funds of one instance."""
    return f"{kind.value}.{instance_id}"


CUSTODY_ACCOUNT_PREFIXES = tuple(f"{kind.value}." for kind in ContractKind)


def is_custody_account(principal: str) -> bool:
    """True if ``principal`` lies in the namespace reserved for custody accounts."""
    return principal.startswith(CUSTODY_ACCOUNT_PREFIXES)


# ---------------------------------------------------------------------------
# TimelockWallet
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimelockRecord:
    """``{owner, beneficiary, amount, unlockHeight, state}`` for one wallet."""

    instance_id: str
    state: TimelockState = TimelockState.EMPTY
    owner: str | None = None
    beneficiary: str | None = None
    amount: int = 0
    unlock_height: int | None = None
    locked_at: int | None = None
    withdrawn_at: int | None = None

    @property
    def kind(self) -> ContractKind:
        return ContractKind.TIMELOCK

    @property
    def status(self) -> str:
        return self.state.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "instance_id": self.instance_id,
            "state": self.state.value,
            "owner": self.owner,
            "beneficiary": self.beneficiary,
            "amount": self.amount,
            "unlock_height": self.unlock_height,
            "locked_at": self.locked_at,
            "withdrawn_at": self.withdrawn_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimelockRecord:
        return cls(
            instance_id=data["instance_id"],
            state=TimelockState(data["state"]),
            owner=data.get("owner"),
            beneficiary=data.get("beneficiary"),
            amount=data.get("amount", 0),
            unlock_height=data.get("unlock_height"),
            locked_at=data.get("locked_at"),
            withdrawn_at=data.get("withdrawn_at"),
        )


# ---------------------------------------------------------------------------
# MultisigVault
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WithdrawalAction:
    """Pay ``amount`` from the vault balance to ``recipient``."""

    recipient: str
    amount: int

    def to_dict(self) -> dict[str, Any]:
        return {"type": "withdrawal", "recipient": self.recipient, "amount": self.amount}


@dataclass(frozen=True)
class Proposal:
    """A pending or executed withdrawal proposal.

    Attributes:
        proposal_id: Sequential id, equal to the proposal's index in the vault.
        proposer: Member who created it.
        action: What happens on execution.
        votes: Distinct members who voted for it.
        executed: Set exactly once, by the execution that pays the action.
    """

    proposal_id: int
    proposer: str
    action: WithdrawalAction
    votes: frozenset[str] = frozenset()
    executed: bool = False
    created_at: int | None = None
    executed_at: int | None = None

    @property
    def status(self) -> str:
        return (ProposalStatus.EXECUTED if self.executed else ProposalStatus.PENDING).value

    @property
    def vote_count(self) -> int:
        return len(self.votes)

    def with_vote(self, member: str) -> Proposal:
        if member in self.votes:
            raise AlreadyVotedError(member, self.proposal_id)
        return replace(self, votes=self.votes | {member})

    def to_dict(self) -> dict[str, Any]:
        return {
            "proposal_id": self.proposal_id,
            "proposer": self.proposer,
            "action": self.action.to_dict(),
            "votes": sorted(self.votes),
            "executed": self.executed,
            "created_at": self.created_at,
            "executed_at": self.executed_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Proposal:
        action = data["action"]
        return cls(
            proposal_id=data["proposal_id"],
            proposer=data["proposer"],
            action=WithdrawalAction(recipient=action["recipient"], amount=action["amount"]),
            votes=frozenset(data.get("votes", ())),
            executed=data.get("executed", False),
            created_at=data.get("created_at"),
            executed_at=data.get("executed_at"),
        )


@dataclass(frozen=True)
class MultisigRecord:
    """``{members, votesRequired, balance, proposals}`` for one vault.

    ``balance == total_deposited - total_withdrawn`` at all times.
    """

    instance_id: str
    members: frozenset[str] = frozenset()
    votes_required: int = 0
    balance: int = 0
    proposals: tuple[Proposal, ...] = ()
    total_deposited: int = 0
    total_withdrawn: int = 0
    auto_execute: bool = True
    started_at: int | None = None

    @property
    def kind(self) -> ContractKind:
        return ContractKind.MULTISIG

    @property
    def started(self) -> bool:
        return bool(self.members)

    @property
    def status(self) -> str:
        return "STARTED" if self.started else "UNSTARTED"

    def get_proposal(self, proposal_id: int) -> Proposal | None:
        if 0 <= proposal_id < len(self.proposals):
            return self.proposals[proposal_id]
        return None

    def with_proposal(self, proposal: Proposal) -> MultisigRecord:
        """Return a copy with ``proposal`` replacing the one sharing its id."""
        proposals = list(self.proposals)
        proposals[proposal.proposal_id] = proposal
        return replace(self, proposals=tuple(proposals))

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "instance_id": self.instance_id,
            "members": sorted(self.members),
            "votes_required": self.votes_required,
            "balance": self.balance,
            "proposals": [p.to_dict() for p in self.proposals],
            "total_deposited": self.total_deposited,
            "total_withdrawn": self.total_withdrawn,
            "auto_execute": self.auto_execute,
            "started_at": self.started_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MultisigRecord:
        return cls(
            instance_id=data["instance_id"],
            members=frozenset(data.get("members", ())),
            votes_required=data.get("votes_required", 0),
            balance=data.get("balance", 0),
            proposals=tuple(Proposal.from_dict(p) for p in data.get("proposals", ())),
            total_deposited=data.get("total_deposited", 0),
            total_withdrawn=data.get("total_withdrawn", 0),
            auto_execute=data.get("auto_execute", True),
            started_at=data.get("started_at"),
        )


# ---------------------------------------------------------------------------
# HashEscrow
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HashEscrowRecord:
    """``{depositor, beneficiary?, amount, commitment, state}`` for one escrow."""

    instance_id: str
    state: EscrowState = EscrowState.EMPTY
    depositor: str | None = None
    beneficiary: str | None = None
    amount: int = 0
    commitment: bytes = b""
    proof_rule: ProofRule = ProofRule.EXACT
    refund_height: int | None = None
    locked_at: int | None = None
    settled_at: int | None = None

    @property
    def kind(self) -> ContractKind:
        return ContractKind.HASH_ESCROW

    @property
    def status(self) -> str:
        return self.state.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "instance_id": self.instance_id,
            "state": self.state.value,
            "depositor": self.depositor,
            "beneficiary": self.beneficiary,
            "amount": self.amount,
            "commitment": self.commitment.hex(),
            "proof_rule": self.proof_rule.value,
            "refund_height": self.refund_height,
            "locked_at": self.locked_at,
            "settled_at": self.settled_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HashEscrowRecord:
        return cls(
            instance_id=data["instance_id"],
            state=EscrowState(data["state"]),
            depositor=data.get("depositor"),
            beneficiary=data.get("beneficiary"),
            amount=data.get("amount", 0),
            commitment=bytes.fromhex(data.get("commitment", "")),
            proof_rule=ProofRule(data.get("proof_rule", ProofRule.EXACT.value)),
            refund_height=data.get("refund_height"),
            locked_at=data.get("locked_at"),
            settled_at=data.get("settled_at"),
        )


CustodyRecord = TimelockRecord | MultisigRecord | HashEscrowRecord

_RECORD_TYPES: dict[ContractKind, type[TimelockRecord | MultisigRecord | HashEscrowRecord]] = {
    ContractKind.TIMELOCK: TimelockRecord,
    ContractKind.MULTISIG: MultisigRecord,
    ContractKind.HASH_ESCROW: HashEscrowRecord,
}


def empty_record(kind: ContractKind, instance_id: str) -> CustodyRecord:
    """Return the uninitialized record a fresh deployment starts from."""
    return _RECORD_TYPES[kind](instance_id=instance_id)


def record_from_dict(data: dict[str, Any]) -> CustodyRecord:
    """Deserialize any record from its ``to_dict`` form."""
    return _RECORD_TYPES[ContractKind(data["kind"])].from_dict(data)


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CustodyEvent:
    """Immutable audit entry appended by a successful invocation."""

    instance_id: str
    event_type: EventType
    actor: str
    height: int
    old_state: str | None = None
    new_state: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "instance_id": self.instance_id,
            "event_type": self.event_type.value,
            "actor": self.actor,
            "height": self.height,
            "old_state": self.old_state,
            "new_state": self.new_state,
            "metadata": self.metadata,
        }
