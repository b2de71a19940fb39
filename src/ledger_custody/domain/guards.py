"""Guard evaluator: pure precondition checks for every custody transition.

Each guard takes the current record, the caller and the block height as plain
arguments, performs no I/O, and either returns (permitted) or raises the
specific CustodyError for the first failed precondition. Check order within a
guard is part of its contract: it decides which error a caller sees when
several preconditions fail at once.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import TYPE_CHECKING

from statemachine.exceptions import TransitionNotAllowed

from ledger_custody.domain.enums import EscrowState, ProofRule, TimelockState
from ledger_custody.domain.exceptions import (
    AlreadyExecutedError,
    AlreadyLockedError,
    AlreadyStartedError,
    BeneficiaryAlreadyBoundError,
    InvalidArgumentError,
    InvalidProofError,
    InvalidThresholdError,
    NotAMemberError,
    NotLockedError,
    NotStartedError,
    NotYetUnlockedError,
    PastUnlockHeightError,
    ThresholdNotMetError,
    UnauthorizedError,
    UnknownProposalError,
)
from ledger_custody.domain.state_machine import (
    EscrowStateMachine,
    ProposalStateMachine,
    TimelockStateMachine,
    validate_transition,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from ledger_custody.domain.exceptions import CustodyError
    from ledger_custody.domain.records import (
        HashEscrowRecord,
        MultisigRecord,
        Proposal,
        TimelockRecord,
    )


# ---------------------------------------------------------------------------
# Shared predicates
# ---------------------------------------------------------------------------


def require_transition(
    machine_cls: type,
    current_status: str,
    event_name: str,
    on_reject: Callable[[], CustodyError],
) -> str:
    """Fire ``event_name`` on a throwaway machine; translate a refusal.

    Returns the status the record moves to.
    """
    try:
        return validate_transition(machine_cls, current_status, event_name)
    except TransitionNotAllowed as err:
        raise on_reject() from err


def require_role(caller: str, expected: str | None, role: str) -> None:
    if expected is None or caller != expected:
        raise UnauthorizedError(caller, role)


def require_amount(amount: int, *, allow_zero: bool = True) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidArgumentError(f"amount must be an integer, got {amount!r}")
    if amount < 0 or (amount == 0 and not allow_zero):
        bound = "non-negative" if allow_zero else "positive"
        raise InvalidArgumentError(f"amount must be {bound}, got {amount}")


def require_future_height(height: int, target: int) -> None:
    if target <= height:
        raise PastUnlockHeightError(height, target)


def require_height_reached(height: int, target: int) -> None:
    if height < target:
        raise NotYetUnlockedError(height, target)


# ---------------------------------------------------------------------------
# TimelockWallet
# ---------------------------------------------------------------------------


def check_timelock_lock(
    record: TimelockRecord,
    height: int,
    beneficiary: str,
    unlock_height: int,
    amount: int,
) -> TimelockState:
    """``lock``: AlreadyLocked, then PastUnlockHeight, then argument checks."""
    new_status = require_transition(
        TimelockStateMachine,
        record.status,
        "lock_funds",
        lambda: AlreadyLockedError(record.instance_id),
    )
    require_future_height(height, unlock_height)
    require_amount(amount)
    if not beneficiary:
        raise InvalidArgumentError("beneficiary must not be empty")
    return TimelockState(new_status)


def check_timelock_withdraw(
    record: TimelockRecord, caller: str, height: int
) -> TimelockState:
    """``withdraw``: Unauthorized, then NotYetUnlocked, then NotLocked."""
    require_role(caller, record.beneficiary, "beneficiary")
    if record.unlock_height is not None:
        require_height_reached(height, record.unlock_height)
    new_status = require_transition(
        TimelockStateMachine,
        record.status,
        "withdraw_funds",
        lambda: NotLockedError(record.status, "withdraw"),
    )
    return TimelockState(new_status)


# ---------------------------------------------------------------------------
# MultisigVault
# ---------------------------------------------------------------------------


def check_vault_start(
    record: MultisigRecord, members: frozenset[str], votes_required: int
) -> None:
    """``start``: AlreadyStarted, then InvalidThreshold."""
    if record.started:
        raise AlreadyStartedError(record.instance_id)
    if not members or votes_required < 1 or votes_required > len(members):
        raise InvalidThresholdError(votes_required, len(members))


def check_vault_deposit(record: MultisigRecord, amount: int) -> None:
    if not record.started:
        raise NotStartedError("deposit")
    require_amount(amount, allow_zero=False)


def require_member(record: MultisigRecord, caller: str) -> None:
    if caller not in record.members:
        raise NotAMemberError(caller)


def check_vault_propose(record: MultisigRecord, caller: str, recipient: str, amount: int) -> None:
    require_member(record, caller)
    require_amount(amount, allow_zero=False)
    if not recipient:
        raise InvalidArgumentError("recipient must not be empty")


def _require_proposal(record: MultisigRecord, proposal_id: int) -> Proposal:
    proposal = record.get_proposal(proposal_id)
    if proposal is None:
        raise UnknownProposalError(proposal_id)
    return proposal


def check_vault_vote(record: MultisigRecord, caller: str, proposal_id: int) -> Proposal:
    """``vote``: NotAMember, UnknownProposal, AlreadyVoted, AlreadyExecuted.

    Returns the proposal with the caller's vote added.
    """
    require_member(record, caller)
    proposal = _require_proposal(record, proposal_id)
    voted = proposal.with_vote(caller)
    require_transition(
        ProposalStateMachine,
        proposal.status,
        "cast_vote",
        lambda: AlreadyExecutedError(proposal_id),
    )
    return voted


def threshold_reached(record: MultisigRecord, proposal: Proposal) -> bool:
    return proposal.vote_count >= record.votes_required


def check_vault_execute(record: MultisigRecord, caller: str, proposal_id: int) -> Proposal:
    """``execute``: NotAMember, UnknownProposal, AlreadyExecuted, ThresholdNotMet."""
    require_member(record, caller)
    proposal = _require_proposal(record, proposal_id)
    require_transition(
        ProposalStateMachine,
        proposal.status,
        "execute_proposal",
        lambda: AlreadyExecutedError(proposal_id),
    )
    if not threshold_reached(record, proposal):
        raise ThresholdNotMetError(proposal_id, proposal.vote_count, record.votes_required)
    return proposal


# ---------------------------------------------------------------------------
# HashEscrow
# ---------------------------------------------------------------------------


def proof_matches(rule: ProofRule, proof: bytes, commitment: bytes) -> bool:
    """Apply the escrow's matching function. Comparison is constant-time."""
    if not commitment:
        return False
    if rule is ProofRule.EXACT:
        candidate = proof
    elif rule is ProofRule.SHA256:
        candidate = hashlib.sha256(proof).digest()
    else:
        candidate = hashlib.sha256(hashlib.sha256(proof).digest()).digest()
    return hmac.compare_digest(candidate, commitment)


def check_escrow_lock(
    record: HashEscrowRecord,
    height: int,
    commitment: bytes,
    amount: int,
    refund_height: int | None,
) -> EscrowState:
    """``lock``: AlreadyLocked, then argument checks."""
    new_status = require_transition(
        EscrowStateMachine,
        record.status,
        "lock_funds",
        lambda: AlreadyLockedError(record.instance_id),
    )
    if not commitment:
        raise InvalidArgumentError("commitment must not be empty")
    require_amount(amount)
    if refund_height is not None:
        require_future_height(height, refund_height)
    return EscrowState(new_status)


def check_escrow_release(record: HashEscrowRecord, proof: bytes) -> EscrowState:
    """``release``: InvalidProof, then NotLocked."""
    if not proof_matches(record.proof_rule, proof, record.commitment):
        raise InvalidProofError()
    new_status = require_transition(
        EscrowStateMachine,
        record.status,
        "release_funds",
        lambda: NotLockedError(record.status, "release"),
    )
    return EscrowState(new_status)


def check_escrow_refund(record: HashEscrowRecord, caller: str, height: int) -> EscrowState:
    """``refund``: Unauthorized, NotLocked, then NotYetUnlocked if a refund height is set."""
    require_role(caller, record.depositor, "depositor")
    new_status = require_transition(
        EscrowStateMachine,
        record.status,
        "refund_funds",
        lambda: NotLockedError(record.status, "refund"),
    )
    if record.refund_height is not None:
        require_height_reached(height, record.refund_height)
    return EscrowState(new_status)


def check_escrow_bind(record: HashEscrowRecord, caller: str, beneficiary: str) -> None:
    require_role(caller, record.depositor, "depositor")
    require_transition(
        EscrowStateMachine,
        record.status,
        "bind_beneficiary",
        lambda: NotLockedError(record.status, "bind-beneficiary"),
    )
    if record.beneficiary is not None:
        raise BeneficiaryAlreadyBoundError(record.beneficiary)
    if not beneficiary:
        raise InvalidArgumentError("beneficiary must not be empty")
