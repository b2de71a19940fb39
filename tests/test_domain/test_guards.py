"""Tests for the guard evaluator.

Guards are pure: each test builds a record by hand and checks which error a
given combination of caller, height and arguments produces. Where several
preconditions fail at once, the first in the guard's order wins.
"""

from __future__ import annotations

import hashlib

import pytest

from ledger_custody.domain import guards
from ledger_custody.domain.enums import ErrorKind, EscrowState, ProofRule, TimelockState
from ledger_custody.domain.exceptions import (
    AlreadyExecutedError,
    AlreadyLockedError,
    AlreadyStartedError,
    AlreadyVotedError,
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
from ledger_custody.domain.records import (
    HashEscrowRecord,
    MultisigRecord,
    Proposal,
    TimelockRecord,
    WithdrawalAction,
)


def _locked_wallet(**overrides) -> TimelockRecord:
    fields = {
        "instance_id": "w1",
        "state": TimelockState.LOCKED,
        "owner": "alice",
        "beneficiary": "bob",
        "amount": 100,
        "unlock_height": 10,
        "locked_at": 5,
    }
    fields.update(overrides)
    return TimelockRecord(**fields)


def _vault(*proposals: Proposal, votes_required: int = 2) -> MultisigRecord:
    return MultisigRecord(
        instance_id="v1",
        members=frozenset({"m1", "m2", "m3"}),
        votes_required=votes_required,
        balance=500,
        proposals=proposals,
        total_deposited=500,
    )


def _proposal(votes: set[str] = frozenset(), executed: bool = False) -> Proposal:
    return Proposal(
        proposal_id=0,
        proposer="m1",
        action=WithdrawalAction(recipient="carol", amount=100),
        votes=frozenset(votes),
        executed=executed,
    )


def _locked_escrow(**overrides) -> HashEscrowRecord:
    fields = {
        "instance_id": "e1",
        "state": EscrowState.LOCKED,
        "depositor": "dave",
        "amount": 50,
        "commitment": b"\x01" * 32,
    }
    fields.update(overrides)
    return HashEscrowRecord(**fields)


class TestRequireAmount:
    def test_zero_allowed_by_default(self) -> None:
        guards.require_amount(0)

    def test_zero_rejected_when_positive_required(self) -> None:
        with pytest.raises(InvalidArgumentError, match="positive"):
            guards.require_amount(0, allow_zero=False)

    def test_negative_rejected(self) -> None:
        with pytest.raises(InvalidArgumentError):
            guards.require_amount(-1)

    @pytest.mark.parametrize("amount", [True, 1.5, "10"])
    def test_non_integers_rejected(self, amount) -> None:
        with pytest.raises(InvalidArgumentError, match="integer"):
            guards.require_amount(amount)


class TestTimelockLockGuard:
    def test_permits_future_height(self) -> None:
        new_state = guards.check_timelock_lock(TimelockRecord("w1"), 5, "bob", 10, 100)
        assert new_state is TimelockState.LOCKED

    def test_unlock_height_equal_to_current_rejected(self) -> None:
        with pytest.raises(PastUnlockHeightError):
            guards.check_timelock_lock(TimelockRecord("w1"), 10, "bob", 10, 100)

    def test_unlock_height_in_past_rejected(self) -> None:
        with pytest.raises(PastUnlockHeightError) as exc_info:
            guards.check_timelock_lock(TimelockRecord("w1"), 11, "bob", 10, 100)
        assert exc_info.value.kind is ErrorKind.PREMATURE_CONDITION

    def test_relock_wins_over_bad_arguments(self) -> None:
        with pytest.raises(AlreadyLockedError) as exc_info:
            guards.check_timelock_lock(_locked_wallet(), 50, "", 0, -5)
        assert exc_info.value.kind is ErrorKind.ALREADY_INITIALIZED

    def test_empty_beneficiary_rejected(self) -> None:
        with pytest.raises(InvalidArgumentError):
            guards.check_timelock_lock(TimelockRecord("w1"), 0, "", 10, 1)


class TestTimelockWithdrawGuard:
    def test_permits_at_unlock_height(self) -> None:
        assert guards.check_timelock_withdraw(_locked_wallet(), "bob", 10) is TimelockState.WITHDRAWN

    def test_unauthorized_before_premature(self) -> None:
        with pytest.raises(UnauthorizedError):
            guards.check_timelock_withdraw(_locked_wallet(), "mallory", 0)

    def test_owner_cannot_withdraw(self) -> None:
        with pytest.raises(UnauthorizedError):
            guards.check_timelock_withdraw(_locked_wallet(), "alice", 10)

    def test_one_block_early(self) -> None:
        with pytest.raises(NotYetUnlockedError):
            guards.check_timelock_withdraw(_locked_wallet(), "bob", 9)

    def test_already_withdrawn(self) -> None:
        record = _locked_wallet(state=TimelockState.WITHDRAWN, withdrawn_at=10)
        with pytest.raises(NotLockedError):
            guards.check_timelock_withdraw(record, "bob", 20)

    def test_empty_wallet_has_no_beneficiary(self) -> None:
        with pytest.raises(UnauthorizedError):
            guards.check_timelock_withdraw(TimelockRecord("w1"), "bob", 100)


class TestVaultGuards:
    def test_start_twice(self) -> None:
        with pytest.raises(AlreadyStartedError):
            guards.check_vault_start(_vault(), frozenset({"x"}), 1)

    @pytest.mark.parametrize("votes_required", [0, 4])
    def test_threshold_out_of_range(self, votes_required: int) -> None:
        with pytest.raises(InvalidThresholdError):
            guards.check_vault_start(
                MultisigRecord("v1"), frozenset({"m1", "m2", "m3"}), votes_required
            )

    def test_start_without_members(self) -> None:
        with pytest.raises(InvalidThresholdError):
            guards.check_vault_start(MultisigRecord("v1"), frozenset(), 1)

    def test_deposit_before_start(self) -> None:
        with pytest.raises(NotStartedError):
            guards.check_vault_deposit(MultisigRecord("v1"), 10)

    def test_propose_by_outsider(self) -> None:
        with pytest.raises(NotAMemberError) as exc_info:
            guards.check_vault_propose(_vault(), "mallory", "carol", 10)
        assert exc_info.value.kind is ErrorKind.UNAUTHORIZED

    def test_vote_precedence_member_first(self) -> None:
        with pytest.raises(NotAMemberError):
            guards.check_vault_vote(_vault(), "mallory", 7)

    def test_vote_unknown_proposal(self) -> None:
        with pytest.raises(UnknownProposalError):
            guards.check_vault_vote(_vault(), "m1", 0)

    def test_vote_twice(self) -> None:
        with pytest.raises(AlreadyVotedError):
            guards.check_vault_vote(_vault(_proposal({"m1"})), "m1", 0)

    def test_vote_on_executed(self) -> None:
        record = _vault(_proposal({"m1", "m2"}, executed=True))
        with pytest.raises(AlreadyExecutedError):
            guards.check_vault_vote(record, "m3", 0)

    def test_vote_returns_tallied_proposal(self) -> None:
        voted = guards.check_vault_vote(_vault(_proposal({"m1"})), "m2", 0)
        assert voted.votes == {"m1", "m2"}

    def test_execute_below_threshold(self) -> None:
        with pytest.raises(ThresholdNotMetError):
            guards.check_vault_execute(_vault(_proposal({"m1"})), "m1", 0)

    def test_execute_twice(self) -> None:
        record = _vault(_proposal({"m1", "m2"}, executed=True))
        with pytest.raises(AlreadyExecutedError):
            guards.check_vault_execute(record, "m1", 0)


class TestProofMatching:
    def test_exact(self) -> None:
        assert guards.proof_matches(ProofRule.EXACT, b"abc", b"abc")
        assert not guards.proof_matches(ProofRule.EXACT, b"abd", b"abc")

    def test_sha256(self) -> None:
        commitment = hashlib.sha256(b"secret").digest()
        assert guards.proof_matches(ProofRule.SHA256, b"secret", commitment)
        assert not guards.proof_matches(ProofRule.SHA256, commitment, commitment)

    def test_sha256d(self) -> None:
        commitment = hashlib.sha256(hashlib.sha256(b"raw tx").digest()).digest()
        assert guards.proof_matches(ProofRule.SHA256D, b"raw tx", commitment)

    def test_empty_commitment_never_matches(self) -> None:
        assert not guards.proof_matches(ProofRule.EXACT, b"", b"")


class TestEscrowGuards:
    def test_lock_twice(self) -> None:
        with pytest.raises(AlreadyLockedError):
            guards.check_escrow_lock(_locked_escrow(), 0, b"x", 1, None)

    def test_lock_empty_commitment(self) -> None:
        with pytest.raises(InvalidArgumentError):
            guards.check_escrow_lock(HashEscrowRecord("e1"), 0, b"", 1, None)

    def test_lock_refund_height_not_in_future(self) -> None:
        with pytest.raises(PastUnlockHeightError):
            guards.check_escrow_lock(HashEscrowRecord("e1"), 5, b"x", 1, 5)

    def test_release_wrong_proof(self) -> None:
        with pytest.raises(InvalidProofError):
            guards.check_escrow_release(_locked_escrow(), b"\x02" * 32)

    def test_release_after_refund(self) -> None:
        record = _locked_escrow(state=EscrowState.REFUNDED)
        with pytest.raises(NotLockedError):
            guards.check_escrow_release(record, b"\x01" * 32)

    def test_refund_by_stranger(self) -> None:
        with pytest.raises(UnauthorizedError):
            guards.check_escrow_refund(_locked_escrow(), "mallory", 0)

    def test_refund_before_refund_height(self) -> None:
        with pytest.raises(NotYetUnlockedError):
            guards.check_escrow_refund(_locked_escrow(refund_height=10), "dave", 9)

    def test_refund_after_release(self) -> None:
        record = _locked_escrow(state=EscrowState.RELEASED)
        with pytest.raises(NotLockedError):
            guards.check_escrow_refund(record, "dave", 0)

    def test_bind_twice(self) -> None:
        with pytest.raises(BeneficiaryAlreadyBoundError):
            guards.check_escrow_bind(_locked_escrow(beneficiary="erin"), "dave", "frank")

    def test_bind_by_stranger(self) -> None:
        with pytest.raises(UnauthorizedError):
            guards.check_escrow_bind(_locked_escrow(), "mallory", "frank")
