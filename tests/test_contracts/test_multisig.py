"""Tests for MultisigVault: setup, proposals, quorum and exactly-once execution."""

from __future__ import annotations

import pytest

from ledger_custody.contracts import MultisigVault
from ledger_custody.domain.enums import ErrorKind, EventType
from ledger_custody.domain.exceptions import (
    AlreadyExecutedError,
    AlreadyStartedError,
    AlreadyVotedError,
    InsufficientFundsError,
    InvalidArgumentError,
    InvalidThresholdError,
    NotAMemberError,
    NotStartedError,
    ThresholdNotMetError,
    UnknownProposalError,
)


class TestStart:
    def test_start_sets_members_and_threshold(self, vault: MultisigVault, members) -> None:
        assert vault.start("m1", members, 4) is True
        record = vault.record
        assert record.members == frozenset(members)
        assert record.votes_required == 4
        assert vault.is_member("m3")
        assert not vault.is_member("alice")

    def test_duplicate_members_collapse(self, vault) -> None:
        vault.start("m1", ["m1", "m1", "m2"], 2)
        assert vault.record.members == {"m1", "m2"}

    def test_threshold_above_member_count(self, vault) -> None:
        with pytest.raises(InvalidThresholdError):
            vault.start("m1", ["m1", "m1", "m2"], 3)
        assert not vault.record.started

    def test_start_twice_is_already_initialized(self, started_vault, members) -> None:
        with pytest.raises(AlreadyStartedError) as exc_info:
            started_vault.start("m2", ["x"], 0)
        assert exc_info.value.kind is ErrorKind.ALREADY_INITIALIZED
        assert started_vault.record.votes_required == 4


class TestDeposit:
    def test_anyone_may_deposit(self, started_vault, ledger) -> None:
        assert started_vault.deposit("bob", 200) == 1_200
        assert ledger.balance_of(started_vault.custody_account) == 1_200
        assert started_vault.record.total_deposited == 1_200

    def test_deposit_before_start(self, vault) -> None:
        with pytest.raises(NotStartedError):
            vault.deposit("alice", 10)

    def test_zero_deposit_rejected(self, started_vault) -> None:
        with pytest.raises(InvalidArgumentError):
            started_vault.deposit("alice", 0)


class TestProposals:
    def test_ids_are_sequential_from_zero(self, started_vault) -> None:
        assert started_vault.propose("m1", "carol", 100) == 0
        assert started_vault.propose("m2", "carol", 50) == 1

    def test_proposer_vote_not_implicit(self, started_vault) -> None:
        pid = started_vault.propose("m1", "carol", 100)
        assert started_vault.get_vote_count(pid) == 0
        assert not started_vault.has_voted("m1", pid)

    def test_outsider_cannot_propose(self, started_vault) -> None:
        with pytest.raises(NotAMemberError) as exc_info:
            started_vault.propose("alice", "alice", 100)
        assert exc_info.value.kind is ErrorKind.UNAUTHORIZED

    def test_unknown_proposal(self, started_vault) -> None:
        with pytest.raises(UnknownProposalError):
            started_vault.vote("m1", 3)


class TestQuorum:
    def test_five_members_four_required(self, started_vault, ledger, members) -> None:
        pid = started_vault.propose("m1", "carol", 300)

        for voter in members[:3]:
            outcome = started_vault.vote(voter, pid)
            assert not outcome.executed
        assert ledger.balance_of("carol") == 0
        assert started_vault.get_vote_count(pid) == 3

        outcome = started_vault.vote("m4", pid)
        assert outcome.executed
        assert outcome.votes == 4
        assert ledger.balance_of("carol") == 300
        assert started_vault.get_balance() == 700

        with pytest.raises(AlreadyExecutedError) as exc_info:
            started_vault.vote("m5", pid)
        assert exc_info.value.kind is ErrorKind.ALREADY_EXECUTED
        assert ledger.balance_of("carol") == 300
        assert started_vault.get_vote_count(pid) == 4

    def test_double_vote_rejected(self, started_vault) -> None:
        pid = started_vault.propose("m1", "carol", 300)
        started_vault.vote("m1", pid)
        with pytest.raises(AlreadyVotedError) as exc_info:
            started_vault.vote("m1", pid)
        assert exc_info.value.kind is ErrorKind.ALREADY_VOTED
        assert started_vault.get_vote_count(pid) == 1

    def test_outsider_vote_rejected(self, started_vault) -> None:
        pid = started_vault.propose("m1", "carol", 300)
        with pytest.raises(NotAMemberError):
            started_vault.vote("alice", pid)

    def test_proposals_are_independent(self, started_vault, ledger, members) -> None:
        first = started_vault.propose("m1", "carol", 100)
        second = started_vault.propose("m1", "erin", 200)
        for voter in members[:4]:
            started_vault.vote(voter, second)
        assert ledger.balance_of("erin") == 200
        assert started_vault.get_proposal(first).executed is False
        assert started_vault.get_vote_count(first) == 0

    def test_crossing_vote_rolls_back_when_underfunded(self, started_vault, ledger, members) -> None:
        pid = started_vault.propose("m1", "carol", 5_000)
        for voter in members[:3]:
            started_vault.vote(voter, pid)

        with pytest.raises(InsufficientFundsError):
            started_vault.vote("m4", pid)

        assert started_vault.get_vote_count(pid) == 3
        assert not started_vault.has_voted("m4", pid)
        assert ledger.balance_of("carol") == 0

    def test_never_quorate_proposal_stays_pending(self, started_vault, ledger, members) -> None:
        pid = started_vault.propose("m1", "carol", 100)
        for voter in members[:3]:
            started_vault.vote(voter, pid)
        ledger.mine(1_000)
        proposal = started_vault.get_proposal(pid)
        assert proposal.status == "PENDING"
        assert proposal.vote_count == 3


class TestManualExecution:
    @pytest.fixture
    def manual_vault(self, vault, members) -> MultisigVault:
        vault.start("m1", members, 2, auto_execute=False)
        vault.deposit("alice", 500)
        return vault

    def test_threshold_vote_does_not_execute(self, manual_vault, ledger) -> None:
        pid = manual_vault.propose("m1", "carol", 100)
        manual_vault.vote("m1", pid)
        outcome = manual_vault.vote("m2", pid)
        assert outcome.votes == 2
        assert not outcome.executed
        assert ledger.balance_of("carol") == 0

    def test_execute_below_threshold(self, manual_vault) -> None:
        pid = manual_vault.propose("m1", "carol", 100)
        manual_vault.vote("m1", pid)
        with pytest.raises(ThresholdNotMetError):
            manual_vault.execute("m1", pid)

    def test_execute_exactly_once(self, manual_vault, ledger) -> None:
        pid = manual_vault.propose("m1", "carol", 100)
        manual_vault.vote("m1", pid)
        manual_vault.vote("m2", pid)
        manual_vault.vote("m3", pid)

        assert manual_vault.execute("m5", pid) is True
        with pytest.raises(AlreadyExecutedError):
            manual_vault.execute("m1", pid)
        assert ledger.balance_of("carol") == 100


class TestQueries:
    def test_never_interacted(self, vault) -> None:
        assert vault.get_balance() == 0
        assert vault.get_proposal(0) is None
        assert vault.get_vote_count(0) == 0
        assert not vault.has_voted("m1", 0)
        assert vault.get_member_vote_count("nobody") == 0
        assert not vault.is_member("nobody")

    def test_member_vote_count(self, started_vault) -> None:
        first = started_vault.propose("m1", "carol", 1)
        second = started_vault.propose("m1", "carol", 1)
        started_vault.vote("m2", first)
        started_vault.vote("m2", second)
        started_vault.vote("m3", second)
        assert started_vault.get_member_vote_count("m2") == 2
        assert started_vault.get_member_vote_count("m3") == 1

    def test_status_lists_custody_account(self, started_vault) -> None:
        status = started_vault.get_status()
        assert status["custody_account"] == "multisig.v1"
        assert status["balance"] == 1_000


class TestAuditAndConservation:
    def test_event_sequence(self, started_vault, store, members) -> None:
        pid = started_vault.propose("m1", "carol", 100)
        for voter in members[:4]:
            started_vault.vote(voter, pid)

        types = [e.event_type for e in store.events("v1")]
        assert types[:3] == [
            EventType.VAULT_STARTED,
            EventType.VAULT_DEPOSIT,
            EventType.PROPOSAL_CREATED,
        ]
        assert types.count(EventType.VOTE_CAST) == 4
        assert types[-1] is EventType.PROPOSAL_EXECUTED
        assert types.count(EventType.PROPOSAL_EXECUTED) == 1

    def test_withdrawn_never_exceeds_deposited(self, started_vault, ledger, members) -> None:
        for amount in (400, 400, 400):
            pid = started_vault.propose("m1", "carol", amount)
            for voter in members[:3]:
                started_vault.vote(voter, pid)
            try:
                started_vault.vote("m4", pid)
            except InsufficientFundsError:
                pass

        record = started_vault.record
        assert record.total_withdrawn == 800
        assert record.total_withdrawn <= record.total_deposited
        assert record.balance == record.total_deposited - record.total_withdrawn
        assert ledger.balance_of(started_vault.custody_account) == record.balance
