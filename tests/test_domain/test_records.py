"""Tests for custody records and their serialized form."""

from __future__ import annotations

import pytest

from ledger_custody.domain.enums import ContractKind, EscrowState, EventType, ProofRule
from ledger_custody.domain.exceptions import AlreadyVotedError
from ledger_custody.domain.records import (
    CustodyEvent,
    HashEscrowRecord,
    MultisigRecord,
    Proposal,
    TimelockRecord,
    WithdrawalAction,
    custody_account,
    empty_record,
    record_from_dict,
)


class TestCustodyAccount:
    def test_account_is_namespaced_by_kind(self) -> None:
        assert custody_account(ContractKind.TIMELOCK, "w1") == "timelock.w1"
        assert custody_account(ContractKind.HASH_ESCROW, "w1") == "hash_escrow.w1"


class TestEmptyRecords:
    @pytest.mark.parametrize(
        ("kind", "record_type"),
        [
            (ContractKind.TIMELOCK, TimelockRecord),
            (ContractKind.MULTISIG, MultisigRecord),
            (ContractKind.HASH_ESCROW, HashEscrowRecord),
        ],
    )
    def test_empty_record_type(self, kind: ContractKind, record_type: type) -> None:
        record = empty_record(kind, "x")
        assert isinstance(record, record_type)
        assert record.kind is kind

    def test_unstarted_vault(self) -> None:
        record = MultisigRecord("v1")
        assert not record.started
        assert record.status == "UNSTARTED"
        assert record.balance == 0


class TestProposal:
    def test_with_vote_is_a_copy(self) -> None:
        proposal = Proposal(0, "m1", WithdrawalAction("carol", 5))
        voted = proposal.with_vote("m2")
        assert proposal.vote_count == 0
        assert voted.vote_count == 1

    def test_with_vote_rejects_repeat(self) -> None:
        proposal = Proposal(0, "m1", WithdrawalAction("carol", 5), votes=frozenset({"m1"}))
        with pytest.raises(AlreadyVotedError):
            proposal.with_vote("m1")

    def test_unknown_and_negative_ids(self) -> None:
        record = MultisigRecord("v1", proposals=(Proposal(0, "m1", WithdrawalAction("c", 1)),))
        assert record.get_proposal(0) is not None
        assert record.get_proposal(1) is None
        assert record.get_proposal(-1) is None


class TestSerialization:
    def test_vault_survives_round_trip(self) -> None:
        record = MultisigRecord(
            instance_id="v1",
            members=frozenset({"m1", "m2"}),
            votes_required=2,
            balance=40,
            proposals=(
                Proposal(0, "m1", WithdrawalAction("carol", 60), frozenset({"m1", "m2"}), True, 3, 4),
                Proposal(1, "m2", WithdrawalAction("dan", 5), frozenset({"m2"}), created_at=6),
            ),
            total_deposited=100,
            total_withdrawn=60,
        )
        assert record_from_dict(record.to_dict()) == record

    def test_escrow_commitment_is_hex(self) -> None:
        record = HashEscrowRecord(
            "e1",
            state=EscrowState.LOCKED,
            depositor="dave",
            amount=5,
            commitment=b"\xab\xcd",
            proof_rule=ProofRule.SHA256,
        )
        data = record.to_dict()
        assert data["commitment"] == "abcd"
        assert record_from_dict(data) == record


class TestCustodyEvent:
    def test_to_dict(self) -> None:
        event = CustodyEvent("w1", EventType.TIMELOCK_LOCKED, "alice", 5, "EMPTY", "LOCKED", {"amount": 1})
        assert event.to_dict() == {
            "instance_id": "w1",
            "event_type": "TIMELOCK_LOCKED",
            "actor": "alice",
            "height": 5,
            "old_state": "EMPTY",
            "new_state": "LOCKED",
            "metadata": {"amount": 1},
        }
