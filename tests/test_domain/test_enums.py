"""Tests for domain enumerations."""

from __future__ import annotations

from ledger_custody.domain.enums import (
    READ_ONLY_OPERATIONS,
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


class TestStates:
    def test_timelock_states(self) -> None:
        assert {s.value for s in TimelockState} == {"EMPTY", "LOCKED", "WITHDRAWN"}

    def test_escrow_states(self) -> None:
        assert {s.value for s in EscrowState} == {"EMPTY", "LOCKED", "RELEASED", "REFUNDED"}

    def test_state_is_str_enum(self) -> None:
        assert isinstance(TimelockState.LOCKED, str)
        assert TimelockState.LOCKED == "LOCKED"


class TestContractKind:
    def test_kinds(self) -> None:
        assert ContractKind("timelock") is ContractKind.TIMELOCK
        assert ContractKind("multisig") is ContractKind.MULTISIG
        assert ContractKind("hash_escrow") is ContractKind.HASH_ESCROW


class TestOperations:
    def test_operation_names_are_wire_names(self) -> None:
        assert TimelockOperation("get-unlock-height") is TimelockOperation.GET_UNLOCK_HEIGHT
        assert MultisigOperation("get-count") is MultisigOperation.GET_COUNT
        assert EscrowOperation("bind-beneficiary") is EscrowOperation.BIND_BENEFICIARY

    def test_read_only_set_excludes_mutations(self) -> None:
        mutating = {
            TimelockOperation.LOCK,
            TimelockOperation.WITHDRAW,
            MultisigOperation.START,
            MultisigOperation.DEPOSIT,
            MultisigOperation.PROPOSE,
            MultisigOperation.VOTE,
            MultisigOperation.EXECUTE,
            EscrowOperation.LOCK,
            EscrowOperation.RELEASE,
            EscrowOperation.REFUND,
            EscrowOperation.BIND_BENEFICIARY,
        }
        assert not mutating & READ_ONLY_OPERATIONS

    def test_every_get_operation_is_read_only(self) -> None:
        for operations in (TimelockOperation, MultisigOperation, EscrowOperation):
            for op in operations:
                assert (op in READ_ONLY_OPERATIONS) == op.value.startswith("get-")


class TestErrorKind:
    def test_core_kinds_exist(self) -> None:
        for name in (
            "ALREADY_INITIALIZED",
            "UNAUTHORIZED",
            "THRESHOLD_NOT_MET",
            "PREMATURE_CONDITION",
            "INVALID_PROOF",
            "ALREADY_VOTED",
            "ALREADY_EXECUTED",
            "UNKNOWN_PROPOSAL",
            "INSUFFICIENT_FUNDS",
        ):
            assert ErrorKind(name).value == name


class TestEventType:
    def test_all_event_types_exist(self) -> None:
        # 2 timelock + 5 multisig + 4 escrow
        assert len(EventType) == 11


class TestProofRule:
    def test_rules(self) -> None:
        assert {r.value for r in ProofRule} == {"exact", "sha256", "sha256d"}
