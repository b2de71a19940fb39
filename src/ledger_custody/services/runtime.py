"""Custody Runtime — the uniform call contract over every custody instance.

This is the application layer that coordinates between:
    - the instance registry (deploy / lookup through the State Store)
    - operation parsing and argument validation (pydantic)
    - replay protection by transaction id
    - the policy variants, whose guarded entry points do the real work

Both the REST routes and simulation.py call into this service.

Call contract:
    invoke(instance_id, operation, args, caller, tx_id=None) -> InvocationResult
    call(...)  -> value, raising CustodyError on rejection
    query(instance_id, operation, args) -> value, never mutates
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar, assert_never

import structlog
from pydantic import ValidationError

from ledger_custody.contracts import HashEscrow, MultisigVault, TimelockWallet
from ledger_custody.domain.enums import (
    READ_ONLY_OPERATIONS,
    ContractKind,
    EscrowOperation,
    MultisigOperation,
    ProofRule,
    TimelockOperation,
)
from ledger_custody.domain.exceptions import (
    AlreadyInitializedError,
    CustodyError,
    DuplicateTransactionError,
    InstanceNotFoundError,
    InvalidArgumentError,
)
from ledger_custody.logging_config import get_logger
from ledger_custody.schemas.custody import (
    EscrowBindArgs,
    EscrowLockArgs,
    EscrowReleaseArgs,
    MemberVoteArgs,
    NoArgs,
    PrincipalArgs,
    ProposalArgs,
    TimelockLockArgs,
    VaultDepositArgs,
    VaultProposeArgs,
    VaultStartArgs,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from pydantic import BaseModel

    from ledger_custody.contracts.base import CustodyContract
    from ledger_custody.domain.enums import ErrorKind
    from ledger_custody.domain.ledger_protocol import Ledger, StateStore
    from ledger_custody.domain.records import CustodyEvent
    from ledger_custody.infrastructure.replay import ReplayGuard

logger = get_logger(__name__)

ArgsT = TypeVar("ArgsT", bound="BaseModel")

CONTRACT_TYPES: dict[ContractKind, type[CustodyContract]] = {
    ContractKind.TIMELOCK: TimelockWallet,
    ContractKind.MULTISIG: MultisigVault,
    ContractKind.HASH_ESCROW: HashEscrow,
}

OPERATION_TYPES: dict[ContractKind, type[TimelockOperation | MultisigOperation | EscrowOperation]] = {
    ContractKind.TIMELOCK: TimelockOperation,
    ContractKind.MULTISIG: MultisigOperation,
    ContractKind.HASH_ESCROW: EscrowOperation,
}


@dataclass(frozen=True)
class InvocationResult:
    """Outcome of ``CustodyRuntime.invoke``: a value or a typed error."""

    ok: bool
    value: Any = None
    error: ErrorKind | None = None
    code: str | None = None
    message: str | None = None

    @classmethod
    def success(cls, value: Any) -> InvocationResult:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, exc: CustodyError) -> InvocationResult:
        return cls(ok=False, error=exc.kind, code=exc.code, message=exc.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "value": self.value,
            "error": self.error.value if self.error else None,
            "code": self.code,
            "message": self.message,
        }


def _parse_args(model: type[ArgsT], args: Mapping[str, Any] | None) -> ArgsT:
    try:
        return model.model_validate(dict(args or {}))
    except ValidationError as exc:
        raise InvalidArgumentError(
            f"Invalid arguments for {model.__name__}",
            details=exc.errors(include_url=False, include_context=False, include_input=False),
        ) from exc


def _plain(value: Any) -> Any:
    """Turn domain return values into JSON-friendly data."""
    to_dict = getattr(value, "to_dict", None)
    return to_dict() if callable(to_dict) else value


class CustodyRuntime:
    """Registry and dispatcher for custody instances on one ledger.

    Args:
        ledger: The ledger every instance transfers against.
        store: Where instance records and audit trails are persisted.
        replay_guard: Optional transaction-id guard; without one, tx ids are ignored.
        default_proof_rule: Rule used by escrow ``lock`` when none is given.
    """

    def __init__(
        self,
        ledger: Ledger,
        store: StateStore,
        replay_guard: ReplayGuard | None = None,
        default_proof_rule: ProofRule = ProofRule.EXACT,
    ) -> None:
        self.ledger = ledger
        self.store = store
        self._replay_guard = replay_guard
        self._default_proof_rule = default_proof_rule

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def deploy(self, kind: ContractKind, instance_id: str | None = None) -> CustodyContract:
        """Create a new uninitialized instance of ``kind``.

        Raises:
            AlreadyInitializedError: ``instance_id`` is already deployed.
        """
        instance_id = instance_id or f"{kind.value}-{uuid.uuid4().hex[:12]}"
        with self.ledger.invocation():
            if self.store.load(instance_id) is not None:
                raise AlreadyInitializedError(instance_id)
            return CONTRACT_TYPES[kind].deploy(instance_id, self.ledger, self.store)

    def contract(self, instance_id: str) -> CustodyContract:
        """Return a handle to a deployed instance."""
        record = self.store.load(instance_id)
        if record is None:
            raise InstanceNotFoundError(instance_id)
        return CONTRACT_TYPES[record.kind](instance_id, self.ledger, self.store)

    def instance_ids(self) -> list[str]:
        return list(self.store.instance_ids())

    def describe(self, instance_id: str) -> dict[str, Any]:
        """Current record plus the live balance of its custody account."""
        contract = self.contract(instance_id)
        record = contract.record
        return {
            "instance_id": instance_id,
            "kind": record.kind,
            "status": record.status,
            "custody_account": contract.custody_account,
            "custody_balance": self.ledger.balance_of(contract.custody_account),
            "record": record.to_dict(),
        }

    def get_events(self, instance_id: str) -> list[CustodyEvent]:
        """Audit trail of ``instance_id`` in commit order."""
        self.contract(instance_id)
        return self.store.events(instance_id)

    # ------------------------------------------------------------------
    # Call contract
    # ------------------------------------------------------------------

    def invoke(
        self,
        instance_id: str,
        operation: str,
        args: Mapping[str, Any] | None = None,
        caller: str = "",
        tx_id: str | None = None,
    ) -> InvocationResult:
        """Run an operation and report the outcome instead of raising."""
        try:
            value = self.call(instance_id, operation, args, caller=caller, tx_id=tx_id)
        except CustodyError as exc:
            logger.info(
                "runtime.invocation_rejected",
                instance_id=instance_id,
                operation=operation,
                caller=caller,
                error=exc.kind.value,
                code=exc.code,
            )
            return InvocationResult.failure(exc)
        return InvocationResult.success(value)

    def call(
        self,
        instance_id: str,
        operation: str,
        args: Mapping[str, Any] | None = None,
        caller: str = "",
        tx_id: str | None = None,
    ) -> Any:
        """Run an operation and return its value.

        Read-only operations are answered without opening a ledger invocation
        and ignore ``tx_id``.

        Raises:
            CustodyError: The specific guard failure; nothing was changed.
        """
        contract = self.contract(instance_id)
        op = self._parse_operation(contract.kind, operation)
        if op in READ_ONLY_OPERATIONS:
            return self._dispatch(contract, op, args, caller)

        if not caller:
            raise InvalidArgumentError("caller is required for state-changing operations")

        with structlog.contextvars.bound_contextvars(
            instance_id=instance_id, operation=op.value, caller=caller
        ):
            with self.ledger.invocation():
                self._claim(tx_id)
                try:
                    return self._dispatch(contract, op, args, caller)
                except BaseException:
                    self._release(tx_id)
                    raise

    def query(
        self,
        instance_id: str,
        operation: str,
        args: Mapping[str, Any] | None = None,
    ) -> Any:
        """Answer a read-only operation.

        Raises:
            InvalidArgumentError: ``operation`` is not read-only.
        """
        contract = self.contract(instance_id)
        op = self._parse_operation(contract.kind, operation)
        if op not in READ_ONLY_OPERATIONS:
            raise InvalidArgumentError(f"{op.value} is not a read-only operation")
        return self._dispatch(contract, op, args, caller="")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_operation(
        kind: ContractKind, operation: str
    ) -> TimelockOperation | MultisigOperation | EscrowOperation:
        operations = OPERATION_TYPES[kind]
        try:
            return operations(operation)
        except ValueError as exc:
            raise InvalidArgumentError(
                f"Unknown {kind.value} operation: {operation!r}",
                details=[op.value for op in operations],
            ) from exc

    def _claim(self, tx_id: str | None) -> None:
        if tx_id is None or self._replay_guard is None:
            return
        if not self._replay_guard.claim(tx_id):
            raise DuplicateTransactionError(tx_id)

    def _release(self, tx_id: str | None) -> None:
        if tx_id is not None and self._replay_guard is not None:
            self._replay_guard.release(tx_id)

    def _dispatch(
        self,
        contract: CustodyContract,
        op: TimelockOperation | MultisigOperation | EscrowOperation,
        args: Mapping[str, Any] | None,
        caller: str,
    ) -> Any:
        match contract:
            case TimelockWallet():
                return _plain(self._timelock(contract, TimelockOperation(op), args, caller))
            case MultisigVault():
                return _plain(self._multisig(contract, MultisigOperation(op), args, caller))
            case HashEscrow():
                return _plain(self._escrow(contract, EscrowOperation(op), args, caller))
        raise InvalidArgumentError(f"Unsupported contract type: {type(contract).__name__}")

    def _timelock(
        self,
        wallet: TimelockWallet,
        op: TimelockOperation,
        args: Mapping[str, Any] | None,
        caller: str,
    ) -> Any:
        match op:
            case TimelockOperation.LOCK:
                lock = _parse_args(TimelockLockArgs, args)
                return wallet.lock(caller, lock.beneficiary, lock.unlock_height, lock.amount)
            case TimelockOperation.WITHDRAW:
                _parse_args(NoArgs, args)
                return wallet.withdraw(caller)
            case TimelockOperation.GET_STATUS:
                _parse_args(NoArgs, args)
                return wallet.get_status()
            case TimelockOperation.GET_UNLOCK_HEIGHT:
                _parse_args(NoArgs, args)
                return wallet.get_unlock_height()
            case TimelockOperation.GET_BALANCE:
                _parse_args(NoArgs, args)
                return wallet.get_balance()
            case _:
                assert_never(op)

    def _multisig(
        self,
        vault: MultisigVault,
        op: MultisigOperation,
        args: Mapping[str, Any] | None,
        caller: str,
    ) -> Any:
        match op:
            case MultisigOperation.START:
                start = _parse_args(VaultStartArgs, args)
                return vault.start(
                    caller, start.members, start.votes_required, auto_execute=start.auto_execute
                )
            case MultisigOperation.DEPOSIT:
                return vault.deposit(caller, _parse_args(VaultDepositArgs, args).amount)
            case MultisigOperation.PROPOSE:
                proposal = _parse_args(VaultProposeArgs, args)
                return vault.propose(caller, proposal.recipient, proposal.amount)
            case MultisigOperation.VOTE:
                return vault.vote(caller, _parse_args(ProposalArgs, args).proposal_id)
            case MultisigOperation.EXECUTE:
                return vault.execute(caller, _parse_args(ProposalArgs, args).proposal_id)
            case MultisigOperation.GET_STATUS:
                _parse_args(NoArgs, args)
                return vault.get_status()
            case MultisigOperation.GET_PROPOSAL:
                return vault.get_proposal(_parse_args(ProposalArgs, args).proposal_id)
            case MultisigOperation.GET_VOTE:
                lookup = _parse_args(MemberVoteArgs, args)
                return vault.has_voted(lookup.member, lookup.proposal_id)
            case MultisigOperation.GET_VOTE_COUNT:
                return vault.get_vote_count(_parse_args(ProposalArgs, args).proposal_id)
            case MultisigOperation.GET_COUNT:
                return vault.get_member_vote_count(_parse_args(PrincipalArgs, args).principal)
            case MultisigOperation.GET_BALANCE:
                _parse_args(NoArgs, args)
                return vault.get_balance()
            case _:
                assert_never(op)

    def _escrow(
        self,
        escrow: HashEscrow,
        op: EscrowOperation,
        args: Mapping[str, Any] | None,
        caller: str,
    ) -> Any:
        match op:
            case EscrowOperation.LOCK:
                lock = _parse_args(EscrowLockArgs, args)
                return escrow.lock(
                    caller,
                    lock.commitment,
                    lock.amount,
                    beneficiary=lock.beneficiary,
                    proof_rule=lock.proof_rule or self._default_proof_rule,
                    refund_height=lock.refund_height,
                )
            case EscrowOperation.RELEASE:
                return escrow.release(caller, _parse_args(EscrowReleaseArgs, args).proof)
            case EscrowOperation.REFUND:
                _parse_args(NoArgs, args)
                return escrow.refund(caller)
            case EscrowOperation.BIND_BENEFICIARY:
                return escrow.bind_beneficiary(
                    caller, _parse_args(EscrowBindArgs, args).beneficiary
                )
            case EscrowOperation.GET_STATUS:
                _parse_args(NoArgs, args)
                return escrow.get_status()
            case _:
                assert_never(op)
