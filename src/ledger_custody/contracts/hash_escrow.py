"""HashEscrow — releases funds on proof of an external event.

The depositor locks an amount against a commitment: a transaction hash to be
matched byte for byte, or a hash of a secret to be revealed. Whoever presents
a matching proof releases the funds to the beneficiary; until then the
depositor may refund. RELEASED and REFUNDED are terminal and mutually
exclusive.

The beneficiary may be left unbound at lock time. It can be bound later by
the depositor; if it is still unbound at release, the releasing caller is
bound as beneficiary.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from ledger_custody.contracts.base import CustodyContract, Transition
from ledger_custody.domain import guards
from ledger_custody.domain.enums import ContractKind, EscrowState, EventType, ProofRule
from ledger_custody.domain.records import HashEscrowRecord


class HashEscrow(CustodyContract[HashEscrowRecord]):
    """Commitment-gated escrow with a depositor refund path."""

    kind = ContractKind.HASH_ESCROW
    record_type = HashEscrowRecord

    def lock(
        self,
        caller: str,
        commitment: bytes,
        amount: int,
        beneficiary: str | None = None,
        proof_rule: ProofRule = ProofRule.EXACT,
        refund_height: int | None = None,
    ) -> bool:
        """Move ``amount`` from the caller into custody against ``commitment``.

        Raises:
            AlreadyLockedError: The escrow is not EMPTY.
            InvalidArgumentError: Empty commitment or negative amount.
            PastUnlockHeightError: ``refund_height`` is not in the future.
        """

        def transition(
            record: HashEscrowRecord, height: int
        ) -> Transition[HashEscrowRecord, bool]:
            new_state = guards.check_escrow_lock(
                record, height, commitment, amount, refund_height
            )
            self._ledger.transfer(caller, self.custody_account, amount)
            locked = replace(
                record,
                state=new_state,
                depositor=caller,
                beneficiary=beneficiary or None,
                amount=amount,
                commitment=bytes(commitment),
                proof_rule=ProofRule(proof_rule),
                refund_height=refund_height,
                locked_at=height,
            )
            event = self._event(
                EventType.ESCROW_LOCKED,
                caller,
                height,
                record.status,
                locked.status,
                amount=amount,
                beneficiary=locked.beneficiary,
                commitment=locked.commitment.hex(),
                proof_rule=locked.proof_rule.value,
                refund_height=refund_height,
            )
            return Transition(locked, True, [event])

        return self._execute("lock", caller, transition)

    def bind_beneficiary(self, caller: str, beneficiary: str) -> bool:
        """Bind a deferred beneficiary. Depositor only, once, while LOCKED."""

        def transition(
            record: HashEscrowRecord, height: int
        ) -> Transition[HashEscrowRecord, bool]:
            guards.check_escrow_bind(record, caller, beneficiary)
            bound = replace(record, beneficiary=beneficiary)
            event = self._event(
                EventType.ESCROW_BENEFICIARY_BOUND,
                caller,
                height,
                record.status,
                bound.status,
                beneficiary=beneficiary,
            )
            return Transition(bound, True, [event])

        return self._execute("bind-beneficiary", caller, transition)

    def release(self, caller: str, proof: bytes) -> str:
        """Pay the escrowed amount to the beneficiary if ``proof`` matches.

        Returns the account that was paid.

        Raises:
            InvalidProofError: ``proof`` does not match the commitment.
            NotLockedError: The escrow is not LOCKED.
        """

        def transition(
            record: HashEscrowRecord, height: int
        ) -> Transition[HashEscrowRecord, str]:
            new_state = guards.check_escrow_release(record, proof)
            payee = record.beneficiary or caller
            self._ledger.transfer(self.custody_account, payee, record.amount)
            released = replace(record, state=new_state, beneficiary=payee, settled_at=height)
            event = self._event(
                EventType.ESCROW_RELEASED,
                caller,
                height,
                record.status,
                released.status,
                beneficiary=payee,
                amount=record.amount,
            )
            return Transition(released, payee, [event])

        return self._execute("release", caller, transition)

    def refund(self, caller: str) -> bool:
        """Return the escrowed amount to the depositor.

        Raises:
            UnauthorizedError: The caller is not the depositor.
            NotLockedError: The escrow is not LOCKED.
            NotYetUnlockedError: A refund height was set and not reached.
        """

        def transition(
            record: HashEscrowRecord, height: int
        ) -> Transition[HashEscrowRecord, bool]:
            new_state = guards.check_escrow_refund(record, caller, height)
            self._ledger.transfer(self.custody_account, record.depositor, record.amount)
            refunded = replace(record, state=new_state, settled_at=height)
            event = self._event(
                EventType.ESCROW_REFUNDED,
                caller,
                height,
                record.status,
                refunded.status,
                amount=record.amount,
            )
            return Transition(refunded, True, [event])

        return self._execute("refund", caller, transition)

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def get_status(self) -> dict[str, Any]:
        status = self._load().to_dict()
        status["custody_account"] = self.custody_account
        return status

    def get_balance(self) -> int:
        record = self._load()
        return record.amount if record.state is EscrowState.LOCKED else 0
