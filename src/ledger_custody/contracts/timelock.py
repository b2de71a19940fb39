"""TimelockWallet — releases a locked amount to a beneficiary at a block height.

State machine: EMPTY -> LOCKED -> WITHDRAWN. No back-edges.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from ledger_custody.contracts.base import CustodyContract, Transition
from ledger_custody.domain import guards
from ledger_custody.domain.enums import ContractKind, EventType, TimelockState
from ledger_custody.domain.records import TimelockRecord


class TimelockWallet(CustodyContract[TimelockRecord]):
    """A wallet whose funds only the beneficiary can withdraw, once, after ``unlock_height``."""

    kind = ContractKind.TIMELOCK
    record_type = TimelockRecord

    def lock(self, caller: str, beneficiary: str, unlock_height: int, amount: int) -> bool:
        """Move ``amount`` from the caller into custody until ``unlock_height``.

        The caller becomes the owner.

        Raises:
            AlreadyLockedError: The wallet is not EMPTY.
            PastUnlockHeightError: ``unlock_height`` is not above the current height.
            InsufficientFundsError: The caller cannot cover ``amount``.
        """

        def transition(record: TimelockRecord, height: int) -> Transition[TimelockRecord, bool]:
            new_state = guards.check_timelock_lock(
                record, height, beneficiary, unlock_height, amount
            )
            self._ledger.transfer(caller, self.custody_account, amount)
            locked = replace(
                record,
                state=new_state,
                owner=caller,
                beneficiary=beneficiary,
                amount=amount,
                unlock_height=unlock_height,
                locked_at=height,
            )
            event = self._event(
                EventType.TIMELOCK_LOCKED,
                caller,
                height,
                record.status,
                locked.status,
                beneficiary=beneficiary,
                amount=amount,
                unlock_height=unlock_height,
            )
            return Transition(locked, True, [event])

        return self._execute("lock", caller, transition)

    def withdraw(self, caller: str) -> bool:
        """Pay the locked amount to the beneficiary.

        Raises:
            UnauthorizedError: The caller is not the beneficiary.
            NotYetUnlockedError: The unlock height has not been reached.
            NotLockedError: The wallet is not LOCKED (e.g. already withdrawn).
        """

        def transition(record: TimelockRecord, height: int) -> Transition[TimelockRecord, bool]:
            new_state = guards.check_timelock_withdraw(record, caller, height)
            self._ledger.transfer(self.custody_account, record.beneficiary, record.amount)
            withdrawn = replace(record, state=new_state, withdrawn_at=height)
            event = self._event(
                EventType.TIMELOCK_WITHDRAWN,
                caller,
                height,
                record.status,
                withdrawn.status,
                amount=record.amount,
            )
            return Transition(withdrawn, True, [event])

        return self._execute("withdraw", caller, transition)

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def get_status(self) -> dict[str, Any]:
        record = self._load()
        status = record.to_dict()
        status["custody_account"] = self.custody_account
        status["blocks_until_unlock"] = self.blocks_until_unlock()
        return status

    def get_unlock_height(self) -> int | None:
        return self._load().unlock_height

    def get_balance(self) -> int:
        """Amount still held in custody (0 before lock and after withdrawal)."""
        record = self._load()
        return record.amount if record.state is TimelockState.LOCKED else 0

    def blocks_until_unlock(self) -> int:
        """Blocks left before withdrawal is possible; 0 once unlocked or never locked."""
        unlock_height = self._load().unlock_height
        if unlock_height is None:
            return 0
        return max(0, unlock_height - self._ledger.block_height)
