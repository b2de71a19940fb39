"""MultisigVault — N-of-M vault whose withdrawals are voted proposals.

Anyone may deposit. Members propose withdrawals and vote on them; a proposal
executes exactly once, triggered by the vote that brings its tally to
``votes_required`` (or, for vaults started with ``auto_execute=False``, by an
explicit ``execute`` call once the tally is reached).

A proposal that never reaches quorum stays pending. There is no expiry and
no cancellation.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from ledger_custody.contracts.base import CustodyContract, Transition
from ledger_custody.domain import guards
from ledger_custody.domain.enums import ContractKind, EventType, ProposalStatus
from ledger_custody.domain.exceptions import InsufficientFundsError
from ledger_custody.domain.records import (
    CustodyEvent,
    MultisigRecord,
    Proposal,
    WithdrawalAction,
)

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(frozen=True)
class VoteOutcome:
    """Returned by ``vote``: the tally after the vote and whether it executed."""

    proposal_id: int
    votes: int
    votes_required: int
    executed: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "proposal_id": self.proposal_id,
            "votes": self.votes,
            "votes_required": self.votes_required,
            "executed": self.executed,
        }


class MultisigVault(CustodyContract[MultisigRecord]):
    """Vault with a fixed member set and a vote threshold."""

    kind = ContractKind.MULTISIG
    record_type = MultisigRecord

    # ------------------------------------------------------------------
    # Setup and funding
    # ------------------------------------------------------------------

    def start(
        self,
        caller: str,
        members: Iterable[str],
        votes_required: int,
        auto_execute: bool = True,
    ) -> bool:
        """Fix the member set and threshold. Duplicate member ids collapse.

        Raises:
            AlreadyStartedError: Members are already set.
            InvalidThresholdError: ``votes_required`` is 0 or exceeds the member count.
        """
        member_set = frozenset(members)

        def transition(record: MultisigRecord, height: int) -> Transition[MultisigRecord, bool]:
            guards.check_vault_start(record, member_set, votes_required)
            started = replace(
                record,
                members=member_set,
                votes_required=votes_required,
                auto_execute=auto_execute,
                started_at=height,
            )
            event = self._event(
                EventType.VAULT_STARTED,
                caller,
                height,
                record.status,
                started.status,
                members=sorted(member_set),
                votes_required=votes_required,
                auto_execute=auto_execute,
            )
            return Transition(started, True, [event])

        return self._execute("start", caller, transition)

    def deposit(self, caller: str, amount: int) -> int:
        """Move ``amount`` from the caller into the vault. Returns the new balance."""

        def transition(record: MultisigRecord, height: int) -> Transition[MultisigRecord, int]:
            guards.check_vault_deposit(record, amount)
            self._ledger.transfer(caller, self.custody_account, amount)
            funded = replace(
                record,
                balance=record.balance + amount,
                total_deposited=record.total_deposited + amount,
            )
            event = self._event(
                EventType.VAULT_DEPOSIT,
                caller,
                height,
                record.status,
                funded.status,
                amount=amount,
                balance=funded.balance,
            )
            return Transition(funded, funded.balance, [event])

        return self._execute("deposit", caller, transition)

    # ------------------------------------------------------------------
    # Proposals
    # ------------------------------------------------------------------

    def propose(self, caller: str, recipient: str, amount: int) -> int:
        """Create a withdrawal proposal and return its id.

        The proposer's vote is not cast implicitly.
        """

        def transition(record: MultisigRecord, height: int) -> Transition[MultisigRecord, int]:
            guards.check_vault_propose(record, caller, recipient, amount)
            proposal = Proposal(
                proposal_id=len(record.proposals),
                proposer=caller,
                action=WithdrawalAction(recipient=recipient, amount=amount),
                created_at=height,
            )
            updated = replace(record, proposals=(*record.proposals, proposal))
            event = self._event(
                EventType.PROPOSAL_CREATED,
                caller,
                height,
                None,
                proposal.status,
                proposal_id=proposal.proposal_id,
                recipient=recipient,
                amount=amount,
            )
            return Transition(updated, proposal.proposal_id, [event])

        return self._execute("propose", caller, transition)

    def vote(self, caller: str, proposal_id: int) -> VoteOutcome:
        """Record the caller's vote; execute if this vote reaches the threshold.

        A vote on an executed proposal is rejected with AlreadyExecuted, even
        from a member who has not voted yet: once the action has run, the
        proposal accepts no further state. With ``auto_execute=False`` votes
        past the threshold are still recorded until ``execute`` is called.

        Raises:
            NotAMemberError, UnknownProposalError, AlreadyVotedError,
            AlreadyExecutedError: In that order of precedence.
            InsufficientFundsError: The crossing vote cannot pay the action;
                the vote itself is rolled back too.
        """

        def transition(
            record: MultisigRecord, height: int
        ) -> Transition[MultisigRecord, VoteOutcome]:
            voted = guards.check_vault_vote(record, caller, proposal_id)
            updated = record.with_proposal(voted)
            events = [
                self._event(
                    EventType.VOTE_CAST,
                    caller,
                    height,
                    ProposalStatus.PENDING.value,
                    ProposalStatus.PENDING.value,
                    proposal_id=proposal_id,
                    votes=voted.vote_count,
                )
            ]
            if updated.auto_execute and guards.threshold_reached(updated, voted):
                updated, voted, executed_event = self._apply_execution(
                    updated, voted, caller, height
                )
                events.append(executed_event)
            outcome = VoteOutcome(
                proposal_id=proposal_id,
                votes=voted.vote_count,
                votes_required=updated.votes_required,
                executed=voted.executed,
            )
            return Transition(updated, outcome, events)

        return self._execute("vote", caller, transition)

    def execute(self, caller: str, proposal_id: int) -> bool:
        """Execute a proposal that already has enough votes.

        Only needed for vaults started with ``auto_execute=False``.

        Raises:
            ThresholdNotMetError: The tally is below ``votes_required``.
            AlreadyExecutedError: The proposal has executed before.
        """

        def transition(record: MultisigRecord, height: int) -> Transition[MultisigRecord, bool]:
            proposal = guards.check_vault_execute(record, caller, proposal_id)
            updated, _, event = self._apply_execution(record, proposal, caller, height)
            return Transition(updated, True, [event])

        return self._execute("execute", caller, transition)

    def _apply_execution(
        self,
        record: MultisigRecord,
        proposal: Proposal,
        caller: str,
        height: int,
    ) -> tuple[MultisigRecord, Proposal, CustodyEvent]:
        amount = proposal.action.amount
        if amount > record.balance:
            raise InsufficientFundsError(self.custody_account, amount, record.balance)
        self._ledger.transfer(self.custody_account, proposal.action.recipient, amount)

        executed = replace(proposal, executed=True, executed_at=height)
        updated = replace(
            record.with_proposal(executed),
            balance=record.balance - amount,
            total_withdrawn=record.total_withdrawn + amount,
        )
        event = self._event(
            EventType.PROPOSAL_EXECUTED,
            caller,
            height,
            proposal.status,
            executed.status,
            proposal_id=proposal.proposal_id,
            recipient=proposal.action.recipient,
            amount=amount,
            votes=sorted(executed.votes),
        )
        return updated, executed, event

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def get_status(self) -> dict[str, Any]:
        status = self._load().to_dict()
        status["custody_account"] = self.custody_account
        return status

    def get_balance(self) -> int:
        return self._load().balance

    def is_member(self, principal: str) -> bool:
        return principal in self._load().members

    def get_proposal(self, proposal_id: int) -> Proposal | None:
        """The proposal with ``proposal_id``, or None if it was never created."""
        return self._load().get_proposal(proposal_id)

    def has_voted(self, member: str, proposal_id: int) -> bool:
        proposal = self.get_proposal(proposal_id)
        return proposal is not None and member in proposal.votes

    def get_vote_count(self, proposal_id: int) -> int:
        """Votes cast on ``proposal_id``; 0 for unknown proposals."""
        proposal = self.get_proposal(proposal_id)
        return proposal.vote_count if proposal is not None else 0

    def get_member_vote_count(self, principal: str) -> int:
        """Number of proposals ``principal`` voted on; 0 if it never voted."""
        return sum(1 for p in self._load().proposals if principal in p.votes)
