"""Custody lifecycle state machines.

Uses python-statemachine to enforce legal state transitions at the domain
level. Whatever the runtime or the HTTP layer does, an illegal transition
(e.g. WITHDRAWN -> LOCKED) raises TransitionNotAllowed before any record is
written.

Machines are instantiated per call from the persisted status string; they
carry no state of their own beyond that.

Transition tables:

    TimelockStateMachine
        EMPTY     -> LOCKED      (lock_funds)
        LOCKED    -> WITHDRAWN   (withdraw_funds)

    EscrowStateMachine
        EMPTY     -> LOCKED      (lock_funds)
        LOCKED    -> LOCKED      (bind_beneficiary)
        LOCKED    -> RELEASED    (release_funds)
        LOCKED    -> REFUNDED    (refund_funds)

    ProposalStateMachine
        PENDING   -> PENDING     (cast_vote)
        PENDING   -> EXECUTED    (execute_proposal)
"""

from __future__ import annotations

from statemachine import State, StateMachine


class _PersistedStatus:
    """Start a machine at a persisted status string instead of its initial state."""

    def __init__(self, current_status: str) -> None:
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {valid}"
            )
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        """Return the current state value as a string."""
        return str(self.current_state_value)

    def get_allowed_events(self) -> list[str]:
        """Return the ids of the events that can fire from the current state."""
        return [event.id for event in self.allowed_events]


class TimelockStateMachine(_PersistedStatus, StateMachine):
    """Guards the Empty -> Locked -> Withdrawn lifecycle. No back-edges."""

    EMPTY = State("EMPTY", initial=True)
    LOCKED = State("LOCKED")
    WITHDRAWN = State("WITHDRAWN", final=True)

    lock_funds = EMPTY.to(LOCKED)
    withdraw_funds = LOCKED.to(WITHDRAWN)

    def __init__(self, current_status: str = "EMPTY") -> None:
        super().__init__(current_status)


class EscrowStateMachine(_PersistedStatus, StateMachine):
    """Guards the escrow lifecycle.

    RELEASED and REFUNDED are both final: whichever fires first forecloses
    the other.
    """

    EMPTY = State("EMPTY", initial=True)
    LOCKED = State("LOCKED")
    RELEASED = State("RELEASED", final=True)
    REFUNDED = State("REFUNDED", final=True)

    lock_funds = EMPTY.to(LOCKED)
    bind_beneficiary = LOCKED.to.itself()
    release_funds = LOCKED.to(RELEASED)
    refund_funds = LOCKED.to(REFUNDED)

    def __init__(self, current_status: str = "EMPTY") -> None:
        super().__init__(current_status)


class ProposalStateMachine(_PersistedStatus, StateMachine):
    """Guards a single withdrawal proposal. Execution happens at most once."""

    PENDING = State("PENDING", initial=True)
    EXECUTED = State("EXECUTED", final=True)

    cast_vote = PENDING.to.itself()
    execute_proposal = PENDING.to(EXECUTED)

    def __init__(self, current_status: str = "PENDING") -> None:
        super().__init__(current_status)


def validate_transition(
    machine_cls: type[_PersistedStatus], current_status: str, event_name: str
) -> str:
    """Validate a state transition and return the new status.

    Creates a temporary state machine at ``current_status``, fires the named
    event, and returns the resulting status string.

    Raises:
        TransitionNotAllowed: If the transition is illegal.
        ValueError: If the status or event name is invalid.
    """
    sm = machine_cls(current_status)

    event_method = getattr(sm, event_name, None)
    if event_method is None or not callable(event_method):
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed events from {current_status}: {sm.get_allowed_events()}"
        )

    event_method()
    return sm.status
