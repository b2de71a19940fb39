"""Domain exceptions for the custody primitives.

These exceptions are framework-agnostic and represent guard failures. Each
carries an ErrorKind (the caller-visible taxonomy) and a more specific code.
They are caught and translated to HTTP responses by the API layer's middleware,
and to InvocationResult values by the runtime.
"""

from __future__ import annotations

from ledger_custody.domain.enums import ErrorKind


class CustodyError(Exception):
    """Base exception for all domain errors."""

    kind: ErrorKind = ErrorKind.INVALID_STATE

    def __init__(self, message: str, code: str = "CUSTODY_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Initialization Errors ---


class AlreadyInitializedError(CustodyError):
    """Raised on re-entry into start/lock on a non-empty instance."""

    kind = ErrorKind.ALREADY_INITIALIZED

    def __init__(self, instance_id: str, code: str = "ALREADY_INITIALIZED") -> None:
        super().__init__(
            message=f"Instance already initialized: {instance_id}",
            code=code,
        )
        self.instance_id = instance_id


class AlreadyLockedError(AlreadyInitializedError):
    def __init__(self, instance_id: str) -> None:
        super().__init__(instance_id, code="ALREADY_LOCKED")


class AlreadyStartedError(AlreadyInitializedError):
    def __init__(self, instance_id: str) -> None:
        super().__init__(instance_id, code="ALREADY_STARTED")


# --- Authorization Errors ---


class UnauthorizedError(CustodyError):
    """Raised when the caller lacks the role required for an operation."""

    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, caller: str, role: str, code: str = "UNAUTHORIZED") -> None:
        super().__init__(
            message=f"Caller {caller} is not the {role}",
            code=code,
        )
        self.caller = caller
        self.role = role


class NotAMemberError(UnauthorizedError):
    def __init__(self, caller: str) -> None:
        super().__init__(caller, role="vault member", code="NOT_A_MEMBER")


# --- Clock Errors ---


class PrematureConditionError(CustodyError):
    """Raised when a block-height guard is not satisfied."""

    kind = ErrorKind.PREMATURE_CONDITION

    def __init__(self, message: str, height: int, target: int, code: str) -> None:
        super().__init__(message=message, code=code)
        self.height = height
        self.target = target


class PastUnlockHeightError(PrematureConditionError):
    """The requested unlock height is not in the future."""

    def __init__(self, height: int, target: int) -> None:
        super().__init__(
            message=f"Unlock height {target} must be greater than current height {height}",
            height=height,
            target=target,
            code="PAST_UNLOCK_HEIGHT",
        )


class NotYetUnlockedError(PrematureConditionError):
    """The unlock height has not been reached yet."""

    def __init__(self, height: int, target: int) -> None:
        super().__init__(
            message=f"Locked until height {target}, current height is {height}",
            height=height,
            target=target,
            code="NOT_YET_UNLOCKED",
        )


# --- State Errors ---


class InvalidStateError(CustodyError):
    """Raised when the instance is not in a state that permits the operation."""

    kind = ErrorKind.INVALID_STATE

    def __init__(
        self,
        current_state: str,
        attempted: str,
        code: str = "INVALID_STATE",
        message: str | None = None,
    ) -> None:
        super().__init__(
            message=message or f"Operation '{attempted}' not allowed in state {current_state}",
            code=code,
        )
        self.current_state = current_state
        self.attempted = attempted


class NotLockedError(InvalidStateError):
    def __init__(self, current_state: str, attempted: str) -> None:
        super().__init__(current_state, attempted, code="NOT_LOCKED")


class NotStartedError(InvalidStateError):
    def __init__(self, attempted: str) -> None:
        super().__init__("UNSTARTED", attempted, code="NOT_STARTED")


class BeneficiaryAlreadyBoundError(InvalidStateError):
    def __init__(self, beneficiary: str) -> None:
        super().__init__(
            "LOCKED",
            "bind-beneficiary",
            code="BENEFICIARY_ALREADY_BOUND",
            message=f"Beneficiary already bound: {beneficiary}",
        )


# --- Multisig Errors ---


class InvalidThresholdError(CustodyError):
    kind = ErrorKind.INVALID_THRESHOLD

    def __init__(self, votes_required: int, member_count: int) -> None:
        super().__init__(
            message=(
                f"votes_required must be between 1 and {member_count}, "
                f"got {votes_required}"
            ),
            code="INVALID_THRESHOLD",
        )


class UnknownProposalError(CustodyError):
    kind = ErrorKind.UNKNOWN_PROPOSAL

    def __init__(self, proposal_id: int) -> None:
        super().__init__(message=f"Unknown proposal: {proposal_id}", code="UNKNOWN_PROPOSAL")
        self.proposal_id = proposal_id


class AlreadyVotedError(CustodyError):
    kind = ErrorKind.ALREADY_VOTED

    def __init__(self, member: str, proposal_id: int) -> None:
        super().__init__(
            message=f"Member {member} already voted on proposal {proposal_id}",
            code="ALREADY_VOTED",
        )


class AlreadyExecutedError(CustodyError):
    kind = ErrorKind.ALREADY_EXECUTED

    def __init__(self, proposal_id: int) -> None:
        super().__init__(
            message=f"Proposal already executed: {proposal_id}",
            code="ALREADY_EXECUTED",
        )


class ThresholdNotMetError(CustodyError):
    """Raised when execution is attempted with fewer votes than required."""

    kind = ErrorKind.THRESHOLD_NOT_MET

    def __init__(self, proposal_id: int, votes: int, required: int) -> None:
        super().__init__(
            message=f"Proposal {proposal_id} has {votes} of {required} required votes",
            code="THRESHOLD_NOT_MET",
        )


# --- Escrow Errors ---


class InvalidProofError(CustodyError):
    kind = ErrorKind.INVALID_PROOF

    def __init__(self) -> None:
        super().__init__(message="Proof does not match commitment", code="INVALID_PROOF")


# --- Ledger Errors ---


class InsufficientFundsError(CustodyError):
    """Raised by the ledger when an account cannot cover a transfer."""

    kind = ErrorKind.INSUFFICIENT_FUNDS

    def __init__(self, account: str, required: int, available: int) -> None:
        super().__init__(
            message=(
                f"Insufficient funds in {account}: required {required}, "
                f"available {available}"
            ),
            code="INSUFFICIENT_FUNDS",
        )
        self.account = account
        self.required = required
        self.available = available


# --- Runtime Errors ---


class InvalidArgumentError(CustodyError):
    kind = ErrorKind.INVALID_ARGUMENT

    def __init__(self, message: str, details: list | None = None) -> None:
        super().__init__(message=message, code="INVALID_ARGUMENT")
        self.details = details or []


class InstanceNotFoundError(CustodyError):
    """Raised when an instance id has not been deployed."""

    kind = ErrorKind.INSTANCE_NOT_FOUND

    def __init__(self, instance_id: str) -> None:
        super().__init__(
            message=f"Instance not found: {instance_id}",
            code="INSTANCE_NOT_FOUND",
        )
        self.instance_id = instance_id


class DuplicateTransactionError(CustodyError):
    """Raised when a transaction id has already been applied."""

    kind = ErrorKind.DUPLICATE_TRANSACTION

    def __init__(self, tx_id: str) -> None:
        super().__init__(
            message=f"Duplicate transaction detected: {tx_id}",
            code="DUPLICATE_TRANSACTION",
        )
        self.tx_id = tx_id
