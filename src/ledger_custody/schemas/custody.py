"""Pydantic schemas for the custody runtime and HTTP API.

Two groups:
    - Operation arguments: one model per operation signature. They check
      shapes and types only; value rules (positive amounts, future heights,
      membership) belong to the guards so that rejection order stays the
      same no matter how an operation is reached.
    - Request/response bodies for the REST routes.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    field_validator,
)

from ledger_custody.domain.enums import ContractKind, ErrorKind, ProofRule
from ledger_custody.domain.records import is_custody_account


def _to_bytes(value: Any) -> Any:
    """Accept raw bytes, ``0x``-prefixed hex, or text (encoded as UTF-8)."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        if value.startswith(("0x", "0X")):
            try:
                return bytes.fromhex(value[2:])
            except ValueError as exc:
                raise ValueError(f"invalid hex string: {value!r}") from exc
        return value.encode("utf-8")
    return value


ByteString = Annotated[bytes, BeforeValidator(_to_bytes)]


class OperationArgs(BaseModel):
    """Base for operation argument models: unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class NoArgs(OperationArgs):
    pass


# ---------------------------------------------------------------------------
# TimelockWallet
# ---------------------------------------------------------------------------


class TimelockLockArgs(OperationArgs):
    beneficiary: str
    unlock_height: StrictInt
    amount: StrictInt


# ---------------------------------------------------------------------------
# MultisigVault
# ---------------------------------------------------------------------------


class VaultStartArgs(OperationArgs):
    members: list[str]
    votes_required: StrictInt
    auto_execute: StrictBool = True


class VaultDepositArgs(OperationArgs):
    amount: StrictInt


class VaultProposeArgs(OperationArgs):
    recipient: str
    amount: StrictInt


class ProposalArgs(OperationArgs):
    proposal_id: StrictInt


class MemberVoteArgs(OperationArgs):
    member: str
    proposal_id: StrictInt


class PrincipalArgs(OperationArgs):
    principal: str


# ---------------------------------------------------------------------------
# HashEscrow
# ---------------------------------------------------------------------------


class EscrowLockArgs(OperationArgs):
    commitment: ByteString
    amount: StrictInt
    beneficiary: str | None = None
    proof_rule: ProofRule | None = None
    refund_height: StrictInt | None = None


class EscrowReleaseArgs(OperationArgs):
    proof: ByteString


class EscrowBindArgs(OperationArgs):
    beneficiary: str


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class DeployRequest(BaseModel):
    """Request body for deploying a new custody instance."""

    kind: ContractKind = Field(..., description="Which policy variant to deploy")
    instance_id: str | None = Field(
        default=None,
        min_length=1,
        max_length=128,
        pattern=r"^[A-Za-z0-9_.\-]+$",
        description="Optional id; generated when omitted",
        examples=["savings-2024"],
    )


class InvokeRequest(BaseModel):
    """Request body for a state-changing invocation."""

    operation: str = Field(..., description="Operation name, e.g. 'lock' or 'vote'")
    args: dict[str, Any] = Field(default_factory=dict)
    caller: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Identity of the invoking principal",
        examples=["alice"],
    )
    tx_id: str | None = Field(
        default=None,
        min_length=1,
        max_length=128,
        description="Optional transaction id; a committed id cannot be replayed",
    )

    @field_validator("caller")
    @classmethod
    def caller_is_not_custody_account(cls, v: str) -> str:
        if is_custody_account(v):
            raise ValueError("custody accounts cannot invoke operations")
        return v


class QueryRequest(BaseModel):
    """Request body for a read-only query."""

    operation: str
    args: dict[str, Any] = Field(default_factory=dict)


class MineBlocksRequest(BaseModel):
    """Advance the devnet clock."""

    blocks: int = Field(default=1, ge=1, le=100_000)


class FaucetRequest(BaseModel):
    """Credit a devnet account."""

    account: str = Field(..., min_length=1, max_length=128)
    amount: int = Field(..., gt=0)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class InstanceResponse(BaseModel):
    """Current view of a custody instance."""

    instance_id: str
    kind: ContractKind
    status: str
    custody_account: str
    custody_balance: int
    record: dict[str, Any]


class InvocationResponse(BaseModel):
    """Outcome of an invocation or query."""

    ok: bool
    value: Any = None
    error: ErrorKind | None = None
    code: str | None = None
    message: str | None = None


class CustodyEventResponse(BaseModel):
    """One entry of an instance's audit trail."""

    model_config = ConfigDict(from_attributes=True)

    instance_id: str
    event_type: str
    actor: str
    height: int
    old_state: str | None = None
    new_state: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class LedgerResponse(BaseModel):
    """Devnet ledger snapshot."""

    block_height: int
    balances: dict[str, int]


class AccountResponse(BaseModel):
    account: str
    balance: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str
    environment: str
    state_backend: str
    block_height: int
