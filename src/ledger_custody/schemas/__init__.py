"""Pydantic schemas: operation arguments and API bodies."""

from ledger_custody.schemas.custody import (
    AccountResponse,
    CustodyEventResponse,
    DeployRequest,
    EscrowBindArgs,
    EscrowLockArgs,
    EscrowReleaseArgs,
    FaucetRequest,
    HealthResponse,
    InstanceResponse,
    InvocationResponse,
    InvokeRequest,
    LedgerResponse,
    MemberVoteArgs,
    MineBlocksRequest,
    NoArgs,
    PrincipalArgs,
    ProposalArgs,
    QueryRequest,
    TimelockLockArgs,
    VaultDepositArgs,
    VaultProposeArgs,
    VaultStartArgs,
)

__all__ = [
    "AccountResponse",
    "CustodyEventResponse",
    "DeployRequest",
    "EscrowBindArgs",
    "EscrowLockArgs",
    "EscrowReleaseArgs",
    "FaucetRequest",
    "HealthResponse",
    "InstanceResponse",
    "InvocationResponse",
    "InvokeRequest",
    "LedgerResponse",
    "MemberVoteArgs",
    "MineBlocksRequest",
    "NoArgs",
    "PrincipalArgs",
    "ProposalArgs",
    "QueryRequest",
    "TimelockLockArgs",
    "VaultDepositArgs",
    "VaultProposeArgs",
    "VaultStartArgs",
]
