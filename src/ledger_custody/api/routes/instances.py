"""Custody instance REST API routes.

These endpoints expose the runtime's call contract over HTTP. Rejections
raise CustodyError and are translated to JSON by ErrorHandlerMiddleware.

Routes:
    POST   /api/v1/instances               — Deploy a new instance
    GET    /api/v1/instances               — List deployed instance ids
    GET    /api/v1/instances/{id}          — Current record and custody balance
    POST   /api/v1/instances/{id}/invoke   — Run a state-changing operation
    POST   /api/v1/instances/{id}/query    — Run a read-only operation
    GET    /api/v1/instances/{id}/events   — Audit trail
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ledger_custody.api.deps import get_runtime
from ledger_custody.logging_config import get_logger
from ledger_custody.schemas.custody import (
    CustodyEventResponse,
    DeployRequest,
    InstanceResponse,
    InvocationResponse,
    InvokeRequest,
    QueryRequest,
)
from ledger_custody.services.runtime import CustodyRuntime

router = APIRouter(prefix="/api/v1/instances", tags=["Instances"])
logger = get_logger(__name__)


@router.post(
    "",
    response_model=InstanceResponse,
    status_code=201,
    summary="Deploy a custody instance",
)
def deploy_instance(
    request: DeployRequest,
    runtime: CustodyRuntime = Depends(get_runtime),
) -> InstanceResponse:
    """Deploy an uninitialized timelock, multisig or hash escrow."""
    contract = runtime.deploy(request.kind, request.instance_id)
    logger.info(
        "api.instance_deployed",
        instance_id=contract.instance_id,
        kind=request.kind.value,
    )
    return InstanceResponse(**runtime.describe(contract.instance_id))


@router.get("", response_model=list[str], summary="List instance ids")
def list_instances(runtime: CustodyRuntime = Depends(get_runtime)) -> list[str]:
    return runtime.instance_ids()


@router.get(
    "/{instance_id}",
    response_model=InstanceResponse,
    summary="Get instance details",
)
def get_instance(
    instance_id: str,
    runtime: CustodyRuntime = Depends(get_runtime),
) -> InstanceResponse:
    return InstanceResponse(**runtime.describe(instance_id))


@router.post(
    "/{instance_id}/invoke",
    response_model=InvocationResponse,
    summary="Invoke an operation",
)
def invoke_operation(
    instance_id: str,
    request: InvokeRequest,
    runtime: CustodyRuntime = Depends(get_runtime),
) -> InvocationResponse:
    """Run ``operation`` as ``caller``. Nothing changes if it is rejected."""
    value = runtime.call(
        instance_id,
        request.operation,
        request.args,
        caller=request.caller,
        tx_id=request.tx_id,
    )
    return InvocationResponse(ok=True, value=value)


@router.post(
    "/{instance_id}/query",
    response_model=InvocationResponse,
    summary="Run a read-only query",
)
def query_operation(
    instance_id: str,
    request: QueryRequest,
    runtime: CustodyRuntime = Depends(get_runtime),
) -> InvocationResponse:
    value = runtime.query(instance_id, request.operation, request.args)
    return InvocationResponse(ok=True, value=value)


@router.get(
    "/{instance_id}/events",
    response_model=list[CustodyEventResponse],
    summary="Get audit trail",
)
def get_instance_events(
    instance_id: str,
    runtime: CustodyRuntime = Depends(get_runtime),
) -> list[CustodyEventResponse]:
    """Return the full audit trail for an instance in commit order."""
    return [
        CustodyEventResponse(**event.to_dict()) for event in runtime.get_events(instance_id)
    ]
