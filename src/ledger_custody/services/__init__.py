"""Application services — use case orchestration."""

from ledger_custody.services.factory import build_runtime
from ledger_custody.services.runtime import CustodyRuntime, InvocationResult

__all__ = ["CustodyRuntime", "InvocationResult", "build_runtime"]
