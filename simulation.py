#!/usr/bin/env python3
"""Ledger Custody — End-to-End Simulation.

Runs four scenarios against a devnet ledger through the custody runtime:

    Scenario 1: Timelock
        - Alice locks 500 at height 5 for Bob, unlocking at height 10
        - Bob withdraws at height 9 -> PREMATURE_CONDITION
        - Bob withdraws at height 10 -> funds released

    Scenario 2: Multisig quorum
        - Five members, four votes required, 1000 deposited
        - A proposal pays Carol 300; the 4th vote executes it exactly once
        - A 5th vote on the executed proposal -> ALREADY_EXECUTED

    Scenario 3: Hash escrow release
        - Depositor locks 250 against sha256(secret), unbound beneficiary
        - A wrong proof -> INVALID_PROOF
        - The right proof releases to the presenter; refund afterwards is rejected

    Scenario 4: Hash escrow refund
        - Depositor locks with a refund height; refund before it -> PREMATURE_CONDITION
        - Refund at the refund height succeeds; release afterwards is rejected

Usage:
    python simulation.py                 # in-memory state store
    python simulation.py --sqlite        # SQLite in-memory state store
    python simulation.py --scenario 2    # run a single scenario
"""

from __future__ import annotations

import argparse
import hashlib
from typing import Any

# ---------------------------------------------------------------------------
# Configure structured logging BEFORE importing app modules
# ---------------------------------------------------------------------------
from ledger_custody.logging_config import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False)
logger = get_logger("simulation")

from ledger_custody.domain.enums import ContractKind  # noqa: E402
from ledger_custody.infrastructure.database import Base, SqlStateStore, build_engine  # noqa: E402
from ledger_custody.infrastructure.ledger import InMemoryLedger  # noqa: E402
from ledger_custody.infrastructure.memory_store import InMemoryStateStore  # noqa: E402
from ledger_custody.infrastructure.replay import InMemoryReplayGuard  # noqa: E402
from ledger_custody.services.runtime import CustodyRuntime, InvocationResult  # noqa: E402


def build_simulation_runtime(use_sqlite: bool = False) -> CustodyRuntime:
    """Fresh devnet ledger with funded accounts, plus the chosen store."""
    if use_sqlite:
        from sqlalchemy.orm import sessionmaker

        engine = build_engine("sqlite://")
        Base.metadata.create_all(engine)
        store = SqlStateStore(sessionmaker(bind=engine, expire_on_commit=False))
        logger.info("database.sqlite_initialized")
    else:
        store = InMemoryStateStore()

    ledger = InMemoryLedger(
        balances={"alice": 2_000, "dave": 1_000, "erin": 1_000},
    )
    return CustodyRuntime(ledger=ledger, store=store, replay_guard=InMemoryReplayGuard())


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------
def section(title: str) -> None:
    print(f"\n{'─' * 70}\n  {title}\n{'─' * 70}")


def print_result(label: str, result: InvocationResult) -> None:
    if result.ok:
        print(f"  ✅ {label}: {result.value}")
    else:
        print(f"  ❌ {label}: {result.error} ({result.code}) {result.message}")


def print_balances(runtime: CustodyRuntime, *accounts: str) -> None:
    for account in accounts:
        print(f"     {account:<28} {runtime.ledger.balance_of(account):>8}")


def print_audit_trail(runtime: CustodyRuntime, instance_id: str) -> None:
    section(f"Audit Trail — {instance_id}")
    for event in runtime.get_events(instance_id):
        print(
            f"  [{event.height:>3}] {event.event_type:<26} "
            f"{event.old_state or '-'} -> {event.new_state or '-'}  by {event.actor}"
        )


def expect(result: InvocationResult, ok: bool, label: str) -> None:
    print_result(label, result)
    if result.ok != ok:
        raise SystemExit(f"Unexpected outcome for {label}: {result}")


# ===========================================================================
# Scenarios
# ===========================================================================
def scenario_1_timelock(runtime: CustodyRuntime) -> None:
    section("Scenario 1: Timelock")
    ledger = runtime.ledger
    wallet = runtime.deploy(ContractKind.TIMELOCK, "savings")

    ledger.mine_until(5)
    expect(
        runtime.invoke(
            "savings",
            "lock",
            {"beneficiary": "bob", "unlock_height": 10, "amount": 500},
            caller="alice",
        ),
        True,
        "alice locks 500 until height 10",
    )

    ledger.mine_until(9)
    expect(runtime.invoke("savings", "withdraw", caller="bob"), False, "bob withdraws at 9")

    ledger.mine_until(10)
    expect(runtime.invoke("savings", "withdraw", caller="bob"), True, "bob withdraws at 10")

    print_balances(runtime, "alice", "bob", wallet.custody_account)
    print_audit_trail(runtime, "savings")


def scenario_2_multisig(runtime: CustodyRuntime) -> None:
    section("Scenario 2: Multisig quorum")
    members = ["m1", "m2", "m3", "m4", "m5"]
    vault = runtime.deploy(ContractKind.MULTISIG, "treasury")

    expect(
        runtime.invoke(
            "treasury", "start", {"members": members, "votes_required": 4}, caller="m1"
        ),
        True,
        "start 4-of-5",
    )
    expect(runtime.invoke("treasury", "deposit", {"amount": 1000}, caller="alice"), True, "deposit")
    proposal = runtime.invoke(
        "treasury", "propose", {"recipient": "carol", "amount": 300}, caller="m1"
    )
    expect(proposal, True, "propose 300 to carol")
    proposal_id = proposal.value

    for tx, member in enumerate(members, start=1):
        result = runtime.invoke(
            "treasury",
            "vote",
            {"proposal_id": proposal_id},
            caller=member,
            tx_id=f"treasury-vote-{tx}",
        )
        expect(result, member != "m5", f"{member} votes")

    replay = runtime.invoke(
        "treasury", "vote", {"proposal_id": proposal_id}, caller="m1", tx_id="treasury-vote-1"
    )
    expect(replay, False, "replayed tx treasury-vote-1")

    print(f"  📊 vote count: {runtime.query('treasury', 'get-vote-count', {'proposal_id': proposal_id})}")
    print_balances(runtime, "carol", vault.custody_account)
    print_audit_trail(runtime, "treasury")


def scenario_3_escrow_release(runtime: CustodyRuntime) -> None:
    section("Scenario 3: Hash escrow release")
    secret = b"correct horse battery staple"
    escrow = runtime.deploy(ContractKind.HASH_ESCROW, "swap")

    expect(
        runtime.invoke(
            "swap",
            "lock",
            {
                "commitment": "0x" + hashlib.sha256(secret).hexdigest(),
                "amount": 250,
                "proof_rule": "sha256",
            },
            caller="dave",
        ),
        True,
        "dave locks 250 against sha256(secret)",
    )
    expect(
        runtime.invoke("swap", "release", {"proof": "wrong secret"}, caller="frank"),
        False,
        "frank presents a wrong proof",
    )
    expect(
        runtime.invoke("swap", "release", {"proof": secret.decode()}, caller="frank"),
        True,
        "frank presents the secret",
    )
    expect(runtime.invoke("swap", "refund", caller="dave"), False, "dave refunds after release")

    print_balances(runtime, "dave", "frank", escrow.custody_account)
    print_audit_trail(runtime, "swap")


def scenario_4_escrow_refund(runtime: CustodyRuntime) -> None:
    section("Scenario 4: Hash escrow refund")
    ledger = runtime.ledger
    escrow = runtime.deploy(ContractKind.HASH_ESCROW, "deposit")
    refund_height = ledger.block_height + 3

    expect(
        runtime.invoke(
            "deposit",
            "lock",
            {
                "commitment": "0x" + "ab" * 32,
                "amount": 400,
                "beneficiary": "grace",
                "refund_height": refund_height,
            },
            caller="erin",
        ),
        True,
        f"erin locks 400 refundable from height {refund_height}",
    )
    expect(runtime.invoke("deposit", "refund", caller="erin"), False, "erin refunds early")

    ledger.mine_until(refund_height)
    expect(runtime.invoke("deposit", "refund", caller="erin"), True, "erin refunds")
    expect(
        runtime.invoke("deposit", "release", {"proof": "0x" + "ab" * 32}, caller="grace"),
        False,
        "grace releases after refund",
    )

    print_balances(runtime, "erin", "grace", escrow.custody_account)
    print_audit_trail(runtime, "deposit")


SCENARIOS: dict[int, Any] = {
    1: scenario_1_timelock,
    2: scenario_2_multisig,
    3: scenario_3_escrow_release,
    4: scenario_4_escrow_refund,
}


# ===========================================================================
# Main
# ===========================================================================
def run(scenario: int = 0, use_sqlite: bool = False) -> None:
    runtime = build_simulation_runtime(use_sqlite=use_sqlite)
    print("\n" + "=" * 70)
    print("  LEDGER CUSTODY — SIMULATION")
    print(f"  State store: {'SQLite (in-memory)' if use_sqlite else 'in-memory'}")
    print("=" * 70)

    if scenario:
        if scenario not in SCENARIOS:
            print(f"Unknown scenario {scenario}. Available: {', '.join(map(str, SCENARIOS))}")
            return
        SCENARIOS[scenario](runtime)
    else:
        for run_scenario in SCENARIOS.values():
            run_scenario(runtime)

    section("Final ledger")
    for account, balance in sorted(runtime.ledger.balances().items()):
        print(f"     {account:<28} {balance:>8}")
    print("\n  ✅ SIMULATION COMPLETED\n")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Ledger Custody Simulation")
    parser.add_argument(
        "--scenario",
        type=int,
        default=0,
        help="Run a specific scenario (1-4). Default: run all.",
    )
    parser.add_argument(
        "--sqlite",
        action="store_true",
        help="Persist records in SQLite (in-memory) instead of process memory.",
    )
    args = parser.parse_args()
    run(scenario=args.scenario, use_sqlite=args.sqlite)
