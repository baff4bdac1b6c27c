"""
Prometheus instrumentation for the staking ledger.

Counters track committed operations, claimed rewards and fee flows; a gauge
mirrors the pool's total stake. Helpers are called only after an operation
has committed, so rolled-back work is never counted.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge

ledger_operations_counter = Counter(
    "stakeledger_operations_total", "Committed ledger operations", ["operation"]
)

rewards_claimed_counter = Counter(
    "stakeledger_rewards_claimed_total", "Net reward units minted to participants"
)

fee_flow_counter = Counter(
    "stakeledger_fees_total",
    "Fee units collected on claim and withdrawn by the administrator",
    ["direction"],
)

total_staked_gauge = Gauge(
    "stakeledger_total_staked", "Current total stake held by the pool", ["pool"]
)


def record_operation(operation: str) -> None:
    ledger_operations_counter.labels(operation=operation).inc()


def record_claim(net_amount: int, fee_amount: int) -> None:
    """Increment claim counters; zero amounts are skipped."""
    if net_amount > 0:
        rewards_claimed_counter.inc(net_amount)
    if fee_amount > 0:
        fee_flow_counter.labels(direction="collected").inc(fee_amount)


def record_fee_withdrawal(amount: int) -> None:
    if amount <= 0:
        return
    fee_flow_counter.labels(direction="withdrawn").inc(amount)


def update_total_staked(pool_address: str, total_staked: int) -> None:
    total_staked_gauge.labels(pool=pool_address).set(total_staked)
