"""
Lazy, checkpointed reward accrual.

A participant's reward is computed on demand from its last checkpoint
whenever the record is touched:

    share = stake * SCALE / total_staked
    base  = rate * elapsed * share / SCALE

and then passed through a scaling policy (identity for the unboosted pool,
multiplier lookup once the boost overlay is active). Every division
truncates, so dust is forfeited to the pool rather than over-credited.
"""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from ..core.config import SCALE
from ..core.fixed_point import FixedPointMath
from .state import LedgerState, ParticipantRecord

logger = logging.getLogger(__name__)


class ScalingPolicy(Protocol):
    def apply(self, address: str, base_reward: int) -> int:
        ...


class IdentityScaling:
    """Unboosted pools credit the base reward unchanged."""

    def apply(self, address: str, base_reward: int) -> int:
        return base_reward


IDENTITY_SCALING = IdentityScaling()


class RewardAccrualEngine:
    """
    Computes and checkpoints pending rewards against a LedgerState.

    Args:
        state: Ledger context shared with the owning pool
        policy_resolver: Returns the scaling policy in force for this pool
            version; resolved on every call so a version switch takes effect
            immediately
    """

    def __init__(
        self,
        state: LedgerState,
        policy_resolver: Callable[[], ScalingPolicy] | None = None,
    ) -> None:
        self.state = state
        self._policy_resolver = policy_resolver or (lambda: IDENTITY_SCALING)

    def compute_increment(self, record: ParticipantRecord, tick: int) -> int:
        """Reward earned by ``record`` between its checkpoint and ``tick``; pure."""
        pool = self.state.pool
        if tick <= record.checkpoint or pool.total_staked == 0 or record.stake_amount == 0:
            return 0

        elapsed = tick - record.checkpoint
        share = FixedPointMath.share(record.stake_amount, pool.total_staked)
        base = FixedPointMath.div(
            FixedPointMath.mul(pool.reward_rate_per_tick, elapsed, share, name="accrual"),
            SCALE,
        )
        return self._policy_resolver().apply(record.address, base)

    def settle(self, address: str, tick: int) -> int:
        """
        Fold rewards earned since the checkpoint into pending rewards.

        The checkpoint advances to ``tick`` whenever time has moved forward,
        including intervals that earned nothing.

        Returns:
            Amount credited by this settlement
        """
        record = self.state.get_record(address)
        if record is None:
            return 0

        increment = self.compute_increment(record, tick)
        if increment:
            record.pending_rewards = FixedPointMath.add(
                record.pending_rewards, increment, name="pending_rewards"
            )
        if tick > record.checkpoint:
            record.checkpoint = tick

        if increment:
            logger.debug(
                "Rewards settled",
                extra={
                    "event": "accrual.settled",
                    "participant": address[:10],
                    "increment": increment,
                    "pending": record.pending_rewards,
                    "tick": tick,
                }
            )
        return increment

    def settle_all(self, tick: int) -> int:
        """
        Settle every active participant on the roster at the current parameters.

        Returns:
            Number of distinct active participants settled
        """
        settled: set[str] = set()
        for address in self.state.pool.participant_roster:
            if address in settled:
                continue
            record = self.state.get_record(address)
            if record is None or not record.is_active:
                continue
            self.settle(address, tick)
            settled.add(address)
        return len(settled)

    def preview(self, address: str, tick: int) -> int:
        """Pending rewards a settlement at ``tick`` would leave; no mutation."""
        record = self.state.get_record(address)
        if record is None:
            return 0
        return FixedPointMath.add(
            record.pending_rewards,
            self.compute_increment(record, tick),
            name="pending_rewards",
        )
