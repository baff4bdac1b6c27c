"""
Bulk state import from a previous pool version.

Loaded records are a state seed, not an economic event: no accrual is
settled and every loaded checkpoint is reset to the current tick. The
roster is appended to for every positive stake without checking for an
existing entry, so repeated loads of the same address enumerate it twice.
"""

from __future__ import annotations

import logging
from typing import Sequence

from ..core.exceptions import InvalidArgument
from ..core.fixed_point import FixedPointMath
from .state import LedgerState

logger = logging.getLogger(__name__)


class MigrationEngine:
    def __init__(self, state: LedgerState) -> None:
        self.state = state

    def bulk_load(
        self,
        participants: Sequence[str],
        stake_amounts: Sequence[int],
        pending_rewards: Sequence[int],
        tick: int,
    ) -> int:
        """
        Overwrite stake and pending rewards for each listed participant.

        Args:
            participants: Normalized participant addresses
            stake_amounts: Principal per participant
            pending_rewards: Unclaimed rewards per participant
            tick: Current tick, becomes every loaded checkpoint

        Returns:
            Number of rows loaded

        Raises:
            InvalidArgument: On length mismatch or negative amounts
        """
        if not len(participants) == len(stake_amounts) == len(pending_rewards):
            raise InvalidArgument(
                "Bulk load sequences must have equal length",
                details={
                    "participants": len(participants),
                    "stake_amounts": len(stake_amounts),
                    "pending_rewards": len(pending_rewards),
                },
            )
        for amount in list(stake_amounts) + list(pending_rewards):
            if not FixedPointMath.is_integer(amount) or amount < 0:
                raise InvalidArgument(
                    "Migrated amounts must be non-negative integers",
                    details={"amount": amount},
                )

        pool = self.state.pool
        for address, stake, pending in zip(participants, stake_amounts, pending_rewards):
            record = self.state.get_or_create_record(address)

            # Replace any stake the record already carried in the total
            if record.is_active:
                pool.total_staked = FixedPointMath.sub(
                    pool.total_staked, record.stake_amount, name="total_staked"
                )

            record.stake_amount = stake
            record.pending_rewards = pending
            record.checkpoint = tick
            record.ever_staked = stake > 0
            record.is_active = stake > 0

            if stake > 0:
                pool.participant_roster.append(address)
                pool.total_staked = FixedPointMath.add(
                    pool.total_staked, stake, name="total_staked"
                )

        logger.info(
            "Bulk state loaded",
            extra={
                "event": "migration.bulk_load",
                "rows": len(participants),
                "total_staked": pool.total_staked,
                "roster_length": len(pool.participant_roster),
            }
        )
        return len(participants)
