"""
Staking rewards ledger.

- State: participant records, pool totals, boost overlay, event log
- Accrual: lazy checkpointed proportional rewards
- Fees: claim-time fee split and collected-fee withdrawal
- Boost: version-2 per-participant reward multipliers
- Migration: bulk state seed from a prior version
- Pool: the atomic service tying them together
"""

from .accrual import IdentityScaling, RewardAccrualEngine
from .boost import BoostExtension, MultiplierScaling
from .fees import FeeEngine
from .migration import MigrationEngine
from .pool import StakingRewardsPool
from .state import (
    BOOSTED_VERSION,
    UNBOOSTED_VERSION,
    BoostState,
    LedgerEvent,
    LedgerState,
    ParticipantRecord,
    PoolState,
)

__all__ = [
    "StakingRewardsPool",
    "RewardAccrualEngine",
    "IdentityScaling",
    "BoostExtension",
    "MultiplierScaling",
    "FeeEngine",
    "MigrationEngine",
    "LedgerState",
    "ParticipantRecord",
    "PoolState",
    "BoostState",
    "LedgerEvent",
    "UNBOOSTED_VERSION",
    "BOOSTED_VERSION",
]
