"""
stakeledger - staking rewards ledger.

Tracks stake deposited into a shared pool, accrues rewards proportional to
each participant's share over elapsed ticks, and pays claims net of a fee.
"""

from .core.logging_config import setup_ledger_logging
from .staking import StakingRewardsPool

__version__ = "0.1.0"

__all__ = ["StakingRewardsPool", "setup_ledger_logging", "__version__"]
