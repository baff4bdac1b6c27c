"""
Staking Ledger Configuration

Fixed-point constants and the tunable parameter bounds for the pool.
Bounds and initial parameters may be overridden through STAKELEDGER_*
environment variables; they are validated before a pool is built.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _get_int(env_var: str, default: int) -> int:
    """Read an integer setting, accepting underscores and scientific shorthand like 1e18."""
    raw = os.getenv(env_var, "").strip().replace("_", "")
    if not raw:
        return default
    try:
        if "e" in raw.lower():
            mantissa, exponent = raw.lower().split("e", 1)
            return int(mantissa) * 10 ** int(exponent)
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{env_var} must be an integer, got {raw!r}",
            details={"env_var": env_var},
        ) from exc


# Fixed-point and protocol constants
SCALE = 10**18
FEE_DENOMINATOR = 10_000
BOOST_NEUTRAL = 100
BOOST_CAP_CEILING = 500
UINT256_MAX = 2**256 - 1
ZERO_ADDRESS = "0x" + "0" * 40

# Parameter bounds
MIN_REWARD_RATE = _get_int("STAKELEDGER_MIN_REWARD_RATE", 10**12)
MAX_REWARD_RATE = _get_int("STAKELEDGER_MAX_REWARD_RATE", 10**21)
MAX_FEE_BPS = _get_int("STAKELEDGER_MAX_FEE_BPS", 1_000)

# Initial parameters applied by initialize() / upgrade_to_boosted()
DEFAULT_REWARD_RATE = _get_int("STAKELEDGER_REWARD_RATE", SCALE)
DEFAULT_FEE_BPS = _get_int("STAKELEDGER_FEE_BPS", 100)
DEFAULT_MAX_BOOST = _get_int("STAKELEDGER_MAX_BOOST", 300)


@dataclass(frozen=True)
class LedgerConfig:
    """Bounds and starting parameters for one staking pool."""

    min_reward_rate: int = MIN_REWARD_RATE
    max_reward_rate: int = MAX_REWARD_RATE
    max_fee_bps: int = MAX_FEE_BPS
    initial_reward_rate: int = DEFAULT_REWARD_RATE
    initial_fee_bps: int = DEFAULT_FEE_BPS
    initial_max_boost: int = DEFAULT_MAX_BOOST

    def __post_init__(self) -> None:
        self.validate()

    @classmethod
    def from_env(cls) -> "LedgerConfig":
        """Build a config from the current environment (re-read at call time)."""
        return cls(
            min_reward_rate=_get_int("STAKELEDGER_MIN_REWARD_RATE", 10**12),
            max_reward_rate=_get_int("STAKELEDGER_MAX_REWARD_RATE", 10**21),
            max_fee_bps=_get_int("STAKELEDGER_MAX_FEE_BPS", 1_000),
            initial_reward_rate=_get_int("STAKELEDGER_REWARD_RATE", SCALE),
            initial_fee_bps=_get_int("STAKELEDGER_FEE_BPS", 100),
            initial_max_boost=_get_int("STAKELEDGER_MAX_BOOST", 300),
        )

    def validate(self) -> None:
        """
        Check internal consistency of the bounds.

        Raises:
            ConfigurationError: If any bound or initial value is out of range
        """
        if self.min_reward_rate <= 0:
            raise ConfigurationError("min_reward_rate must be positive")
        if self.max_reward_rate < self.min_reward_rate:
            raise ConfigurationError("max_reward_rate must be >= min_reward_rate")
        if not 0 <= self.max_fee_bps < FEE_DENOMINATOR:
            raise ConfigurationError(
                f"max_fee_bps must be in [0, {FEE_DENOMINATOR})"
            )
        if not self.min_reward_rate <= self.initial_reward_rate <= self.max_reward_rate:
            raise ConfigurationError("initial_reward_rate outside rate bounds")
        if not 0 <= self.initial_fee_bps <= self.max_fee_bps:
            raise ConfigurationError("initial_fee_bps outside fee bounds")
        if not BOOST_NEUTRAL <= self.initial_max_boost <= BOOST_CAP_CEILING:
            raise ConfigurationError(
                f"initial_max_boost must be in [{BOOST_NEUTRAL}, {BOOST_CAP_CEILING}]"
            )
