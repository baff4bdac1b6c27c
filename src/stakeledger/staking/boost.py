"""
Version-2 reward boost overlay.

Administrators assign per-participant multipliers in percent. The overlay
only scales what the accrual engine computes; checkpoints are untouched.
"""

from __future__ import annotations

import logging

from ..core.config import BOOST_CAP_CEILING, BOOST_NEUTRAL
from ..core.exceptions import InvalidArgument
from ..core.fixed_point import FixedPointMath
from .state import LedgerState

logger = logging.getLogger(__name__)


class BoostExtension:
    """Multiplier storage, bounds and resolution on top of a LedgerState."""

    def __init__(self, state: LedgerState) -> None:
        self.state = state

    def effective_multiplier(self, address: str) -> int:
        """
        Multiplier applied to ``address``'s rewards.

        Neutral when the overlay is off or no override exists. A stored value
        above a since-lowered cap resolves to the cap; the stored value is
        kept so raising the cap again restores it.
        """
        boost = self.state.boost
        if not boost.boost_enabled:
            return BOOST_NEUTRAL
        stored = boost.multipliers.get(address, 0)
        if not stored:
            return BOOST_NEUTRAL
        return min(stored, boost.max_boost_multiplier)

    def set_boost(self, address: str, multiplier: int) -> None:
        max_boost = self.state.boost.max_boost_multiplier
        if not FixedPointMath.is_integer(multiplier) or not BOOST_NEUTRAL <= multiplier <= max_boost:
            raise InvalidArgument(
                f"Boost multiplier must be in [{BOOST_NEUTRAL}, {max_boost}]",
                details={"multiplier": multiplier},
            )
        self.state.set_multiplier(address, multiplier)

    def set_enabled(self, enabled: bool) -> bool:
        """Returns the previous flag."""
        previous = self.state.boost.boost_enabled
        self.state.boost.boost_enabled = bool(enabled)
        return previous

    def set_max_boost(self, new_max: int) -> int:
        """
        Replace the multiplier cap.

        Multipliers already stored above a lowered cap keep their value but
        resolve to the cap until it is raised again.

        Returns:
            The previous cap
        """
        if not FixedPointMath.is_integer(new_max) or not BOOST_NEUTRAL <= new_max <= BOOST_CAP_CEILING:
            raise InvalidArgument(
                f"Max boost must be in [{BOOST_NEUTRAL}, {BOOST_CAP_CEILING}]",
                details={"max_boost": new_max},
            )
        previous = self.state.boost.max_boost_multiplier
        self.state.boost.max_boost_multiplier = new_max
        return previous

    def scaling_policy(self) -> "MultiplierScaling":
        return MultiplierScaling(self)


class MultiplierScaling:
    """Scales a base reward by the participant's effective multiplier over 100."""

    def __init__(self, extension: BoostExtension) -> None:
        self.extension = extension

    def apply(self, address: str, base_reward: int) -> int:
        multiplier = self.extension.effective_multiplier(address)
        if multiplier == BOOST_NEUTRAL:
            return base_reward
        return FixedPointMath.mul_div(base_reward, multiplier, BOOST_NEUTRAL, name="boost")
