"""
Claim-time fee model.

A claim pays out pending rewards minus ``withdrawal_fee_bps`` basis points;
the fee portion accumulates in ``collected_fees`` until the administrator
withdraws it. Fee division truncates, so the participant keeps the dust.
"""

from __future__ import annotations

from ..core.config import FEE_DENOMINATOR
from ..core.exceptions import InsufficientState, InvalidArgument
from ..core.fixed_point import FixedPointMath
from .state import LedgerState


class FeeEngine:
    def __init__(self, state: LedgerState, max_fee_bps: int) -> None:
        self.state = state
        self.max_fee_bps = max_fee_bps

    def split(self, amount: int) -> tuple[int, int]:
        """Return (net, fee) for a gross reward amount."""
        fee = FixedPointMath.mul_div(
            amount, self.state.pool.withdrawal_fee_bps, FEE_DENOMINATOR, name="fee"
        )
        return amount - fee, fee

    def take_claim(self, address: str) -> tuple[int, int]:
        """
        Zero the participant's pending rewards and book the fee.

        Returns:
            (net, fee) where net is owed to the participant

        Raises:
            InsufficientState: If nothing is pending
        """
        record = self.state.get_record(address)
        pending = record.pending_rewards if record else 0
        if pending <= 0:
            raise InsufficientState(
                "No pending rewards to claim", details={"participant": address}
            )

        net, fee = self.split(pending)
        record.pending_rewards = 0
        self.state.pool.collected_fees = FixedPointMath.add(
            self.state.pool.collected_fees, fee, name="collected_fees"
        )
        return net, fee

    def take_collected_fees(self) -> int:
        amount = self.state.pool.collected_fees
        if amount <= 0:
            raise InsufficientState("No collected fees to withdraw")
        self.state.pool.collected_fees = 0
        return amount

    def set_fee(self, new_fee_bps: int) -> int:
        """Returns the previous fee."""
        if not FixedPointMath.is_integer(new_fee_bps) or not 0 <= new_fee_bps <= self.max_fee_bps:
            raise InvalidArgument(
                f"Fee must be in [0, {self.max_fee_bps}] bps",
                details={"fee_bps": new_fee_bps},
            )
        previous = self.state.pool.withdrawal_fee_bps
        self.state.pool.withdrawal_fee_bps = new_fee_bps
        return previous
