"""
Staking Rewards Pool.

Participants deposit a stake token, accrue rewards proportional to their
share of the pool over elapsed ticks, withdraw principal, and claim rewards
net of a fee. An administrator tunes bounded parameters, activates the
version-2 boost overlay and seeds state from a prior version.

Execution model:
- Each public mutating call is one atomic unit of work. The ledger context
  journals the prior value of whatever the call touches and rolls it back if
  any step raises, so no partial state is ever observable.
- Internal bookkeeping (balances, checkpoints, totals) is always applied
  before the external transfer or mint that ends an operation.
- A reentrancy guard rejects any nested mutating call made by an asset
  contract during that external call.
"""

from __future__ import annotations

import hashlib
import logging
import time
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Callable, Dict, Iterator, Sequence

from ..contracts.interfaces import RewardAsset, StakeAsset
from ..core import metrics
from ..core.config import ZERO_ADDRESS, LedgerConfig
from ..core.exceptions import (
    ContractRevert,
    ExternalCallFailure,
    InsufficientState,
    InvalidArgument,
    Unauthorized,
    get_error_context,
)
from ..core.fixed_point import FixedPointMath
from .accrual import IDENTITY_SCALING, RewardAccrualEngine, ScalingPolicy
from .boost import BoostExtension
from .fees import FeeEngine
from .migration import MigrationEngine
from .state import (
    BOOSTED_VERSION,
    LedgerEvent,
    LedgerState,
    ParticipantRecord,
)

logger = logging.getLogger(__name__)


class StakingRewardsPool:
    """
    Single-pool staking ledger with lazy reward accrual.

    Args:
        admin: Administrator address
        stake_token: Asset pulled in on deposit and pushed out on withdraw
        tick_provider: Returns the current, monotonically non-decreasing tick
        config: Parameter bounds and initial values
        address: Pool address used as custody account on the stake token
    """

    def __init__(
        self,
        admin: str,
        stake_token: StakeAsset,
        tick_provider: Callable[[], int],
        config: LedgerConfig | None = None,
        address: str = "",
        state: LedgerState | None = None,
    ) -> None:
        if not admin or self._normalize(admin) == ZERO_ADDRESS:
            raise InvalidArgument("Administrator address is required")

        self.admin = self._normalize(admin)
        self.stake_token = stake_token
        self.reward_token: RewardAsset | None = None
        self.config = config or LedgerConfig()
        self._tick_provider = tick_provider

        if not address:
            addr_hash = hashlib.sha3_256(
                f"staking_pool:{self.admin}:{time.time()}".encode()
            ).digest()
            address = f"0x{addr_hash[-20:].hex()}"
        self.address = self._normalize(address)

        self.state = state or LedgerState()
        self.events: list[LedgerEvent] = []

        self.boost = BoostExtension(self.state)
        self.accrual = RewardAccrualEngine(self.state, self._scaling_policy)
        self.fees = FeeEngine(self.state, self.config.max_fee_bps)
        self.migration = MigrationEngine(self.state)

        # Reentrancy guard
        self._locked = False

    # ==================== Initialization ====================

    def initialize(self, caller: str, reward_token: RewardAsset) -> bool:
        """
        One-time setup: attach the reward asset and apply initial parameters.

        Raises:
            InsufficientState: If a reward asset is already set
        """
        with self._atomic("initialize"):
            self._require_admin(caller)
            if self.reward_token is not None or self.state.reward_token_address:
                raise InsufficientState("Pool already initialized")
            if reward_token is None:
                raise InvalidArgument("Reward token is required")

            tick = self._current_tick()
            self.reward_token = reward_token
            self.state.reward_token_address = self._normalize(
                getattr(reward_token, "address", "") or "reward"
            )
            self.state.pool.reward_rate_per_tick = self.config.initial_reward_rate
            self.state.pool.withdrawal_fee_bps = self.config.initial_fee_bps

            self._emit(
                "Initialized",
                tick,
                version=self.state.version,
                reward_rate=self.state.pool.reward_rate_per_tick,
                fee_bps=self.state.pool.withdrawal_fee_bps,
            )
        return True

    def upgrade_to_boosted(self, caller: str, max_boost: int | None = None) -> bool:
        """
        Activate the version-2 boost overlay. Storage is reused as-is.

        Raises:
            InsufficientState: If not initialized or already upgraded
        """
        with self._atomic("upgrade"):
            self._require_admin(caller)
            self._require_initialized()
            if self.state.version >= BOOSTED_VERSION:
                raise InsufficientState("Boost overlay already active")

            tick = self._current_tick()
            self.state.version = BOOSTED_VERSION
            self.boost.set_max_boost(
                max_boost if max_boost is not None else self.config.initial_max_boost
            )
            self._emit(
                "Upgraded",
                tick,
                version=self.state.version,
                max_boost=self.state.boost.max_boost_multiplier,
            )
        return True

    # ==================== Staking ====================

    def deposit(self, participant: str, amount: int) -> bool:
        """
        Stake ``amount`` for ``participant``, pulling it from their balance.

        Rewards are settled at the pre-deposit share before balances change.

        Raises:
            InvalidArgument: If amount is not a positive integer
            ExternalCallFailure: If the stake asset refuses the transfer
        """
        with self._atomic("deposit"):
            self._require_initialized()
            participant = self._validate_participant(participant)
            if not FixedPointMath.is_integer(amount) or amount <= 0:
                raise InvalidArgument("Deposit amount must be positive", details={"amount": amount})

            tick = self._current_tick()
            record = self.state.get_or_create_record(participant)
            if record.checkpoint == 0:
                record.checkpoint = tick
            self.accrual.settle(participant, tick)

            pool = self.state.pool
            record.stake_amount = FixedPointMath.add(record.stake_amount, amount, name="stake")
            pool.total_staked = FixedPointMath.add(pool.total_staked, amount, name="total_staked")
            if not record.ever_staked:
                pool.participant_roster.append(participant)
                record.ever_staked = True
            record.is_active = True

            self._call_external(
                "stake.transfer_in",
                self.stake_token.transfer_in,
                self.address,
                participant,
                amount,
            )
            self._emit("Deposit", tick, participant=participant, amount=amount)

            logger.info(
                "Stake deposited",
                extra={
                    "event": "staking.deposit",
                    "participant": participant[:10],
                    "amount": amount,
                    "total_staked": pool.total_staked,
                }
            )
        return True

    def withdraw(self, participant: str) -> int:
        """
        Withdraw the participant's full stake.

        Accrued rewards stay pending and can be claimed later.

        Returns:
            Amount returned to the participant

        Raises:
            Unauthorized: If the address never staked or is not active
            InsufficientState: If the participant has no stake left
            ExternalCallFailure: If the stake asset refuses the transfer
        """
        with self._atomic("withdraw"):
            participant = self._validate_participant(participant)
            record = self.state.get_record(participant)
            if record is None or not record.ever_staked:
                raise Unauthorized("Caller is not a participant")
            if record.stake_amount == 0:
                raise InsufficientState("No stake to withdraw")
            if not record.is_active:
                raise Unauthorized("Participant is not active")

            tick = self._current_tick()
            self.accrual.settle(participant, tick)

            amount = record.stake_amount
            record.stake_amount = 0
            self.state.pool.total_staked = FixedPointMath.sub(
                self.state.pool.total_staked, amount, name="total_staked"
            )
            record.is_active = False

            self._call_external(
                "stake.transfer_out",
                self.stake_token.transfer_out,
                self.address,
                participant,
                amount,
            )
            self._emit("Withdraw", tick, participant=participant, amount=amount)

            logger.info(
                "Stake withdrawn",
                extra={
                    "event": "staking.withdraw",
                    "participant": participant[:10],
                    "amount": amount,
                    "total_staked": self.state.pool.total_staked,
                }
            )
        return amount

    def claim(self, participant: str) -> tuple[int, int]:
        """
        Settle and pay out pending rewards net of the withdrawal fee.

        Returns:
            (net, fee)

        Raises:
            InsufficientState: If nothing is pending after settlement
            ExternalCallFailure: If the reward asset refuses to mint
        """
        with self._atomic("claim"):
            self._require_initialized()
            participant = self._validate_participant(participant)

            tick = self._current_tick()
            self.accrual.settle(participant, tick)
            net, fee = self.fees.take_claim(participant)

            if net > 0:
                self._call_external(
                    "reward.mint", self.reward_token.mint, self.address, participant, net
                )
            self._emit("RewardsClaimed", tick, participant=participant, net_amount=net, fee_amount=fee)

            logger.info(
                "Rewards claimed",
                extra={
                    "event": "staking.claim",
                    "participant": participant[:10],
                    "net": net,
                    "fee": fee,
                }
            )
        metrics.record_claim(net, fee)
        return net, fee

    # ==================== Admin: Fees & Rate ====================

    def withdraw_collected_fees(self, caller: str) -> int:
        with self._atomic("withdraw_fees"):
            self._require_admin(caller)
            self._require_initialized()

            tick = self._current_tick()
            amount = self.fees.take_collected_fees()
            self._call_external(
                "reward.mint", self.reward_token.mint, self.address, self.admin, amount
            )
            self._emit("FeesWithdrawn", tick, administrator=self.admin, amount=amount)

            logger.info(
                "Collected fees withdrawn",
                extra={"event": "staking.fees_withdrawn", "amount": amount}
            )
        metrics.record_fee_withdrawal(amount)
        return amount

    def set_fee(self, caller: str, new_fee_bps: int) -> bool:
        with self._atomic("set_fee"):
            self._require_admin(caller)
            self._require_initialized()

            tick = self._current_tick()
            old = self.fees.set_fee(new_fee_bps)
            self._emit("FeeChanged", tick, old=old, new=new_fee_bps)

            logger.info(
                "Withdrawal fee changed",
                extra={"event": "staking.fee_changed", "old": old, "new": new_fee_bps}
            )
        return True

    def set_reward_rate(self, caller: str, new_rate: int) -> bool:
        """
        Change the per-tick reward rate.

        Every active participant is settled at the old rate first, so the
        new rate only applies from the current tick onward.
        """
        with self._atomic("set_reward_rate"):
            self._require_admin(caller)
            self._require_initialized()
            if (
                not FixedPointMath.is_integer(new_rate)
                or not self.config.min_reward_rate <= new_rate <= self.config.max_reward_rate
            ):
                raise InvalidArgument(
                    f"Reward rate must be in [{self.config.min_reward_rate}, "
                    f"{self.config.max_reward_rate}]",
                    details={"rate": new_rate},
                )

            tick = self._current_tick()
            self._flush_all(tick)

            old = self.state.pool.reward_rate_per_tick
            self.state.pool.reward_rate_per_tick = new_rate
            self._emit("RewardRateChanged", tick, old=old, new=new_rate)

            logger.info(
                "Reward rate changed",
                extra={"event": "staking.rate_changed", "old": old, "new": new_rate}
            )
        return True

    def distribute_rewards(self, caller: str) -> int:
        """Settle every active participant now. Returns the number settled."""
        with self._atomic("distribute"):
            self._require_admin(caller)
            self._require_initialized()
            count = self._flush_all(self._current_tick())
        return count

    # ==================== Admin: Boost Overlay ====================

    def set_boost(self, caller: str, participant: str, multiplier: int) -> bool:
        with self._atomic("set_boost"):
            self._require_admin(caller)
            self._require_boosted()
            participant = self._validate_participant(participant)

            tick = self._current_tick()
            # Settle at the previous multiplier
            self.accrual.settle(participant, tick)
            self.boost.set_boost(participant, multiplier)
            self._emit("BoostSet", tick, participant=participant, multiplier=multiplier)

            logger.info(
                "Boost assigned",
                extra={
                    "event": "boost.set",
                    "participant": participant[:10],
                    "multiplier": multiplier,
                }
            )
        return True

    def set_boost_enabled(self, caller: str, enabled: bool) -> bool:
        with self._atomic("set_boost_enabled"):
            self._require_admin(caller)
            self._require_boosted()

            tick = self._current_tick()
            self._flush_all(tick)
            self.boost.set_enabled(enabled)
            self._emit("BoostEnabledChanged", tick, enabled=bool(enabled))

            logger.info(
                "Boost overlay toggled",
                extra={"event": "boost.enabled_changed", "enabled": bool(enabled)}
            )
        return True

    def set_max_boost(self, caller: str, new_max: int) -> bool:
        """
        Replace the multiplier cap.

        Every active participant is settled first: a lowered cap clamps
        multipliers stored above it, and that must not reprice past ticks.
        """
        with self._atomic("set_max_boost"):
            self._require_admin(caller)
            self._require_boosted()

            tick = self._current_tick()
            self._flush_all(tick)
            old = self.boost.set_max_boost(new_max)
            self._emit("MaxBoostChanged", tick, old=old, new=new_max)
        return True

    # ==================== Admin: Migration ====================

    def bulk_load(
        self,
        caller: str,
        participants: Sequence[str],
        stake_amounts: Sequence[int],
        pending_rewards: Sequence[int],
    ) -> int:
        """
        Seed records from a prior pool version, bypassing accrual.

        May be called in several batches until finalize_migration().

        Raises:
            InsufficientState: If migration has been finalized
            InvalidArgument: On mismatched sequence lengths or bad values
        """
        with self._atomic("bulk_load"):
            self._require_admin(caller)
            if not self.state.migration_open:
                raise InsufficientState("Migration already finalized")

            normalized = [self._validate_participant(p) for p in participants]
            tick = self._current_tick()
            count = self.migration.bulk_load(normalized, stake_amounts, pending_rewards, tick)
            self._emit("StateMigrated", tick, participant_count=count)
        return count

    def finalize_migration(self, caller: str) -> bool:
        with self._atomic("finalize_migration"):
            self._require_admin(caller)
            if not self.state.migration_open:
                raise InsufficientState("Migration already finalized")
            self.state.migration_open = False
            self._emit("MigrationFinalized", self._current_tick())
        return True

    # ==================== Admin: Stake Asset Bootstrap ====================

    def mint_stake_tokens(self, caller: str, to: str, amount: int) -> bool:
        """Mint stake tokens to ``to``; requires the pool to own the stake token."""
        with self._atomic("mint_stake"):
            self._require_admin(caller)
            to = self._validate_participant(to)
            if not FixedPointMath.is_integer(amount) or amount <= 0:
                raise InvalidArgument("Mint amount must be positive")
            self._call_external("stake.mint", self.stake_token.mint, self.address, to, amount)
        return True

    def transfer_stake_token_ownership(self, caller: str, new_owner: str) -> bool:
        with self._atomic("transfer_stake_ownership"):
            self._require_admin(caller)
            new_owner = self._validate_participant(new_owner)
            self._call_external(
                "stake.transfer_ownership",
                self.stake_token.transfer_ownership,
                self.address,
                new_owner,
            )
        return True

    # ==================== View Functions ====================

    def get_pool_parameters(self) -> Dict[str, Any]:
        pool = self.state.pool
        return {
            "address": self.address,
            "admin": self.admin,
            "version": self.state.version,
            "initialized": self.reward_token is not None,
            "total_staked": pool.total_staked,
            "reward_rate_per_tick": pool.reward_rate_per_tick,
            "withdrawal_fee_bps": pool.withdrawal_fee_bps,
            "collected_fees": pool.collected_fees,
            "roster_length": len(pool.participant_roster),
            "boost_enabled": self.state.boost.boost_enabled,
            "max_boost_multiplier": self.state.boost.max_boost_multiplier,
            "migration_open": self.state.migration_open,
        }

    def get_participant(self, participant: str) -> ParticipantRecord:
        """Copy of the participant's record (an empty record if never seen)."""
        address = self._query_address(participant)
        record = self.state.get_record(address)
        if record is None:
            return ParticipantRecord(address=address)
        return replace(record)

    def roster_length(self) -> int:
        return len(self.state.pool.participant_roster)

    def roster_at(self, index: int) -> str:
        roster = self.state.pool.participant_roster
        if not FixedPointMath.is_integer(index) or not 0 <= index < len(roster):
            raise InvalidArgument(
                f"Roster index {index} out of range", details={"length": len(roster)}
            )
        return roster[index]

    def effective_boost(self, participant: str) -> int:
        return self.boost.effective_multiplier(self._query_address(participant))

    def pending_rewards(self, participant: str) -> int:
        """Pending rewards as a settlement at the current tick would leave them."""
        return self.accrual.preview(self._query_address(participant), self._read_tick())

    def total_active_stake(self) -> int:
        return self.state.total_active_stake()

    # ==================== Persistence ====================

    def export_state(self) -> Dict[str, Any]:
        return self.state.to_dict()

    def restore_state(self, caller: str, payload: Dict[str, Any]) -> bool:
        """
        Replace this pool's storage with a previously exported payload.

        The payload must belong to the same reward asset and must not be
        ahead of the current tick.

        Raises:
            InvalidArgument: If the payload is malformed, bound to another
                reward asset, or recorded at a later tick
        """
        with self._atomic("restore_state"):
            self._require_admin(caller)
            try:
                restored = LedgerState.from_dict(payload)
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                raise InvalidArgument("Malformed ledger state payload") from exc

            if restored.reward_token_address != self.state.reward_token_address:
                raise InvalidArgument(
                    "Payload belongs to a different reward asset",
                    details={
                        "expected": self.state.reward_token_address,
                        "found": restored.reward_token_address,
                    },
                )
            tick = self._read_tick()
            if restored.last_tick > tick:
                raise InvalidArgument(
                    f"Payload recorded at tick {restored.last_tick}, ahead of current tick {tick}"
                )

            # Swapped last: nothing below can fail and force a rollback
            self.state.load(restored)
            self.state.last_tick = tick
            self._emit(
                "StateRestored",
                tick,
                version=restored.version,
                participant_count=len(restored.records),
            )

            logger.info(
                "Ledger state restored",
                extra={
                    "event": "staking.state_restored",
                    "version": restored.version,
                    "participants": len(restored.records),
                    "total_staked": restored.pool.total_staked,
                }
            )
        return True

    @classmethod
    def from_state(
        cls,
        data: Dict[str, Any],
        admin: str,
        stake_token: StakeAsset,
        reward_token: RewardAsset | None,
        tick_provider: Callable[[], int],
        config: LedgerConfig | None = None,
        address: str = "",
    ) -> "StakingRewardsPool":
        """
        Rebuild a pool over previously exported storage.

        Version-1 storage loads into a pool that can later be upgraded.
        """
        state = LedgerState.from_dict(data)
        if state.reward_token_address and reward_token is None:
            raise InvalidArgument("Stored state requires its reward token")
        pool = cls(admin, stake_token, tick_provider, config=config, address=address, state=state)
        if state.reward_token_address:
            pool.reward_token = reward_token
        return pool

    # ==================== Internals ====================

    @contextmanager
    def _atomic(self, operation: str) -> Iterator[None]:
        """Run one public operation as an all-or-nothing unit of work."""
        self._require_not_locked()
        self.state.begin()
        event_count = len(self.events)
        reward_token = self.reward_token
        self._locked = True
        try:
            yield
        except Exception as exc:
            restored = self.state.rollback()
            del self.events[event_count:]
            self.reward_token = reward_token
            logger.warning(
                "Operation rolled back",
                extra={
                    "event": "staking.rollback",
                    "operation": operation,
                    "records_restored": restored,
                    **get_error_context(exc),
                },
            )
            raise
        else:
            self.state.commit()
        finally:
            self._locked = False

        metrics.record_operation(operation)
        metrics.update_total_staked(self.address, self.state.pool.total_staked)

    def _call_external(self, label: str, func: Callable[..., Any], *args: Any) -> None:
        try:
            result = func(*args)
        except ContractRevert as exc:
            logger.error(
                "External call reverted",
                extra={"event": "staking.external_failure", "call": label, "reason": exc.reason},
            )
            raise ExternalCallFailure(f"{label} failed: {exc.message}", details={"call": label}) from exc
        if result is False:
            logger.error(
                "External call returned failure",
                extra={"event": "staking.external_failure", "call": label},
            )
            raise ExternalCallFailure(f"{label} returned failure", details={"call": label})

    def _flush_all(self, tick: int) -> int:
        count = self.accrual.settle_all(tick)
        self._emit("RewardsDistributed", tick, participant_count=count)
        return count

    def _scaling_policy(self) -> ScalingPolicy:
        if self.state.version >= BOOSTED_VERSION:
            return self.boost.scaling_policy()
        return IDENTITY_SCALING

    def _read_tick(self) -> int:
        tick = self._tick_provider()
        if not FixedPointMath.is_integer(tick) or tick < 0:
            raise InvalidArgument(f"Tick provider returned invalid tick {tick!r}")
        if tick < self.state.last_tick:
            raise InvalidArgument(
                f"Tick moved backwards ({tick} < {self.state.last_tick})"
            )
        return tick

    def _current_tick(self) -> int:
        tick = self._read_tick()
        self.state.last_tick = tick
        return tick

    def _emit(self, event_type: str, tick: int, **args: Any) -> None:
        self.events.append(LedgerEvent(event_type=event_type, args=args, tick=tick))

    def _validate_participant(self, address: str) -> str:
        if not isinstance(address, str) or not address:
            raise InvalidArgument("Address is required")
        normalized = self._normalize(address)
        if normalized == ZERO_ADDRESS or normalized == self.address:
            raise InvalidArgument(f"Invalid participant address {address[:10]}")
        return normalized

    def _query_address(self, address: str) -> str:
        """Normalize an address for a read; unlike writes, zero and pool addresses are allowed."""
        if not isinstance(address, str) or not address:
            raise InvalidArgument("Address is required", details={"address": repr(address)})
        return self._normalize(address)

    def _normalize(self, address: str) -> str:
        return address.lower()

    def _require_admin(self, caller: str) -> None:
        if not isinstance(caller, str) or self._normalize(caller) != self.admin:
            raise Unauthorized("Caller is not administrator")

    def _require_initialized(self) -> None:
        if self.reward_token is None:
            raise InsufficientState("Pool not initialized")

    def _require_boosted(self) -> None:
        if self.state.version < BOOSTED_VERSION:
            raise InsufficientState("Boost overlay not active")

    def _require_not_locked(self) -> None:
        if self._locked:
            raise Unauthorized("Reentrant call rejected")
