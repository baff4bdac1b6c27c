"""
Ledger storage: participant records, pool totals, the boost overlay and the
domain event log.

LedgerState is the single context object owned by a StakingRewardsPool and
passed by reference to every engine. Its serialized layout is shared by both
pool versions: version-1 payloads simply lack the boost keys.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Optional

from ..core.config import DEFAULT_MAX_BOOST

UNBOOSTED_VERSION = 1
BOOSTED_VERSION = 2


@dataclass
class ParticipantRecord:
    """Per-address stake and accrual record. Never deleted once created."""

    address: str
    stake_amount: int = 0
    checkpoint: int = 0  # 0 = never staked
    pending_rewards: int = 0
    ever_staked: bool = False  # roster membership flag
    is_active: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParticipantRecord":
        return cls(
            address=data["address"],
            stake_amount=int(data.get("stake_amount", 0)),
            checkpoint=int(data.get("checkpoint", 0)),
            pending_rewards=int(data.get("pending_rewards", 0)),
            ever_staked=bool(data.get("ever_staked", False)),
            is_active=bool(data.get("is_active", False)),
        )


@dataclass
class PoolState:
    """Pool-wide totals and tunable parameters."""

    total_staked: int = 0
    reward_rate_per_tick: int = 0
    withdrawal_fee_bps: int = 0
    collected_fees: int = 0
    # Append-only; an address may appear more than once after migration
    participant_roster: list[str] = field(default_factory=list)


@dataclass
class BoostState:
    """Version-2 overlay: per-participant multipliers in percent (100 = neutral)."""

    multipliers: dict[str, int] = field(default_factory=dict)
    max_boost_multiplier: int = DEFAULT_MAX_BOOST
    boost_enabled: bool = False


@dataclass
class LedgerEvent:
    """One entry of the append-only domain event log."""

    event_type: str
    args: Dict[str, Any]
    tick: int


@dataclass
class UndoJournal:
    """
    Prior values of everything one operation touched.

    Scalars are copied up front; participant records and boost multipliers
    are copied the first time an operation reaches them, so the cost of a
    rollback point grows with the records touched, not the table size.
    """

    totals: PoolState
    roster_length: int
    max_boost_multiplier: int
    boost_enabled: bool
    version: int
    reward_token_address: str
    migration_open: bool
    last_tick: int
    # None marks an entry that did not exist before the operation
    records: dict[str, Optional[ParticipantRecord]] = field(default_factory=dict)
    multipliers: dict[str, Optional[int]] = field(default_factory=dict)


@dataclass
class LedgerState:
    """All mutable ledger storage for one pool."""

    records: dict[str, ParticipantRecord] = field(default_factory=dict)
    pool: PoolState = field(default_factory=PoolState)
    boost: BoostState = field(default_factory=BoostState)
    version: int = UNBOOSTED_VERSION
    reward_token_address: str = ""
    migration_open: bool = True
    last_tick: int = 0
    _journal: Optional[UndoJournal] = field(default=None, init=False, repr=False, compare=False)

    def get_record(self, address: str) -> Optional[ParticipantRecord]:
        """Record for ``address``; journaled first when an operation is open."""
        record = self.records.get(address)
        if self._journal is not None and address not in self._journal.records:
            self._journal.records[address] = replace(record) if record is not None else None
        return record

    def get_or_create_record(self, address: str) -> ParticipantRecord:
        record = self.get_record(address)
        if record is None:
            record = ParticipantRecord(address=address)
            self.records[address] = record
        return record

    def set_multiplier(self, address: str, multiplier: int) -> None:
        multipliers = self.boost.multipliers
        if self._journal is not None and address not in self._journal.multipliers:
            self._journal.multipliers[address] = multipliers.get(address)
        multipliers[address] = multiplier

    def total_active_stake(self) -> int:
        return sum(r.stake_amount for r in self.records.values() if r.is_active)

    # ==================== Undo Journal ====================

    def begin(self) -> None:
        """Open a rollback point for one operation."""
        pool = self.pool
        self._journal = UndoJournal(
            totals=PoolState(
                total_staked=pool.total_staked,
                reward_rate_per_tick=pool.reward_rate_per_tick,
                withdrawal_fee_bps=pool.withdrawal_fee_bps,
                collected_fees=pool.collected_fees,
            ),
            roster_length=len(pool.participant_roster),
            max_boost_multiplier=self.boost.max_boost_multiplier,
            boost_enabled=self.boost.boost_enabled,
            version=self.version,
            reward_token_address=self.reward_token_address,
            migration_open=self.migration_open,
            last_tick=self.last_tick,
        )

    def commit(self) -> None:
        self._journal = None

    def rollback(self) -> int:
        """
        Undo everything since begin().

        Returns:
            Number of participant records restored or removed
        """
        journal = self._journal
        if journal is None:
            return 0
        self._journal = None

        for address, prior in journal.records.items():
            if prior is None:
                self.records.pop(address, None)
            else:
                self.records[address] = prior
        for address, prior_multiplier in journal.multipliers.items():
            if prior_multiplier is None:
                self.boost.multipliers.pop(address, None)
            else:
                self.boost.multipliers[address] = prior_multiplier

        pool = self.pool
        pool.total_staked = journal.totals.total_staked
        pool.reward_rate_per_tick = journal.totals.reward_rate_per_tick
        pool.withdrawal_fee_bps = journal.totals.withdrawal_fee_bps
        pool.collected_fees = journal.totals.collected_fees
        # The roster is append-only
        del pool.participant_roster[journal.roster_length:]

        self.boost.max_boost_multiplier = journal.max_boost_multiplier
        self.boost.boost_enabled = journal.boost_enabled
        self.version = journal.version
        self.reward_token_address = journal.reward_token_address
        self.migration_open = journal.migration_open
        self.last_tick = journal.last_tick
        return len(journal.records)

    def load(self, other: "LedgerState") -> None:
        """Replace all storage with ``other``'s, keeping this object's identity."""
        self.records = other.records
        self.pool = other.pool
        self.boost = other.boost
        self.version = other.version
        self.reward_token_address = other.reward_token_address
        self.migration_open = other.migration_open
        self.last_tick = other.last_tick

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        """Serialize storage; integers are kept as ints (JSON has no width limit)."""
        data: Dict[str, Any] = {
            "version": self.version,
            "reward_token_address": self.reward_token_address,
            "migration_open": self.migration_open,
            "last_tick": self.last_tick,
            "records": {addr: r.to_dict() for addr, r in self.records.items()},
            "pool": {
                "total_staked": self.pool.total_staked,
                "reward_rate_per_tick": self.pool.reward_rate_per_tick,
                "withdrawal_fee_bps": self.pool.withdrawal_fee_bps,
                "collected_fees": self.pool.collected_fees,
                "participant_roster": list(self.pool.participant_roster),
            },
        }
        if self.version >= BOOSTED_VERSION:
            data["boost"] = {
                "multipliers": dict(self.boost.multipliers),
                "max_boost_multiplier": self.boost.max_boost_multiplier,
                "boost_enabled": self.boost.boost_enabled,
            }
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerState":
        pool_data = data.get("pool", {})
        boost_data = data.get("boost", {})
        return cls(
            records={
                addr: ParticipantRecord.from_dict(r)
                for addr, r in data.get("records", {}).items()
            },
            pool=PoolState(
                total_staked=int(pool_data.get("total_staked", 0)),
                reward_rate_per_tick=int(pool_data.get("reward_rate_per_tick", 0)),
                withdrawal_fee_bps=int(pool_data.get("withdrawal_fee_bps", 0)),
                collected_fees=int(pool_data.get("collected_fees", 0)),
                participant_roster=list(pool_data.get("participant_roster", [])),
            ),
            boost=BoostState(
                multipliers={k: int(v) for k, v in boost_data.get("multipliers", {}).items()},
                max_boost_multiplier=int(
                    boost_data.get("max_boost_multiplier", DEFAULT_MAX_BOOST)
                ),
                boost_enabled=bool(boost_data.get("boost_enabled", False)),
            ),
            version=int(data.get("version", UNBOOSTED_VERSION)),
            reward_token_address=data.get("reward_token_address", ""),
            migration_open=bool(data.get("migration_open", True)),
            last_tick=int(data.get("last_tick", 0)),
        )
