"""
Ledger invariants under random operation sequences.

A Hypothesis state machine drives deposits, withdrawals, claims, rate
changes and fee withdrawals against one pool and checks after every step:
- total stake equals the sum of active stakes and the pool's custody balance
- checkpoints never move backwards
- a rejected operation leaves storage exactly as it was
- reward supply equals everything paid out to participants and the admin
"""

from hypothesis import settings, strategies as st
from hypothesis.stateful import RuleBasedStateMachine, invariant, rule

from stakeledger.contracts.erc20 import ERC20Token
from stakeledger.core.config import LedgerConfig
from stakeledger.core.exceptions import LedgerError
from stakeledger.staking.pool import StakingRewardsPool

ADMIN = "0x" + "a" * 40
POOL = "0x" + "5" * 40
PARTICIPANTS = ["0x" + c * 40 for c in "1234"]

participants = st.sampled_from(PARTICIPANTS)


class Ticks:
    def __init__(self):
        self.current = 1

    def __call__(self):
        return self.current


class LedgerStateMachine(RuleBasedStateMachine):
    def __init__(self):
        super().__init__()
        self.ticks = Ticks()
        self.stake_token = ERC20Token(name="Stake", symbol="STK", owner=ADMIN)
        self.reward_token = ERC20Token(name="Reward", symbol="RWD", owner=POOL)
        self.pool = StakingRewardsPool(
            ADMIN,
            self.stake_token,
            self.ticks,
            config=LedgerConfig(
                min_reward_rate=10**12,
                max_reward_rate=10**21,
                max_fee_bps=1_000,
                initial_reward_rate=10**18,
                initial_fee_bps=100,
                initial_max_boost=300,
            ),
            address=POOL,
        )
        self.pool.initialize(ADMIN, self.reward_token)
        self.checkpoints = {}
        self.paid_out = 0

    def _attempt(self, operation, *args):
        """Run an operation; a rejection must leave storage untouched."""
        before = self.pool.export_state()
        event_count = len(self.pool.events)
        try:
            return operation(*args)
        except LedgerError:
            assert self.pool.export_state() == before
            assert len(self.pool.events) == event_count
            return None

    @rule(participant=participants, amount=st.integers(min_value=0, max_value=10**24))
    def deposit(self, participant, amount):
        self.stake_token.mint(ADMIN, participant, amount)
        self.stake_token.approve(participant, POOL, amount)
        self._attempt(self.pool.deposit, participant, amount)

    @rule(participant=participants)
    def withdraw(self, participant):
        self._attempt(self.pool.withdraw, participant)

    @rule(participant=participants)
    def claim(self, participant):
        result = self._attempt(self.pool.claim, participant)
        if result is not None:
            self.paid_out += result[0]

    @rule()
    def withdraw_fees(self):
        amount = self._attempt(self.pool.withdraw_collected_fees, ADMIN)
        if amount is not None:
            self.paid_out += amount

    @rule(rate=st.integers(min_value=0, max_value=10**22))
    def set_reward_rate(self, rate):
        self._attempt(self.pool.set_reward_rate, ADMIN, rate)

    @rule(fee=st.integers(min_value=0, max_value=2_000))
    def set_fee(self, fee):
        self._attempt(self.pool.set_fee, ADMIN, fee)

    @rule()
    def distribute(self):
        self._attempt(self.pool.distribute_rewards, ADMIN)

    @rule(ticks=st.integers(min_value=0, max_value=1_000))
    def advance(self, ticks):
        self.ticks.current += ticks

    @invariant()
    def total_matches_active_stake(self):
        total = self.pool.get_pool_parameters()["total_staked"]
        assert total == self.pool.total_active_stake()
        assert total == self.stake_token.balance_of(POOL)

    @invariant()
    def checkpoints_are_monotonic(self):
        for address in PARTICIPANTS:
            checkpoint = self.pool.get_participant(address).checkpoint
            assert checkpoint >= self.checkpoints.get(address, 0)
            self.checkpoints[address] = checkpoint

    @invariant()
    def reward_supply_matches_payouts(self):
        assert self.reward_token.total_supply == self.paid_out

    @invariant()
    def roster_has_no_duplicates_without_migration(self):
        roster = [self.pool.roster_at(i) for i in range(self.pool.roster_length())]
        assert len(roster) == len(set(roster))


LedgerStateMachine.TestCase.settings = settings(
    max_examples=50, stateful_step_count=30, deadline=None
)
TestLedgerStateMachine = LedgerStateMachine.TestCase
