import sys
from pathlib import Path

import pytest

# Make `stakeledger` importable from a plain checkout
project_root = Path(__file__).resolve().parents[2]
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

from stakeledger.contracts.erc20 import ERC20Token
from stakeledger.core.config import LedgerConfig
from stakeledger.staking.pool import StakingRewardsPool

ADMIN = "0x" + "a" * 40
POOL = "0x" + "5" * 40
ALICE = "0x" + "1" * 40
BOB = "0x" + "2" * 40
CAROL = "0x" + "3" * 40

E18 = 10**18


class TickCounter:
    """Manually advanced tick source (stands in for block height)."""

    def __init__(self, start: int = 1_000):
        self.current = start

    def __call__(self) -> int:
        return self.current

    def advance(self, ticks: int = 1) -> int:
        self.current += ticks
        return self.current


def default_config() -> LedgerConfig:
    return LedgerConfig(
        min_reward_rate=10**12,
        max_reward_rate=10**21,
        max_fee_bps=1_000,
        initial_reward_rate=E18,
        initial_fee_bps=100,
        initial_max_boost=300,
    )


@pytest.fixture
def ticks():
    return TickCounter()


@pytest.fixture
def stake_token():
    return ERC20Token(name="Stake", symbol="STK", owner=ADMIN)


@pytest.fixture
def reward_token():
    # The pool must own the reward token to mint claims
    return ERC20Token(name="Reward", symbol="RWD", owner=POOL)


@pytest.fixture
def raw_pool(stake_token, ticks):
    """Pool that has not been initialized yet."""
    return StakingRewardsPool(ADMIN, stake_token, ticks, config=default_config(), address=POOL)


@pytest.fixture
def pool(raw_pool, reward_token):
    raw_pool.initialize(ADMIN, reward_token)
    return raw_pool


@pytest.fixture
def boosted_pool(pool):
    pool.upgrade_to_boosted(ADMIN)
    return pool


@pytest.fixture
def fund(stake_token):
    """Give a participant stake tokens and approve the pool to pull them."""

    def _fund(participant: str, amount: int) -> None:
        stake_token.mint(ADMIN, participant, amount)
        stake_token.approve(participant, POOL, stake_token.allowance(participant, POOL) + amount)

    return _fund


@pytest.fixture
def stake(pool, fund):
    """Fund and deposit in one step."""

    def _stake(participant: str, amount: int, target=None) -> None:
        fund(participant, amount)
        (target or pool).deposit(participant, amount)

    return _stake
