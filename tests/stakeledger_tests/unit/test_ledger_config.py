"""
Tests for environment-driven ledger configuration.
"""
import pytest

from stakeledger.core.config import LedgerConfig
from stakeledger.core.exceptions import ConfigurationError

ENV_VARS = (
    "STAKELEDGER_MIN_REWARD_RATE",
    "STAKELEDGER_MAX_REWARD_RATE",
    "STAKELEDGER_MAX_FEE_BPS",
    "STAKELEDGER_REWARD_RATE",
    "STAKELEDGER_FEE_BPS",
    "STAKELEDGER_MAX_BOOST",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_from_env_defaults(clean_env):
    config = LedgerConfig.from_env()

    assert config.min_reward_rate == 10**12
    assert config.max_reward_rate == 10**21
    assert config.max_fee_bps == 1_000
    assert config.initial_reward_rate == 10**18
    assert config.initial_fee_bps == 100
    assert config.initial_max_boost == 300


def test_from_env_overrides(clean_env):
    clean_env.setenv("STAKELEDGER_REWARD_RATE", "2e18")
    clean_env.setenv("STAKELEDGER_FEE_BPS", "250")
    clean_env.setenv("STAKELEDGER_MAX_REWARD_RATE", "1_000_000_000_000_000_000_000")

    config = LedgerConfig.from_env()

    assert config.initial_reward_rate == 2 * 10**18
    assert config.initial_fee_bps == 250
    assert config.max_reward_rate == 10**21


def test_non_integer_setting_rejected(clean_env):
    clean_env.setenv("STAKELEDGER_FEE_BPS", "lots")

    with pytest.raises(ConfigurationError):
        LedgerConfig.from_env()


def test_out_of_bounds_env_rejected(clean_env):
    clean_env.setenv("STAKELEDGER_FEE_BPS", "5000")

    with pytest.raises(ConfigurationError):
        LedgerConfig.from_env()


@pytest.mark.parametrize(
    "overrides",
    [
        {"min_reward_rate": 0},
        {"max_reward_rate": 10**11},
        {"max_fee_bps": 10_000},
        {"initial_reward_rate": 1},
        {"initial_fee_bps": 1_001},
        {"initial_max_boost": 99},
        {"initial_max_boost": 501},
    ],
)
def test_invalid_bounds_rejected(overrides):
    values = dict(
        min_reward_rate=10**12,
        max_reward_rate=10**21,
        max_fee_bps=1_000,
        initial_reward_rate=10**18,
        initial_fee_bps=100,
        initial_max_boost=300,
    )
    values.update(overrides)

    with pytest.raises(ConfigurationError):
        LedgerConfig(**values)


def test_config_is_immutable():
    config = LedgerConfig(
        min_reward_rate=10**12,
        max_reward_rate=10**21,
        max_fee_bps=1_000,
        initial_reward_rate=10**18,
        initial_fee_bps=100,
        initial_max_boost=300,
    )

    with pytest.raises(AttributeError):
        config.max_fee_bps = 5
