"""
Tests for the version-2 boost overlay.
"""
import pytest

from stakeledger.core.exceptions import InsufficientState, InvalidArgument, Unauthorized
from stakeledger.staking.state import BOOSTED_VERSION, UNBOOSTED_VERSION

ADMIN = "0x" + "a" * 40
ALICE = "0x" + "1" * 40
BOB = "0x" + "2" * 40
E18 = 10**18


class TestBoostResolution:
    def test_disabled_overlay_ignores_stored_multiplier(self, boosted_pool, stake, ticks):
        boosted_pool.set_boost(ADMIN, ALICE, 200)
        stake(ALICE, 100)
        stake(BOB, 100)
        ticks.advance(10)

        boosted_pool.distribute_rewards(ADMIN)

        assert boosted_pool.effective_boost(ALICE) == 100
        assert boosted_pool.get_participant(ALICE).pending_rewards == 5 * E18
        assert boosted_pool.get_participant(BOB).pending_rewards == 5 * E18

    def test_enabled_overlay_scales_only_boosted_participant(self, boosted_pool, stake, ticks):
        boosted_pool.set_boost_enabled(ADMIN, True)
        boosted_pool.set_boost(ADMIN, ALICE, 250)
        stake(ALICE, 100)
        stake(BOB, 100)
        ticks.advance(10)

        boosted_pool.distribute_rewards(ADMIN)

        assert boosted_pool.effective_boost(ALICE) == 250
        assert boosted_pool.effective_boost(BOB) == 100
        assert boosted_pool.get_participant(ALICE).pending_rewards == 12_500_000_000_000_000_000
        assert boosted_pool.get_participant(BOB).pending_rewards == 5 * E18

    def test_multiplier_change_settles_at_previous_multiplier(self, boosted_pool, stake, ticks):
        boosted_pool.set_boost_enabled(ADMIN, True)
        stake(ALICE, 100)
        boosted_pool.set_boost(ADMIN, ALICE, 200)
        ticks.advance(10)

        boosted_pool.set_boost(ADMIN, ALICE, 300)
        assert boosted_pool.get_participant(ALICE).pending_rewards == 20 * E18

        ticks.advance(10)
        assert boosted_pool.pending_rewards(ALICE) == 50 * E18

    def test_disabling_flushes_at_boosted_rate(self, boosted_pool, stake, ticks):
        boosted_pool.set_boost_enabled(ADMIN, True)
        stake(ALICE, 100)
        boosted_pool.set_boost(ADMIN, ALICE, 300)
        ticks.advance(10)

        boosted_pool.set_boost_enabled(ADMIN, False)
        assert boosted_pool.get_participant(ALICE).pending_rewards == 30 * E18

        ticks.advance(10)
        assert boosted_pool.pending_rewards(ALICE) == 40 * E18

        toggle = boosted_pool.events[-1]
        assert toggle.event_type == "BoostEnabledChanged"
        assert toggle.args == {"enabled": False}
        assert boosted_pool.events[-2].event_type == "RewardsDistributed"


class TestBoostBounds:
    @pytest.mark.parametrize("multiplier", [0, 99, 301])
    def test_multiplier_outside_bounds_rejected(self, boosted_pool, multiplier):
        with pytest.raises(InvalidArgument):
            boosted_pool.set_boost(ADMIN, ALICE, multiplier)

    def test_raising_cap_allows_larger_multiplier(self, boosted_pool):
        boosted_pool.set_max_boost(ADMIN, 400)
        boosted_pool.set_boost(ADMIN, ALICE, 400)

        assert boosted_pool.get_pool_parameters()["max_boost_multiplier"] == 400
        changed = [e for e in boosted_pool.events if e.event_type == "MaxBoostChanged"]
        assert changed[-1].args == {"old": 300, "new": 400}

    @pytest.mark.parametrize("new_max", [99, 501])
    def test_cap_outside_ceiling_rejected(self, boosted_pool, new_max):
        with pytest.raises(InvalidArgument):
            boosted_pool.set_max_boost(ADMIN, new_max)
        assert boosted_pool.get_pool_parameters()["max_boost_multiplier"] == 300

    def test_lowered_cap_clamps_stored_multiplier(self, boosted_pool):
        boosted_pool.set_boost_enabled(ADMIN, True)
        boosted_pool.set_boost(ADMIN, ALICE, 300)

        boosted_pool.set_max_boost(ADMIN, 150)

        assert boosted_pool.effective_boost(ALICE) == 150
        assert boosted_pool.export_state()["boost"]["multipliers"] == {ALICE: 300}
        with pytest.raises(InvalidArgument):
            boosted_pool.set_boost(ADMIN, BOB, 200)

    def test_raising_cap_again_restores_stored_multiplier(self, boosted_pool):
        boosted_pool.set_boost_enabled(ADMIN, True)
        boosted_pool.set_boost(ADMIN, ALICE, 300)
        boosted_pool.set_max_boost(ADMIN, 150)

        boosted_pool.set_max_boost(ADMIN, 400)

        assert boosted_pool.effective_boost(ALICE) == 300

    def test_lowering_cap_settles_at_previous_cap(self, boosted_pool, stake, ticks):
        boosted_pool.set_boost_enabled(ADMIN, True)
        stake(ALICE, 100)
        boosted_pool.set_boost(ADMIN, ALICE, 300)
        ticks.advance(10)

        boosted_pool.set_max_boost(ADMIN, 150)

        assert boosted_pool.get_participant(ALICE).pending_rewards == 30 * E18
        assert boosted_pool.events[-2].event_type == "RewardsDistributed"
        assert boosted_pool.events[-1].event_type == "MaxBoostChanged"
        ticks.advance(10)
        assert boosted_pool.pending_rewards(ALICE) == 45 * E18

    @pytest.mark.parametrize("value", [True, False])
    def test_boolean_multiplier_and_cap_rejected(self, boosted_pool, value):
        with pytest.raises(InvalidArgument):
            boosted_pool.set_boost(ADMIN, ALICE, value)
        with pytest.raises(InvalidArgument):
            boosted_pool.set_max_boost(ADMIN, value)
        assert boosted_pool.get_pool_parameters()["max_boost_multiplier"] == 300

    def test_boost_admin_only(self, boosted_pool):
        with pytest.raises(Unauthorized):
            boosted_pool.set_boost(ALICE, ALICE, 200)
        with pytest.raises(Unauthorized):
            boosted_pool.set_boost_enabled(ALICE, True)
        with pytest.raises(Unauthorized):
            boosted_pool.set_max_boost(ALICE, 400)


class TestUpgrade:
    def test_boost_operations_require_upgrade(self, pool):
        with pytest.raises(InsufficientState):
            pool.set_boost(ADMIN, ALICE, 200)
        with pytest.raises(InsufficientState):
            pool.set_boost_enabled(ADMIN, True)
        with pytest.raises(InsufficientState):
            pool.set_max_boost(ADMIN, 400)
        assert pool.effective_boost(ALICE) == 100

    def test_upgrade_keeps_existing_state(self, pool, stake, ticks):
        stake(ALICE, 100)
        ticks.advance(5)

        pool.upgrade_to_boosted(ADMIN)

        assert pool.get_pool_parameters()["version"] == BOOSTED_VERSION
        assert pool.get_participant(ALICE).stake_amount == 100
        assert pool.pending_rewards(ALICE) == 5 * E18
        assert pool.events[-1].event_type == "Upgraded"

    def test_upgrade_only_once(self, boosted_pool):
        with pytest.raises(InsufficientState):
            boosted_pool.upgrade_to_boosted(ADMIN)

    def test_upgrade_with_invalid_cap_rolls_back(self, pool):
        event_count = len(pool.events)

        with pytest.raises(InvalidArgument):
            pool.upgrade_to_boosted(ADMIN, max_boost=600)

        assert pool.get_pool_parameters()["version"] == UNBOOSTED_VERSION
        assert len(pool.events) == event_count

    def test_upgrade_requires_initialization(self, raw_pool):
        with pytest.raises(InsufficientState):
            raw_pool.upgrade_to_boosted(ADMIN)
