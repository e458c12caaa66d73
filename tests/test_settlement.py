"""Tests for Tournament.settlement: fee pool, ranking, payouts and bonuses."""

import numpy as np
import pytest

from Tournament.randomness import choice_indexes
from Tournament.settlement import BonusPolicy, settle, tier_run
from Tournament.store import Roster
from Tournament.weights import SCHEDULES, weights_cup, weights_reg


def random_field(rng, n):
    skills = rng.random(n) - 0.5
    chips = 50.0 + 150.0 * rng.random(n)
    return skills, chips


# ============================================================================
# Bonus policy
# ============================================================================


class TestBonusPolicy:
    def test_all(self):
        assert BonusPolicy.all().eligible_count(32) == 32

    @pytest.mark.parametrize("n,expected", [(128, 64), (7, 4), (1, 1), (0, 0)])
    def test_top_half_rounds_up(self, n, expected):
        assert BonusPolicy.top_half().eligible_count(n) == expected

    def test_top_k_capped_at_field(self):
        assert BonusPolicy.top_k(32).eligible_count(128) == 32
        assert BonusPolicy.top_k(32).eligible_count(10) == 10

    def test_is_eligible(self):
        policy = BonusPolicy.top_k(3)
        assert policy.is_eligible(3, 10)
        assert not policy.is_eligible(4, 10)
        assert not policy.is_eligible(0, 10)

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            BonusPolicy("everyone")

    def test_top_k_needs_k(self):
        with pytest.raises(ValueError):
            BonusPolicy("top_k")

    def test_str(self):
        assert str(BonusPolicy.top_half()) == "top half"
        assert str(BonusPolicy.top_k(32)) == "top 32"


# ============================================================================
# settle()
# ============================================================================


class TestSettle:
    @pytest.mark.parametrize("name", list(SCHEDULES))
    @pytest.mark.parametrize("policy", [
        BonusPolicy.all(), BonusPolicy.top_half(), BonusPolicy.top_k(5),
    ], ids=str)
    def test_conservation(self, rng, name, policy):
        """Fees and pool shares cancel: the net change is exactly the bonuses."""
        schedule = SCHEDULES[name]
        n = schedule.field_size
        skills, chips = random_field(rng, n)
        result = settle(skills, chips, 6.0, 40.0, schedule.weights(), policy, rng)
        expected = 40.0 * policy.eligible_count(n)
        assert result.deltas.sum() == pytest.approx(expected, abs=1e-6)
        assert result.bonus_total == pytest.approx(expected)

    def test_lengths_and_ranks(self, rng):
        skills, chips = random_field(rng, 32)
        result = settle(skills, chips, 4.0, 100.0, weights_reg(), BonusPolicy.all(), rng)
        for arr in (result.ranks, result.fees, result.bonuses, result.shares,
                    result.payouts, result.deltas, result.new_chips):
            assert len(arr) == 32
        assert sorted(result.ranks) == list(range(1, 33))
        assert result.size == 32

    def test_fee_and_pool(self, rng):
        skills, chips = random_field(rng, 32)
        result = settle(skills, chips, 4.0, 100.0, weights_reg(), BonusPolicy.all(), rng)
        np.testing.assert_allclose(result.fees, chips / 4.0)
        assert result.pool == pytest.approx(chips.sum() / 4.0)

    def test_share_follows_rank(self, rng):
        skills, chips = random_field(rng, 32)
        w = weights_reg()
        result = settle(skills, chips, 4.0, 0.0, w, BonusPolicy.all(), rng)
        np.testing.assert_allclose(result.shares, w[result.ranks - 1] * result.pool)
        winner = result.order[0]
        assert result.ranks[winner] == 1
        assert result.shares[winner] == pytest.approx(0.20 * result.pool)

    def test_new_chips_is_chips_plus_delta(self, rng):
        skills, chips = random_field(rng, 16)
        result = settle(skills, chips, 5.0, 10.0, weights_reg(16), BonusPolicy.all(), rng)
        np.testing.assert_allclose(result.new_chips, chips + result.deltas)
        np.testing.assert_allclose(result.deltas, result.payouts - result.fees)

    def test_top_k_bonus_count(self, rng):
        skills, chips = random_field(rng, 128)
        result = settle(skills, chips, 10.0, 20.0, weights_cup(), BonusPolicy.top_k(32), rng)
        assert np.count_nonzero(result.bonuses) == 32
        assert np.all(result.ranks[result.bonuses > 0] <= 32)

    def test_inputs_not_mutated(self, rng):
        skills, chips = random_field(rng, 8)
        before = chips.copy()
        settle(skills, chips, 4.0, 10.0, weights_reg(8), BonusPolicy.all(), rng)
        np.testing.assert_array_equal(chips, before)

    def test_short_weights_are_zero_padded(self, rng):
        result = settle(np.zeros(4), np.full(4, 10.0), 2.0, 0.0, [1.0], BonusPolicy.all(), rng)
        winner = result.order[0]
        assert result.shares[winner] == pytest.approx(20.0)
        assert result.shares.sum() == pytest.approx(20.0)

    def test_skill_dominates_noise(self, rng):
        """Noise is bounded by 1.5, so a 4-point skill gap always wins."""
        skills = np.array([0.0, 4.0, 0.0])
        result = settle(skills, np.full(3, 10.0), 2.0, 0.0, [1.0, 0.0, 0.0],
                        BonusPolicy.all(), rng)
        assert result.ranks[1] == 1

    def test_empty_field(self, rng):
        result = settle([], [], 8.0, 50.0, weights_cup(), BonusPolicy.top_half(), rng)
        assert result.size == 0
        assert result.pool == 0.0

    @pytest.mark.parametrize("z", [0.0, -1.0])
    def test_bad_divisor(self, rng, z):
        with pytest.raises(ValueError):
            settle([0.0], [10.0], z, 0.0, [1.0], BonusPolicy.all(), rng)

    def test_misaligned_inputs(self, rng):
        with pytest.raises(ValueError):
            settle([0.0, 0.1], [10.0], 2.0, 0.0, [1.0], BonusPolicy.all(), rng)


# ============================================================================
# tier_run()
# ============================================================================


class TestTierRun:
    def test_writes_through_apply_deltas(self, rng, monkeypatch):
        roster = Roster.create(6, 100.0, rng)
        calls = []
        monkeypatch.setattr(
            roster, "apply_deltas", lambda ids, d: calls.append((list(ids), list(d)))
        )
        result = tier_run([0, 2], roster, 4.0, 10.0, [1.0], BonusPolicy.all(), rng)
        assert calls == [([0, 2], list(result.deltas))]

    def test_cup_scenario(self, rng):
        """256 at 100 chips, 128-slot Cup, z=8, y=50 to the top half."""
        roster = Roster.create(256, 100.0, rng)
        ids = choice_indexes(rng, 256, 128)
        result = tier_run(ids, roster, 8.0, 50.0, weights_cup(128),
                          BonusPolicy.top_half(), rng)

        assert result.pool == pytest.approx(1600.0)
        assert np.count_nonzero(result.bonuses) == 64
        assert result.deltas.sum() == pytest.approx(3200.0, abs=1e-6)
        assert roster.chips().sum() == pytest.approx(256 * 100.0 + 3200.0)

    def test_only_participants_change(self, rng):
        roster = Roster.create(20, 100.0, rng)
        ids = [3, 7, 11, 15]
        before = roster.chips()
        result = tier_run(ids, roster, 4.0, 10.0, weights_reg(4), BonusPolicy.all(), rng)
        after = roster.chips()

        others = [i for i in range(20) if i not in ids]
        np.testing.assert_array_equal(after[others], before[others])
        np.testing.assert_allclose(after[ids], before[ids] + result.deltas)

    def test_duplicate_ids_rejected(self, rng):
        roster = Roster.create(10, 100.0, rng)
        before = roster.chips()
        with pytest.raises(ValueError):
            tier_run([1, 1, 2], roster, 4.0, 10.0, [1.0], BonusPolicy.all(), rng)
        np.testing.assert_array_equal(roster.chips(), before)

    @pytest.mark.parametrize("bad_id", [-1, 10])
    def test_unknown_id_rejected(self, rng, bad_id):
        roster = Roster.create(10, 100.0, rng)
        with pytest.raises(ValueError):
            tier_run([0, bad_id], roster, 4.0, 10.0, [1.0], BonusPolicy.all(), rng)

    def test_bad_divisor_leaves_roster(self, rng):
        roster = Roster.create(10, 100.0, rng)
        before = roster.chips()
        with pytest.raises(ValueError):
            tier_run([0, 1], roster, 0.0, 10.0, [1.0], BonusPolicy.all(), rng)
        np.testing.assert_array_equal(roster.chips(), before)

    def test_empty_field(self, rng):
        roster = Roster.create(5, 100.0, rng)
        result = tier_run([], roster, 4.0, 10.0, [1.0], BonusPolicy.all(), rng)
        assert result.size == 0
        np.testing.assert_array_equal(roster.chips(), np.full(5, 100.0))
