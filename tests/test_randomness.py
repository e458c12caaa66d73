"""Tests for Tournament.randomness: noise, sampling and ranking primitives."""

import numpy as np
import pytest

from Tournament.randomness import (
    choice_from_list,
    choice_indexes,
    make_rng,
    normal_like,
    rank_by,
)


class TestNormalLike:
    def test_scalar_in_support(self, rng):
        for _ in range(200):
            x = normal_like(rng)
            assert isinstance(x, float)
            assert -1.5 <= x <= 1.5

    def test_array_shape(self, rng):
        assert normal_like(rng, size=10).shape == (10,)
        assert normal_like(rng, size=(4, 5)).shape == (4, 5)

    def test_moments(self, rng):
        x = normal_like(rng, size=200_000)
        assert x.mean() == pytest.approx(0.0, abs=0.01)
        assert x.var() == pytest.approx(0.25, abs=0.01)

    def test_seeded_reproducible(self):
        a = normal_like(make_rng(5), size=50)
        b = normal_like(make_rng(5), size=50)
        np.testing.assert_array_equal(a, b)


class TestChoice:
    def test_unique_and_in_range(self, rng):
        idx = choice_indexes(rng, 256, 128)
        assert len(idx) == 128
        assert len(set(idx)) == 128
        assert all(0 <= i < 256 for i in idx)

    def test_full_draw_is_permutation(self, rng):
        assert sorted(choice_indexes(rng, 10, 10)) == list(range(10))

    def test_zero_draw(self, rng):
        assert choice_indexes(rng, 5, 0) == []

    @pytest.mark.parametrize("k", [-1, 6])
    def test_bad_k_rejected(self, rng, k):
        with pytest.raises(ValueError):
            choice_indexes(rng, 5, k)

    def test_choice_from_list(self, rng):
        items = [10, 20, 30, 40, 50]
        picked = choice_from_list(rng, items, 3)
        assert len(set(picked)) == 3
        assert set(picked) <= set(items)

    def test_choice_from_list_too_many(self, rng):
        with pytest.raises(ValueError):
            choice_from_list(rng, [1, 2], 3)


class TestRankBy:
    def test_descending(self):
        order, ranks = rank_by([3.0, 1.0, 2.0])
        assert list(order) == [0, 2, 1]
        assert list(ranks) == [1, 3, 2]

    def test_ties_keep_slot_order(self):
        order, ranks = rank_by([1.0, 1.0, 0.0, 1.0])
        assert list(ranks) == [1, 2, 4, 3]
        assert list(order) == [0, 1, 3, 2]

    def test_ranks_are_bijection(self, rng):
        _, ranks = rank_by(rng.random(100))
        assert sorted(ranks) == list(range(1, 101))

    def test_order_inverts_ranks(self, rng):
        order, ranks = rank_by(rng.random(30))
        assert all(ranks[order[k]] == k + 1 for k in range(30))

    def test_empty(self):
        order, ranks = rank_by([])
        assert len(order) == 0
        assert len(ranks) == 0
