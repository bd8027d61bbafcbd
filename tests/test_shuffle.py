"""
Testes do embaralhamento (Fisher–Yates) e da seleção de subconjunto.
"""

import random

import pytest

from src.utils.errors import CapacityError, InvalidRequestError, EXCEEDS_AVAILABLE_CARDS, INVALID_COUNT
from src.utils.shuffle import fisher_yates_shuffle, select_subset, shuffle_and_select


class TestFisherYates:
    """Permutação reproduzível com rng semeado."""

    def test_returns_permutation_without_touching_input(self):
        items = list(range(20))
        shuffled = fisher_yates_shuffle(items, random.Random(3))

        assert sorted(shuffled) == items
        assert items == list(range(20))

    def test_same_seed_same_order(self):
        items = list("abcdefghij")
        assert fisher_yates_shuffle(items, random.Random(42)) == fisher_yates_shuffle(items, random.Random(42))

    def test_empty_and_single(self):
        assert fisher_yates_shuffle([]) == []
        assert fisher_yates_shuffle(["only"]) == ["only"]

    def test_every_position_is_reachable(self):
        # Com 3 itens e várias sementes, todas as 6 permutações aparecem
        seen = {tuple(fisher_yates_shuffle([1, 2, 3], random.Random(seed))) for seed in range(200)}
        assert len(seen) == 6


class TestSelectSubset:
    def test_default_is_half_rounded_up(self):
        assert len(select_subset(list(range(23)))) == 12
        assert len(select_subset(list(range(10)))) == 5
        assert select_subset([]) == []

    def test_explicit_count(self):
        assert select_subset([1, 2, 3, 4], 2) == [1, 2]

    def test_zero_is_empty(self):
        assert select_subset([1, 2, 3], 0) == []

    def test_all_items(self):
        assert select_subset([1, 2, 3], 3) == [1, 2, 3]

    def test_more_than_available(self):
        with pytest.raises(CapacityError) as exc:
            select_subset(list(range(8)), 20)
        assert exc.value.code == EXCEEDS_AVAILABLE_CARDS
        assert exc.value.status_code == 400

    def test_negative_count(self):
        with pytest.raises(InvalidRequestError) as exc:
            select_subset([1, 2], -1)
        assert exc.value.code == INVALID_COUNT


def test_shuffle_and_select_is_distinct_subset():
    items = list(range(30))
    selected = shuffle_and_select(items, 10, random.Random(1))

    assert len(selected) == 10
    assert len(set(selected)) == 10
    assert set(selected) <= set(items)
