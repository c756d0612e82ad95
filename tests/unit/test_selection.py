"""Unit tests for coverage-driven recipe selection."""

import pytest

from src.models.models import RecipeCandidate
from src.pipeline.selection import CoverageSelector, select


def _recipe(title, *matched):
    return RecipeCandidate(
        title=title,
        cooking_time="20 minutes",
        servings=2,
        matched_ingredients=frozenset(matched),
    )


def _titles(result):
    return [recipe.title for recipe in result.selected]


class TestCoverageSelectorScenarios:
    """Test documented selection scenarios."""

    def test_prefers_multi_ingredient_recipes(self):
        """R1 adds nothing once R2 is taken, so coverage completes with R2 and R3."""
        pool = [
            _recipe("R1", "spinach"),
            _recipe("R2", "spinach", "milk"),
            _recipe("R3", "eggs"),
        ]

        result = select(pool, ["spinach", "milk", "eggs"], min_count=2, max_count=5)

        assert _titles(result) == ["R2", "R3"]
        assert result.covered == frozenset({"spinach", "milk", "eggs"})
        assert result.coverage == 1.0

    def test_empty_priority_returns_nothing(self):
        pool = [_recipe("R1", "spinach"), _recipe("R2", "milk")]

        result = select(pool, [])

        assert result.selected == []
        assert result.coverage == 0.0

    def test_no_eligible_candidates(self):
        result = select([_recipe("Rice Bowl", "rice")], ["milk"])
        assert result.selected == []
        assert result.uncovered == frozenset({"milk"})

    def test_empty_pool(self):
        assert select([], ["milk"]).selected == []


class TestCoverageSelectorBounds:
    """Test minimum and maximum result sizes."""

    def test_min_count_filler_after_complete_coverage(self):
        pool = [_recipe("A", "milk"), _recipe("B", "milk"), _recipe("C", "milk")]

        result = select(pool, ["milk"], min_count=2)

        assert _titles(result) == ["A", "B"]

    def test_top_up_when_walk_ends_below_min(self):
        """B is skipped while coverage is incomplete and taken later to reach min_count."""
        pool = [_recipe("A", "milk"), _recipe("B", "milk"), _recipe("C", "egg")]

        result = select(pool, ["milk", "egg"], min_count=3, max_count=5)

        assert _titles(result) == ["A", "C", "B"]

    def test_max_count_caps_selection(self):
        names = ["milk", "egg", "spinach", "rice", "cheese", "tomato", "basil"]
        pool = [_recipe(name.title(), name) for name in names]

        result = select(pool, names, min_count=2, max_count=5)

        assert len(result.selected) == 5
        assert result.uncovered == frozenset({"tomato", "basil"})

    def test_max_count_reached_before_full_coverage(self):
        result = select([_recipe("A", "milk"), _recipe("B", "egg")], ["milk", "egg"], min_count=1, max_count=1)

        assert _titles(result) == ["A"]
        assert result.uncovered == frozenset({"egg"})

    def test_fewer_eligible_than_min(self):
        result = select([_recipe("A", "milk"), _recipe("X", "rice")], ["milk"], min_count=2)
        assert _titles(result) == ["A"]

    def test_min_zero_returns_only_covering_recipes(self):
        pool = [_recipe("A", "milk"), _recipe("B", "milk")]
        assert _titles(select(pool, ["milk"], min_count=0)) == ["A"]


class TestCoverageSelectorProperties:
    """Test guarantees that hold for every selection."""

    POOL_SPECS = [
        ("A", ("milk",)),
        ("B", ("egg", "rice")),
        ("C", ("rice",)),
        ("D", ("spinach", "milk", "egg")),
        ("E", ("flour",)),
        ("F", ("cheese",)),
        ("G", ("egg",)),
    ]

    @pytest.mark.parametrize("min_count, max_count", [(0, 1), (1, 3), (2, 5), (3, 3), (4, 7)])
    def test_every_selected_recipe_uses_a_priority_ingredient(self, min_count, max_count):
        priority = ["milk", "egg", "rice", "spinach", "cheese"]
        pool = [_recipe(title, *matched) for title, matched in self.POOL_SPECS]

        result = select(pool, priority, min_count=min_count, max_count=max_count)

        assert len(result.selected) <= max_count
        assert all(recipe.matched_ingredients & set(priority) for recipe in result.selected)
        assert len({recipe.id for recipe in result.selected}) == len(result.selected)
        if max_count >= 3:
            assert result.uncovered == frozenset()
        eligible = len([spec for spec in self.POOL_SPECS if set(spec[1]) & set(priority)])
        if eligible >= min_count:
            assert len(result.selected) >= min_count

    @pytest.mark.parametrize(
        "specs",
        [
            [("A", ("milk",)), ("B", ("milk",)), ("C", ("egg",)), ("D", ("rice", "egg"))],
            [("A", ("milk", "egg")), ("B", ("egg",)), ("C", ("egg", "spinach")), ("D", ("cheese",))],
            [("A", ("milk",)), ("B", ("milk",)), ("C", ("milk",)), ("D", ("rice",))],
            [("A", ("spinach", "milk")), ("B", ("spinach",)), ("C", ("eggs",))],
        ],
    )
    @pytest.mark.parametrize("min_count, max_count", [(0, 5), (2, 5), (3, 4), (4, 6)])
    def test_no_skipped_candidate_adds_coverage_below_max(self, specs, min_count, max_count):
        """Below max_count, every candidate left out covers nothing still uncovered."""
        priority = ["milk", "egg", "eggs", "rice", "spinach", "cheese"]
        pool = [_recipe(title, *matched) for title, matched in specs]

        result = select(pool, priority, min_count=min_count, max_count=max_count)

        assert len(result.selected) < max_count
        chosen = {recipe.id for recipe in result.selected}
        uncovered = set(priority) - result.covered
        for candidate in pool:
            if candidate.id not in chosen:
                assert not candidate.matched_ingredients & uncovered
        assert result.covered == frozenset().union(*(recipe.matched_ingredients for recipe in pool))

    def test_stable_order_for_ties(self):
        pool = [_recipe("First", "milk"), _recipe("Second", "milk")]
        assert _titles(select(pool, ["milk"], min_count=2)) == ["First", "Second"]

    def test_priority_names_are_normalized(self):
        result = select([_recipe("A", "milk")], [" Milk "], min_count=1)
        assert _titles(result) == ["A"]
        assert result.priority_ingredients == ["milk"]

    def test_duplicate_content_recipes_are_distinct(self):
        pool = [_recipe("Soup", "milk"), _recipe("Soup", "milk")]
        result = select(pool, ["milk"], min_count=2)
        assert len(result.selected) == 2


class TestCoverageSelectorValidation:
    """Test constructor argument checks."""

    def test_min_greater_than_max(self):
        with pytest.raises(ValueError):
            CoverageSelector(min_count=3, max_count=2)

    def test_negative_counts(self):
        with pytest.raises(ValueError):
            CoverageSelector(min_count=-1)
