"""Coverage-driven selection of recipe candidates.

Picks a small set of recipes such that every expiring (priority) ingredient
used by any candidate appears in at least one selected recipe, preferring
recipes that use many priority ingredients at once.
"""

from typing import Iterable, Sequence

from src.models.models import RecipeCandidate, SelectionResult
from src.pipeline.matching import normalize_names
from src.utils.logger import logger

DEFAULT_MIN_COUNT = 2
DEFAULT_MAX_COUNT = 5


class CoverageSelector:
    """Greedy selector maximizing priority-ingredient coverage.

    Args:
        min_count: Recipes to return when enough eligible candidates exist.
        max_count: Hard upper bound on returned recipes.
    """

    def __init__(self, min_count: int = DEFAULT_MIN_COUNT, max_count: int = DEFAULT_MAX_COUNT) -> None:
        if min_count < 0 or max_count < 0:
            raise ValueError(f"min_count and max_count must not be negative, got: {min_count}, {max_count}")
        if min_count > max_count:
            raise ValueError(f"min_count ({min_count}) must not exceed max_count ({max_count})")
        self.min_count = min_count
        self.max_count = max_count

    def select(self, candidates: Sequence[RecipeCandidate], priority_ingredients: Iterable[str]) -> SelectionResult:
        """Select recipes covering the priority ingredients.

        Steps:
        1. Keep candidates matching at least one priority ingredient.
        2. Stable-sort them by number of priority ingredients matched, descending.
        3. Walk the sorted pool, taking a candidate when it covers something new,
           or as a filler when coverage is already complete but fewer than
           `min_count` are selected. Stop when everything is covered with at
           least `min_count` selected, or at `max_count`.
        4. Top up to `min_count` with the best remaining candidates.

        The walk only skips a candidate while it adds nothing new, and coverage
        never shrinks, so no skipped candidate can cover anything later. When
        the walk ends below `max_count`, no unselected candidate covers an
        uncovered ingredient; a second backfill scan would never select anything.

        The result is in selection order.
        """
        priority_names = normalize_names(priority_ingredients)
        priority = frozenset(priority_names)

        if not priority:
            logger.debug("No priority ingredients, skipping recipe selection")
            return SelectionResult(priority_ingredients=priority_names)

        eligible = [c for c in candidates if c.priority_matches(priority)]
        if not eligible:
            logger.info(f"None of {len(candidates)} candidates use a priority ingredient")
            return SelectionResult(priority_ingredients=priority_names)

        ranked = sorted(eligible, key=lambda c: len(c.priority_matches(priority)), reverse=True)

        selected: list[RecipeCandidate] = []
        chosen_ids: set[str] = set()
        covered: set[str] = set()

        def take(candidate: RecipeCandidate) -> None:
            selected.append(candidate)
            chosen_ids.add(candidate.id)
            covered.update(candidate.priority_matches(priority))

        # Greedy walk
        for candidate in ranked:
            if len(selected) >= self.max_count:
                break
            new = candidate.priority_matches(priority) - covered
            complete = covered >= priority
            if new or (complete and len(selected) < self.min_count):
                take(candidate)
            if covered >= priority and len(selected) >= self.min_count:
                break

        # Top up to the minimum size
        for candidate in ranked:
            if len(selected) >= min(self.min_count, self.max_count):
                break
            if candidate.id not in chosen_ids:
                take(candidate)

        result = SelectionResult(
            selected=selected,
            priority_ingredients=priority_names,
            covered=frozenset(covered),
        )
        logger.info(
            f"Recipe coverage: {len(result.covered)}/{len(priority)} priority ingredients "
            f"({result.coverage * 100:.1f}%), {len(selected)} recipes selected from {len(candidates)} candidates"
        )
        if result.uncovered:
            logger.debug(f"Uncovered priority ingredients: {sorted(result.uncovered)}")
        return result


def select(
    candidates: Sequence[RecipeCandidate],
    priority_ingredients: Iterable[str],
    min_count: int = DEFAULT_MIN_COUNT,
    max_count: int = DEFAULT_MAX_COUNT,
) -> SelectionResult:
    """Module-level shortcut for CoverageSelector(min_count, max_count).select(...)."""
    return CoverageSelector(min_count, max_count).select(candidates, priority_ingredients)
