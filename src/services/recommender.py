"""Recipe recommendation service.

Entry point used by the inventory app: classifies inventory by expiration,
asks the recipe backend for candidates, and selects the subset that covers
every expiring ingredient.
"""

import uuid
from datetime import datetime
from typing import Iterable, List, Optional

from src.clients.recipe_client import RecipeClient
from src.clients.transports import create_transport
from src.models.errors import RecipeServiceError
from src.models.models import InventoryItem, RecipeCandidate, SelectionResult
from src.pipeline.expiration import DEFAULT_WINDOW_DAYS, build_ingredient_set, classify
from src.pipeline.matching import normalize_names
from src.pipeline.selection import CoverageSelector
from src.utils.config import Config, config
from src.utils.logger import logger
from src.utils.retry import StatusObserver


def _new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RecipeRecommender:
    """Recommend recipes that use up expiring inventory.

    Args:
        client: Recipe backend client.
        selector: Coverage selector (defaults to min 2, max 5 recipes).
        window_days: Expiring-soon window used by recommend_for_inventory.
    """

    def __init__(
        self,
        client: RecipeClient,
        selector: Optional[CoverageSelector] = None,
        window_days: int = DEFAULT_WINDOW_DAYS,
    ) -> None:
        self.client = client
        self.selector = selector or CoverageSelector()
        self.window_days = window_days

    async def recommend(
        self,
        expiring: Iterable[str],
        available: Iterable[str],
        dietary: Optional[List[str]] = None,
    ) -> SelectionResult:
        """Fetch candidates and select the ones covering the expiring ingredients.

        Returns an empty result without calling the backend when nothing is expiring.
        """
        request_id = _new_request_id()
        priority = normalize_names(expiring)
        if not priority:
            logger.info("No expiring ingredients, nothing to recommend", extra={"request_id": request_id})
            return SelectionResult()

        logger.info(
            f"Recommending recipes for {len(priority)} expiring ingredients",
            extra={"request_id": request_id},
        )
        try:
            candidates = await self.client.fetch_candidates(available, priority, dietary=dietary)
        except RecipeServiceError as e:
            logger.error(
                f"Recipe request failed: {e}",
                extra={"request_id": request_id, "error_kind": e.kind.value},
            )
            raise

        result = self.selector.select(candidates, priority)
        logger.info(
            f"Selected {len(result.selected)} of {len(candidates)} candidates",
            extra={"request_id": request_id},
        )
        return result

    async def generate_smart_recipes(
        self,
        expiring: Iterable[str],
        available: Iterable[str],
        dietary: Optional[List[str]] = None,
    ) -> List[RecipeCandidate]:
        """Recipes prioritizing expiring ingredients, in selection order.

        Raises:
            RecipeServiceError: When the backend call fails.
        """
        result = await self.recommend(expiring, available, dietary=dietary)
        return result.selected

    async def generate_recipes(
        self,
        ingredients: Iterable[str],
        dietary: Optional[List[str]] = None,
    ) -> List[RecipeCandidate]:
        """Plain recipe generation for an ingredient list, without coverage selection."""
        request_id = _new_request_id()
        logger.info("Generating recipes for ingredient list", extra={"request_id": request_id})
        return await self.client.generate(ingredients, dietary=dietary)

    async def recommend_for_inventory(
        self,
        items: Iterable[InventoryItem],
        now: Optional[datetime] = None,
        dietary: Optional[List[str]] = None,
    ) -> SelectionResult:
        """Run the whole pipeline for an inventory snapshot.

        Expired items are left out; expiring-soon items become the priority
        ingredients and every non-expired item is available.
        """
        buckets = classify(items, now=now, window_days=self.window_days)
        logger.debug(
            f"Inventory: {len(buckets.expired)} expired, {len(buckets.expiring_soon)} expiring soon, "
            f"{len(buckets.fresh)} fresh"
        )
        ingredients = build_ingredient_set(buckets)
        return await self.recommend(ingredients.priority_ingredients, ingredients.all_ingredients, dietary=dietary)


def create_recommender(cfg: Config = config, on_status: Optional[StatusObserver] = None) -> RecipeRecommender:
    """Build a recommender from configuration.

    Raises:
        ValueError: If the selected backend is missing required settings.
    """
    client = RecipeClient(
        create_transport(cfg),
        max_attempts=cfg.MAX_RETRIES,
        base_delay=cfg.DELAY_BETWEEN_RETRIES,
        difficulty=cfg.RECIPE_DIFFICULTY,
        on_status=on_status,
    )
    return RecipeRecommender(
        client,
        selector=CoverageSelector(cfg.MIN_RECIPES, cfg.MAX_RECIPES),
        window_days=cfg.EXPIRING_SOON_DAYS,
    )
