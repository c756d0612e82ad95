"""Recipe backend client: builds request payloads, retries, and decodes responses.

Decoding rules for the backend's `{"recipes": [...]}` body:
- A body without a `recipes` array is an invalid response.
- Elements that fail validation are logged and skipped; the rest are kept.
- If every element fails, the whole response is invalid.
- Each kept recipe is tagged with the inventory names its ingredient lines use.
"""

from typing import Any, Iterable, List, Optional

from pydantic import ValidationError

from src.clients.transports import RecipeTransport
from src.models.errors import ErrorKind, RecipeServiceError
from src.models.models import Category, Difficulty, RawRecipe, RecipeCandidate, RecipeRequestPayload
from src.pipeline.matching import extract_used_ingredients, normalize_names
from src.utils.logger import logger
from src.utils.retry import RetryExecutor, StatusObserver

PRIORITY_DIRECTIVE = "use_expiring_first"
COVERAGE_REQUIREMENT = "each_recipe_must_include_at_least_one_expiring_ingredient"
DIFFICULTIES = ("easy", "medium", "hard")


def decode_recipes(body: Any, pool_names: Iterable[str]) -> List[RecipeCandidate]:
    """Decode a backend response body into recipe candidates.

    Args:
        body: Parsed JSON body.
        pool_names: Inventory names used to tag each recipe's matched ingredients.

    Returns:
        Candidates in response order.

    Raises:
        RecipeServiceError: INVALID_RESPONSE if the body has no `recipes` array
            or none of its elements decode.
    """
    if not isinstance(body, dict) or not isinstance(body.get("recipes"), list):
        raise RecipeServiceError(ErrorKind.INVALID_RESPONSE, "Response has no 'recipes' array")

    raw_recipes = body["recipes"]
    pool = normalize_names(pool_names)
    candidates: List[RecipeCandidate] = []

    for index, element in enumerate(raw_recipes, start=1):
        try:
            recipe = RawRecipe.model_validate(element)
        except ValidationError as e:
            logger.warning(f"Skipping malformed recipe #{index}: {e.error_count()} validation error(s)")
            continue

        lines = [ingredient.to_line() for ingredient in recipe.ingredients]
        candidates.append(
            RecipeCandidate(
                title=recipe.name,
                cooking_time=recipe.totalTime,
                servings=recipe.servings,
                ingredient_lines=lines,
                instructions=recipe.instructions,
                difficulty=Difficulty.parse(recipe.difficulty),
                category=Category.parse(recipe.category),
                matched_ingredients=extract_used_ingredients(lines, pool),
            )
        )

    if raw_recipes and not candidates:
        raise RecipeServiceError(
            ErrorKind.INVALID_RESPONSE, f"None of the {len(raw_recipes)} recipes in the response could be decoded"
        )

    logger.info(f"Decoded {len(candidates)} of {len(raw_recipes)} recipes")
    return candidates


class RecipeClient:
    """Client for the recipe generation backend.

    Every call runs through its own RetryExecutor, so status observers see one
    idle -> retrying -> idle cycle per call.

    Args:
        transport: Backend transport (HTTP or Gemini).
        max_attempts: Total attempts per call.
        base_delay: Initial backoff delay in seconds.
        difficulty: Default difficulty hint ("easy", "medium" or "hard").
        on_status: Optional retry status observer.
    """

    def __init__(
        self,
        transport: RecipeTransport,
        max_attempts: int = 3,
        base_delay: float = 2.0,
        difficulty: str = "medium",
        on_status: Optional[StatusObserver] = None,
    ) -> None:
        self.transport = transport
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.difficulty = difficulty
        self.on_status = on_status

    def _check_difficulty(self, difficulty: Optional[str]) -> str:
        value = (difficulty or self.difficulty).strip().lower()
        if value not in DIFFICULTIES:
            raise RecipeServiceError(ErrorKind.INVALID_INPUT, f"Unsupported difficulty: {difficulty!r}")
        return value

    async def fetch_candidates(
        self,
        all_ingredients: Iterable[str],
        priority_ingredients: Iterable[str],
        dietary: Optional[List[str]] = None,
        difficulty: Optional[str] = None,
    ) -> List[RecipeCandidate]:
        """Request recipes that use up the priority (expiring) ingredients first.

        Args:
            all_ingredients: Every usable (non-expired) ingredient name.
            priority_ingredients: Expiring-soon names each recipe should use.
            dietary: Optional dietary restrictions.
            difficulty: Overrides the client's default difficulty.

        Raises:
            RecipeServiceError: INVALID_INPUT when both lists are empty, or
                whatever the transport and decoder raise after retries.
        """
        priority = normalize_names(priority_ingredients)
        available = normalize_names([*priority, *all_ingredients])
        if not available:
            raise RecipeServiceError(ErrorKind.INVALID_INPUT, "No ingredients provided")

        payload = RecipeRequestPayload(
            ingredients=available,
            expiring_ingredients=priority,
            priority=PRIORITY_DIRECTIVE if priority else None,
            requirement=COVERAGE_REQUIREMENT if priority else None,
            dietary=dietary or [],
            difficulty=self._check_difficulty(difficulty),
        )
        logger.debug(f"Requesting recipes for {len(available)} ingredients ({len(priority)} expiring)")
        return await self._request(payload, available)

    async def generate(
        self,
        ingredients: Iterable[str],
        dietary: Optional[List[str]] = None,
        difficulty: Optional[str] = None,
    ) -> List[RecipeCandidate]:
        """Request recipes for a plain ingredient list, with no expiring priority."""
        available = normalize_names(ingredients)
        if not available:
            raise RecipeServiceError(ErrorKind.INVALID_INPUT, "No ingredients provided")

        payload = RecipeRequestPayload(
            ingredients=available,
            dietary=dietary or [],
            difficulty=self._check_difficulty(difficulty),
        )
        return await self._request(payload, available)

    async def _request(self, payload: RecipeRequestPayload, pool: List[str]) -> List[RecipeCandidate]:
        executor = RetryExecutor(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            on_status=self.on_status,
        )

        async def attempt() -> List[RecipeCandidate]:
            body = await self.transport.send(payload)
            return decode_recipes(body, pool)

        return await executor.execute(attempt)
