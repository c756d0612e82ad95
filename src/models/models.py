"""Data models and schemas for the recipe recommendation pipeline.

Defines Pydantic models for inventory input, the outbound request payload,
inbound recipe validation, and the domain objects passed between pipeline stages.
All models use Pydantic v2.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError, field_validator

from src.utils.logger import logger


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"

    @classmethod
    def parse(cls, value: str) -> "Difficulty":
        """Normalize a backend value ("easy", "HARD") to a member, defaulting to Medium."""
        try:
            return cls(value.strip().capitalize())
        except ValueError:
            return cls.MEDIUM


class Category(str, Enum):
    BREAKFAST = "Breakfast"
    LUNCH = "Lunch"
    DINNER = "Dinner"
    SNACK = "Snack"
    DESSERT = "Dessert"
    SOUP = "Soup"
    SALAD = "Salad"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: str) -> "Category":
        """Normalize a backend value ("dinner") to a member, defaulting to Other."""
        try:
            return cls(value.strip().capitalize())
        except ValueError:
            return cls.OTHER


class InventoryItem(BaseModel):
    """A food item read from the inventory store.

    Only the fields the pipeline needs are declared; anything else the store
    provides is ignored.
    """

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True, extra="ignore")

    name: Annotated[str, Field(min_length=1, max_length=200, description="Item name as logged by the user")]
    expiration_date: Annotated[datetime, Field(description="When the item expires")]


class ExpirationBuckets(BaseModel):
    """Partition of inventory items by expiration status."""

    model_config = ConfigDict(frozen=True)

    expired: List[InventoryItem] = Field(default_factory=list)
    expiring_soon: List[InventoryItem] = Field(default_factory=list)
    fresh: List[InventoryItem] = Field(default_factory=list)


class IngredientSet(BaseModel):
    """Ingredient names derived from one inventory snapshot.

    Both lists are lower-cased, stripped and de-duplicated with first-seen
    order kept, so they can be sent to the backend as-is.
    """

    model_config = ConfigDict(frozen=True)

    priority_ingredients: List[str] = Field(default_factory=list)
    all_ingredients: List[str] = Field(default_factory=list)

    @property
    def pool(self) -> List[str]:
        """All names the matcher may tag, priority names first."""
        return list(dict.fromkeys([*self.priority_ingredients, *self.all_ingredients]))


class RecipeRequestPayload(BaseModel):
    """Outbound JSON body for the recipe generation endpoint."""

    ingredients: List[str]
    expiring_ingredients: List[str] = Field(default_factory=list)
    priority: Optional[str] = None
    requirement: Optional[str] = None
    dietary: List[str] = Field(default_factory=list)
    difficulty: str = "medium"


class RawIngredient(BaseModel):
    """One ingredient entry of a backend recipe."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Annotated[str, Field(min_length=1)]
    quantity: str | int | float
    unit: str

    def to_line(self) -> str:
        """Render as "qty unit name", skipping empty parts."""
        quantity = self.quantity
        if isinstance(quantity, float) and quantity.is_integer():
            quantity = int(quantity)
        parts = [str(quantity).strip(), self.unit, self.name]
        return " ".join(part for part in parts if part)


class RawRecipe(BaseModel):
    """One element of the backend's `recipes` array.

    Field names follow the backend's JSON exactly. Malformed ingredient entries
    are dropped from the recipe instead of rejecting it.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Annotated[str, Field(min_length=1)]
    ingredients: List[RawIngredient]
    instructions: List[str]
    totalTime: str
    servings: Annotated[StrictInt, Field(gt=0)]
    difficulty: str
    category: str

    @field_validator("ingredients", mode="before")
    @classmethod
    def drop_invalid_ingredients(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        kept = []
        for entry in value:
            try:
                kept.append(RawIngredient.model_validate(entry))
            except ValidationError:
                logger.debug(f"Dropping invalid ingredient entry: {entry!r}")
        return kept


class RecipeCandidate(BaseModel):
    """A decoded recipe suggestion.

    Identity is the generated `id`: two candidates with identical content are
    still distinct.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    title: Annotated[str, Field(min_length=1)]
    cooking_time: str
    servings: Annotated[int, Field(gt=0)]
    ingredient_lines: List[str] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    difficulty: Difficulty = Difficulty.MEDIUM
    category: Category = Category.OTHER
    matched_ingredients: frozenset[str] = Field(default_factory=frozenset)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RecipeCandidate):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def priority_matches(self, priority: frozenset[str]) -> frozenset[str]:
        return self.matched_ingredients & priority


class SelectionResult(BaseModel):
    """Recipes chosen by the coverage selector, with a coverage report."""

    model_config = ConfigDict(frozen=True)

    selected: List[RecipeCandidate] = Field(default_factory=list)
    priority_ingredients: List[str] = Field(default_factory=list)
    covered: frozenset[str] = Field(default_factory=frozenset)

    @property
    def uncovered(self) -> frozenset[str]:
        return frozenset(self.priority_ingredients) - self.covered

    @property
    def coverage(self) -> float:
        """Share of priority ingredients used by at least one selected recipe."""
        if not self.priority_ingredients:
            return 0.0
        return len(self.covered) / len(set(self.priority_ingredients))


class RetryState(BaseModel):
    """Advisory status of the in-flight call, published to observers."""

    model_config = ConfigDict(frozen=True)

    attempt: Annotated[int, Field(ge=0)] = 0
    is_retrying: bool = False
    message: str = ""

    @classmethod
    def idle(cls) -> "RetryState":
        return cls()
