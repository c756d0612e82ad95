"""Prompt text for model-backed recipe generation.

The Gemini transport sends one prompt per request. It restates the request
payload's directives in plain language and pins the JSON shape the decoder
expects, so both transports return the same body.
"""

from src.models.models import RecipeRequestPayload

RESPONSE_SCHEMA_HINT = """{
  "recipes": [
    {
      "name": "Recipe name",
      "ingredients": [{"name": "spinach", "quantity": "2", "unit": "cups"}],
      "instructions": ["Step 1", "Step 2"],
      "totalTime": "20 minutes",
      "servings": 2,
      "difficulty": "easy | medium | hard",
      "category": "breakfast | lunch | dinner | snack | dessert | soup | salad | other"
    }
  ]
}"""


def _bullet_list(items: list[str]) -> str:
    return "\n".join(f"- {item}" for item in items) if items else "- (none)"


def _get_priority_section(payload: RecipeRequestPayload) -> str:
    """Section asking the model to use up expiring ingredients first.

    Only rendered when the payload carries expiring ingredients.
    """
    if not payload.expiring_ingredients:
        return ""
    section = f"""
## Expiring Ingredients (use these first)

{_bullet_list(payload.expiring_ingredients)}

- Prefer recipes that use several expiring ingredients at once.
- Together, the recipes should use every expiring ingredient listed above.
"""
    if payload.requirement:
        section += "- EVERY recipe MUST include at least one expiring ingredient.\n"
    return section


def build_recipe_prompt(payload: RecipeRequestPayload, recipe_count: int = 6) -> str:
    """Render the recipe generation prompt for a request payload.

    Args:
        payload: Outbound request (same data the HTTP backend receives).
        recipe_count: How many recipe candidates to ask for.

    Returns:
        Prompt text instructing the model to answer with JSON only.
    """
    dietary = ", ".join(payload.dietary) if payload.dietary else "none"
    return f"""You are a home-cooking assistant that helps people reduce food waste.

## Available Ingredients

{_bullet_list(payload.ingredients)}
{_get_priority_section(payload)}
## Constraints

- Suggest {recipe_count} different recipes.
- Target difficulty: {payload.difficulty}.
- Dietary restrictions: {dietary}.
- Common pantry staples (salt, pepper, oil, water) may be assumed.
- Put the plain ingredient name last in each ingredient's "name" (e.g. "fresh spinach", not "spinach, chopped").

## Output Format

Return ONLY valid JSON, no commentary and no markdown fences, matching:

{RESPONSE_SCHEMA_HINT}
"""
