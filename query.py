#!/usr/bin/env python3
"""Ad hoc runner for the recipe recommendation pipeline.

Loads an inventory snapshot from a JSON file, recommends recipes that use up
the expiring items, and prints them.

Usage:
    python query.py inventory.json
    python query.py --debug inventory.json          # Show full JSON result
    python query.py --days 5 inventory.json         # Wider expiring-soon window
    python query.py --dietary vegetarian inventory.json

Inventory file format (a list, or an object with an "items" list):
    [{"name": "spinach", "expiration_date": "2026-10-18T00:00:00Z"}, ...]

Features:
- Live retry status while the backend is retried
- Coverage report for the expiring ingredients
- Debug mode to display the full selection result as JSON
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from src.models.errors import RecipeServiceError
from src.models.models import InventoryItem, RecipeCandidate, RetryState, SelectionResult
from src.services.recommender import create_recommender
from src.utils.config import config
from src.utils.logger import logger

console = Console()

USAGE = 'Usage: python query.py [--debug] [--days N] [--dietary TAG] "<inventory.json>"'


def load_inventory(path: Path) -> List[InventoryItem]:
    """Read inventory items from a JSON file.

    Raises:
        ValueError: If the file is not valid JSON or an item is malformed.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("items", [])
    try:
        return TypeAdapter(List[InventoryItem]).validate_python(data)
    except ValidationError as e:
        raise ValueError(f"Invalid inventory file {path}: {e.error_count()} error(s)\n{e}") from e


def print_status(state: RetryState) -> None:
    if state.is_retrying:
        console.print(f"[yellow]… {state.message}[/yellow]")


def render_recipe(recipe: RecipeCandidate, priority: frozenset[str]) -> Panel:
    table = Table.grid(padding=(0, 1))
    table.add_row("[bold]Time[/bold]", recipe.cooking_time)
    table.add_row("[bold]Servings[/bold]", str(recipe.servings))
    table.add_row("[bold]Difficulty[/bold]", recipe.difficulty.value)
    table.add_row("[bold]Category[/bold]", recipe.category.value)
    uses = ", ".join(sorted(recipe.priority_matches(priority))) or "-"
    table.add_row("[bold]Uses expiring[/bold]", f"[green]{uses}[/green]")
    table.add_row("[bold]Ingredients[/bold]", "\n".join(recipe.ingredient_lines))
    steps = "\n".join(f"{i}. {step}" for i, step in enumerate(recipe.instructions, start=1))
    table.add_row("[bold]Steps[/bold]", steps)
    return Panel(table, title=f"[bold cyan]{recipe.title}[/bold cyan]", expand=False)


def print_result(result: SelectionResult, debug: bool = False) -> None:
    if debug:
        console.print("[bold cyan]Debug Mode: Full Result[/bold cyan]")
        console.print("[dim]" + "=" * 60 + "[/dim]")
        console.print_json(result.model_dump_json())
        console.print("[dim]" + "=" * 60 + "[/dim]")
        console.print()

    if not result.priority_ingredients:
        console.print("[yellow]Nothing is expiring soon, no recipes needed.[/yellow]")
        return
    if not result.selected:
        console.print("[yellow]No recipe uses the expiring ingredients.[/yellow]")
        return

    priority = frozenset(result.priority_ingredients)
    for recipe in result.selected:
        console.print(render_recipe(recipe, priority))

    console.print(
        f"Coverage: [bold]{len(result.covered)}/{len(priority)}[/bold] expiring ingredients "
        f"({result.coverage * 100:.0f}%)"
    )
    if result.uncovered:
        console.print(f"[yellow]Not used: {', '.join(sorted(result.uncovered))}[/yellow]")


def run_query(
    inventory_path: str,
    debug: bool = False,
    window_days: Optional[int] = None,
    dietary: Optional[List[str]] = None,
) -> None:
    """Recommend recipes for an inventory file and print them.

    Args:
        inventory_path: Path to the inventory JSON file.
        debug: If True, display the full selection result as JSON.
        window_days: Overrides EXPIRING_SOON_DAYS.
        dietary: Optional dietary restrictions.
    """
    path = Path(inventory_path)
    if not path.exists():
        console.print(f"[red]✗ Error: Inventory file not found: {inventory_path}[/red]")
        sys.exit(1)

    try:
        items = load_inventory(path)
        logger.info(f"Loaded {len(items)} inventory items from {path.name}")

        recommender = create_recommender(config, on_status=print_status)
        if window_days is not None:
            recommender.window_days = window_days

        result = asyncio.run(recommender.recommend_for_inventory(items, dietary=dietary))
        console.print()
        print_result(result, debug=debug)

    except KeyboardInterrupt:
        logger.info("\nQuery interrupted by user.")
        sys.exit(0)
    except RecipeServiceError as e:
        logger.error(f"Recipe request failed: {e}")
        console.print(f"[red]✗ {e.user_message}[/red]")
        sys.exit(1)
    except ValueError as e:
        logger.error(f"Query execution failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(USAGE)
        print("")
        print("Examples:")
        print("  python query.py inventory.json")
        print("  python query.py --debug inventory.json")
        print("  python query.py --days 5 --dietary vegetarian inventory.json")
        sys.exit(1)

    debug_mode = False
    window_days = None
    dietary: List[str] = []
    argv_start = 1

    while argv_start < len(sys.argv) and sys.argv[argv_start].startswith("--"):
        flag = sys.argv[argv_start]
        if flag == "--debug":
            debug_mode = True
            argv_start += 1
        elif flag in ("--days", "--dietary"):
            argv_start += 1
            if argv_start >= len(sys.argv):
                print(f"Error: {flag} flag requires a value")
                sys.exit(1)
            value = sys.argv[argv_start]
            if flag == "--days":
                if not value.isdigit():
                    print(f"Error: --days expects a non-negative integer, got: {value}")
                    sys.exit(1)
                window_days = int(value)
            else:
                dietary.append(value)
            argv_start += 1
        else:
            print(f"Unknown flag: {flag}")
            sys.exit(1)

    if argv_start >= len(sys.argv):
        print("Error: No inventory file provided")
        print(USAGE)
        sys.exit(1)

    run_query(sys.argv[argv_start], debug=debug_mode, window_days=window_days, dietary=dietary or None)
