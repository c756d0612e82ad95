"""Ingredient name matching.

Names match when one contains the other, ignoring case and surrounding
whitespace. This absorbs plural/singular and qualifier variance
("spinach" vs "organic spinach") but also yields false positives on short
names ("egg" matches "eggplant"). That trade-off is accepted.
"""

from typing import Iterable


def _clean(name: str) -> str:
    return name.strip().lower()


def normalize_names(names: Iterable[str]) -> list[str]:
    """Strip and lower-case names, dropping empties and duplicates (first seen wins)."""
    cleaned = (_clean(name) for name in names if isinstance(name, str))
    return list(dict.fromkeys(name for name in cleaned if name))


def matches(a: str, b: str) -> bool:
    """Bidirectional case-insensitive containment. Symmetric in `a` and `b`.

    Empty names never match.
    """
    a, b = _clean(a), _clean(b)
    if not a or not b:
        return False
    return a in b or b in a


def ingredient_name_from_line(line: str) -> str:
    """Bare ingredient name of an "qty unit name" line: its last token, lower-cased."""
    tokens = line.lower().split()
    return tokens[-1] if tokens else ""


def extract_used_ingredients(ingredient_lines: Iterable[str], pool_names: Iterable[str]) -> frozenset[str]:
    """Return the pool names used by a recipe's ingredient lines.

    Args:
        ingredient_lines: Human-readable lines such as "2 cups milk".
        pool_names: Inventory ingredient names to look for.

    Returns:
        Lower-cased pool names matched by at least one line.
    """
    pool = normalize_names(pool_names)
    used: set[str] = set()
    for line in ingredient_lines:
        name = ingredient_name_from_line(line)
        if not name:
            continue
        used.update(candidate for candidate in pool if matches(name, candidate))
    return frozenset(used)
