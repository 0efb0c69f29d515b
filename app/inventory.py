from __future__ import annotations

import logging
from collections.abc import Iterable


logger = logging.getLogger(__name__)


def add_items(inventory: list[str], found: Iterable[str]) -> None:
    inventory.extend(found)


def remove_items(inventory: list[str], used: Iterable[str]) -> list[str]:
    """Remove the first exact match for each used item.

    Names the inventory doesn't hold are skipped; the narrator occasionally
    "uses" things the player never picked up. Returns the names actually removed.
    """

    removed: list[str] = []
    for name in used:
        try:
            inventory.remove(name)
        except ValueError:
            logger.debug("Narrator used %r but it is not in the inventory", name)
            continue
        removed.append(name)
    return removed
