from __future__ import annotations

import logging
from collections.abc import Mapping

from app.api.models import CharacterStats


logger = logging.getLogger(__name__)

ATTRIBUTE_CAP = 50
ATTRIBUTES = ("strength", "intelligence", "charisma")

LEVEL_UP_HEALTH_BONUS = 20
LEVEL_UP_MANA_BONUS = 10


def health_cap(level: int) -> int:
    return 100 + 20 * (level - 1)


def mana_cap(level: int) -> int:
    return 100 + 15 * (level - 1)


def experience_threshold(level: int) -> int:
    return level * 100


def apply_deltas(stats: CharacterStats, deltas: Mapping[str, int]) -> None:
    """Apply narrator stat changes in place.

    Each known stat becomes max(0, old + delta); afterwards health/mana are
    clamped to the level-dependent caps and the three attributes to ATTRIBUTE_CAP.
    Unknown stat names are ignored.
    """

    for name, delta in deltas.items():
        if name not in CharacterStats.model_fields:
            logger.debug("Ignoring unknown stat %r in narrator stat changes", name)
            continue
        setattr(stats, name, max(0, getattr(stats, name) + int(delta)))

    # A level of 0 would shrink the caps below their base values.
    stats.level = max(1, stats.level)

    stats.health = min(stats.health, health_cap(stats.level))
    stats.mana = min(stats.mana, mana_cap(stats.level))
    for name in ATTRIBUTES:
        setattr(stats, name, min(getattr(stats, name), ATTRIBUTE_CAP))


def maybe_level_up(stats: CharacterStats) -> bool:
    """Level up once if experience has reached the current threshold.

    Only a single level is granted per call even when the experience would cover
    several; the surplus is discarded along with the rest of the experience.
    """

    if stats.experience < experience_threshold(stats.level):
        return False

    stats.level += 1
    stats.experience = 0
    stats.health = min(stats.health + LEVEL_UP_HEALTH_BONUS, health_cap(stats.level))
    stats.mana = min(stats.mana + LEVEL_UP_MANA_BONUS, mana_cap(stats.level))
    return True
