"""Experience, level-ups, stat allocation and multi-class unlocks."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, List, Mapping, Sequence

from taleforge.content import STAT_NAMES, ClassRequirement
from taleforge.player import Player, PlayerClass, clamp, max_hearts_for
from taleforge.settings import (
    DEFAULT_CLASS_CAP_LEVELS,
    DEFAULT_CLASS_UNLOCK_LEVELS,
    DEFAULT_LEVEL_UP_HEAL,
    DEFAULT_XP_PER_LEVEL,
)

logger = logging.getLogger(__name__)


def calculate_xp_threshold(level: int, *, xp_per_level: int = DEFAULT_XP_PER_LEVEL) -> int:
    return level * xp_per_level


def can_level_up(player: Player, *, xp_per_level: int = DEFAULT_XP_PER_LEVEL) -> bool:
    return player.xp >= calculate_xp_threshold(player.level, xp_per_level=xp_per_level)


def level_up_player(player: Player, *, heal: int = DEFAULT_LEVEL_UP_HEAL) -> Player:
    """Raise the level by one. XP is left for the caller to compare again."""
    max_hearts = max_hearts_for(player.stats.vitality)
    return replace(
        player,
        level=player.level + 1,
        max_hearts=max_hearts,
        hearts=min(player.hearts + heal, max_hearts),
    )


def apply_stat_increase(player: Player, stat: str, amount: int) -> Player:
    if stat not in STAT_NAMES:
        logger.debug("Ignoring increase to unknown stat %r", stat)
        return player
    stats = player.stats.add({stat: amount})
    if stat != "vitality":
        return replace(player, stats=stats)
    max_hearts = max_hearts_for(stats.vitality)
    return replace(
        player,
        stats=stats,
        max_hearts=max_hearts,
        hearts=clamp(player.hearts, 0, max_hearts),
    )


def max_classes_for_level(
    level: int, *, cap_levels: Sequence[int] = DEFAULT_CLASS_CAP_LEVELS
) -> int:
    return 1 + sum(1 for threshold in cap_levels if level >= threshold)


def can_unlock_class(
    player: Player,
    class_name: str,
    requirements: Mapping[str, ClassRequirement],
    *,
    cap_levels: Sequence[int] = DEFAULT_CLASS_CAP_LEVELS,
) -> bool:
    requirement = requirements.get(class_name)
    if requirement is None:
        return False
    if class_name in player.class_names:
        return False
    if player.level < requirement.required_level:
        return False
    if len(player.classes) >= max_classes_for_level(player.level, cap_levels=cap_levels):
        return False
    return player.stats.meets(requirement.required_stats)


def unlockable_classes(
    player: Player,
    requirements: Mapping[str, ClassRequirement],
    *,
    cap_levels: Sequence[int] = DEFAULT_CLASS_CAP_LEVELS,
) -> List[str]:
    return [
        name
        for name in requirements
        if can_unlock_class(player, name, requirements, cap_levels=cap_levels)
    ]


def class_unlock_offered(
    player: Player,
    requirements: Mapping[str, ClassRequirement],
    *,
    unlock_levels: Sequence[int] = DEFAULT_CLASS_UNLOCK_LEVELS,
    cap_levels: Sequence[int] = DEFAULT_CLASS_CAP_LEVELS,
) -> bool:
    if player.level not in unlock_levels:
        return False
    return bool(unlockable_classes(player, requirements, cap_levels=cap_levels))


def add_class_to_player(
    player: Player, class_name: str, class_stats: Mapping[str, Any] | None
) -> Player:
    stats = player.stats.add(class_stats or {})
    max_hearts = max_hearts_for(stats.vitality)
    return replace(
        player,
        classes=player.classes + (PlayerClass(name=class_name, level=1, unlocked_at=player.level),),
        stats=stats,
        max_hearts=max_hearts,
        hearts=min(player.hearts, max_hearts),
    )
