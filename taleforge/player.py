"""Player record: stats, classes, equipment and character creation."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from taleforge.content import STAT_NAMES, Item, sparse_stats
from taleforge.settings import DEFAULT_ENTRY_NODE

logger = logging.getLogger(__name__)

GENDERS = ("male", "female", "other")

BASELINE_STATS = {
    "strength": 1,
    "magic": 1,
    "vitality": 1,
    "luck": 1,
    "reputation": 1,
    "money": 20,
}

PRONOUNS = {
    "male": {"he_she": "he", "his_her": "his", "him_her": "him"},
    "female": {"he_she": "she", "his_her": "her", "him_her": "her"},
    "other": {"he_she": "they", "his_her": "their", "him_her": "them"},
}
TEMPLATE_PATTERN = re.compile(
    r"\{(player_name|player_race|player_class|he_she|his_her|him_her)\}"
)

EQUIPMENT_SLOTS = (
    "main_weapon",
    "side_weapon",
    "head",
    "body",
    "legs",
    "shoes",
    "ring1",
    "ring2",
    "necklace",
    "quick_potion",
)
# Item subType -> slot. Rings are placed by the ring rule instead.
SUB_TYPE_SLOTS = {
    "main_weapon": "main_weapon",
    "side_weapon": "side_weapon",
    "head": "head",
    "body": "body",
    "legs": "legs",
    "shoes": "shoes",
    "necklace": "necklace",
    "potion": "quick_potion",
}
RING_SLOTS = ("ring1", "ring2")

_SLOT_KEYS = {
    "main_weapon": "mainWeapon",
    "side_weapon": "sideWeapon",
    "quick_potion": "quickPotion",
}


def max_hearts_for(vitality: int) -> int:
    return max(1, vitality * 2)


def clamp(n, lo, hi): return lo if n < lo else hi if n > hi else n


@dataclass(frozen=True)
class PlayerStats:
    strength: int = 0
    magic: int = 0
    vitality: int = 0
    luck: int = 0
    reputation: int = 0
    money: int = 0

    def get(self, stat: str, default: int = 0) -> int:
        if stat in STAT_NAMES:
            return getattr(self, stat)
        return default

    def add(self, deltas: Mapping[str, Any]) -> "PlayerStats":
        """Return stats with each known delta added; unknown names are ignored."""
        changes = {
            stat: getattr(self, stat) + delta for stat, delta in sparse_stats(deltas).items()
        }
        if not changes:
            return self
        return replace(self, **changes)

    def meets(self, minimums: Mapping[str, Any]) -> bool:
        return all(self.get(stat) >= value for stat, value in sparse_stats(minimums).items())

    def items(self) -> Iterator[Tuple[str, int]]:
        for stat in STAT_NAMES:
            yield stat, getattr(self, stat)

    def to_dict(self) -> Dict[str, int]:
        return dict(self.items())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "PlayerStats":
        return cls(**sparse_stats(data or {}))


@dataclass(frozen=True)
class PlayerClass:
    name: str
    level: int = 1
    unlocked_at: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "level": self.level, "unlockedAt": self.unlocked_at}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PlayerClass":
        return cls(
            name=str(data.get("name") or ""),
            level=int(data.get("level", 1)),
            unlocked_at=int(data.get("unlockedAt", 1)),
        )


@dataclass(frozen=True)
class Equipment:
    main_weapon: Optional[Item] = None
    side_weapon: Optional[Item] = None
    head: Optional[Item] = None
    body: Optional[Item] = None
    legs: Optional[Item] = None
    shoes: Optional[Item] = None
    ring1: Optional[Item] = None
    ring2: Optional[Item] = None
    necklace: Optional[Item] = None
    quick_potion: Optional[Item] = None

    def get(self, slot: str) -> Optional[Item]:
        if slot not in EQUIPMENT_SLOTS:
            return None
        return getattr(self, slot)

    def occupied(self) -> Iterator[Tuple[str, Item]]:
        for slot in EQUIPMENT_SLOTS:
            item = getattr(self, slot)
            if item is not None:
                yield slot, item

    def to_dict(self) -> Dict[str, Any]:
        return {_SLOT_KEYS.get(slot, slot): item.to_dict() for slot, item in self.occupied()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "Equipment":
        if not isinstance(data, Mapping):
            return cls()
        slots = {}
        for f in fields(cls):
            raw = data.get(_SLOT_KEYS.get(f.name, f.name), data.get(f.name))
            if isinstance(raw, Mapping):
                slots[f.name] = Item.from_dict(raw)
        return cls(**slots)


@dataclass(frozen=True)
class Player:
    name: str
    gender: str
    race: str
    classes: Tuple[PlayerClass, ...]
    active_class: str
    stats: PlayerStats
    level: int = 1
    xp: int = 0
    hearts: int = 1
    max_hearts: int = 1
    inventory: Tuple[Item, ...] = ()
    equipment: Equipment = field(default_factory=Equipment)
    current_node: str = DEFAULT_ENTRY_NODE

    @property
    def class_names(self) -> Tuple[str, ...]:
        return tuple(player_class.name for player_class in self.classes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "gender": self.gender,
            "race": self.race,
            "classes": [player_class.to_dict() for player_class in self.classes],
            "activeClass": self.active_class,
            "stats": self.stats.to_dict(),
            "level": self.level,
            "xp": self.xp,
            "hearts": self.hearts,
            "maxHearts": self.max_hearts,
            "inventory": [item.to_dict() for item in self.inventory],
            "equipment": self.equipment.to_dict(),
            "currentNode": self.current_node,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Player":
        gender = data.get("gender")
        max_hearts = max(1, int(data.get("maxHearts", 1)))
        classes = tuple(
            PlayerClass.from_dict(entry)
            for entry in data.get("classes") or []
            if isinstance(entry, Mapping)
        )
        return cls(
            name=str(data.get("name") or ""),
            gender=gender if gender in GENDERS else "other",
            race=str(data.get("race") or ""),
            classes=classes,
            active_class=str(data.get("activeClass") or (classes[0].name if classes else "")),
            stats=PlayerStats.from_dict(data.get("stats")),
            level=max(1, int(data.get("level", 1))),
            xp=max(0, int(data.get("xp", 0))),
            hearts=clamp(int(data.get("hearts", max_hearts)), 0, max_hearts),
            max_hearts=max_hearts,
            inventory=tuple(
                Item.from_dict(entry)
                for entry in data.get("inventory") or []
                if isinstance(entry, Mapping)
            ),
            equipment=Equipment.from_dict(data.get("equipment")),
            current_node=str(data.get("currentNode") or DEFAULT_ENTRY_NODE),
        )


def create_player(
    name: str,
    gender: str,
    race: str,
    player_class: str,
    race_stats: Mapping[str, Any] | None,
    class_stats: Mapping[str, Any] | None,
    *,
    entry_node: str = DEFAULT_ENTRY_NODE,
) -> Player:
    stats = PlayerStats(**BASELINE_STATS).add(race_stats or {}).add(class_stats or {})
    max_hearts = max_hearts_for(stats.vitality)
    if gender not in GENDERS:
        logger.debug("Unknown gender %r for %s; using 'other'", gender, name)
        gender = "other"
    return Player(
        name=name,
        gender=gender,
        race=race,
        classes=(PlayerClass(name=player_class, level=1, unlocked_at=1),),
        active_class=player_class,
        stats=stats,
        level=1,
        xp=0,
        hearts=max_hearts,
        max_hearts=max_hearts,
        inventory=(),
        equipment=Equipment(),
        current_node=entry_node,
    )


def is_dead(player: Player) -> bool:
    return player.hearts <= 0


def apply_effect_map(
    player: Player,
    effects: Mapping[str, Any] | None,
    *,
    allow_xp: bool = False,
    allow_max_hearts: bool = False,
) -> Player:
    """Apply a sparse effect map under the hearts rules.

    Stat deltas land first, then a ``maxHearts`` delta (floored at 1), then the
    ``hearts`` delta clamped to the current maximum. A vitality change
    recomputes the maximum from the new vitality afterwards, so that step can
    only lower hearts.
    """
    keys = STAT_NAMES + ("hearts",)
    if allow_xp:
        keys += ("xp",)
    if allow_max_hearts:
        keys += ("maxHearts",)
    deltas = sparse_stats(effects, keys)
    if not deltas:
        return player

    stats = player.stats.add(deltas)
    xp = player.xp + deltas.get("xp", 0)
    max_hearts = player.max_hearts
    if deltas.get("maxHearts"):
        max_hearts = max(1, max_hearts + deltas["maxHearts"])
    hearts = player.hearts
    if "hearts" in deltas:
        hearts = clamp(hearts + deltas["hearts"], 0, max_hearts)
    if deltas.get("vitality"):
        max_hearts = max_hearts_for(stats.vitality)
    hearts = clamp(hearts, 0, max_hearts)
    return replace(player, stats=stats, xp=xp, hearts=hearts, max_hearts=max_hearts)


def replace_variables(text: str, player: Player) -> str:
    if not text or "{" not in text:
        return text
    pronouns = PRONOUNS.get(player.gender, PRONOUNS["other"])
    values = {
        "player_name": player.name,
        "player_race": player.race,
        "player_class": player.active_class,
        **pronouns,
    }
    return TEMPLATE_PATTERN.sub(lambda match: values[match.group(1)], text)
