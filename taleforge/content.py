"""Declarative content model: races, classes, items, shops and stories.

Content is read-only for the engine. Parsing is tolerant: unknown stat names
are dropped, non-numeric values are skipped and malformed entries are ignored,
so a damaged bundle degrades instead of crashing. Strict checks live in
``taleforge.content_schema`` and are applied by :func:`load_content`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

STAT_NAMES: Tuple[str, ...] = ("strength", "magic", "vitality", "luck", "reputation", "money")
HEART_KEYS: Tuple[str, ...] = ("hearts", "maxHearts")
ITEM_EFFECT_KEYS: Tuple[str, ...] = STAT_NAMES + HEART_KEYS
CHOICE_EFFECT_KEYS: Tuple[str, ...] = STAT_NAMES + ("xp", "hearts")

ITEM_TYPES = ("weapon", "armor", "accessory", "consumable", "quest")
ITEM_SUB_TYPES = (
    "main_weapon",
    "side_weapon",
    "head",
    "body",
    "legs",
    "shoes",
    "ring",
    "necklace",
    "potion",
)
RARITIES = ("common", "uncommon", "rare", "epic", "legendary")

DEFAULT_CONTENT_PATH = Path(__file__).resolve().parent / "data" / "default_content.json"

StatMap = Dict[str, int]


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _as_optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return _as_int(value)


def _as_str_tuple(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        return (value,) if value else ()
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(entry for entry in value if isinstance(entry, str) and entry)


def sparse_stats(raw: Any, allowed: Iterable[str] = STAT_NAMES) -> StatMap:
    """Keep the known, numeric entries of a sparse stat map in canonical order."""
    if not isinstance(raw, Mapping):
        return {}
    result: StatMap = {}
    for key in allowed:
        if key not in raw:
            continue
        value = _as_int(raw[key])
        if value is None:
            logger.debug("Ignoring non-numeric stat %r=%r", key, raw[key])
            continue
        result[key] = value
    return result


@dataclass(frozen=True)
class Item:
    """Item template; held items are copies with their own quantity."""

    id: str
    name: str
    type: str
    description: str = ""
    sub_type: Optional[str] = None
    effects: StatMap = field(default_factory=dict)
    requirements: StatMap = field(default_factory=dict)
    value: int = 0
    sell_value: Optional[int] = None
    stackable: bool = False
    quantity: int = 1
    rarity: Optional[str] = None

    @classmethod
    def _parse_fields(cls, data: Mapping[str, Any], item_id: Optional[str]) -> Dict[str, Any]:
        raw_id = data.get("id") or item_id or ""
        quantity = _as_int(data.get("quantity"))
        sub_type = data.get("subType", data.get("sub_type"))
        return {
            "id": str(raw_id),
            "name": str(data.get("name") or raw_id),
            "type": str(data.get("type") or "quest"),
            "description": str(data.get("description") or ""),
            "sub_type": sub_type if sub_type in ITEM_SUB_TYPES else None,
            "effects": sparse_stats(data.get("effects"), ITEM_EFFECT_KEYS),
            "requirements": sparse_stats(data.get("requirements")),
            "value": _as_int(data.get("value")) or 0,
            "sell_value": _as_optional_int(data.get("sellValue", data.get("sell_value"))),
            "stackable": bool(data.get("stackable", False)),
            "quantity": quantity if quantity and quantity > 0 else 1,
            "rarity": data.get("rarity") if data.get("rarity") in RARITIES else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], item_id: Optional[str] = None) -> "Item":
        return cls(**cls._parse_fields(data, item_id))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "value": self.value,
        }
        if self.sub_type:
            data["subType"] = self.sub_type
        if self.effects:
            data["effects"] = dict(self.effects)
        if self.requirements:
            data["requirements"] = dict(self.requirements)
        if self.sell_value is not None:
            data["sellValue"] = self.sell_value
        if self.stackable:
            data["stackable"] = True
            data["quantity"] = self.quantity
        if self.rarity:
            data["rarity"] = self.rarity
        return data


@dataclass(frozen=True)
class ShopItem(Item):
    stock: Optional[int] = None
    restock_time: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], item_id: Optional[str] = None) -> "ShopItem":
        parsed = cls._parse_fields(data, item_id)
        parsed["stock"] = _as_optional_int(data.get("stock"))
        parsed["restock_time"] = _as_optional_int(data.get("restockTime", data.get("restock_time")))
        return cls(**parsed)

    def as_item(self) -> Item:
        """Strip shop bookkeeping so the result can enter an inventory."""
        return Item(**{f.name: getattr(self, f.name) for f in fields(Item)})

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.stock is not None:
            data["stock"] = self.stock
        if self.restock_time is not None:
            data["restockTime"] = self.restock_time
        return data


@dataclass(frozen=True)
class Shop:
    id: str
    name: str
    items: Tuple[ShopItem, ...] = ()
    buy_multiplier: float = 1.0
    sell_multiplier: float = 1.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], shop_id: Optional[str] = None) -> "Shop":
        raw_id = data.get("id") or shop_id or ""
        items = tuple(
            ShopItem.from_dict(entry) for entry in data.get("items") or [] if isinstance(entry, Mapping)
        )

        def _multiplier(key: str) -> float:
            try:
                return float(data.get(key, 1.0))
            except (TypeError, ValueError):
                return 1.0

        return cls(
            id=str(raw_id),
            name=str(data.get("name") or raw_id),
            items=items,
            buy_multiplier=_multiplier("buyMultiplier"),
            sell_multiplier=_multiplier("sellMultiplier"),
        )

    def find(self, item_id: str) -> Optional[ShopItem]:
        for entry in self.items:
            if entry.id == item_id:
                return entry
        return None

    def with_item(self, updated: ShopItem) -> "Shop":
        items = tuple(updated if entry.id == updated.id else entry for entry in self.items)
        return replace(self, items=items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "buyMultiplier": self.buy_multiplier,
            "sellMultiplier": self.sell_multiplier,
            "items": [entry.to_dict() for entry in self.items],
        }


@dataclass(frozen=True)
class Choice:
    text: str
    next_node: str
    effects: StatMap = field(default_factory=dict)
    item_rewards: Tuple[str, ...] = ()
    item_requirements: Tuple[str, ...] = ()
    require: StatMap = field(default_factory=dict)
    dice_requirement: Optional[int] = None
    hidden_unless_luck: Optional[int] = None
    # Parsed and written back, never evaluated.
    luck_requirement: Optional[int] = None
    shop: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Choice":
        shop = data.get("shop")
        return cls(
            text=str(data.get("text") or ""),
            next_node=str(data.get("next_node") or ""),
            effects=sparse_stats(data.get("effects"), CHOICE_EFFECT_KEYS),
            item_rewards=_as_str_tuple(data.get("itemRewards")),
            item_requirements=_as_str_tuple(data.get("itemRequirements")),
            require=sparse_stats(data.get("require")),
            dice_requirement=_as_optional_int(data.get("dice_requirement")),
            hidden_unless_luck=_as_optional_int(data.get("hidden_unless_luck")),
            luck_requirement=_as_optional_int(data.get("luck_requirement")),
            shop=shop if isinstance(shop, str) and shop else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"text": self.text, "next_node": self.next_node}
        if self.effects:
            data["effects"] = dict(self.effects)
        if self.item_rewards:
            data["itemRewards"] = list(self.item_rewards)
        if self.item_requirements:
            data["itemRequirements"] = list(self.item_requirements)
        if self.require:
            data["require"] = dict(self.require)
        for key in ("dice_requirement", "hidden_unless_luck", "luck_requirement"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.shop:
            data["shop"] = self.shop
        return data


@dataclass(frozen=True)
class StoryNode:
    text: str
    battle: bool = False
    choices: Tuple[Choice, ...] = ()
    dice_requirement: Optional[int] = None
    is_ending: bool = False
    shop: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StoryNode":
        shop = data.get("shop")
        return cls(
            text=str(data.get("text") or ""),
            battle=bool(data.get("battle", False)),
            choices=tuple(
                Choice.from_dict(entry)
                for entry in data.get("choices") or []
                if isinstance(entry, Mapping)
            ),
            dice_requirement=_as_optional_int(data.get("dice_requirement")),
            is_ending=bool(data.get("is_ending", False)),
            shop=shop if isinstance(shop, str) and shop else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "text": self.text,
            "battle": self.battle,
            "choices": [choice.to_dict() for choice in self.choices],
        }
        if self.dice_requirement is not None:
            data["dice_requirement"] = self.dice_requirement
        if self.is_ending:
            data["is_ending"] = True
        if self.shop:
            data["shop"] = self.shop
        return data


Story = Dict[str, StoryNode]


@dataclass(frozen=True)
class ClassRequirement:
    required_stats: StatMap = field(default_factory=dict)
    required_level: int = 1
    description: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClassRequirement":
        level = _as_int(data.get("requiredLevel"))
        return cls(
            required_stats=sparse_stats(data.get("requiredStats")),
            required_level=level if level is not None else 1,
            description=str(data.get("description") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requiredStats": dict(self.required_stats),
            "requiredLevel": self.required_level,
            "description": self.description,
        }


@dataclass(frozen=True)
class GoToNode:
    node: str


@dataclass(frozen=True)
class OpenShop:
    shop_id: str


NodeTransition = Union[GoToNode, OpenShop]


def _mapping_entries(raw: Any) -> Iterable[Tuple[str, Mapping[str, Any]]]:
    if not isinstance(raw, Mapping):
        return []
    return [
        (key, value)
        for key, value in raw.items()
        if isinstance(key, str) and key and isinstance(value, Mapping)
    ]


@dataclass(frozen=True)
class GameData:
    """A complete content bundle as handed to the engine by the host."""

    races: Dict[str, StatMap] = field(default_factory=dict)
    classes: Dict[str, StatMap] = field(default_factory=dict)
    class_requirements: Dict[str, ClassRequirement] = field(default_factory=dict)
    items: Dict[str, Item] = field(default_factory=dict)
    shops: Dict[str, Shop] = field(default_factory=dict)
    stories: Dict[str, Story] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameData":
        if not isinstance(data, Mapping):
            return cls()
        return cls(
            races={key: sparse_stats(value) for key, value in _mapping_entries(data.get("races"))},
            classes={
                key: sparse_stats(value) for key, value in _mapping_entries(data.get("classes"))
            },
            class_requirements={
                key: ClassRequirement.from_dict(value)
                for key, value in _mapping_entries(data.get("classRequirements"))
            },
            items={
                key: Item.from_dict(value, key) for key, value in _mapping_entries(data.get("items"))
            },
            shops={
                key: Shop.from_dict(value, key) for key, value in _mapping_entries(data.get("shops"))
            },
            stories={
                name: {
                    node_id: StoryNode.from_dict(node)
                    for node_id, node in _mapping_entries(story)
                }
                for name, story in _mapping_entries(data.get("stories"))
            },
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "races": {key: dict(value) for key, value in self.races.items()},
            "classes": {key: dict(value) for key, value in self.classes.items()},
            "classRequirements": {
                key: value.to_dict() for key, value in self.class_requirements.items()
            },
            "items": {key: value.to_dict() for key, value in self.items.items()},
            "shops": {key: value.to_dict() for key, value in self.shops.items()},
            "stories": {
                name: {node_id: node.to_dict() for node_id, node in story.items()}
                for name, story in self.stories.items()
            },
        }

    def story(self, name: str) -> Story:
        return self.stories.get(name, {})

    def replace_shop(self, shop: Shop) -> "GameData":
        shops = dict(self.shops)
        shops[shop.id] = shop
        return replace(self, shops=shops)


def _raise_content_validation(errors):
    raise ValueError("Invalid content bundle:\n- " + "\n- ".join(errors))


def load_content(path: Path | str = DEFAULT_CONTENT_PATH, *, validate: bool = True) -> GameData:
    # Deferred: content_schema imports the constants above.
    from .content_schema import validate_content

    with open(path, "r", encoding="utf-8") as handle:
        raw = json.load(handle)
    if not isinstance(raw, dict):
        _raise_content_validation(["Content data must be a JSON object."])
    if validate:
        errors = validate_content(raw)
        if errors:
            _raise_content_validation(errors)
    data = GameData.from_dict(raw)
    logger.info(
        "Loaded content from %s: %d stories, %d items, %d shops",
        path,
        len(data.stories),
        len(data.items),
        len(data.shops),
    )
    return data
