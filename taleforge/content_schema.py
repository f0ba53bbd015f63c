"""Authoring checks for Taleforge content bundles."""

from __future__ import annotations

import json
from typing import Any, List, Mapping, Sequence

from taleforge.content import (
    CHOICE_EFFECT_KEYS,
    ITEM_EFFECT_KEYS,
    ITEM_SUB_TYPES,
    ITEM_TYPES,
    RARITIES,
    STAT_NAMES,
)
from taleforge.settings import DEFAULT_ENTRY_NODE, DEFAULT_SHOP_SENTINEL

SECTIONS = ("races", "classes", "classRequirements", "items", "shops", "stories")


def path(*parts: object) -> str:
    path_str = ""
    for part in parts:
        if isinstance(part, int):
            path_str = f"{path_str}[{part}]"
            continue
        if not isinstance(part, str):
            part = str(part)
        if part.isidentifier():
            path_str = f"{path_str}.{part}" if path_str else part
        else:
            path_str = f'{path_str}[{json.dumps(part)}]'
    return path_str


def format_validation_message(path_str: str, context: str, message: str) -> str:
    if context:
        return f"{path_str}: {context}: {message}"
    return f"{path_str}: {message}"


def is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ValidationContext:
    """Utility container for accumulating validation errors."""

    def __init__(self) -> None:
        self.errors: List[str] = []

    def add(self, context: str, path_str: str, message: str) -> None:
        self.errors.append(format_validation_message(path_str, context, message))


def require(condition: bool, context: str, path_str: str, message: str, ctx: ValidationContext) -> None:
    if not condition:
        ctx.add(context, path_str, message)


def validate_stat_map(
    raw: Any,
    context: str,
    path_parts: Sequence[object],
    ctx: ValidationContext,
    *,
    allowed: Sequence[str] = STAT_NAMES,
) -> None:
    if raw is None:
        return
    if not isinstance(raw, Mapping):
        ctx.add(context, path(*path_parts), "must be an object mapping stat names to integers.")
        return
    for key, value in raw.items():
        if key not in allowed:
            ctx.add(context, path(*path_parts, key), f"unknown stat '{key}'.")
        elif not is_int(value):
            ctx.add(context, path(*path_parts, key), f"'{key}' must be an integer.")


def validate_item(
    item: Any,
    context: str,
    path_parts: Sequence[object],
    ctx: ValidationContext,
    *,
    item_id: str | None = None,
    shop_entry: bool = False,
) -> None:
    if not isinstance(item, Mapping):
        ctx.add(context, path(*path_parts), "must be an object.")
        return
    raw_id = item.get("id")
    if shop_entry or raw_id is not None:
        require(is_non_empty_str(raw_id), context, path(*path_parts, "id"), "requires a non-empty 'id'.", ctx)
    if item_id is not None and raw_id is not None and raw_id != item_id:
        ctx.add(context, path(*path_parts, "id"), f"id '{raw_id}' does not match key '{item_id}'.")
    require(
        is_non_empty_str(item.get("name")),
        context,
        path(*path_parts, "name"),
        "requires a non-empty 'name'.",
        ctx,
    )
    if item.get("type") not in ITEM_TYPES:
        ctx.add(
            context,
            path(*path_parts, "type"),
            f"'type' must be one of {', '.join(ITEM_TYPES)}.",
        )
    sub_type = item.get("subType")
    if sub_type is not None and sub_type not in ITEM_SUB_TYPES:
        ctx.add(context, path(*path_parts, "subType"), f"unsupported subType '{sub_type}'.")
    rarity = item.get("rarity")
    if rarity is not None and rarity not in RARITIES:
        ctx.add(context, path(*path_parts, "rarity"), f"unsupported rarity '{rarity}'.")
    require(is_int(item.get("value")), context, path(*path_parts, "value"), "'value' must be an integer.", ctx)
    sell_value = item.get("sellValue")
    if sell_value is not None and not is_int(sell_value):
        ctx.add(context, path(*path_parts, "sellValue"), "'sellValue' must be an integer if present.")
    quantity = item.get("quantity")
    if quantity is not None and (not is_int(quantity) or quantity < 1):
        ctx.add(context, path(*path_parts, "quantity"), "'quantity' must be a positive integer.")
    validate_stat_map(
        item.get("effects"), context, (*path_parts, "effects"), ctx, allowed=ITEM_EFFECT_KEYS
    )
    validate_stat_map(item.get("requirements"), context, (*path_parts, "requirements"), ctx)
    if shop_entry:
        stock = item.get("stock")
        if stock is not None and (not is_int(stock) or stock < 0):
            ctx.add(context, path(*path_parts, "stock"), "'stock' must be a non-negative integer.")


def validate_choice(
    choice: Any,
    node_id: str,
    index: int,
    nodes: Mapping[str, Any],
    items: Mapping[str, Any],
    shops: Mapping[str, Any],
    path_parts: Sequence[object],
    ctx: ValidationContext,
    *,
    shop_sentinel: str,
) -> None:
    context = f"Choice {index} in node '{node_id}'"
    if not isinstance(choice, Mapping):
        ctx.add(context, path(*path_parts), "must be an object.")
        return

    require(
        is_non_empty_str(choice.get("text")),
        context,
        path(*path_parts, "text"),
        "requires non-empty 'text'.",
        ctx,
    )

    target = choice.get("next_node")
    if not is_non_empty_str(target):
        ctx.add(context, path(*path_parts, "next_node"), "requires a non-empty 'next_node'.")
    elif target != shop_sentinel and target not in nodes:
        ctx.add(context, path(*path_parts, "next_node"), f"targets unknown node '{target}'.")

    validate_stat_map(
        choice.get("effects"), context, (*path_parts, "effects"), ctx, allowed=CHOICE_EFFECT_KEYS
    )
    validate_stat_map(choice.get("require"), context, (*path_parts, "require"), ctx)

    for key in ("itemRewards", "itemRequirements"):
        refs = choice.get(key)
        if refs is None:
            continue
        if not isinstance(refs, list):
            ctx.add(context, path(*path_parts, key), f"'{key}' must be a list of item ids.")
            continue
        for ref_index, ref in enumerate(refs):
            if not is_non_empty_str(ref):
                ctx.add(context, path(*path_parts, key, ref_index), "item ids must be non-empty strings.")
            elif ref not in items:
                ctx.add(context, path(*path_parts, key, ref_index), f"references unknown item '{ref}'.")

    for key in ("dice_requirement", "hidden_unless_luck", "luck_requirement"):
        value = choice.get(key)
        if value is not None and not is_int(value):
            ctx.add(context, path(*path_parts, key), f"'{key}' must be an integer if present.")

    shop = choice.get("shop")
    if shop is not None and shop not in shops:
        ctx.add(context, path(*path_parts, "shop"), f"references unknown shop '{shop}'.")


def validate_story(
    name: str,
    story: Any,
    items: Mapping[str, Any],
    shops: Mapping[str, Any],
    ctx: ValidationContext,
    *,
    entry_node: str,
    shop_sentinel: str,
) -> None:
    context = f"Story '{name}'"
    if not isinstance(story, Mapping) or not story:
        ctx.add(context, path("stories", name), "must be a non-empty object mapping node keys to nodes.")
        return
    if entry_node not in story:
        ctx.add(context, path("stories", name), f"is missing the entry node '{entry_node}'.")

    for node_id, node in story.items():
        node_path = ("stories", name, node_id)
        node_context = f"Node '{node_id}'"
        if not isinstance(node, Mapping):
            ctx.add(node_context, path(*node_path), "must be an object.")
            continue
        require(
            isinstance(node.get("text"), str),
            node_context,
            path(*node_path, "text"),
            "requires a 'text' string.",
            ctx,
        )
        dice = node.get("dice_requirement")
        if dice is not None and not is_int(dice):
            ctx.add(node_context, path(*node_path, "dice_requirement"), "must be an integer if present.")
        shop = node.get("shop")
        if shop is not None and shop not in shops:
            ctx.add(node_context, path(*node_path, "shop"), f"references unknown shop '{shop}'.")
        choices = node.get("choices")
        if choices is None:
            continue
        if not isinstance(choices, list):
            ctx.add(node_context, path(*node_path, "choices"), "choices must be provided as a list.")
            continue
        for index, choice in enumerate(choices, start=1):
            validate_choice(
                choice,
                node_id,
                index,
                story,
                items,
                shops,
                (*node_path, "choices", index - 1),
                ctx,
                shop_sentinel=shop_sentinel,
            )


def validate_content(
    content: Mapping[str, Any],
    *,
    entry_node: str = DEFAULT_ENTRY_NODE,
    shop_sentinel: str = DEFAULT_SHOP_SENTINEL,
) -> List[str]:
    ctx = ValidationContext()
    if not isinstance(content, Mapping):
        ctx.add("Content data", "", "must be an object.")
        return ctx.errors

    sections = {}
    for section in SECTIONS:
        raw = content.get(section)
        if raw is None:
            sections[section] = {}
            continue
        if not isinstance(raw, Mapping):
            ctx.add("Content data", path(section), f"'{section}' must be an object.")
            sections[section] = {}
            continue
        sections[section] = raw
    require(
        bool(sections["stories"]),
        "Content data",
        path("stories"),
        "must include at least one story.",
        ctx,
    )

    for section in ("races", "classes"):
        for name, stats in sections[section].items():
            validate_stat_map(stats, f"{section[:-1].title()} '{name}'", (section, name), ctx)
            if stats is None:
                ctx.add(f"{section[:-1].title()} '{name}'", path(section, name), "must be an object.")

    for name, requirement in sections["classRequirements"].items():
        context = f"Class requirement '{name}'"
        if not isinstance(requirement, Mapping):
            ctx.add(context, path("classRequirements", name), "must be an object.")
            continue
        if name not in sections["classes"]:
            ctx.add(context, path("classRequirements", name), f"no class named '{name}' is defined.")
        level = requirement.get("requiredLevel")
        if not is_int(level) or level < 1:
            ctx.add(context, path("classRequirements", name, "requiredLevel"), "must be a positive integer.")
        validate_stat_map(
            requirement.get("requiredStats"),
            context,
            ("classRequirements", name, "requiredStats"),
            ctx,
        )

    for item_id, item in sections["items"].items():
        validate_item(item, f"Item '{item_id}'", ("items", item_id), ctx, item_id=item_id)

    for shop_id, shop in sections["shops"].items():
        context = f"Shop '{shop_id}'"
        if not isinstance(shop, Mapping):
            ctx.add(context, path("shops", shop_id), "must be an object.")
            continue
        for key in ("buyMultiplier", "sellMultiplier"):
            if not is_number(shop.get(key)):
                ctx.add(context, path("shops", shop_id, key), f"'{key}' must be a number.")
        entries = shop.get("items")
        if not isinstance(entries, list):
            ctx.add(context, path("shops", shop_id, "items"), "'items' must be a list.")
            continue
        for index, entry in enumerate(entries):
            validate_item(
                entry,
                f"{context} item {index + 1}",
                ("shops", shop_id, "items", index),
                ctx,
                shop_entry=True,
            )

    for name, story in sections["stories"].items():
        validate_story(
            name,
            story,
            sections["items"],
            sections["shops"],
            ctx,
            entry_node=entry_node,
            shop_sentinel=shop_sentinel,
        )

    return ctx.errors
