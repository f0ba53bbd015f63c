"""Choice visibility, effect application and transitions."""

from __future__ import annotations

import logging
from typing import List, Mapping, Optional

from taleforge.content import (
    STAT_NAMES,
    Choice,
    GoToNode,
    Item,
    NodeTransition,
    OpenShop,
    StoryNode,
)
from taleforge.dice import DiceInput, as_outcome
from taleforge.inventory import add_item_to_inventory, has_item
from taleforge.player import Player, apply_effect_map
from taleforge.settings import DEFAULT_SHOP_ID, DEFAULT_SHOP_SENTINEL

logger = logging.getLogger(__name__)


# ---------- Conditions ----------
def can_make_choice(choice: Choice, player: Player, dice: DiceInput = None) -> bool:
    if not player.stats.meets(choice.require):
        return False
    if not all(has_item(player, item_id) for item_id in choice.item_requirements):
        return False
    if choice.hidden_unless_luck and player.stats.luck < choice.hidden_unless_luck:
        return False
    if choice.dice_requirement:
        return as_outcome(dice).meets(choice.dice_requirement)
    return True


def visible_choices(node: StoryNode, player: Player, dice: DiceInput = None) -> List[Choice]:
    outcome = as_outcome(dice)
    return [choice for choice in node.choices if can_make_choice(choice, player, outcome)]


# ---------- Effects ----------
def apply_choice_effects(player: Player, choice: Choice, item_catalog: Mapping[str, Item]) -> Player:
    updated = apply_effect_map(player, choice.effects, allow_xp=True)
    for item_id in choice.item_rewards:
        item = item_catalog.get(item_id)
        if item is None:
            logger.debug("Skipping unknown reward item %r from choice %r", item_id, choice.text)
            continue
        updated = add_item_to_inventory(updated, item)
    return updated


def resolve_transition(
    choice: Choice,
    node: Optional[StoryNode] = None,
    *,
    shop_sentinel: str = DEFAULT_SHOP_SENTINEL,
    default_shop: str = DEFAULT_SHOP_ID,
) -> NodeTransition:
    if choice.next_node == shop_sentinel:
        shop_id = choice.shop or (node.shop if node is not None else None) or default_shop
        return OpenShop(shop_id)
    return GoToNode(choice.next_node)


# ---------- Labels ----------
def summarize_choice_requirements(choice: Choice) -> str:
    parts = []
    if choice.require:
        parts.append(
            ", ".join(f"{stat.title()} {value}" for stat, value in choice.require.items())
        )
    if choice.item_requirements:
        parts.append(f"Items: {'/'.join(choice.item_requirements)}")
    if choice.dice_requirement:
        parts.append(f"Dice {choice.dice_requirement}+")
    if choice.hidden_unless_luck:
        parts.append(f"Luck {choice.hidden_unless_luck}+")
    return ", ".join(parts) if parts else "None"


def _signed(value: int) -> str:
    return f"{'+' if value >= 0 else ''}{value}"


def describe_player_changes(before: Player, after: Player) -> List[str]:
    """Bracketed change lines in the order effects are applied."""
    messages = []
    for stat in STAT_NAMES:
        old, new = before.stats.get(stat), after.stats.get(stat)
        if old != new:
            marker = "¤" if stat == "money" else "+"
            messages.append(f"[{marker}] {stat.title()} {_signed(new - old)} -> {new}")
    if before.xp != after.xp:
        messages.append(f"[*] XP {_signed(after.xp - before.xp)} -> {after.xp}")
    if before.max_hearts != after.max_hearts:
        messages.append(f"[♥] Max hearts -> {after.max_hearts}")
    if before.hearts != after.hearts:
        messages.append(
            f"[♥] Hearts {_signed(after.hearts - before.hearts)} -> {after.hearts}/{after.max_hearts}"
        )
    held_before = {}
    for item in before.inventory:
        held_before[item.id] = held_before.get(item.id, 0) + item.quantity
    held_after = {}
    for item in after.inventory:
        held_after[item.id] = held_after.get(item.id, 0) + item.quantity
    for item in after.inventory:
        gained = held_after.get(item.id, 0) - held_before.get(item.id, 0)
        if gained > 0:
            messages.append(f"[#] Received {{item:{item.name}}} x{gained}")
            held_before[item.id] = held_after[item.id]
    return messages
