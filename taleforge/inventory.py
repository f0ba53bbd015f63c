"""Inventory stacking, consumables and equipment slots."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict

from taleforge.content import Item, ShopItem
from taleforge.player import (
    RING_SLOTS,
    SUB_TYPE_SLOTS,
    Equipment,
    Player,
    apply_effect_map,
)

logger = logging.getLogger(__name__)


def _held_copy(item: Item) -> Item:
    if isinstance(item, ShopItem):
        return item.as_item()
    return item


def has_item(player: Player, item_id: str) -> bool:
    return any(entry.id == item_id for entry in player.inventory)


def add_item_to_inventory(player: Player, item: Item) -> Player:
    incoming = _held_copy(item)
    inventory = list(player.inventory)
    if incoming.stackable:
        for index, entry in enumerate(inventory):
            if entry.id == incoming.id:
                inventory[index] = replace(entry, quantity=entry.quantity + incoming.quantity)
                break
        else:
            inventory.append(incoming)
    else:
        inventory.append(incoming)
    return replace(player, inventory=tuple(inventory))


def remove_item_from_inventory(player: Player, item_id: str, quantity: int = 1) -> Player:
    inventory = list(player.inventory)
    for index, entry in enumerate(inventory):
        if entry.id != item_id:
            continue
        if entry.stackable and entry.quantity > quantity:
            inventory[index] = replace(entry, quantity=entry.quantity - quantity)
        else:
            del inventory[index]
        return replace(player, inventory=tuple(inventory))
    return player


def use_item(player: Player, item: Item) -> Player:
    if item.type != "consumable":
        logger.debug("Item %s is not consumable (type=%s)", item.id, item.type)
        return player
    updated = apply_effect_map(player, item.effects, allow_max_hearts=True)
    return remove_item_from_inventory(updated, item.id, 1)


def can_equip_item(player: Player, item: Item) -> bool:
    if not item.sub_type:
        return False
    return player.stats.meets(item.requirements)


def equip_item(player: Player, item: Item) -> Player:
    if not can_equip_item(player, item):
        logger.debug("Cannot equip %s: missing slot or requirements", item.id)
        return player

    equipped = _held_copy(item)
    inventory = list(player.inventory)
    for index, entry in enumerate(inventory):
        if entry.id == equipped.id:
            del inventory[index]
            break

    equipment = player.equipment
    if equipped.sub_type == "ring":
        free = [slot for slot in RING_SLOTS if equipment.get(slot) is None]
        slot = free[0] if free else RING_SLOTS[0]
    else:
        slot = SUB_TYPE_SLOTS[equipped.sub_type]
    previous = equipment.get(slot)
    if previous is not None:
        inventory.append(previous)

    return replace(
        player,
        equipment=replace(equipment, **{slot: equipped}),
        inventory=tuple(inventory),
    )


def unequip_item(player: Player, slot: str) -> Player:
    item = player.equipment.get(slot)
    if item is None:
        return player
    return replace(
        player,
        equipment=replace(player.equipment, **{slot: None}),
        inventory=player.inventory + (item,),
    )


def get_equipped_stats(equipment: Equipment) -> Dict[str, int]:
    bonus: Dict[str, int] = {}
    for _slot, item in equipment.occupied():
        for stat, value in item.effects.items():
            bonus[stat] = bonus.get(stat, 0) + value
    return bonus


def get_total_player_stats(player: Player) -> Dict[str, int]:
    totals = player.stats.to_dict()
    totals["hearts"] = player.hearts
    totals["maxHearts"] = player.max_hearts
    for stat, value in get_equipped_stats(player.equipment).items():
        if stat in totals:
            totals[stat] += value
    return totals
