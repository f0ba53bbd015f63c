"""Shop pricing, purchases and sales."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import List, Tuple

from taleforge.content import Item, Shop, ShopItem
from taleforge.inventory import add_item_to_inventory, remove_item_from_inventory
from taleforge.player import Player

logger = logging.getLogger(__name__)

DEFAULT_SELL_RATIO = 0.5


def buy_price(item: Item, shop: Shop) -> int:
    return math.floor(item.value * shop.buy_multiplier)


def sell_price(item: Item, shop: Shop) -> int:
    base = item.sell_value if item.sell_value is not None else item.value * DEFAULT_SELL_RATIO
    return math.floor(base * shop.sell_multiplier)


def in_stock(shop_item: ShopItem) -> bool:
    return shop_item.stock is None or shop_item.stock > 0


def can_buy(player: Player, shop_item: ShopItem, shop: Shop) -> bool:
    return player.stats.money >= buy_price(shop_item, shop) and in_stock(shop_item)


def buy_item(player: Player, shop: Shop, item_id: str) -> Tuple[Player, Shop]:
    """Buy one unit. Rejected purchases return both inputs unchanged."""
    shop_item = shop.find(item_id)
    if shop_item is None:
        logger.debug("Shop %s does not list %r", shop.id, item_id)
        return player, shop
    price = buy_price(shop_item, shop)
    if not can_buy(player, shop_item, shop):
        logger.debug(
            "Purchase of %s rejected: price=%d money=%d stock=%s",
            item_id,
            price,
            player.stats.money,
            shop_item.stock,
        )
        return player, shop

    updated = replace(player, stats=player.stats.add({"money": -price}))
    updated = add_item_to_inventory(updated, shop_item)
    if shop_item.stock is not None:
        shop = shop.with_item(replace(shop_item, stock=shop_item.stock - 1))
    logger.info("Bought %s from %s for %d", item_id, shop.id, price)
    return updated, shop


def sell_item(player: Player, shop: Shop, item: Item) -> Player:
    if not any(entry.id == item.id for entry in player.inventory):
        logger.debug("Cannot sell %s: not in inventory", item.id)
        return player
    price = sell_price(item, shop)
    updated = replace(player, stats=player.stats.add({"money": price}))
    logger.info("Sold %s to %s for %d", item.id, shop.id, price)
    return remove_item_from_inventory(updated, item.id, 1)


def sellable_items(player: Player) -> List[Item]:
    """Held items a shop will take: not quest items, and with a declared sell value."""
    return [
        item for item in player.inventory if item.type != "quest" and item.sell_value is not None
    ]
