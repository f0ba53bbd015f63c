import json
from dataclasses import replace
from pathlib import Path

import pytest

from taleforge.content import GameData, Item, Shop, ShopItem
from taleforge.inventory import add_item_to_inventory, equip_item
from taleforge.player import create_player
from taleforge.storage import (
    PLAYER_FILENAME,
    StorageCorruptError,
    clear_player,
    load_content_snapshot,
    load_player,
    save_content,
    save_player,
    saved_story,
)

SWORD = Item(id="iron_sword", name="Iron Sword", type="weapon", sub_type="main_weapon", effects={"strength": 2})


def make_player():
    player = create_player("Kit", "female", "Elf", "Mage", {"magic": 2}, {"magic": 3})
    player = equip_item(add_item_to_inventory(player, SWORD), SWORD)
    return replace(player, xp=40, current_node="forest_path")


def test_player_round_trip_keeps_story(tmp_path: Path) -> None:
    player = make_player()

    save_player(player, tmp_path, story="The Cursed Forest")

    assert load_player(tmp_path) == player
    assert saved_story(tmp_path) == "The Cursed Forest"


def test_missing_save_returns_none(tmp_path: Path) -> None:
    assert load_player(tmp_path) is None
    assert saved_story(tmp_path) is None
    assert load_content_snapshot(tmp_path) is None


@pytest.mark.parametrize("payload", ["{not json", "[1, 2]", json.dumps({"name": "Kit"})])
def test_corrupt_player_raises(tmp_path: Path, payload: str) -> None:
    (tmp_path / PLAYER_FILENAME).write_text(payload, encoding="utf-8")

    with pytest.raises(StorageCorruptError):
        load_player(tmp_path)


def test_clear_player(tmp_path: Path) -> None:
    save_player(make_player(), tmp_path)

    assert clear_player(tmp_path)
    assert load_player(tmp_path) is None
    assert not clear_player(tmp_path)


def test_overwrite_keeps_backup(tmp_path: Path) -> None:
    first = make_player()
    save_player(first, tmp_path)
    save_player(replace(first, xp=90), tmp_path)

    backup = json.loads((tmp_path / (PLAYER_FILENAME + ".bak")).read_text(encoding="utf-8"))

    assert backup["xp"] == 40
    assert load_player(tmp_path).xp == 90
    assert not list(tmp_path.glob("*.tmp"))


def test_content_snapshot_keeps_shop_stock(tmp_path: Path) -> None:
    shop = Shop(
        id="town_general",
        name="General Store",
        items=(ShopItem(id="iron_sword", name="Iron Sword", type="weapon", value=100, stock=1),),
    )
    data = GameData(shops={shop.id: shop})
    sold_out = data.replace_shop(shop.with_item(replace(shop.items[0], stock=0)))

    save_content(sold_out, tmp_path)
    loaded = load_content_snapshot(tmp_path)

    assert loaded.shops["town_general"].find("iron_sword").stock == 0
    assert loaded == sold_out
