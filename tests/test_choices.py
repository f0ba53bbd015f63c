from dataclasses import replace

import pytest

from taleforge.choices import (
    apply_choice_effects,
    can_make_choice,
    describe_player_changes,
    resolve_transition,
    summarize_choice_requirements,
    visible_choices,
)
from taleforge.content import Choice, GoToNode, Item, OpenShop, StoryNode
from taleforge.dice import NOT_ROLLED, SKIPPED, DiceOutcome
from taleforge.inventory import add_item_to_inventory
from taleforge.player import create_player

COIN = Item(id="silver_coin", name="Silver Coin", type="quest", value=25)
POTION = Item(
    id="health_potion",
    name="Health Potion",
    type="consumable",
    sub_type="potion",
    effects={"hearts": 2},
    value=50,
    stackable=True,
)
CATALOG = {COIN.id: COIN, POTION.id: POTION}


def make_player(**race_stats):
    return create_player("Kit", "female", "Human", "Rogue", race_stats, {"vitality": 1})


@pytest.mark.parametrize("dice", [None, 0, 6, NOT_ROLLED, SKIPPED, DiceOutcome.rolled(6)])
def test_hidden_unless_luck_hides_regardless_of_dice(dice) -> None:
    player = make_player()
    assert player.stats.luck == 1
    choice = Choice(text="Wait for dawn", next_node="dawn", hidden_unless_luck=2)

    assert not can_make_choice(choice, player, dice)


def test_hidden_unless_luck_shows_with_enough_luck() -> None:
    choice = Choice(text="Wait for dawn", next_node="dawn", hidden_unless_luck=2)

    assert can_make_choice(choice, make_player(luck=1))


def test_require_and_items_gate_choices() -> None:
    choice = Choice(
        text="Pay the toll",
        next_node="bridge",
        require={"money": 30},
        item_requirements=("silver_coin",),
    )
    poor = make_player()
    rich = make_player(money=10)

    assert not can_make_choice(choice, rich)
    assert not can_make_choice(choice, add_item_to_inventory(poor, COIN))
    assert can_make_choice(choice, add_item_to_inventory(rich, COIN))


@pytest.mark.parametrize(
    ("dice", "expected"),
    [
        (None, False),
        (NOT_ROLLED, False),
        (0, False),
        (SKIPPED, False),
        (3, False),
        (4, True),
        (DiceOutcome.rolled(6), True),
    ],
)
def test_dice_gated_choice_needs_a_high_enough_roll(dice, expected: bool) -> None:
    choice = Choice(text="Strike", next_node="win", dice_requirement=4)

    assert can_make_choice(choice, make_player(), dice) is expected


def test_can_make_choice_is_pure() -> None:
    player = make_player()
    choice = Choice(text="Strike", next_node="win", require={"strength": 2}, dice_requirement=3)

    first = can_make_choice(choice, player, 5)
    second = can_make_choice(choice, player, 5)

    assert first == second
    assert player == make_player()


def test_luck_requirement_is_never_evaluated() -> None:
    choice = Choice(text="Gamble", next_node="win", luck_requirement=99)

    assert can_make_choice(choice, make_player())


def test_visible_choices_keep_declared_order() -> None:
    node = StoryNode(
        text="A wolf!",
        battle=True,
        dice_requirement=3,
        choices=(
            Choice(text="Fight", next_node="a", dice_requirement=4),
            Choice(text="Talk", next_node="b"),
            Choice(text="Sneak", next_node="c", dice_requirement=2),
            Choice(text="Flee", next_node="d"),
        ),
    )
    player = make_player()

    assert [c.text for c in visible_choices(node, player)] == ["Talk", "Flee"]
    assert [c.text for c in visible_choices(node, player, 3)] == ["Talk", "Sneak", "Flee"]
    assert [c.text for c in visible_choices(node, player, SKIPPED)] == ["Talk", "Flee"]


def test_apply_choice_effects_adds_xp_stats_and_rewards() -> None:
    player = make_player()
    choice = Choice(
        text="Loot",
        next_node="x",
        effects={"xp": 40, "strength": 1, "money": -5},
        item_rewards=("silver_coin", "health_potion", "health_potion", "missing_item"),
    )

    updated = apply_choice_effects(player, choice, CATALOG)

    assert updated.xp == 40
    assert updated.stats.strength == player.stats.strength + 1
    assert updated.stats.money == player.stats.money - 5
    assert [(item.id, item.quantity) for item in updated.inventory] == [
        ("silver_coin", 1),
        ("health_potion", 2),
    ]
    assert updated.current_node == player.current_node


@pytest.mark.parametrize(("delta", "expected"), [(-1, 3), (-10, 0), (5, 4)])
def test_apply_choice_effects_clamps_hearts(delta: int, expected: int) -> None:
    player = make_player()
    assert player.max_hearts == 4

    updated = apply_choice_effects(player, Choice(text="x", next_node="y", effects={"hearts": delta}), {})

    assert updated.hearts == expected


def test_apply_choice_effects_vitality_drop_clamps_hearts() -> None:
    player = make_player(vitality=2)
    assert player.max_hearts == 8

    choice = Choice(text="Curse", next_node="y", effects={"vitality": -2, "hearts": -1})
    updated = apply_choice_effects(player, choice, {})

    assert updated.max_hearts == 4
    assert updated.hearts == 4


def test_resolve_transition_variants() -> None:
    plain = Choice(text="Go", next_node="forest")
    shop = Choice(text="Browse", next_node="shop_interface")
    named = Choice(text="Browse", next_node="shop_interface", shop="mountain_outfitter")
    node = StoryNode(text="Shop", shop="town_east")

    assert resolve_transition(plain) == GoToNode("forest")
    assert resolve_transition(shop) == OpenShop("town_general")
    assert resolve_transition(shop, node) == OpenShop("town_east")
    assert resolve_transition(named, node) == OpenShop("mountain_outfitter")


def test_summarize_choice_requirements() -> None:
    choice = Choice(
        text="x",
        next_node="y",
        require={"strength": 3},
        item_requirements=("silver_coin",),
        dice_requirement=4,
    )

    assert summarize_choice_requirements(choice) == "Strength 3, Items: silver_coin, Dice 4+"
    assert summarize_choice_requirements(Choice(text="x", next_node="y")) == "None"


def test_describe_player_changes_lists_bracketed_messages() -> None:
    before = make_player()
    after = apply_choice_effects(
        before,
        Choice(text="x", next_node="y", effects={"xp": 15, "hearts": -1, "money": 5}, item_rewards=("silver_coin",)),
        CATALOG,
    )

    messages = describe_player_changes(before, after)

    assert messages == [
        "[¤] Money +5 -> 25",
        "[*] XP +15 -> 15",
        "[♥] Hearts -1 -> 3/4",
        "[#] Received {item:Silver Coin} x1",
    ]
    assert describe_player_changes(before, replace(before)) == []
