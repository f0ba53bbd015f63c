from dataclasses import replace

import pytest

from taleforge.content import GameData
from taleforge.session import GameSession, SessionError
from taleforge.settings import Settings

CONTENT = {
    "races": {"Human": {"strength": 1, "vitality": 1, "money": 80}},
    "classes": {
        "Warrior": {"strength": 3, "vitality": 1},
        "Knight": {"strength": 2, "vitality": 1},
    },
    "classRequirements": {
        "Knight": {"requiredStats": {"strength": 3}, "requiredLevel": 5, "description": "Oathsworn"}
    },
    "items": {
        "health_potion": {
            "id": "health_potion",
            "name": "Health Potion",
            "type": "consumable",
            "subType": "potion",
            "effects": {"hearts": 2},
            "value": 50,
            "stackable": True,
        },
        "iron_sword": {
            "id": "iron_sword",
            "name": "Iron Sword",
            "type": "weapon",
            "subType": "main_weapon",
            "effects": {"strength": 2},
            "value": 100,
            "sellValue": 50,
        },
    },
    "shops": {
        "town_general": {
            "id": "town_general",
            "name": "General Store",
            "buyMultiplier": 1.0,
            "sellMultiplier": 0.5,
            "items": [
                {"id": "health_potion", "name": "Health Potion", "type": "consumable",
                 "subType": "potion", "effects": {"hearts": 2}, "value": 50, "stackable": True,
                 "stock": 2},
            ],
        }
    },
    "stories": {
        "Trial": {
            "intro": {
                "text": "Hello {player_name}.",
                "choices": [
                    {"text": "Train", "next_node": "camp", "effects": {"xp": 100}},
                    {"text": "Jump into the pit", "next_node": "camp", "effects": {"hearts": -99}},
                    {"text": "Visit the store", "next_node": "shop_interface"},
                    {"text": "Meditate", "next_node": "camp"},
                    {"text": "Secret door", "next_node": "end", "hidden_unless_luck": 9},
                    {"text": "Find a sword", "next_node": "camp", "itemRewards": ["iron_sword"]},
                    {
                        "text": "Haggle at the store",
                        "next_node": "shop_interface",
                        "effects": {"xp": 150, "money": 10},
                        "itemRewards": ["iron_sword"],
                    },
                ],
            },
            "camp": {
                "text": "A bandit attacks!",
                "battle": True,
                "dice_requirement": 3,
                "choices": [
                    {"text": "Strike", "next_node": "end", "effects": {"xp": 10}, "dice_requirement": 4},
                    {"text": "Flee", "next_node": "end"},
                ],
            },
            "end": {
                "text": "Fin.",
                "is_ending": True,
                "choices": [{"text": "Again", "next_node": "intro"}],
            },
        }
    },
}


class FixedRng:
    def __init__(self, value: int) -> None:
        self.value = value
        self.calls = []

    def randint(self, low: int, high: int) -> int:
        self.calls.append((low, high))
        return self.value


def make_session(**player_changes) -> GameSession:
    session = GameSession.new_game(
        GameData.from_dict(CONTENT), "Kit", "female", "Human", "Warrior", "Trial", rng=FixedRng(5)
    )
    if player_changes:
        session.player = replace(session.player, **player_changes)
    return session


def choose_text(session: GameSession, text: str):
    choice = next(c for c in session.visible_choices() if c.text == text)
    return session.choose(choice)


def test_new_game_builds_player_from_content() -> None:
    session = make_session()

    assert session.player.stats.strength == 5
    assert session.player.stats.money == 100
    assert session.player.max_hearts == 6
    assert session.player.current_node == "intro"
    assert session.node.text == "Hello {player_name}."


def test_unknown_story_is_rejected() -> None:
    with pytest.raises(SessionError):
        GameSession.new_game(GameData.from_dict(CONTENT), "Kit", "male", "Human", "Warrior", "Nope")


def test_choose_applies_effects_and_advances() -> None:
    session = make_session()

    outcome = choose_text(session, "Find a sword")

    assert session.player.current_node == "camp"
    assert [item.id for item in session.player.inventory] == ["iron_sword"]
    assert "[#] Received {item:Iron Sword} x1" in outcome.messages
    assert not outcome.died and not outcome.leveled_up


def test_hidden_choice_cannot_be_chosen() -> None:
    session = make_session()
    secret = session.node.choices[4]

    assert secret not in session.visible_choices()
    with pytest.raises(SessionError):
        session.choose(secret)


def test_choose_by_index_uses_visible_list() -> None:
    session = make_session()

    session.choose(3)

    assert session.player.current_node == "camp"
    with pytest.raises(SessionError):
        session.choose(42)


def test_death_ends_the_run() -> None:
    session = make_session()

    outcome = choose_text(session, "Jump into the pit")

    assert outcome.died
    assert session.ended
    assert session.player.hearts == 0
    assert session.player.current_node == "intro"
    with pytest.raises(SessionError):
        session.choose(0)


def test_dice_roll_is_resolved_once_per_visit() -> None:
    session = make_session()
    choose_text(session, "Meditate")
    assert session.awaiting_dice
    assert [c.text for c in session.visible_choices()] == ["Flee"]

    assert session.roll() == 5
    assert not session.awaiting_dice
    assert [c.text for c in session.visible_choices()] == ["Strike", "Flee"]
    with pytest.raises(SessionError):
        session.roll()
    with pytest.raises(SessionError):
        session.skip_dice()

    choose_text(session, "Strike")
    assert session.player.current_node == "end"
    assert not session.dice.resolved


def test_luck_advantage_raises_the_roll_floor() -> None:
    session = make_session()
    choose_text(session, "Meditate")
    session.player = replace(session.player, stats=replace(session.player.stats, luck=3))

    session.roll()

    assert session.rng.calls == [(4, 6)]


def test_skipping_dice_keeps_gated_choices_hidden() -> None:
    session = make_session()
    choose_text(session, "Meditate")

    session.skip_dice()

    assert [c.text for c in session.visible_choices()] == ["Flee"]


def test_level_up_grants_points_and_blocks_choices() -> None:
    session = make_session()

    outcome = choose_text(session, "Train")

    assert outcome.leveled_up
    assert session.player.level == 2
    assert session.player.xp == 100
    assert session.pending_points == 2
    with pytest.raises(SessionError):
        session.choose(0)
    with pytest.raises(SessionError):
        session.allocate_point("strength", 3)
    with pytest.raises(SessionError):
        session.allocate_point("charisma")

    session.allocate_point("strength")
    session.allocate_point("vitality")

    assert session.pending_points == 0
    assert not session.busy
    assert session.player.max_hearts == 8


def test_extra_xp_levels_again_after_allocation() -> None:
    session = make_session(xp=150)

    choose_text(session, "Train")
    assert session.player.level == 2

    session.allocate_point("luck", 2)

    assert session.player.level == 3
    assert session.pending_points == 2


def test_class_unlock_offered_at_level_five() -> None:
    session = make_session(level=4, xp=400)

    choose_text(session, "Meditate")
    session.allocate_point("strength", 2)

    assert session.class_offer
    assert session.class_offers() == ["Knight"]
    with pytest.raises(SessionError):
        session.select_class("Warrior")

    session.select_class("Knight")

    assert session.player.class_names == ("Warrior", "Knight")
    assert session.player.classes[-1].unlocked_at == 5
    assert not session.class_offer


def test_class_unlock_can_be_declined() -> None:
    session = make_session(level=4, xp=400)
    choose_text(session, "Meditate")
    session.allocate_point("magic", 2)

    session.select_class(None)

    assert session.player.class_names == ("Warrior",)
    assert not session.busy
    with pytest.raises(SessionError):
        session.select_class(None)


def test_shop_choice_opens_default_shop_and_stays_put() -> None:
    session = make_session()

    outcome = choose_text(session, "Visit the store")

    assert outcome.opened_shop == "town_general"
    assert session.player.current_node == "intro"
    assert session.shop.name == "General Store"


def test_shop_choice_skips_effects_and_rewards() -> None:
    session = make_session()
    before = session.player

    for _ in range(3):
        outcome = choose_text(session, "Haggle at the store")
        session.close_shop()

        assert outcome.opened_shop == "town_general"
        assert outcome.messages == []
        assert not outcome.leveled_up

    assert session.player == before
    assert session.pending_points == 0


def test_buying_updates_player_and_shop_stock() -> None:
    session = make_session()
    session.open_shop("town_general")

    assert session.buy("health_potion")
    assert session.buy("health_potion")
    assert not session.buy("health_potion")

    assert session.player.stats.money == 0
    assert session.player.inventory[0].quantity == 2
    assert session.game_data.shops["town_general"].find("health_potion").stock == 0


def test_selling_requires_an_open_shop() -> None:
    session = make_session()
    choose_text(session, "Find a sword")

    with pytest.raises(SessionError):
        session.sell("iron_sword")

    session.open_shop("town_general")
    assert session.sell("iron_sword")
    assert session.player.stats.money == 125
    assert session.player.inventory == ()
    session.close_shop()
    assert session.shop is None


def test_unknown_shop_is_rejected() -> None:
    with pytest.raises(SessionError):
        make_session().open_shop("black_market")


def test_equip_use_and_unequip_through_session() -> None:
    session = make_session()
    choose_text(session, "Find a sword")

    assert session.equip("iron_sword")
    assert session.player.equipment.main_weapon.id == "iron_sword"
    assert session.unequip("main_weapon")
    assert not session.unequip("main_weapon")

    session.open_shop("town_general")
    session.buy("health_potion")
    session.player = replace(session.player, hearts=1)
    messages = session.use("health_potion")

    assert session.player.hearts == 3
    assert messages == ["[♥] Hearts +2 -> 3/6"]
    with pytest.raises(SessionError):
        session.use("health_potion")


def test_loaded_player_on_missing_node_restarts_at_entry() -> None:
    session = make_session()
    stray = replace(session.player, current_node="somewhere_else")

    resumed = GameSession(session.game_data, stray, "Trial", settings=Settings())

    assert resumed.player.current_node == "intro"
