"""One player's run through a story: choices, dice, level-ups and shops."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field, replace
from typing import List, Optional, Union

from taleforge import commerce
from taleforge.choices import (
    apply_choice_effects,
    describe_player_changes,
    resolve_transition,
    visible_choices,
)
from taleforge.content import Choice, GameData, OpenShop, Shop, Story, StoryNode
from taleforge.dice import NOT_ROLLED, SKIPPED, DiceOutcome, has_luck_advantage, roll_dice
from taleforge.inventory import equip_item, unequip_item, use_item
from taleforge.player import Player, create_player, is_dead
from taleforge.progression import (
    add_class_to_player,
    apply_stat_increase,
    can_level_up,
    class_unlock_offered,
    level_up_player,
    unlockable_classes,
)
from taleforge.settings import Settings

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """Raised when a session is driven out of sequence."""


@dataclass
class ChoiceOutcome:
    """What one resolved choice did to the run."""

    player: Player
    messages: List[str] = field(default_factory=list)
    died: bool = False
    leveled_up: bool = False
    opened_shop: Optional[str] = None


class GameSession:
    """Holds the content bundle, the player and the per-visit dice state.

    Every mutating call replaces ``player`` (and ``game_data`` for shop
    stock) with new values, so a host can snapshot either at any point.
    """

    def __init__(
        self,
        game_data: GameData,
        player: Player,
        story_name: str,
        *,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        if story_name not in game_data.stories:
            raise SessionError(f"Unknown story '{story_name}'.")
        self.game_data = game_data
        self.player = player
        self.story_name = story_name
        self.settings = settings or Settings()
        self.rng = rng
        self.dice: DiceOutcome = NOT_ROLLED
        self.pending_points = 0
        self.class_offer = False
        self.current_shop: Optional[str] = None
        self.ended = False
        if player.current_node not in self.story:
            logger.debug(
                "Player node %r not in story %s; starting at %s",
                player.current_node,
                story_name,
                self.settings.entry_node,
            )
            self.player = replace(player, current_node=self.settings.entry_node)

    @classmethod
    def new_game(
        cls,
        game_data: GameData,
        name: str,
        gender: str,
        race: str,
        player_class: str,
        story_name: str,
        *,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ) -> "GameSession":
        settings = settings or Settings()
        player = create_player(
            name,
            gender,
            race,
            player_class,
            game_data.races.get(race),
            game_data.classes.get(player_class),
            entry_node=settings.entry_node,
        )
        return cls(game_data, player, story_name, settings=settings, rng=rng)

    # ---------- State ----------
    @property
    def story(self) -> Story:
        return self.game_data.story(self.story_name)

    @property
    def node(self) -> StoryNode:
        node = self.story.get(self.player.current_node)
        if node is None:
            raise SessionError(f"Node '{self.player.current_node}' is missing from '{self.story_name}'.")
        return node

    @property
    def shop(self) -> Optional[Shop]:
        if self.current_shop is None:
            return None
        return self.game_data.shops.get(self.current_shop)

    @property
    def awaiting_dice(self) -> bool:
        return self.node.battle and not self.dice.resolved

    @property
    def busy(self) -> bool:
        """True while a level-up allocation or class offer blocks choices."""
        return self.pending_points > 0 or self.class_offer

    def _require_active(self) -> None:
        if self.ended:
            raise SessionError("The run has ended.")

    # ---------- Dice ----------
    def roll(self) -> int:
        self._require_active()
        if self.dice.resolved:
            raise SessionError("Dice were already resolved for this node.")
        value = roll_dice(has_luck_advantage(self.player, self.node), self.rng)
        self.dice = DiceOutcome.rolled(value)
        logger.debug("Rolled %d at %s", value, self.player.current_node)
        return value

    def skip_dice(self) -> None:
        self._require_active()
        if self.dice.resolved:
            raise SessionError("Dice were already resolved for this node.")
        self.dice = SKIPPED

    # ---------- Choices ----------
    def visible_choices(self) -> List[Choice]:
        return visible_choices(self.node, self.player, self.dice)

    def choose(self, choice: Union[Choice, int]) -> ChoiceOutcome:
        """Resolve a visible choice: effects, death check, transition, level-up."""
        self._require_active()
        if self.busy:
            raise SessionError("Finish the level-up before choosing.")
        available = self.visible_choices()
        if isinstance(choice, int):
            if not 0 <= choice < len(available):
                raise SessionError(f"No visible choice at index {choice}.")
            choice = available[choice]
        elif choice not in available:
            raise SessionError(f"Choice '{choice.text}' is not available.")

        transition = resolve_transition(
            choice,
            self.node,
            shop_sentinel=self.settings.shop_sentinel,
            default_shop=self.settings.default_shop,
        )
        # Shop choices only open commerce: no effects, rewards or level-up.
        if isinstance(transition, OpenShop):
            self.open_shop(transition.shop_id)
            return ChoiceOutcome(player=self.player, opened_shop=transition.shop_id)

        before = self.player
        updated = apply_choice_effects(before, choice, self.game_data.items)
        outcome = ChoiceOutcome(player=updated, messages=describe_player_changes(before, updated))

        if is_dead(updated):
            self.player = updated
            self.ended = True
            outcome.died = True
            outcome.messages.append("[x] Your hero has fallen. The adventure ends here.")
            logger.info("%s died at %s", updated.name, before.current_node)
            return outcome

        self.player = replace(updated, current_node=transition.node)
        self.dice = NOT_ROLLED

        if self._check_level_up():
            outcome.leveled_up = True
            outcome.messages.append(
                f"[^] Level up! Now level {self.player.level}. "
                f"{self.pending_points} points to spend."
            )
        outcome.player = self.player
        return outcome

    # ---------- Progression ----------
    def _check_level_up(self) -> bool:
        if not can_level_up(self.player, xp_per_level=self.settings.xp_per_level):
            return False
        self.player = level_up_player(self.player, heal=self.settings.level_up_heal)
        self.pending_points += self.settings.level_up_points
        logger.info("%s reached level %d", self.player.name, self.player.level)
        if self.pending_points == 0:
            self._after_allocation()
        return True

    def _after_allocation(self) -> None:
        if class_unlock_offered(
            self.player,
            self.game_data.class_requirements,
            unlock_levels=self.settings.class_unlock_levels,
            cap_levels=self.settings.class_cap_levels,
        ):
            self.class_offer = True
            return
        self._check_level_up()

    def allocate_point(self, stat: str, amount: int = 1) -> Player:
        self._require_active()
        if amount < 1 or amount > self.pending_points:
            raise SessionError(
                f"Cannot spend {amount} points; {self.pending_points} available."
            )
        updated = apply_stat_increase(self.player, stat, amount)
        if updated is self.player:
            raise SessionError(f"Unknown stat '{stat}'.")
        self.player = updated
        self.pending_points -= amount
        if self.pending_points == 0:
            self._after_allocation()
        return self.player

    def class_offers(self) -> List[str]:
        if not self.class_offer:
            return []
        return unlockable_classes(
            self.player,
            self.game_data.class_requirements,
            cap_levels=self.settings.class_cap_levels,
        )

    def select_class(self, class_name: Optional[str]) -> Player:
        """Take an offered class, or pass ``None`` to decline the offer."""
        self._require_active()
        if not self.class_offer:
            raise SessionError("No class unlock is on offer.")
        if class_name is not None:
            if class_name not in self.class_offers():
                raise SessionError(f"Class '{class_name}' cannot be unlocked now.")
            self.player = add_class_to_player(
                self.player, class_name, self.game_data.classes.get(class_name)
            )
            logger.info("%s unlocked class %s", self.player.name, class_name)
        self.class_offer = False
        self._check_level_up()
        return self.player

    # ---------- Shop ----------
    def open_shop(self, shop_id: str) -> Shop:
        self._require_active()
        shop = self.game_data.shops.get(shop_id)
        if shop is None:
            raise SessionError(f"Unknown shop '{shop_id}'.")
        self.current_shop = shop_id
        return shop

    def close_shop(self) -> None:
        self.current_shop = None

    def _open_shop_or_fail(self) -> Shop:
        self._require_active()
        shop = self.shop
        if shop is None:
            raise SessionError("No shop is open.")
        return shop

    def buy(self, item_id: str) -> bool:
        shop = self._open_shop_or_fail()
        player, updated_shop = commerce.buy_item(self.player, shop, item_id)
        if player is self.player:
            return False
        self.player = player
        self.game_data = self.game_data.replace_shop(updated_shop)
        return True

    def sell(self, item_id: str) -> bool:
        shop = self._open_shop_or_fail()
        item = next((entry for entry in commerce.sellable_items(self.player) if entry.id == item_id), None)
        if item is None:
            return False
        self.player = commerce.sell_item(self.player, shop, item)
        return True

    # ---------- Inventory ----------
    def _held(self, item_id: str):
        for item in self.player.inventory:
            if item.id == item_id:
                return item
        raise SessionError(f"'{item_id}' is not in the inventory.")

    def use(self, item_id: str) -> List[str]:
        self._require_active()
        before = self.player
        self.player = use_item(before, self._held(item_id))
        messages = describe_player_changes(before, self.player)
        if is_dead(self.player):
            self.ended = True
            messages.append("[x] Your hero has fallen. The adventure ends here.")
        return messages

    def equip(self, item_id: str) -> bool:
        self._require_active()
        updated = equip_item(self.player, self._held(item_id))
        changed = updated is not self.player
        self.player = updated
        return changed

    def unequip(self, slot: str) -> bool:
        self._require_active()
        updated = unequip_item(self.player, slot)
        changed = updated is not self.player
        self.player = updated
        return changed
