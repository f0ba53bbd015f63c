"""Dice rolls for battle nodes."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Union

from taleforge.content import StoryNode
from taleforge.player import Player

DIE_FACES = 6
ADVANTAGE_FLOOR = 4

NOT_ROLLED_KIND = "not_rolled"
SKIPPED_KIND = "skipped"
ROLLED_KIND = "rolled"


@dataclass(frozen=True)
class DiceOutcome:
    """Dice state for one node visit: not rolled yet, skipped, or a roll."""

    kind: str
    value: int = 0

    @classmethod
    def rolled(cls, value: int) -> "DiceOutcome":
        if not 1 <= value <= DIE_FACES:
            raise ValueError(f"Dice roll must be between 1 and {DIE_FACES}, got {value}.")
        return cls(ROLLED_KIND, value)

    @property
    def is_rolled(self) -> bool:
        return self.kind == ROLLED_KIND

    @property
    def resolved(self) -> bool:
        return self.kind != NOT_ROLLED_KIND

    def meets(self, requirement: int) -> bool:
        return self.is_rolled and self.value >= requirement


NOT_ROLLED = DiceOutcome(NOT_ROLLED_KIND)
SKIPPED = DiceOutcome(SKIPPED_KIND)

DiceInput = Union[DiceOutcome, int, None]


def as_outcome(dice: DiceInput) -> DiceOutcome:
    """Coerce the legacy numeric form: ``None`` is not rolled, ``0`` is skipped."""
    if isinstance(dice, DiceOutcome):
        return dice
    if dice is None:
        return NOT_ROLLED
    if dice == 0:
        return SKIPPED
    return DiceOutcome.rolled(int(dice))


def has_luck_advantage(player: Player, node: StoryNode) -> bool:
    if not node.dice_requirement:
        return False
    return player.stats.luck >= node.dice_requirement


def roll_dice(has_luck_advantage: bool, rng: Optional[random.Random] = None) -> int:
    rng = rng or random
    low = ADVANTAGE_FLOOR if has_luck_advantage else 1
    return rng.randint(low, DIE_FACES)
