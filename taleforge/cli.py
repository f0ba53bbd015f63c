#!/usr/bin/env python3
"""
Taleforge terminal front-end.
- Create a hero from the content's races and classes, pick a story, play.
- Battle nodes offer a dice roll (or a skip) before dice-gated choices show.
- Level-ups pause play for stat allocation and, at milestone levels, a new class.
- The player record is saved after every step and cleared on death.
Usage: python3 -m taleforge.cli [content.json]
"""

import argparse
import asyncio
import logging
import random
import re
import sys
import textwrap
from pathlib import Path

from taleforge.choices import summarize_choice_requirements
from taleforge.commerce import buy_price, can_buy, sell_price, sellable_items
from taleforge.content import DEFAULT_CONTENT_PATH, STAT_NAMES, GameData, load_content
from taleforge.inventory import get_total_player_stats
from taleforge.player import EQUIPMENT_SLOTS, GENDERS, replace_variables
from taleforge.session import GameSession, SessionError
from taleforge.settings import SETTINGS_PATH, Settings, load_settings, save_settings
from taleforge.storage import (
    DEFAULT_SAVE_DIR,
    StorageError,
    clear_player,
    load_content_snapshot,
    load_player,
    save_content,
    save_player,
    saved_story,
)

logger = logging.getLogger(__name__)

LINE_WIDTH = 80
ANSI_RESET = "\033[0m"


def emit_print(*args, **kwargs) -> None:
    print(*args, **kwargs)


async def read_input(prompt: str = "") -> str:
    return await asyncio.to_thread(input, prompt)


INLINE_COLOR_MAP = {
    "item": "\033[32m",
    "items": "\033[32m",
    "stat": "\033[36m",
    "gold": "\033[33m",
    "locked": "\033[31m",
    "danger": "\033[31m",
}
INLINE_FORMAT_PATTERN = re.compile(r"\{([a-zA-Z_]+):([^}]+)\}")


def print_formatted(text: str) -> str:
    if not text or "{" not in text:
        return text

    def replace(match: re.Match[str]) -> str:
        kind = match.group(1).strip().lower()
        value = match.group(2)
        color = INLINE_COLOR_MAP.get(kind)
        if not color:
            return value
        return f"{color}{value}{ANSI_RESET}"

    return INLINE_FORMAT_PATTERN.sub(replace, text)


def separator(primary: bool) -> str:
    return ("=" if primary else "-") * LINE_WIDTH


def format_status(player) -> str:
    totals = get_total_player_stats(player)
    stats = " | ".join(f"{stat[:3].upper()} {totals[stat]}" for stat in STAT_NAMES if stat != "money")
    return (
        f"{player.name} the {player.race} {'/'.join(player.class_names)} | "
        f"Lv {player.level} ({player.xp} XP) | "
        f"Hearts {player.hearts}/{player.max_hearts} | {stats} | Gold {totals['money']}"
    )


async def prompt_index(options, *, prompt: str = "> ", allow_back: bool = False):
    """Print a numbered list and return the picked index (``None`` for back)."""
    for idx, option in enumerate(options, start=1):
        emit_print(f"  {idx}. {print_formatted(option)}")
    if allow_back:
        emit_print("  B. Back")
    while True:
        selection = (await read_input(prompt)).strip().lower()
        if allow_back and selection in {"b", "back", ""}:
            return None
        if selection.isdigit() and 1 <= int(selection) <= len(options):
            return int(selection) - 1
        emit_print("Pick a valid number." + (" B goes back." if allow_back else ""))


# ---------- Setup ----------
async def create_session(game_data: GameData, settings: Settings, rng) -> GameSession:
    emit_print("\n=== New Hero ===")
    name = (await read_input("Name your hero: ")).strip() or "Traveler"
    emit_print("Gender:")
    gender = GENDERS[await prompt_index([g.title() for g in GENDERS])]

    races = list(game_data.races)
    emit_print("Race:")
    race = races[await prompt_index(
        [f"{r} ({_describe_bonus(game_data.races[r])})" for r in races]
    )]
    classes = [c for c in game_data.classes if not game_data.class_requirements.get(c)]
    classes = classes or list(game_data.classes)
    emit_print("Class:")
    player_class = classes[await prompt_index(
        [f"{c} ({_describe_bonus(game_data.classes[c])})" for c in classes]
    )]

    stories = list(game_data.stories)
    emit_print("Story:")
    story = stories[await prompt_index(stories)]
    return GameSession.new_game(
        game_data, name, gender, race, player_class, story, settings=settings, rng=rng
    )


def _describe_bonus(stats) -> str:
    parts = [f"{stat.title()} {value:+d}" for stat, value in stats.items() if value]
    return ", ".join(parts) or "no bonus"


# ---------- Screens ----------
def render_node(session: GameSession):
    node = session.node
    player = session.player
    emit_print("\n" + separator(True))
    emit_print(f"{session.story_name} :: {player.current_node}")
    emit_print(separator(False))
    for paragraph in replace_variables(node.text, player).split("\n"):
        if paragraph.strip():
            for line in textwrap.wrap(paragraph, width=LINE_WIDTH):
                emit_print(print_formatted(line))
        else:
            emit_print("")
    emit_print("")
    for line in textwrap.wrap(format_status(player), width=LINE_WIDTH):
        emit_print(line)
    emit_print(separator(False))

    if session.dice.is_rolled:
        emit_print(f"[⚄] You rolled {session.dice.value}.")
    elif session.awaiting_dice:
        emit_print("[⚄] Battle! R. Roll the dice    K. Skip the roll")

    visible = session.visible_choices()
    for idx, choice in enumerate(visible, start=1):
        text = replace_variables(choice.text, player)
        if choice.dice_requirement:
            text = f"[{{danger:Dice {choice.dice_requirement}+}}] {text}"
        if logger.isEnabledFor(logging.DEBUG):
            text = f"{text} (Target: {choice.next_node} | Req: {summarize_choice_requirements(choice)})"
        emit_print(f"  {idx}. {print_formatted(text)}")
    emit_print("  I. Inventory    E. Equipment    Q. Quit")
    return visible


async def level_up_menu(session: GameSession) -> None:
    while session.pending_points > 0:
        emit_print(f"\n[^] Spend {session.pending_points} point(s):")
        stats = list(STAT_NAMES)
        idx = await prompt_index(
            [f"{stat.title()} ({session.player.stats.get(stat)})" for stat in stats]
        )
        session.allocate_point(stats[idx])
        emit_print(f"[+] {stats[idx].title()} -> {session.player.stats.get(stats[idx])}")
    if session.class_offer:
        offers = session.class_offers()
        emit_print("\n[!] A new path opens. Choose an extra class:")
        for name in offers:
            requirement = session.game_data.class_requirements[name]
            if requirement.description:
                emit_print(f"     {name}: {requirement.description}")
        idx = await prompt_index(offers, allow_back=True)
        chosen = None if idx is None else offers[idx]
        session.select_class(chosen)
        if chosen:
            emit_print(f"[+] Class unlocked: {chosen}")
        if session.pending_points:
            await level_up_menu(session)


async def shop_menu(session: GameSession) -> None:
    while session.shop is not None:
        shop = session.shop
        player = session.player
        emit_print(f"\n=== {shop.name} === (Gold {player.stats.money})")
        emit_print("  1. Buy    2. Sell    B. Leave")
        selection = (await read_input("> ")).strip().lower()
        if selection == "1":
            labels = []
            for item in shop.items:
                stock = "∞" if item.stock is None else item.stock
                tag = "item" if can_buy(player, item, shop) else "locked"
                labels.append(f"{{{tag}:{item.name}}} - {buy_price(item, shop)}g (stock {stock})")
            idx = await prompt_index(labels, allow_back=True)
            if idx is None:
                continue
            item = shop.items[idx]
            if session.buy(item.id):
                emit_print(f"[¤] Bought {print_formatted('{item:' + item.name + '}')}.")
            else:
                emit_print("[!] You cannot buy that right now.")
        elif selection == "2":
            goods = sellable_items(player)
            if not goods:
                emit_print("Nothing to sell.")
                continue
            idx = await prompt_index(
                [f"{item.name} x{item.quantity} - {sell_price(item, shop)}g" for item in goods],
                allow_back=True,
            )
            if idx is not None and session.sell(goods[idx].id):
                emit_print(f"[¤] Sold {goods[idx].name}.")
        elif selection in {"b", "back", ""}:
            session.close_shop()
        else:
            emit_print("Enter 1, 2 or B.")


async def inventory_menu(session: GameSession) -> None:
    player = session.player
    if not player.inventory:
        emit_print("Your pack is empty.")
        return
    labels = [
        f"{item.name} x{item.quantity} [{item.type}]" + (f" - {item.description}" if item.description else "")
        for item in player.inventory
    ]
    idx = await prompt_index(labels, allow_back=True)
    if idx is None:
        return
    item = player.inventory[idx]
    if item.type == "consumable":
        for message in session.use(item.id):
            emit_print(print_formatted(message))
    elif item.sub_type:
        if session.equip(item.id):
            emit_print(f"[+] Equipped {item.name}.")
        else:
            emit_print(f"[!] You do not meet the requirements for {item.name}.")
    else:
        emit_print("That item cannot be used or equipped.")


async def equipment_menu(session: GameSession) -> None:
    slots = list(EQUIPMENT_SLOTS)
    labels = []
    for slot in slots:
        item = session.player.equipment.get(slot)
        labels.append(f"{slot.replace('_', ' ').title()}: {item.name if item else '—'}")
    idx = await prompt_index(labels, allow_back=True)
    if idx is not None and session.unequip(slots[idx]):
        emit_print(f"[-] Unequipped {slots[idx].replace('_', ' ')}.")


# ---------- Main loop ----------
def write_settings_file(path: Path) -> Settings:
    """Write the effective settings back out so a host has a file to tune."""
    saved = save_settings(load_settings(path), path)
    emit_print(f"[Settings] Wrote {path}.")
    return saved


def _persist(session: GameSession, save_dir: Path) -> None:
    try:
        if session.ended:
            clear_player(save_dir)
        else:
            save_player(session.player, save_dir, story=session.story_name)
        save_content(session.game_data, save_dir)
    except StorageError as exc:
        emit_print(f"[!] {exc}")


async def play(session: GameSession, save_dir: Path) -> None:
    while not session.ended:
        if session.busy:
            await level_up_menu(session)
            _persist(session, save_dir)
        if session.shop is not None:
            await shop_menu(session)
            _persist(session, save_dir)

        visible = render_node(session)
        if session.node.is_ending:
            emit_print("\n*** Ending reached ***")
        if not visible and not session.awaiting_dice:
            emit_print("[!] No path onward. The tale ends here.")
            return

        raw = (await read_input("> ")).strip().lower()
        if raw == "q":
            emit_print("[Saved] See you next time.")
            return
        if raw == "r" and session.awaiting_dice:
            session.roll()
            continue
        if raw == "k" and session.awaiting_dice:
            session.skip_dice()
            continue
        if raw == "i":
            await inventory_menu(session)
            _persist(session, save_dir)
            continue
        if raw == "e":
            await equipment_menu(session)
            _persist(session, save_dir)
            continue
        if not raw.isdigit() or not 1 <= int(raw) <= len(visible):
            emit_print("Pick a valid choice number.")
            continue

        try:
            outcome = session.choose(visible[int(raw) - 1])
        except SessionError as exc:
            emit_print(f"[!] {exc}")
            continue
        for message in outcome.messages:
            emit_print(print_formatted(message))
        _persist(session, save_dir)
        if outcome.died:
            return


async def main():
    parser = argparse.ArgumentParser(description="Play a Taleforge content bundle.")
    parser.add_argument("content", nargs="?", default=str(DEFAULT_CONTENT_PATH))
    parser.add_argument("--save-dir", default=str(DEFAULT_SAVE_DIR))
    parser.add_argument("--seed", type=int, help="Seed dice rolls for a repeatable run.")
    parser.add_argument("--new", action="store_true", help="Ignore the saved hero.")
    parser.add_argument("--debug", action="store_true", help="Show choice targets and debug logs.")
    parser.add_argument("--settings", default=str(SETTINGS_PATH), help="Rules settings JSON file.")
    parser.add_argument(
        "--init-settings", action="store_true", help="Write the settings file with current values and exit."
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    save_dir = Path(args.save_dir)
    settings_path = Path(args.settings)
    if args.init_settings:
        write_settings_file(settings_path)
        return 0
    settings = load_settings(settings_path)
    rng = random.Random(args.seed) if args.seed is not None else None

    try:
        snapshot = None if args.new else load_content_snapshot(save_dir)
        game_data = snapshot or load_content(args.content)
        player = None if args.new else load_player(save_dir)
        story = saved_story(save_dir)
    except (ValueError, StorageError) as exc:
        emit_print(f"[!] {exc}")
        return 1

    session = None
    if player is not None:
        emit_print(f"[Save] Found {player.name}, level {player.level}.")
        if (await read_input("Continue? [Y/n] ")).strip().lower() in {"", "y", "yes"}:
            if story not in game_data.stories:
                story = next(iter(game_data.stories))
            session = GameSession(game_data, player, story, settings=settings, rng=rng)
    if session is None:
        session = await create_session(game_data, settings, rng)
    await play(session, save_dir)
    return 0


def run() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        emit_print("\n[Interrupted] Bye.")


if __name__ == "__main__":
    run()
