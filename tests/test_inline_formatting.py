from taleforge.cli import ANSI_RESET, print_formatted


def test_print_formatted_applies_color_wrappers() -> None:
    text = (
        "Found {item:Iron Sword} and {gold:30 gold}. "
        "{stat:Strength} rises. {danger:Dice 4+} ahead."
    )

    formatted = print_formatted(text)

    assert f"\033[32mIron Sword{ANSI_RESET}" in formatted
    assert f"\033[33m30 gold{ANSI_RESET}" in formatted
    assert f"\033[36mStrength{ANSI_RESET}" in formatted
    assert f"\033[31mDice 4+{ANSI_RESET}" in formatted
    assert "{item:" not in formatted


def test_print_formatted_strips_unknown_kinds() -> None:
    assert print_formatted("A {whisper:soft} voice.") == "A soft voice."
    assert print_formatted("No markup here.") == "No markup here."
