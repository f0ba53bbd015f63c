import json
from pathlib import Path

import pytest

from taleforge.cli import write_settings_file
from taleforge.settings import Settings, load_settings, save_settings


def test_defaults() -> None:
    settings = Settings()

    assert settings.xp_per_level == 100
    assert settings.level_up_points == 2
    assert settings.class_unlock_levels == (5, 10)
    assert settings.entry_node == "intro"
    assert settings.shop_sentinel == "shop_interface"
    assert settings.default_shop == "town_general"


@pytest.mark.parametrize(
    ("data", "attr", "expected"),
    [
        ({"xp_per_level": 0}, "xp_per_level", 1),
        ({"level_up_points": -3}, "level_up_points", 0),
        ({"level_up_heal": "lots"}, "level_up_heal", 1),
        ({"class_unlock_levels": [10, "x", 3, 3, 0]}, "class_unlock_levels", (3, 10)),
        ({"class_cap_levels": "5"}, "class_cap_levels", (5, 10)),
        ({"entry_node": "  "}, "entry_node", "intro"),
        ({"default_shop": 7}, "default_shop", "town_general"),
    ],
)
def test_from_dict_clamps_values(data: dict, attr: str, expected) -> None:
    assert getattr(Settings.from_dict(data), attr) == expected


def test_save_and_load_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    settings = Settings(xp_per_level=50, class_unlock_levels=(3, 6, 9), entry_node="start")

    saved = save_settings(settings, path)

    assert load_settings(path) == saved
    assert saved.class_unlock_levels == (3, 6, 9)


@pytest.mark.parametrize("contents", [None, "{broken", "[]"])
def test_unreadable_settings_fall_back_to_defaults(tmp_path: Path, contents) -> None:
    path = tmp_path / "settings.json"
    if contents is not None:
        path.write_text(contents, encoding="utf-8")

    assert load_settings(path) == Settings()


def test_cli_writes_sanitized_settings_file(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"xp_per_level": 0, "class_unlock_levels": [7]}), encoding="utf-8")

    written = write_settings_file(path)

    stored = json.loads(path.read_text(encoding="utf-8"))
    assert written.xp_per_level == 1
    assert stored["xp_per_level"] == 1
    assert stored["class_unlock_levels"] == [7]
    assert stored["entry_node"] == "intro"


def test_cli_creates_default_settings_file(tmp_path: Path) -> None:
    path = tmp_path / "config" / "settings.json"

    assert write_settings_file(path) == Settings()
    assert load_settings(path) == Settings()
