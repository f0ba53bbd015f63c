"""Engine policy settings for Taleforge."""

from __future__ import annotations

import json
import os
import sys
import tempfile
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Tuple

_BASE_DIR = Path(__file__).resolve().parent.parent
SETTINGS_PATH = _BASE_DIR / "settings.json"

DEFAULT_XP_PER_LEVEL = 100
DEFAULT_LEVEL_UP_POINTS = 2
DEFAULT_LEVEL_UP_HEAL = 1
DEFAULT_CLASS_UNLOCK_LEVELS: Tuple[int, ...] = (5, 10)
# Player level at which the class cap grows by one.
DEFAULT_CLASS_CAP_LEVELS: Tuple[int, ...] = (5, 10)
DEFAULT_ENTRY_NODE = "intro"
DEFAULT_SHOP_SENTINEL = "shop_interface"
DEFAULT_SHOP_ID = "town_general"


def _clamp(value: int, minimum: int, maximum: int) -> int:
    return max(minimum, min(maximum, value))


def _as_level_tuple(value: Any, default: Tuple[int, ...]) -> Tuple[int, ...]:
    if not isinstance(value, (list, tuple)):
        return default
    levels = []
    for entry in value:
        try:
            level = int(entry)
        except (TypeError, ValueError):
            continue
        if level >= 1 and level not in levels:
            levels.append(level)
    return tuple(sorted(levels))


@dataclass
class Settings:
    """Rules constants that a host may tune without touching content."""

    xp_per_level: int = DEFAULT_XP_PER_LEVEL
    level_up_points: int = DEFAULT_LEVEL_UP_POINTS
    level_up_heal: int = DEFAULT_LEVEL_UP_HEAL
    class_unlock_levels: Tuple[int, ...] = field(
        default_factory=lambda: DEFAULT_CLASS_UNLOCK_LEVELS
    )
    class_cap_levels: Tuple[int, ...] = field(default_factory=lambda: DEFAULT_CLASS_CAP_LEVELS)
    entry_node: str = DEFAULT_ENTRY_NODE
    shop_sentinel: str = DEFAULT_SHOP_SENTINEL
    default_shop: str = DEFAULT_SHOP_ID

    def clamp(self) -> "Settings":
        self.xp_per_level = _clamp(int(self.xp_per_level), 1, 1_000_000)
        self.level_up_points = _clamp(int(self.level_up_points), 0, 100)
        self.level_up_heal = _clamp(int(self.level_up_heal), 0, 100)
        self.class_unlock_levels = _as_level_tuple(
            self.class_unlock_levels, DEFAULT_CLASS_UNLOCK_LEVELS
        )
        self.class_cap_levels = _as_level_tuple(self.class_cap_levels, DEFAULT_CLASS_CAP_LEVELS)
        for attr, default in (
            ("entry_node", DEFAULT_ENTRY_NODE),
            ("shop_sentinel", DEFAULT_SHOP_SENTINEL),
            ("default_shop", DEFAULT_SHOP_ID),
        ):
            value = getattr(self, attr)
            if not isinstance(value, str) or not value.strip():
                setattr(self, attr, default)
        return self

    def copy(self) -> "Settings":
        return Settings.from_dict(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["class_unlock_levels"] = list(self.class_unlock_levels)
        data["class_cap_levels"] = list(self.class_cap_levels)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "Settings":
        if not isinstance(data, dict):
            return cls()

        def _as_int(key: str, default: int) -> int:
            try:
                return int(data.get(key, default))
            except (TypeError, ValueError):
                return default

        settings = cls(
            xp_per_level=_as_int("xp_per_level", DEFAULT_XP_PER_LEVEL),
            level_up_points=_as_int("level_up_points", DEFAULT_LEVEL_UP_POINTS),
            level_up_heal=_as_int("level_up_heal", DEFAULT_LEVEL_UP_HEAL),
            class_unlock_levels=data.get("class_unlock_levels", DEFAULT_CLASS_UNLOCK_LEVELS),
            class_cap_levels=data.get("class_cap_levels", DEFAULT_CLASS_CAP_LEVELS),
            entry_node=data.get("entry_node", DEFAULT_ENTRY_NODE),
            shop_sentinel=data.get("shop_sentinel", DEFAULT_SHOP_SENTINEL),
            default_shop=data.get("default_shop", DEFAULT_SHOP_ID),
        )
        return settings.clamp()


def load_settings(path: Path | str = SETTINGS_PATH) -> Settings:
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        return Settings()
    except (OSError, json.JSONDecodeError, TypeError):
        return Settings()
    return Settings.from_dict(data)


def save_settings(settings: Settings, path: Path | str = SETTINGS_PATH) -> Settings:
    path = Path(path)
    sanitized = settings.copy().clamp()
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", delete=False, dir=path.parent, prefix=path.name, suffix=".tmp", encoding="utf-8"
        ) as tmp_file:
            json.dump(sanitized.to_dict(), tmp_file, indent=2)
            tmp_file.write("\n")
            tmp_path = Path(tmp_file.name)
        os.replace(str(tmp_path), str(path))
    except OSError as exc:
        print(f"[Settings] Failed to save settings: {exc}", file=sys.stderr)
        if tmp_path is not None:
            try:
                tmp_path.unlink()
            except OSError:
                pass
    return sanitized
