"""JSON persistence for the player record and edited content bundles."""

from __future__ import annotations

import json
import logging
import os
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from taleforge.content import GameData
from taleforge.player import Player

logger = logging.getLogger(__name__)

DEFAULT_SAVE_DIR = Path("saves")
PLAYER_FILENAME = "player.json"
CONTENT_FILENAME = "content.json"
BACKUP_SUFFIX = ".bak"


class StorageError(Exception):
    """Base class for storage failures."""


class StorageCorruptError(StorageError):
    """Raised when a stored blob cannot be parsed."""


def _write_json(path: Path, payload: Dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", delete=False, dir=path.parent, prefix=path.name, suffix=".tmp", encoding="utf-8"
        ) as tmp_file:
            json.dump(payload, tmp_file, indent=2, ensure_ascii=False)
            tmp_file.write("\n")
            tmp_path = Path(tmp_file.name)
        if path.exists():
            shutil.copy2(path, path.with_name(path.name + BACKUP_SUFFIX))
        os.replace(str(tmp_path), str(path))
    except OSError as exc:
        print(f"[Storage] Failed to write {path}: {exc}", file=sys.stderr)
        if tmp_path is not None:
            try:
                tmp_path.unlink()
            except OSError:
                pass
        raise StorageError(f"Could not write {path}: {exc}") from exc
    logger.debug("Wrote %s", path)
    return path


def _read_json(path: Path) -> Optional[Dict[str, Any]]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except FileNotFoundError:
        return None
    except json.JSONDecodeError as exc:
        raise StorageCorruptError(f"Invalid JSON in {path}: {exc}") from exc
    except OSError as exc:
        raise StorageError(f"Could not read {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise StorageCorruptError(f"{path} does not hold a JSON object.")
    return payload


# ---------- Player ----------
def save_player(
    player: Player, base_path: Path | str = DEFAULT_SAVE_DIR, *, story: Optional[str] = None
) -> Path:
    payload = player.to_dict()
    if story:
        payload["story"] = story
    return _write_json(Path(base_path) / PLAYER_FILENAME, payload)


def load_player(base_path: Path | str = DEFAULT_SAVE_DIR) -> Optional[Player]:
    """Return the stored player, or ``None`` when nothing has been saved."""
    payload = _read_json(Path(base_path) / PLAYER_FILENAME)
    if payload is None:
        return None
    if not payload.get("name") or not isinstance(payload.get("stats"), dict):
        raise StorageCorruptError("Stored player is missing a name or stats.")
    return Player.from_dict(payload)


def saved_story(base_path: Path | str = DEFAULT_SAVE_DIR) -> Optional[str]:
    payload = _read_json(Path(base_path) / PLAYER_FILENAME)
    if payload is None or not isinstance(payload.get("story"), str):
        return None
    return payload["story"]


def clear_player(base_path: Path | str = DEFAULT_SAVE_DIR) -> bool:
    """Forget the stored player, as after death or a new game."""
    path = Path(base_path) / PLAYER_FILENAME
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    logger.info("Cleared saved player at %s", path)
    return True


# ---------- Content ----------
def save_content(data: GameData, base_path: Path | str = DEFAULT_SAVE_DIR) -> Path:
    return _write_json(Path(base_path) / CONTENT_FILENAME, data.to_dict())


def load_content_snapshot(base_path: Path | str = DEFAULT_SAVE_DIR) -> Optional[GameData]:
    """Return the stored content bundle (shop stock included), if any."""
    payload = _read_json(Path(base_path) / CONTENT_FILENAME)
    if payload is None:
        return None
    return GameData.from_dict(payload)
