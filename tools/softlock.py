"""Soft-lock analysis helpers for Taleforge content validation."""

from __future__ import annotations

from typing import Any, List, Mapping

from taleforge.content_schema import path
from taleforge.settings import DEFAULT_SHOP_SENTINEL

GATING_KEYS = ("require", "itemRequirements", "dice_requirement", "hidden_unless_luck")


def _is_gated(choice: Mapping[str, Any]) -> bool:
    return any(choice.get(key) for key in GATING_KEYS)


def analyze_softlocks(
    content: Mapping[str, Any], *, shop_sentinel: str = DEFAULT_SHOP_SENTINEL
) -> List[str]:
    """Warn about nodes a player can get stuck in.

    A node is suspect when it has no choices and is not an ending, when every
    choice is gated, or when it is a battle whose every choice needs a roll
    (skipping the dice would then leave nothing to pick). Choices that only
    open a shop do not count as a way forward.
    """
    stories = content.get("stories")
    if not isinstance(stories, Mapping):
        return []

    warnings: List[str] = []
    for name, story in stories.items():
        if not isinstance(story, Mapping):
            continue
        for node_id, node in story.items():
            if not isinstance(node, Mapping):
                continue
            node_path = path("stories", name, node_id)
            choices = [
                choice
                for choice in node.get("choices") or []
                if isinstance(choice, Mapping) and choice.get("next_node") != shop_sentinel
            ]
            if not choices:
                if not node.get("is_ending"):
                    warnings.append(f"{node_path}: dead end; no choices lead onward.")
                continue
            if node.get("battle") and all(choice.get("dice_requirement") for choice in choices):
                warnings.append(f"{node_path}: every choice needs a roll; skipping the dice soft-locks.")
            elif all(_is_gated(choice) for choice in choices):
                warnings.append(f"{node_path}: all choices are gated.")
    return warnings
