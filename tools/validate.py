#!/usr/bin/env python3
"""Validate a Taleforge content bundle for common authoring mistakes."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Sequence

REPO_ROOT = Path(__file__).resolve().parents[1]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from taleforge.content import DEFAULT_CONTENT_PATH
from taleforge.content_schema import validate_content
from taleforge.settings import load_settings
from tools.softlock import analyze_softlocks


def load_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate Taleforge content.")
    parser.add_argument(
        "content_path",
        nargs="?",
        default=str(DEFAULT_CONTENT_PATH),
        help="Path to the content bundle JSON file.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str]) -> None:
    args = parse_args(argv[1:])
    content_path = Path(args.content_path).resolve()
    try:
        content = load_json(content_path)
    except json.JSONDecodeError as exc:
        print(f"Failed to parse JSON from {content_path}: {exc}")
        sys.exit(1)

    settings = load_settings()
    errors = validate_content(
        content, entry_node=settings.entry_node, shop_sentinel=settings.shop_sentinel
    )
    if errors:
        print("Validation failed (path: message):")
        for err in errors:
            print(f" - {err}")
        sys.exit(1)

    warnings = analyze_softlocks(content, shop_sentinel=settings.shop_sentinel)
    if warnings:
        print("Soft-lock warnings (path: message):")
        for warning in warnings:
            print(f" - {warning}")

    print(f"Validation passed for {content_path}.")


if __name__ == "__main__":
    main(sys.argv)
