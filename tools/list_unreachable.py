import json
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_CONTENT_PATH = REPO_ROOT / "taleforge" / "data" / "default_content.json"
ENTRY_NODE = "intro"


def load_content(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def build_graph(story: dict) -> dict:
    graph = {node_id: [] for node_id in story}
    for node_id, node in story.items():
        for choice in node.get("choices", []) or []:
            target = choice.get("next_node")
            if isinstance(target, str) and target in story:
                graph[node_id].append(target)
    return graph


def traverse_from(start_node: str, graph: dict) -> set:
    if start_node not in graph:
        return set()
    visited = set()
    stack = [start_node]
    while stack:
        current = stack.pop()
        if current in visited:
            continue
        visited.add(current)
        stack.extend(graph.get(current, []))
    return visited


def unreachable_nodes(story: dict, entry_node: str = ENTRY_NODE) -> list:
    graph = build_graph(story)
    return sorted(set(graph) - traverse_from(entry_node, graph))


def main() -> None:
    content_path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_CONTENT_PATH
    content = load_content(content_path)

    print(f"Content file: {content_path}")
    for name, story in (content.get("stories") or {}).items():
        unreachable = unreachable_nodes(story)
        print(f"\n{name}: {len(story)} nodes, {len(story) - len(unreachable)} reachable")
        if unreachable:
            print("Unreachable nodes:")
            for node_id in unreachable:
                print(f"  - {node_id}")
        else:
            print(f"All nodes reachable from '{ENTRY_NODE}'.")


if __name__ == "__main__":
    main()
