"""ASCII tree builder for flat repository listings."""

from __future__ import annotations

from dataclasses import dataclass, field

from gtree.models import EntryKind, ListingEntry

_BRANCH = "├── "
_LAST = "└── "
_PIPE = "│   "
_SPACE = "    "


@dataclass
class HierarchyNode:
    full_path: str
    name: str
    is_directory: bool = False
    children: set[str] = field(default_factory=set)


def build_hierarchy(
    entries: list[ListingEntry],
    root_label: str,
) -> tuple[HierarchyNode, dict[str, HierarchyNode]]:
    """Turn a flat listing into a hierarchy of named nodes.

    Returns the root node and an index of every node keyed by full path
    (``root_label`` joined with the path segments by ``/``). Entry order
    does not matter: a node seen as an intermediate segment, or listed with
    kind ``TREE``, is a directory no matter when it was first created.
    """
    root = HierarchyNode(full_path=root_label, name=root_label, is_directory=True)
    index: dict[str, HierarchyNode] = {root_label: root}

    for entry in entries:
        parts = [p for p in entry.path.split("/") if p]
        current = root
        for i, part in enumerate(parts):
            is_dir = i < len(parts) - 1 or entry.kind == EntryKind.TREE
            full_path = f"{current.full_path}/{part}"
            node = index.get(full_path)
            if node is None:
                node = HierarchyNode(full_path=full_path, name=part, is_directory=is_dir)
                index[full_path] = node
            elif is_dir:
                # Never downgraded once marked
                node.is_directory = True
            current.children.add(part)
            current = node

    return root, index


def render_tree(root: HierarchyNode, index: dict[str, HierarchyNode]) -> str:
    """Render a hierarchy as ``tree``-style text followed by summary counts.

    Children are visited depth-first in ascending order of segment name.
    The walk uses an explicit stack, so deep nesting cannot exhaust the
    call stack.

    Example output:
        owner/repo:main
        └── a/
            ├── b.txt
            └── c/
                └── d.txt

        2 directories, 2 files
    """
    lines = [root.name]
    seen = {root.full_path}
    directories = 0
    files = 0

    # (node, prefix, is_last)
    stack = _child_frames(root, index, "")
    while stack:
        node, prefix, is_last = stack.pop()
        if node.full_path in seen:
            continue
        seen.add(node.full_path)

        connector = _LAST if is_last else _BRANCH
        display_name = f"{node.name}/" if node.is_directory else node.name
        lines.append(f"{prefix}{connector}{display_name}")

        if node.is_directory:
            directories += 1
        else:
            files += 1

        extension = _SPACE if is_last else _PIPE
        stack.extend(_child_frames(node, index, prefix + extension))

    lines.append("")
    lines.append(f"{directories} directories, {files} files")
    return "\n".join(lines)


def _child_frames(
    node: HierarchyNode,
    index: dict[str, HierarchyNode],
    prefix: str,
) -> list[tuple[HierarchyNode, str, bool]]:
    """Return stack frames for *node*'s children, reversed so the smallest pops first."""
    names = sorted(node.children)
    frames = []
    for i, name in enumerate(names):
        child = index.get(f"{node.full_path}/{name}")
        if child is None:
            continue
        frames.append((child, prefix, i == len(names) - 1))
    frames.reverse()
    return frames


def build_tree(entries: list[ListingEntry], root_label: str) -> str:
    """Build and render the tree for a flat listing in one step."""
    root, index = build_hierarchy(entries, root_label)
    return render_tree(root, index)
