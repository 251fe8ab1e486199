"""Frequency tree of classification signatures.

The root mapping is keyed by classification heads; each further element of
a signature descends one level. Counts are exact totals regardless of entry
order, while key order follows first occurrence.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

from stopwatch.analysis.classification import has_ansi_codes, strip_ansi_codes
from stopwatch.core.models import TimeoutEntry, TreeNode

Tree = dict[str, TreeNode]


def line_is_test_output(processed_line: str, unprocessed: list[str]) -> bool:
    """Whether the raw line behind ``processed_line`` was ANSI-colored.

    Colored lines come from test-runner formatters rather than plain log
    output. Stripping is not injective, so the first raw line whose
    stripped form matches wins. Lines rewritten by seed normalization have
    no raw counterpart and report False.
    """
    for raw in unprocessed:
        if strip_ansi_codes(raw) == processed_line:
            return has_ansi_codes(raw)
    return False


def add_entry(tree: Tree, entry: TimeoutEntry) -> None:
    """Fold one entry into ``tree`` in place.

    Nodes are created with an empty child map; run ``prune_empty_children``
    once all entries are folded in.
    """
    classification = entry.processed_classification
    if not classification:
        return

    head = classification[0]
    node = tree.get(head)
    if node is None:
        node = tree[head] = TreeNode(children={})
    node.count += 1

    for branch in classification[1:]:
        if node.children is None:
            node.children = {}
        child = node.children.get(branch)
        if child is None:
            child = node.children[branch] = TreeNode(
                children={},
                is_test=line_is_test_output(branch, entry.unprocessed_classification),
            )
        child.count += 1
        node = child


def prune_empty_children(tree: Tree) -> Tree:
    """Drop empty child maps so leaves carry ``children=None``."""
    for node in tree.values():
        if node.children:
            prune_empty_children(node.children)
        if not node.children:
            node.children = None
    return tree


def build_tree(entries: Iterable[TimeoutEntry]) -> Tree:
    """Build the classification frequency tree.

    Entries with an empty classification are skipped.

    Args:
        entries: Timeout entries from one analysis run.

    Returns:
        Mapping of classification head to TreeNode.
    """
    tree: Tree = {}
    for entry in entries:
        add_entry(tree, entry)
    return prune_empty_children(tree)


def tree_to_dict(tree: Tree) -> dict[str, Any]:
    """Serialize a tree to plain JSON-compatible dicts."""
    return {head: node.to_dict() for head, node in tree.items()}


def tree_from_dict(data: dict[str, Any]) -> Tree:
    """Rebuild a tree from its serialized form."""
    return {head: TreeNode.from_dict(node) for head, node in data.items()}


def iter_paths(
    tree: Tree, prefix: tuple[str, ...] = ()
) -> Iterator[tuple[tuple[str, ...], TreeNode]]:
    """Yield ``(path, node)`` for every node, depth-first in key order."""
    for key, node in tree.items():
        path = (*prefix, key)
        yield path, node
        if node.children:
            yield from iter_paths(node.children, path)


def total_count(tree: Tree) -> int:
    """Sum of head counts, i.e. the number of classified entries."""
    return sum(node.count for node in tree.values())
