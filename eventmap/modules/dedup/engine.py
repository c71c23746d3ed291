from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, field

from eventmap.modules.content.random_values import RANDOM_KEYWORD
from eventmap.modules.tree.index import bfs, count_nodes, descendant_count_at_depth
from eventmap.modules.tree.model import Node, NodeType

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DedupOptions:
    iterations: int = 2
    min_subtree_size: int = 3
    signature_depth: int = 3


@dataclass(slots=True)
class DedupStats:
    duplicates_found: int = 0
    nodes_removed: int = 0
    per_iteration: list[int] = field(default_factory=list)


class _RefGuard:
    """Answers "would pruning this subtree orphan a ref from outside it?".

    Subtree membership uses DFS entry/exit times; ref targets are kept sorted
    by entry time so each query only scans targets inside the candidate.
    """

    def __init__(self, root: Node) -> None:
        self.tin: dict[int, int] = {}
        self.tout: dict[int, int] = {}
        self.referrers: dict[int, list[int]] = {}
        clock = 0
        stack: list[tuple[Node, bool]] = [(root, False)]
        while stack:
            node, leaving = stack.pop()
            if leaving:
                self.tout[node.id] = clock - 1
                continue
            self.tin[node.id] = clock
            clock += 1
            if node.ref is not None:
                self.referrers.setdefault(node.ref, []).append(node.id)
            stack.append((node, True))
            stack.extend((child, False) for child in reversed(node.children))
        self._targets = sorted((self.tin[target], target) for target in self.referrers if target in self.tin)

    def add_ref(self, referrer_id: int, target_id: int) -> None:
        if target_id not in self.referrers and target_id in self.tin:
            bisect.insort(self._targets, (self.tin[target_id], target_id))
        self.referrers.setdefault(target_id, []).append(referrer_id)

    def would_orphan(self, candidate: Node) -> bool:
        start = self.tin.get(candidate.id)
        end = self.tout.get(candidate.id)
        if start is None or end is None:
            return False
        index = bisect.bisect_left(self._targets, (start, -1))
        while index < len(self._targets) and self._targets[index][0] <= end:
            target_id = self._targets[index][1]
            for referrer_id in self.referrers.get(target_id, []):
                referrer_tin = self.tin.get(referrer_id)
                if referrer_tin is not None and not start <= referrer_tin <= end:
                    return True
            index += 1
        return False


def _child_signature(child: Node, depth: int) -> tuple:
    return (
        child.text,
        child.choice_label,
        child.type.value,
        tuple(child.requirements),
        tuple(child.effects),
        child.ref,
        tuple(descendant_count_at_depth(child, level) for level in range(1, depth + 1)),
    )


def subtree_signature(node: Node, depth: int) -> tuple:
    return (
        node.text,
        node.choice_label,
        node.type.value,
        len(node.children),
        tuple(_child_signature(child, depth) for child in node.children),
    )


def subtrees_identical(first: Node, second: Node) -> bool:
    """Content equality of two subtrees below their roots; ids are ignored."""
    pairs = [(first, second)]
    root_pair = True
    while pairs:
        a, b = pairs.pop()
        if len(a.children) != len(b.children):
            return False
        if not root_pair and (
            a.text != b.text
            or a.type != b.type
            or a.choice_label != b.choice_label
            or a.requirements != b.requirements
            or a.effects != b.effects
            or a.num_continues != b.num_continues
            or a.ref != b.ref
            or a.ref_children != b.ref_children
        ):
            return False
        root_pair = False
        pairs.extend(zip(a.children, b.children))
    return True


def deduplicate_once(root: Node, options: DedupOptions) -> DedupStats:
    stats = DedupStats()
    ordered = list(bfs(root))
    by_id = {node.id: node for node in ordered}
    guard = _RefGuard(root)
    originals: dict[tuple, int] = {}
    pruned: set[int] = set()

    for node in ordered:
        if node.id in pruned or not node.children or node.ref is not None:
            continue
        # choice wrappers keep their single outcome; the outcome is collapsed instead
        if node.type == NodeType.CHOICE:
            continue
        size = count_nodes(node)
        if size < options.min_subtree_size:
            continue
        signature = subtree_signature(node, options.signature_depth)
        original_id = originals.get(signature)
        if original_id is None:
            originals[signature] = node.id
            continue
        original = by_id.get(original_id)
        if original is None or not subtrees_identical(node, original):
            continue
        if node.text and RANDOM_KEYWORD in node.text:
            continue
        if guard.would_orphan(node):
            continue

        for descendant in node.walk():
            if descendant is not node:
                pruned.add(descendant.id)
        node.ref = original_id
        node.children = []
        guard.add_ref(node.id, original_id)
        stats.duplicates_found += 1
        stats.nodes_removed += size - 1
    return stats


def deduplicate_tree(root: Node, options: DedupOptions, *, unit_name: str = "") -> DedupStats:
    """Collapse repeated subtrees into refs, shallowest occurrence first."""
    total = DedupStats()
    for iteration in range(max(1, options.iterations)):
        stats = deduplicate_once(root, options)
        total.duplicates_found += stats.duplicates_found
        total.nodes_removed += stats.nodes_removed
        total.per_iteration.append(stats.nodes_removed)
        logger.debug(
            "unit=%s dedup iteration %s: %s duplicates, %s nodes removed",
            unit_name,
            iteration + 1,
            stats.duplicates_found,
            stats.nodes_removed,
        )
        if stats.nodes_removed == 0:
            break
    return total
