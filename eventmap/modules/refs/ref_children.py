from __future__ import annotations

import logging
from dataclasses import dataclass

from eventmap.modules.tree.index import TreeIndex
from eventmap.modules.tree.model import Node

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CousinRef:
    ref_node: Node
    ref_parent: Node
    target: Node
    target_parent: Node
    ancestor: Node
    ref_head: Node
    target_head: Node


@dataclass(slots=True)
class RefChildrenStats:
    siblings: int = 0
    cousins: int = 0
    complex_cousins: int = 0

    @property
    def total(self) -> int:
        return self.siblings + self.cousins + self.complex_cousins


def _convert(ref_node: Node, target: Node) -> None:
    if ref_node.children:
        logger.warning("node %s has both ref and children", ref_node.id)
    ref_node.ref_children = [child.id for child in target.children]
    ref_node.ref = None


def _convertible(ref_node: Node, target: Node | None) -> bool:
    # a ref at a childless node would turn into an empty refChildren list
    return target is not None and target is not ref_node and bool(target.children)


def convert_sibling_refs(root: Node) -> int:
    """Turn refs between siblings into refChildren, moving each ref right after its target."""
    conversions = 0
    for node in root.walk():
        if not node.children:
            continue
        by_id = {child.id: child for child in node.children}
        pending = {
            child.id
            for child in node.children
            if child.ref is not None and _convertible(child, by_id.get(child.ref))
        }
        if not pending:
            continue
        reordered: list[Node] = []
        for child in node.children:
            if child.id in pending:
                continue
            reordered.append(child)
            for sibling in node.children:
                if sibling.id not in pending or sibling.ref != child.id:
                    continue
                _convert(sibling, child)
                reordered.append(sibling)
                conversions += 1
        node.children = reordered
    return conversions


def _common_ancestor(index: TreeIndex, ref_parent: Node, target_parent: Node) -> tuple[Node, Node, Node] | None:
    """Walk both parent chains in step until they meet.

    Returns the meeting node plus the two branch heads directly below it.
    """
    ref_head, target_head = ref_parent, target_parent
    while True:
        ref_up = index.parent(ref_head)
        target_up = index.parent(target_head)
        if ref_up is None or target_up is None:
            return None
        if ref_up is target_up:
            return ref_up, ref_head, target_head
        ref_head, target_head = ref_up, target_up


def find_cousin_refs(root: Node, *, single_child: bool) -> list[CousinRef]:
    index = TreeIndex(root)
    found: list[CousinRef] = []
    for ref_node in root.walk():
        if ref_node.ref is None:
            continue
        ref_parent = index.parent(ref_node)
        target = index.get(ref_node.ref)
        if ref_parent is None or not _convertible(ref_node, target):
            continue
        target_parent = index.parent(target)
        if target_parent is None or target_parent is ref_parent:
            continue
        ref_is_only_child = len(ref_parent.children) == 1
        if single_child != ref_is_only_child:
            continue
        if single_child and len(target_parent.children) != 1:
            continue
        meeting = _common_ancestor(index, ref_parent, target_parent)
        if meeting is None:
            continue
        ancestor, ref_head, target_head = meeting
        found.append(
            CousinRef(
                ref_node=ref_node,
                ref_parent=ref_parent,
                target=target,
                target_parent=target_parent,
                ancestor=ancestor,
                ref_head=ref_head,
                target_head=target_head,
            )
        )
    return found


def convert_cousin_refs(root: Node) -> int:
    """Convert refs between only-child cousins, placing the two branches side by side."""
    cousin_refs = find_cousin_refs(root, single_child=True)
    by_ancestor: dict[int, list[CousinRef]] = {}
    for cousin_ref in cousin_refs:
        by_ancestor.setdefault(cousin_ref.ancestor.id, []).append(cousin_ref)

    for group in by_ancestor.values():
        ancestor = group[0].ancestor
        follows: dict[int, Node] = {}
        for cousin_ref in group:
            follows.setdefault(cousin_ref.target_head.id, cousin_ref.ref_head)
        reordered: list[Node] = []
        placed: set[int] = set()
        for child in ancestor.children:
            if child.id in placed:
                continue
            reordered.append(child)
            placed.add(child.id)
            partner = follows.get(child.id)
            if partner is not None and partner.id not in placed:
                reordered.append(partner)
                placed.add(partner.id)
        ancestor.children = reordered
        for cousin_ref in group:
            _convert(cousin_ref.ref_node, cousin_ref.target)
    return len(cousin_refs)


def convert_non_single_child_cousin_refs(root: Node) -> int:
    """Convert cousin refs whose source has siblings.

    Targets move to the end of their parent and refs to the front of theirs,
    so the two meet across the parent boundary.
    """
    cousin_refs = find_cousin_refs(root, single_child=False)
    by_target_parent: dict[int, tuple[Node, set[int]]] = {}
    by_ref_parent: dict[int, tuple[Node, set[int]]] = {}
    for cousin_ref in cousin_refs:
        by_target_parent.setdefault(cousin_ref.target_parent.id, (cousin_ref.target_parent, set()))[1].add(
            cousin_ref.target.id
        )
        by_ref_parent.setdefault(cousin_ref.ref_parent.id, (cousin_ref.ref_parent, set()))[1].add(
            cousin_ref.ref_node.id
        )

    for parent, target_ids in by_target_parent.values():
        others = [child for child in parent.children if child.id not in target_ids]
        targets = [child for child in parent.children if child.id in target_ids]
        parent.children = others + targets
    for parent, ref_ids in by_ref_parent.values():
        refs = [child for child in parent.children if child.id in ref_ids]
        others = [child for child in parent.children if child.id not in ref_ids]
        parent.children = refs + others

    for cousin_ref in cousin_refs:
        _convert(cousin_ref.ref_node, cousin_ref.target)
    return len(cousin_refs)


def convert_sibling_and_cousin_refs(
    root: Node,
    *,
    skip_cousins: bool = False,
    skip_complex_cousins: bool = False,
) -> RefChildrenStats:
    stats = RefChildrenStats(siblings=convert_sibling_refs(root))
    if skip_cousins:
        return stats
    stats.cousins = convert_cousin_refs(root)
    if not skip_complex_cousins:
        stats.complex_cousins = convert_non_single_child_cousin_refs(root)
    return stats
