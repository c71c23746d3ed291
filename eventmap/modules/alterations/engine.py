from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Collection

from eventmap.modules.alterations.schemas import Alteration, Find, ModifyNode, NodeSpec
from eventmap.modules.tree.index import TreeIndex, remove_child
from eventmap.modules.tree.model import Node

logger = logging.getLogger(__name__)

AllocateId = Callable[[], int]


def _text_or_label_contains(node: Node, needle: str) -> bool:
    return bool(node.text and needle in node.text) or bool(node.choice_label and needle in node.choice_label)


def _text_or_label_starts_with(node: Node, prefix: str) -> bool:
    return (node.text or node.choice_label or "").startswith(prefix)


def _has_effect(node: Node, needle: str) -> bool:
    return any(needle in effect for effect in node.effects)


def _has_requirement(node: Node, needle: str) -> bool:
    return any(needle in requirement for requirement in node.requirements)


def find_nodes(root: Node, find: Find) -> list[Node]:
    """Pre-order matches for one selector.

    `textStartsWith` wins over `textOrLabel`, which is combined with any
    `effect`/`requirement` given alongside it; otherwise `effect`, then
    `requirement`, select alone.
    """
    if find.textStartsWith is not None:
        prefix = find.textStartsWith
        return [node for node in root.walk() if _text_or_label_starts_with(node, prefix)]
    if find.textOrLabel is not None:
        matches = [node for node in root.walk() if _text_or_label_contains(node, find.textOrLabel)]
        if find.effect is not None:
            matches = [node for node in matches if _has_effect(node, find.effect)]
        if find.requirement is not None:
            matches = [node for node in matches if _has_requirement(node, find.requirement)]
        return matches
    if find.effect is not None:
        return [node for node in root.walk() if _has_effect(node, find.effect)]
    return [node for node in root.walk() if _has_requirement(node, find.requirement or "")]


def find_unreferenced(
    root: Node,
    needle: str,
    *,
    starts_with: bool = False,
    exclude: Collection[int] = (),
) -> Node | None:
    """First text/label match that is not itself a ref and not in `exclude`."""
    for node in root.walk():
        if node.ref is not None or node.id in exclude:
            continue
        matched = _text_or_label_starts_with(node, needle) if starts_with else _text_or_label_contains(node, needle)
        if matched:
            return node
    return None


@dataclass(slots=True)
class NodeSpecBuilder:
    """Materializes node specs, then links their placeholder refs.

    `refTarget`/`refSource` pairs link inside one alteration; `refCreate`
    searches the whole tree as it stands when `link` runs.
    """

    allocate_id: AllocateId
    unit_name: str = ""
    targets: dict[int, int] = field(default_factory=dict)
    sources: list[tuple[Node, int]] = field(default_factory=list)
    creates: list[tuple[Node, str]] = field(default_factory=list)

    def build(self, node_spec: NodeSpec) -> Node:
        node = Node(
            id=self.allocate_id(),
            type=node_spec.type,
            text=node_spec.text,
            choice_label=node_spec.choiceLabel,
            requirements=list(node_spec.requirements),
            effects=list(node_spec.effects),
            num_continues=node_spec.numContinues,
            ref=node_spec.ref,
            ref_children=list(node_spec.refChildren) if node_spec.refChildren is not None else None,
        )
        if node_spec.refTarget is not None:
            self.targets[node_spec.refTarget] = node.id
        if node_spec.refSource is not None:
            self.sources.append((node, node_spec.refSource))
        if node_spec.refCreate is not None:
            self.creates.append((node, node_spec.refCreate))
        node.children = [self.build(child) for child in node_spec.children]
        return node

    def link(self, root: Node, *, exclude: Collection[int] = ()) -> None:
        for node, source in self.sources:
            target_id = self.targets.get(source)
            if target_id is None:
                logger.warning("unit=%s refSource %s has no matching refTarget (node %s)", self.unit_name, source, node.id)
                continue
            node.ref = target_id
        for node, needle in self.creates:
            target = find_unreferenced(root, needle, exclude=exclude)
            if target is None or target is node:
                logger.warning(
                    "unit=%s refCreate %r found no unreferenced match for node %s",
                    self.unit_name,
                    needle,
                    node.id,
                )
                continue
            node.ref = target.id


def _replace_in_place(match: Node, replacement: Node) -> None:
    match.type = replacement.type
    match.text = replacement.text
    match.choice_label = replacement.choice_label
    match.requirements = replacement.requirements
    match.effects = replacement.effects
    match.num_continues = replacement.num_continues
    match.ref = replacement.ref
    match.ref_children = replacement.ref_children
    match.children = replacement.children


def _modify(root: Node, node: Node, modify: ModifyNode, *, unit_name: str) -> None:
    if modify.removeRef:
        node.ref = None
    if modify.removeText:
        node.text = None
    if modify.removeNumContinues:
        node.num_continues = None
    if modify.removeChildren:
        node.children = []
    if modify.type is not None:
        node.type = modify.type
    for needle, starts_with in ((modify.refCreate, False), (modify.refCreateStartsWith, True)):
        if needle is None:
            continue
        target = find_unreferenced(root, needle, starts_with=starts_with)
        if target is None or target is node:
            logger.warning("unit=%s ref search %r found no unreferenced match for node %s", unit_name, needle, node.id)
            continue
        node.ref = target.id


def _apply_one(
    root: Node,
    alteration: Alteration,
    matches: list[Node],
    *,
    allocate_id: AllocateId,
    unit_name: str,
) -> int:
    applied = 0

    if alteration.removeNode:
        index = TreeIndex(root)
        for match in matches:
            parent = index.parent(match)
            if parent is None or not remove_child(parent, match):
                logger.warning("unit=%s failed to remove node %s", unit_name, match.id)
                continue
            applied += 1
        return applied

    if alteration.replaceNode is not None:
        for match in matches:
            builder = NodeSpecBuilder(allocate_id=allocate_id, unit_name=unit_name)
            replacement = builder.build(alteration.replaceNode)
            # the matched node keeps its id
            builder.targets = {
                key: match.id if value == replacement.id else value for key, value in builder.targets.items()
            }
            # the old subtree is about to go
            builder.link(root, exclude={node.id for node in match.walk()})
            _replace_in_place(match, replacement)
            applied += 1
        return applied

    if alteration.replaceChildren is not None:
        for match in matches:
            builder = NodeSpecBuilder(allocate_id=allocate_id, unit_name=unit_name)
            children = [builder.build(node_spec) for node_spec in alteration.replaceChildren]
            first_with_children = next((child for child in children if child.children), None)
            if first_with_children is not None:
                shared = [child.id for child in first_with_children.children]
                for node_spec, child in zip(alteration.replaceChildren, children):
                    if node_spec.refChildrenFromFirstSibling:
                        child.ref_children = list(shared)
            builder.link(root)
            match.children = children
            applied += 1
        return applied

    requirements = [item for item in alteration.addRequirements or [] if item]
    if requirements:
        for match in matches:
            for requirement in requirements:
                if requirement not in match.requirements:
                    match.requirements.append(requirement)
            applied += 1

    if alteration.modifyNode is not None:
        for match in matches:
            _modify(root, match, alteration.modifyNode, unit_name=unit_name)
            applied += 1

    if alteration.addChild is not None:
        for match in matches:
            builder = NodeSpecBuilder(allocate_id=allocate_id, unit_name=unit_name)
            child = builder.build(alteration.addChild)
            builder.link(root)
            match.children.append(child)
            applied += 1

    return applied


def apply_alterations(
    root: Node,
    alterations: list[Alteration],
    *,
    allocate_id: AllocateId,
    unit_name: str = "",
) -> int:
    """Apply one unit's alterations in order; returns the number of node edits made.

    Selectors are evaluated against the tree as earlier alterations left it.
    """
    applied = 0
    for alteration in alterations:
        matches = find_nodes(root, alteration.find)
        if not matches:
            logger.warning("unit=%s no nodes found matching %s", unit_name, alteration.find.describe())
            continue
        applied += _apply_one(root, alteration, matches, allocate_id=allocate_id, unit_name=unit_name)
    return applied
