from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable

from eventmap.modules.content.extractor import ExtractedContent, find_first_command
from eventmap.modules.tree.model import DEFAULT_CHOICE_LABEL, Node, NodeType, make_node

logger = logging.getLogger(__name__)

END_TEXT = "[End]"
COMBAT_COMMAND_RE = re.compile(r"(?:>>>+)?(?:DIRECT)?COMBAT:[^\n]*", re.IGNORECASE)

Extract = Callable[[str], ExtractedContent]
AllocateId = Callable[[], int]


@dataclass(slots=True)
class SegmentSplit:
    text: str | None
    effects: list[str]
    children: list[Node]
    num_continues: int | None = None
    created: Node | None = None


@dataclass(slots=True)
class SplitStats:
    separated: int = 0
    unexpected: list[int] = field(default_factory=list)


def _count_lines(text: str) -> int:
    return sum(1 for line in text.split("\n") if line.strip())


def split_combat_segment(
    raw_text: str,
    *,
    effects: list[str],
    children: list[Node],
    extract: Extract,
    allocate_id: AllocateId,
) -> SegmentSplit:
    """Keep pre-combat prose on the combat node and move post-combat prose to a child.

    The new child takes over the original children; the combat node keeps only
    its combat effects.
    """
    match = COMBAT_COMMAND_RE.search(raw_text)
    if match is None:
        return SegmentSplit(text=extract(raw_text).cleaned_text or None, effects=effects, children=children)

    pre = extract(raw_text[: match.start()].strip())
    post = extract(raw_text[match.end() :].strip())
    if not post.cleaned_text.strip():
        return SegmentSplit(text=pre.cleaned_text or None, effects=effects, children=children)

    post_node = make_node(
        node_id=allocate_id(),
        node_type=NodeType.DIALOGUE if children else NodeType.END,
        text=post.cleaned_text,
        effects=post.effects,
        children=children,
    )
    return SegmentSplit(
        text=pre.cleaned_text or None,
        effects=[effect for effect in effects if "COMBAT:" in effect],
        children=[post_node],
        created=post_node,
    )


def split_dialogue_on_effects(
    raw_text: str,
    *,
    cleaned_text: str,
    effects: list[str],
    continue_count: int,
    children: list[Node],
    extract: Extract,
    allocate_id: AllocateId,
) -> SegmentSplit:
    """Split a dialogue segment at its first non-combat command.

    Only applies when prose both precedes and follows the command, so the
    player-visible pacing survives as two sequential nodes.
    """
    unchanged = SegmentSplit(
        text=cleaned_text,
        effects=effects,
        children=children,
        num_continues=max(0, continue_count - 1),
    )
    if not raw_text or not effects or continue_count <= 1:
        return unchanged

    chain = find_first_command(raw_text)
    if chain is None:
        return unchanged
    before = raw_text[: chain.start].strip()
    after = raw_text[chain.end :].strip()
    lines_before = _count_lines(before)
    if not before or not after or lines_before == 0:
        return unchanged

    head = extract(raw_text[: chain.end])
    tail = extract(after)
    if not tail.cleaned_text.strip():
        return unchanged

    lines_after = _count_lines(after)
    post_node = make_node(
        node_id=allocate_id(),
        node_type=NodeType.DIALOGUE if children else NodeType.END,
        text=tail.cleaned_text,
        effects=tail.effects,
        num_continues=lines_after - 1 if lines_after > 1 else None,
        children=children,
    )
    return SegmentSplit(
        text=head.cleaned_text or None,
        effects=head.effects,
        children=[post_node],
        num_continues=lines_before - 1 if lines_before > 1 else None,
        created=post_node,
    )


def _outcome_type(child: Node) -> NodeType | None:
    if child.type == NodeType.COMBAT:
        return NodeType.COMBAT
    if child.ref is not None:
        return NodeType.DIALOGUE if child.type == NodeType.CHOICE else child.type
    if not child.children:
        return NodeType.END
    if child.type in (NodeType.CHOICE, NodeType.DIALOGUE):
        return NodeType.DIALOGUE
    return None


def _needs_separation(child: Node) -> bool:
    if not (child.choice_label and child.choice_label.strip()) or child.type == NodeType.SPECIAL:
        return False
    has_text = bool(child.text and child.text.strip() and child.text != END_TEXT)
    return (
        bool(child.effects)
        or has_text
        or bool(child.children)
        or child.type == NodeType.END
        or child.ref is not None
    )


def separate_choices_from_effects(root: Node, *, allocate_id: AllocateId, unit_name: str = "") -> SplitStats:
    """Rewrite labelled outcome nodes into a `choice` wrapper with one outcome child.

    The wrapper keeps the original id, label and requirements; the outcome gets a
    fresh id and everything else.
    """
    stats = SplitStats()
    # post-order so wrappers created below are not split again
    stack: list[tuple[Node, bool]] = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if not expanded:
            stack.append((node, True))
            stack.extend((child, False) for child in reversed(node.children))
            continue
        new_children: list[Node] = []
        for child in node.children:
            if not _needs_separation(child):
                new_children.append(child)
                continue
            outcome_type = _outcome_type(child)
            if outcome_type is None:
                logger.warning(
                    "unit=%s unexpected node split: id=%s type=%s",
                    unit_name,
                    child.id,
                    child.type.value,
                )
                stats.unexpected.append(child.id)
                outcome_type = child.type
            outcome = make_node(
                node_id=allocate_id(),
                node_type=outcome_type,
                text=child.text or "",
                effects=child.effects,
                num_continues=child.num_continues,
                ref=child.ref,
                children=child.children,
            )
            outcome.ref_children = child.ref_children
            wrapper = make_node(
                node_id=child.id,
                node_type=NodeType.CHOICE,
                choice_label=child.choice_label,
                requirements=child.requirements,
                children=[outcome],
            )
            new_children.append(wrapper)
            stats.separated += 1
        node.children = new_children

    # unlabelled choice-typed nodes (e.g. a root that opens on a menu) are not wrappers
    for node in root.walk():
        if node.type == NodeType.CHOICE and len(node.children) != 1:
            node.type = NodeType.DIALOGUE if node.children or node.ref is not None else NodeType.END
    return stats


def filter_default_nodes(root: Node) -> int:
    """Drop every `default` fallback subtree; returns the number of subtrees removed."""
    removed = 0
    for node in root.walk():
        kept = [
            child
            for child in node.children
            if child.choice_label != DEFAULT_CHOICE_LABEL and child.text != DEFAULT_CHOICE_LABEL
        ]
        removed += len(node.children) - len(kept)
        node.children = kept
    return removed
