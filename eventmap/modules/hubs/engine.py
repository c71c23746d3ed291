from __future__ import annotations

import logging
from dataclasses import dataclass, field

from eventmap.modules.tree.index import bfs_with_depth
from eventmap.modules.tree.model import Node, NodeType

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class HubMember:
    node: Node
    depth: int


@dataclass(slots=True)
class HubGroup:
    choice_set: tuple[str, ...]
    members: list[HubMember] = field(default_factory=list)


@dataclass(slots=True)
class HubStats:
    groups: int = 0
    refs_created: int = 0
    refs_resolved: int = 0
    candidates: list[str] = field(default_factory=list)


def choice_labels(node: Node) -> list[str]:
    return [child.choice_label for child in node.children if child.choice_label]


def is_subset_with_same_or_one_less(hub_choices: list[str], choices: list[str]) -> bool:
    if len(choices) > len(hub_choices) or len(choices) < len(hub_choices) - 1:
        return False
    available = set(hub_choices)
    return all(choice in available for choice in choices)


def find_hub_groups(root: Node, *, min_choices: int) -> list[HubGroup]:
    """Group confirmed hubs and their re-offering nodes by the hub's choice set."""
    candidates: list[tuple[HubMember, list[str]]] = []
    confirmed: dict[int, HubGroup] = {}
    order: list[int] = []

    for node, depth in bfs_with_depth(root):
        if node.ref is not None or node.type != NodeType.DIALOGUE or not node.text:
            continue
        choices = choice_labels(node)
        if len(choices) >= min_choices:
            candidates.append((HubMember(node=node, depth=depth), choices))
        if not choices:
            continue
        for hub, hub_choices in candidates:
            if hub.node is node or not is_subset_with_same_or_one_less(hub_choices, choices):
                continue
            group = confirmed.get(hub.node.id)
            if group is None:
                group = HubGroup(choice_set=tuple(sorted(hub_choices)), members=[hub])
                confirmed[hub.node.id] = group
                order.append(hub.node.id)
            group.members.append(HubMember(node=node, depth=depth))

    grouped: dict[tuple[str, ...], HubGroup] = {}
    for hub_id in order:
        group = confirmed[hub_id]
        existing = grouped.get(group.choice_set)
        if existing is None:
            grouped[group.choice_set] = HubGroup(choice_set=group.choice_set, members=list(group.members))
            continue
        seen = {member.node.id for member in existing.members}
        existing.members.extend(member for member in group.members if member.node.id not in seen)
    return list(grouped.values())


def _canonical_key(member: HubMember) -> tuple[int, int, int]:
    return (member.depth, -len(member.node.children), member.node.id)


def resolve_transitive_refs(root: Node, redirects: dict[int, int] | None = None) -> int:
    """Point every ref at the end of its ref chain; returns the number rewritten."""
    redirects = redirects or {}
    by_id = {node.id: node for node in root.walk()}
    rewritten = 0
    for node in by_id.values():
        if node.ref is None:
            continue
        target_id = node.ref
        seen = {node.id}
        while target_id not in seen:
            seen.add(target_id)
            if target_id in redirects:
                target_id = redirects[target_id]
                continue
            target = by_id.get(target_id)
            if target is None or target.ref is None:
                break
            target_id = target.ref
        if target_id != node.ref and target_id != node.id:
            node.ref = target_id
            rewritten += 1
    return rewritten


def optimize_hub_patterns(
    root: Node,
    *,
    min_choices: int = 3,
    enabled: bool = True,
    unit_name: str = "",
) -> HubStats:
    """Collapse recurring menu nodes onto one canonical hub.

    Disabled units are scanned and their candidates logged, but never mutated.
    """
    stats = HubStats()
    groups = [group for group in find_hub_groups(root, min_choices=min_choices) if len(group.members) >= 2]
    stats.groups = len(groups)
    if not enabled:
        for group in groups:
            representative = min(group.members, key=_canonical_key).node
            stats.candidates.append(representative.text or "")
            logger.info(
                "unit=%s hub candidate id=%s text=%r (%s matching nodes, %s children)",
                unit_name,
                representative.id,
                (representative.text or "")[:30],
                len(group.members),
                len(representative.children),
            )
        return stats

    redirects: dict[int, int] = {}
    removed: set[int] = set()
    for group in groups:
        ordered = sorted(group.members, key=_canonical_key)
        canonical = ordered[0].node
        if canonical.id in redirects or canonical.id in removed or canonical.ref is not None:
            continue
        for member in ordered[1:]:
            node = member.node
            if node.id in redirects or node.id == canonical.id:
                continue
            if node.id in removed:
                redirects[node.id] = canonical.id
                continue
            redirects[node.id] = canonical.id
            removed.update(descendant.id for descendant in node.walk() if descendant is not node)
            node.children = []
            node.ref = canonical.id
            stats.refs_created += 1

    if redirects:
        stats.refs_resolved = resolve_transitive_refs(root, redirects)
        logger.info(
            "unit=%s hub patterns: %s refs created across %s groups",
            unit_name,
            stats.refs_created,
            stats.groups,
        )
    return stats
