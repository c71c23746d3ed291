from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from eventmap.modules.tree.model import EventTree, Node

logger = logging.getLogger(__name__)

IDENTITY_MAX_CHARS = 120


@dataclass(frozen=True, slots=True)
class InvalidRef:
    unit_name: str
    node_id: int
    target_id: int
    identity: str
    field: str = "ref"

    def describe(self) -> str:
        short = self.identity if len(self.identity) <= 80 else self.identity[:77] + "..."
        return f"{self.unit_name}: node {self.node_id} {self.field} -> {self.target_id} {short!r}"


def node_identity(node: Node) -> str:
    return node.choice_label or (node.text[:IDENTITY_MAX_CHARS] if node.text else "") or "(no text)"


def find_invalid_refs(root: Node, *, unit_name: str = "") -> list[InvalidRef]:
    """Refs and refChildren entries that point outside their own tree."""
    ids = {node.id for node in root.walk()}
    invalid: list[InvalidRef] = []
    for node in root.walk():
        if node.ref is not None and node.ref not in ids:
            invalid.append(InvalidRef(unit_name, node.id, node.ref, node_identity(node)))
        for target_id in node.ref_children or []:
            if target_id not in ids:
                invalid.append(InvalidRef(unit_name, node.id, target_id, node_identity(node), "refChildren"))
    return invalid


def check_invalid_refs(trees: Iterable[EventTree]) -> list[InvalidRef]:
    """Scan every tree and log what does not resolve; never raises."""
    found: list[InvalidRef] = []
    units: list[str] = []
    for tree in trees:
        if tree.root is None:
            continue
        invalid = find_invalid_refs(tree.root, unit_name=tree.name)
        if not invalid:
            continue
        units.append(tree.name)
        found.extend(invalid)
        for item in invalid:
            logger.warning("invalid ref %s", item.describe())

    if found:
        logger.warning("found %s invalid refs across %s units: %s", len(found), len(units), ", ".join(units))
    else:
        logger.info("no invalid refs found")
    return found
