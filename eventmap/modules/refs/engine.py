from __future__ import annotations

import logging
from dataclasses import dataclass

from eventmap.modules.tree.index import TreeIndex
from eventmap.modules.tree.model import Node, NodeType
from eventmap.modules.units.schemas import DialogueMenuConfig

logger = logging.getLogger(__name__)

MAX_CHOICE_HOPS = 10


@dataclass(slots=True)
class HubPromotion:
    old_hub_id: int
    new_hub_id: int
    old_depth: int
    new_depth: int


def normalize_refs_pointing_to_choice_nodes(root: Node, *, unit_name: str = "") -> int:
    """Retarget refs from non-choice nodes past choice wrappers onto their outcome."""
    index = TreeIndex(root)
    rewrites = 0
    for node in root.walk():
        if node.ref is None or node.type == NodeType.CHOICE:
            continue
        target = index.get(node.ref)
        hops = 0
        while target is not None and target.type == NodeType.CHOICE:
            if len(target.children) != 1:
                logger.warning(
                    "unit=%s ref %s -> %s targets a choice node with %s children",
                    unit_name,
                    node.id,
                    target.id,
                    len(target.children),
                )
                break
            node.ref = target.children[0].id
            rewrites += 1
            target = target.children[0]
            hops += 1
            if hops > MAX_CHOICE_HOPS:
                logger.warning("unit=%s ref normalization exceeded hop limit from node %s", unit_name, node.id)
                break
    return rewrites


def normalize_refs_pointing_to_combat_nodes(root: Node, *, unit_name: str = "") -> int:
    """Redirect refs at a split combat node to its post-combat dialogue child.

    Combat nodes referencing another combat node keep pointing at the fight.
    """
    post_combat: dict[int, int] = {}
    for node in root.walk():
        if node.type == NodeType.COMBAT and len(node.children) == 1 and node.children[0].type == NodeType.DIALOGUE:
            post_combat[node.id] = node.children[0].id

    rewrites = 0
    for node in root.walk():
        if node.ref is None or node.type == NodeType.COMBAT:
            continue
        new_ref = post_combat.get(node.ref)
        if new_ref is None or new_ref == node.id:
            continue
        logger.debug("unit=%s ref %s: combat %s -> post-combat %s", unit_name, node.id, node.ref, new_ref)
        node.ref = new_ref
        rewrites += 1
    return rewrites


def promote_shallow_dialogue_menu_hub(
    root: Node,
    dialogue_menu: DialogueMenuConfig | None,
    *,
    unit_name: str = "",
) -> HubPromotion | None:
    """Make the shallowest ref copy of a threshold-mode hub the canonical hub.

    Choice separation can leave the first reachable hub-with-children deeper
    than a copy that refs it; this swaps the two and rewrites refs to match.
    """
    if dialogue_menu is None or not dialogue_menu.uses_threshold:
        return None
    index = TreeIndex(root)
    hub_nodes = [node for node in index.by_id.values() if dialogue_menu.is_hub_text(node.text)]
    if not hub_nodes:
        return None

    owners = sorted(
        (node for node in hub_nodes if node.ref is None and node.children),
        key=index.depth,
    )
    if not owners:
        return None
    old_hub = owners[0]
    copies = sorted((node for node in hub_nodes if node.ref == old_hub.id), key=index.depth)
    if not copies:
        return None
    new_hub = copies[0]
    old_depth = index.depth(old_hub)
    new_depth = index.depth(new_hub)
    if new_depth >= old_depth:
        return None

    new_hub.children = old_hub.children
    new_hub.ref = None
    old_hub.children = []
    old_hub.ref = new_hub.id
    for node in root.walk():
        if node.ref == old_hub.id:
            node.ref = new_hub.id

    logger.info(
        "unit=%s promoted hub %s@depth%s -> %s@depth%s",
        unit_name,
        old_hub.id,
        old_depth,
        new_hub.id,
        new_depth,
    )
    return HubPromotion(old_hub_id=old_hub.id, new_hub_id=new_hub.id, old_depth=old_depth, new_depth=new_depth)
