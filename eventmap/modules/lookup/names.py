from __future__ import annotations

import re
from collections.abc import Mapping

from eventmap.modules.tree.model import Node

CARD_ID_COMMANDS = (
    "AREAEFFECT",
    "ADDCARD",
    "REMOVECARD",
    "IMBUECARD",
    "ADDTALENT",
    "REMOVETALENT",
)

CARD_ID_PLACEHOLDER_RE = re.compile(r"\[cardid=(\d+)\]")
CARD_ID_EFFECT_RE = re.compile(rf"^({'|'.join(CARD_ID_COMMANDS)}):\s*(\d+)$", re.IGNORECASE)


def _replace_placeholders(value: str, id_to_name: Mapping[int, str]) -> tuple[str, int]:
    replaced = 0

    def substitute(match: re.Match[str]) -> str:
        nonlocal replaced
        name = id_to_name.get(int(match.group(1)))
        if name is None:
            return match.group(0)
        replaced += 1
        return f"[cardid={name}]"

    return CARD_ID_PLACEHOLDER_RE.sub(substitute, value), replaced


def replace_effect_id(effect: str, id_to_name: Mapping[int, str]) -> str | None:
    match = CARD_ID_EFFECT_RE.match(effect)
    if match is None:
        return None
    name = id_to_name.get(int(match.group(2)))
    if name is None:
        return None
    return f"{match.group(1).upper()}: {name}"


def replace_card_ids(root: Node, id_to_name: Mapping[int, str]) -> int:
    """Swap numeric card/talent ids for names in labels, text and id-taking effects."""
    replaced = 0
    for node in root.walk():
        if node.choice_label:
            node.choice_label, count = _replace_placeholders(node.choice_label, id_to_name)
            replaced += count
        if node.text:
            node.text, count = _replace_placeholders(node.text, id_to_name)
            replaced += count
        effects: list[str] = []
        for effect in node.effects:
            named = replace_effect_id(effect, id_to_name)
            if named is not None:
                replaced += 1
            effects.append(named or effect)
        node.effects = effects
    return replaced
