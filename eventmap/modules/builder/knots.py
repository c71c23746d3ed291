from __future__ import annotations

from typing import Any

from eventmap.modules.builder.context import BuildContext
from eventmap.modules.content.extractor import extract_effects
from eventmap.modules.content.random_values import normalize_random_effects
from eventmap.modules.tree.model import Node, NodeType, make_node

BRANCHING_COMMANDS = ("COLLECTOR",)


def detect_branching_command(effects: list[str]) -> str | None:
    for effect in effects:
        for command in BRANCHING_COMMANDS:
            if effect.upper() == command:
                return command
    return None


def knot_text(body: Any) -> str | None:
    """Flatten a knot's string content, keeping commands on their own lines."""
    if not isinstance(body, list):
        return None
    text = ""
    for element in body:
        if not isinstance(element, str):
            continue
        cleaned = element[1:] if element.startswith("^") else element
        if cleaned.startswith(">>>"):
            text += "\n" + cleaned
        elif cleaned == "\n":
            text += "\n"
        elif cleaned:
            text += cleaned
    return text


def build_knot_outcome(body: Any, context: BuildContext) -> Node | None:
    text = knot_text(body)
    if text is None:
        return None
    content = extract_effects(text)
    return make_node(
        node_id=context.allocate_id(),
        node_type=NodeType.END,
        text=content.cleaned_text or "",
        effects=normalize_random_effects(content.effects, context.analysis.random_vars),
    )


def build_branching_node(command: str, effects: list[str], context: BuildContext) -> Node:
    """Expand a dynamic-branch command into one `result` child per knot."""
    branches: list[Node] = []
    for knot_name, body in context.analysis.knots.items():
        outcome = build_knot_outcome(body, context)
        if outcome is None:
            continue
        branches.append(
            make_node(
                node_id=context.allocate_id(),
                node_type=NodeType.RESULT,
                requirements=[f"{command}: {knot_name}"],
                children=[outcome],
            )
        )
    context.node_total += 1
    return make_node(
        node_id=context.allocate_id(),
        node_type=NodeType.SPECIAL,
        text=command,
        effects=effects,
        children=branches,
    )
