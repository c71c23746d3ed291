from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

DEFAULT_CHOICE_LABEL = "default"
DEFAULT_CHOICE_REQUIREMENT = "All other paths are unreachable!"

NODE_KEY_ORDER = (
    "id",
    "text",
    "type",
    "choiceLabel",
    "requirements",
    "effects",
    "numContinues",
    "ref",
    "refChildren",
    "children",
)


class NodeType(str, Enum):
    DIALOGUE = "dialogue"
    CHOICE = "choice"
    COMBAT = "combat"
    END = "end"
    SPECIAL = "special"
    RESULT = "result"


@dataclass(slots=True)
class Node:
    id: int
    type: NodeType
    text: str | None = None
    choice_label: str | None = None
    requirements: list[str] = field(default_factory=list)
    effects: list[str] = field(default_factory=list)
    num_continues: int | None = None
    ref: int | None = None
    ref_children: list[int] | None = None
    children: list[Node] = field(default_factory=list)

    def walk(self) -> Iterator[Node]:
        """Pre-order traversal, iterative so deep trees do not hit the recursion limit."""
        stack: list[Node] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id}
        if self.text is not None:
            payload["text"] = self.text
        payload["type"] = self.type.value
        if self.choice_label is not None:
            payload["choiceLabel"] = self.choice_label
        if self.requirements:
            payload["requirements"] = list(self.requirements)
        if self.effects:
            payload["effects"] = list(self.effects)
        if self.num_continues is not None:
            payload["numContinues"] = self.num_continues
        if self.ref is not None:
            payload["ref"] = self.ref
        if self.ref_children is not None:
            payload["refChildren"] = list(self.ref_children)
        if self.children:
            payload["children"] = [child.to_dict() for child in self.children]
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Node:
        if not isinstance(payload, dict):
            raise ValueError("node payload must be an object")
        raw_children = payload.get("children") or []
        raw_ref_children = payload.get("refChildren")
        return cls(
            id=int(payload["id"]),
            type=NodeType(payload["type"]),
            text=payload.get("text"),
            choice_label=payload.get("choiceLabel"),
            requirements=[str(item) for item in payload.get("requirements") or []],
            effects=[str(item) for item in payload.get("effects") or []],
            num_continues=payload.get("numContinues"),
            ref=payload.get("ref"),
            ref_children=[int(item) for item in raw_ref_children] if raw_ref_children is not None else None,
            children=[cls.from_dict(child) for child in raw_children],
        )


def make_node(
    *,
    node_id: int,
    node_type: NodeType,
    text: str | None = None,
    choice_label: str | None = None,
    requirements: list[str] | None = None,
    effects: list[str] | None = None,
    num_continues: int | None = None,
    ref: int | None = None,
    children: list[Node] | None = None,
) -> Node:
    """Build a node applying the output conventions.

    A `default` choice without requirements is marked unreachable, and the
    continue count is only kept on dialogue nodes.
    """
    node_requirements = list(requirements or [])
    if not node_requirements and choice_label == DEFAULT_CHOICE_LABEL:
        node_requirements = [DEFAULT_CHOICE_REQUIREMENT]
    return Node(
        id=node_id,
        type=node_type,
        text=text,
        choice_label=choice_label,
        requirements=node_requirements,
        effects=list(effects or []),
        num_continues=num_continues if node_type == NodeType.DIALOGUE else None,
        ref=ref,
        children=list(children or []),
    )


@dataclass(slots=True)
class EventTree:
    name: str
    type: Any = None
    artwork: Any = None
    root: Node | None = None
    next_id: int = 0

    def allocate_id(self) -> int:
        node_id = self.next_id
        self.next_id += 1
        return node_id

    def nodes(self) -> Iterator[Node]:
        if self.root is None:
            return iter(())
        return self.root.walk()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "artwork": self.artwork,
            "rootNode": self.root.to_dict() if self.root is not None else None,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> EventTree:
        if not isinstance(payload, dict) or not isinstance(payload.get("name"), str):
            raise ValueError("tree payload must be an object with a name")
        raw_root = payload.get("rootNode")
        root = Node.from_dict(raw_root) if raw_root is not None else None
        next_id = 0
        if root is not None:
            next_id = max(node.id for node in root.walk()) + 1
        return cls(
            name=payload["name"],
            type=payload.get("type"),
            artwork=payload.get("artwork"),
            root=root,
            next_id=next_id,
        )
