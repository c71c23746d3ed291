from __future__ import annotations

from itertools import count

from eventmap.modules.tree.model import Node, NodeType


class NodeFactory:
    """Hands out sequential ids so test trees read top to bottom."""

    def __init__(self, start: int = 0) -> None:
        self._ids = count(start)

    def next_id(self) -> int:
        return next(self._ids)

    def node(
        self,
        node_type: NodeType = NodeType.DIALOGUE,
        *,
        text: str | None = None,
        label: str | None = None,
        effects: list[str] | None = None,
        requirements: list[str] | None = None,
        ref: int | None = None,
        children: list[Node] | None = None,
    ) -> Node:
        return Node(
            id=self.next_id(),
            type=node_type,
            text=text,
            choice_label=label,
            requirements=list(requirements or []),
            effects=list(effects or []),
            ref=ref,
            children=list(children or []),
        )

    def end(self, text: str, *, label: str | None = None, effects: list[str] | None = None) -> Node:
        return self.node(NodeType.END, text=text, label=label, effects=effects)

    def wrapper(self, label: str, outcome: Node) -> Node:
        return self.node(NodeType.CHOICE, label=label, children=[outcome])


def ids(nodes: list[Node]) -> list[int]:
    return [node.id for node in nodes]


def find_by_text(root: Node, text: str) -> Node:
    for node in root.walk():
        if node.text == text:
            return node
    raise AssertionError(f"no node with text {text!r}")


def find_by_label(root: Node, label: str) -> Node:
    for node in root.walk():
        if node.choice_label == label:
            return node
    raise AssertionError(f"no node with label {label!r}")


def assert_tree_invariants(root: Node) -> None:
    all_ids = [node.id for node in root.walk()]
    assert len(all_ids) == len(set(all_ids)), "duplicate node ids"
    known = set(all_ids)
    for node in root.walk():
        assert not (node.ref is not None and node.children), f"node {node.id} has ref and children"
        if node.ref is not None:
            assert node.ref in known, f"node {node.id} ref {node.ref} dangles"
        if node.type == NodeType.CHOICE:
            assert len(node.children) == 1, f"choice node {node.id} has {len(node.children)} children"
