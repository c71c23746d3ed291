from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Iterator

from eventmap.modules.tree.model import Node


@dataclass(slots=True)
class TreeIndex:
    """Id, parent and depth lookups over one tree, built on demand.

    Passes that move nodes around call `rebuild()` afterwards.
    """

    root: Node | None
    by_id: dict[int, Node] = field(default_factory=dict)
    parent_of: dict[int, Node] = field(default_factory=dict)
    depth_of: dict[int, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.rebuild()

    def rebuild(self) -> None:
        self.by_id.clear()
        self.parent_of.clear()
        self.depth_of.clear()
        if self.root is None:
            return
        self.depth_of[self.root.id] = 0
        for node in bfs(self.root):
            self.by_id[node.id] = node
            for child in node.children:
                self.parent_of[child.id] = node
                self.depth_of[child.id] = self.depth_of[node.id] + 1

    def get(self, node_id: int | None) -> Node | None:
        if node_id is None:
            return None
        return self.by_id.get(node_id)

    def parent(self, node: Node) -> Node | None:
        return self.parent_of.get(node.id)

    def depth(self, node: Node) -> int:
        return self.depth_of.get(node.id, 0)


def bfs(root: Node) -> Iterator[Node]:
    queue: deque[Node] = deque([root])
    while queue:
        node = queue.popleft()
        yield node
        queue.extend(node.children)


def bfs_with_depth(root: Node) -> Iterator[tuple[Node, int]]:
    queue: deque[tuple[Node, int]] = deque([(root, 0)])
    while queue:
        node, depth = queue.popleft()
        yield node, depth
        queue.extend((child, depth + 1) for child in node.children)


def count_nodes(node: Node) -> int:
    return sum(1 for _ in node.walk())


def max_depth(node: Node) -> int:
    return max((depth for _, depth in bfs_with_depth(node)), default=0)


def descendant_count_at_depth(node: Node, depth: int) -> int:
    level = [node]
    for _ in range(depth):
        level = [child for item in level for child in item.children]
        if not level:
            return 0
    return len(level)


def remove_child(parent: Node, child: Node) -> bool:
    for index, item in enumerate(parent.children):
        if item is child:
            del parent.children[index]
            return True
    return False
