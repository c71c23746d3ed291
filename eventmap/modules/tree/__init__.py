from eventmap.modules.tree.index import TreeIndex, bfs, bfs_with_depth, count_nodes, max_depth
from eventmap.modules.tree.model import EventTree, Node, NodeType, make_node

__all__ = [
    "EventTree",
    "Node",
    "NodeType",
    "TreeIndex",
    "bfs",
    "bfs_with_depth",
    "count_nodes",
    "make_node",
    "max_depth",
]
