from eventmap.modules.dedup.engine import DedupOptions, DedupStats, deduplicate_tree, subtrees_identical

__all__ = [
    "DedupOptions",
    "DedupStats",
    "deduplicate_tree",
    "subtrees_identical",
]
