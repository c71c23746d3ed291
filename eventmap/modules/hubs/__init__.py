from eventmap.modules.hubs.engine import HubStats, optimize_hub_patterns, resolve_transitive_refs

__all__ = [
    "HubStats",
    "optimize_hub_patterns",
    "resolve_transitive_refs",
]
