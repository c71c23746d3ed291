from eventmap.modules.builder.context import BuildContext, BuildLimits, HubSnapshot
from eventmap.modules.builder.tree_builder import TreeBuilder

__all__ = [
    "BuildContext",
    "BuildLimits",
    "HubSnapshot",
    "TreeBuilder",
]
