from eventmap.modules.alterations.engine import apply_alterations, find_nodes
from eventmap.modules.alterations.schemas import (
    Alteration,
    Find,
    ModifyNode,
    NodeSpec,
    UnitAlterations,
)
from eventmap.modules.alterations.service import (
    alterations_by_unit,
    default_alterations,
    load_alterations,
    load_alterations_file,
)

__all__ = [
    "Alteration",
    "Find",
    "ModifyNode",
    "NodeSpec",
    "UnitAlterations",
    "alterations_by_unit",
    "apply_alterations",
    "default_alterations",
    "find_nodes",
    "load_alterations",
    "load_alterations_file",
]
