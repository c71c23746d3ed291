from eventmap.modules.refs.engine import (
    HubPromotion,
    normalize_refs_pointing_to_choice_nodes,
    normalize_refs_pointing_to_combat_nodes,
    promote_shallow_dialogue_menu_hub,
)
from eventmap.modules.refs.ref_children import RefChildrenStats, convert_sibling_and_cousin_refs, convert_sibling_refs

__all__ = [
    "HubPromotion",
    "RefChildrenStats",
    "convert_sibling_and_cousin_refs",
    "convert_sibling_refs",
    "normalize_refs_pointing_to_choice_nodes",
    "normalize_refs_pointing_to_combat_nodes",
    "promote_shallow_dialogue_menu_hub",
]
