from eventmap.modules.splitter.engine import (
    SegmentSplit,
    filter_default_nodes,
    separate_choices_from_effects,
    split_combat_segment,
    split_dialogue_on_effects,
)

__all__ = [
    "SegmentSplit",
    "filter_default_nodes",
    "separate_choices_from_effects",
    "split_combat_segment",
    "split_dialogue_on_effects",
]
