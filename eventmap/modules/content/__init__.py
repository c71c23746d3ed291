from eventmap.modules.content.extractor import (
    ChoiceMetadata,
    ExtractedContent,
    clean_text,
    determine_node_type,
    extract_choice_metadata,
    extract_effects,
    find_first_command,
    resolve_keyword_effects,
)
from eventmap.modules.content.random_values import (
    RANDOM_KEYWORD,
    RandomRange,
    clean_up_random_values,
    normalize_add_keyword_random_choice_labels,
    normalize_random_effects,
    normalize_random_effects_in_line,
)

__all__ = [
    "ChoiceMetadata",
    "ExtractedContent",
    "RANDOM_KEYWORD",
    "RandomRange",
    "clean_text",
    "clean_up_random_values",
    "determine_node_type",
    "extract_choice_metadata",
    "extract_effects",
    "find_first_command",
    "normalize_add_keyword_random_choice_labels",
    "normalize_random_effects",
    "normalize_random_effects_in_line",
    "resolve_keyword_effects",
]
