from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CARDS_LOOKUP_URL = "https://blightbane.io/api/cards-codex?search=&rarity=&category=&type=&banner=&exp="
DEFAULT_TALENTS_LOOKUP_URL = "https://blightbane.io/api/cards-codex?search=&rarity=&category=10&type=&banner=&exp="


class Settings(BaseSettings):
    app_name: str = "eventmap"

    events_path: Path = Path("data/events.json")
    output_path: Path = Path("data/event-trees.json")
    alterations_path: Path | None = None
    log_path: Path | None = None
    log_level: str = "INFO"

    story_engine_factory: str = ""

    max_depth: int = 100
    sibling_first_depth: int = 8
    sibling_first_node_budget: int = 1_000_000
    depth_first_node_budget: int = 500_000

    text_loop_detection_enabled: bool = True
    choice_and_path_loop_detection_enabled: bool = True
    split_dialogue_on_effects_enabled: bool = True
    path_convergence_min_choices: int = 3

    filter_default_nodes_enabled: bool = True
    separate_choices_from_effects_enabled: bool = True
    hub_pattern_optimization_enabled: bool = True
    normalize_refs_pointing_to_choice_nodes_enabled: bool = True
    normalize_refs_pointing_to_combat_nodes_enabled: bool = True
    promote_shallow_dialogue_menu_hub_enabled: bool = True
    convert_sibling_and_cousin_refs_enabled: bool = True
    apply_alterations_enabled: bool = True
    check_invalid_refs_enabled: bool = True
    clean_up_random_values_enabled: bool = True
    replace_card_ids_enabled: bool = True

    dedup_iterations: int = 2
    dedup_min_subtree_size: int = 3
    dedup_signature_depth: int = 3
    dedup_unit_blacklist: list[str] = Field(default_factory=lambda: ["Historic Shard"])

    hub_pattern_min_choices: int = 3
    hub_pattern_unit_blacklist: list[str] = Field(default_factory=list)

    default_node_blacklist: list[str] = Field(default_factory=lambda: ["A Familiar Face"])
    cousin_ref_blacklist: list[str] = Field(
        default_factory=lambda: [
            "Vesparin Vault",
            "TempleOffering",
            "Frozen Heart",
            "The Defiled Sanctum",
            "The Ferryman",
            "Warfront Survivor",
        ]
    )
    complex_cousin_ref_blacklist: list[str] = Field(default_factory=lambda: ["The Priestess"])

    cards_lookup_url: str = DEFAULT_CARDS_LOOKUP_URL
    talents_lookup_url: str = DEFAULT_TALENTS_LOOKUP_URL
    lookup_timeout_s: float = 20.0

    model_config = SettingsConfigDict(env_file=".env", env_prefix="EVENTMAP_", extra="ignore")


settings = Settings()
