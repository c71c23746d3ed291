from __future__ import annotations

from dataclasses import dataclass, field

from eventmap.config import Settings
from eventmap.modules.ink.analysis import InkAnalysis
from eventmap.modules.units.schemas import DialogueMenuConfig, PathConvergenceConfig


@dataclass(frozen=True, slots=True)
class BuildLimits:
    max_depth: int = 100
    sibling_first_depth: int = 8
    sibling_first_node_budget: int = 1_000_000
    depth_first_node_budget: int = 500_000
    text_loop_detection: bool = True
    choice_and_path_loop_detection: bool = True
    split_dialogue_on_effects: bool = True
    path_convergence_min_choices: int = 3

    @classmethod
    def from_settings(cls, settings: Settings) -> BuildLimits:
        return cls(
            max_depth=settings.max_depth,
            sibling_first_depth=settings.sibling_first_depth,
            sibling_first_node_budget=settings.sibling_first_node_budget,
            depth_first_node_budget=settings.depth_first_node_budget,
            text_loop_detection=settings.text_loop_detection_enabled,
            choice_and_path_loop_detection=settings.choice_and_path_loop_detection_enabled,
            split_dialogue_on_effects=settings.split_dialogue_on_effects_enabled,
            path_convergence_min_choices=settings.path_convergence_min_choices,
        )

    def node_budget(self, depth: int) -> int:
        if depth < self.sibling_first_depth:
            return self.sibling_first_node_budget
        return self.depth_first_node_budget


@dataclass(slots=True)
class HubSnapshot:
    hub_id: int
    choice_labels: list[str]
    threshold: float


@dataclass(slots=True)
class BuildContext:
    """Everything one unit's exploration mutates; never shared between units."""

    unit_name: str
    limits: BuildLimits
    analysis: InkAnalysis = field(default_factory=InkAnalysis)
    dialogue_menu: DialogueMenuConfig | None = None
    convergence: PathConvergenceConfig | None = None
    next_id: int = 0
    node_total: int = 0
    reset_for_depth_first: bool = False
    state_to_node_id: dict[str, int] = field(default_factory=dict)
    hub_id: int | None = None
    hub_snapshot: HubSnapshot | None = None
    convergence_states: dict[str, int] = field(default_factory=dict)
    truncated_branches: int = 0
    max_depth_hits: int = 0
    threshold_warned: bool = False

    def allocate_id(self) -> int:
        node_id = self.next_id
        self.next_id += 1
        return node_id

    def enter_depth(self, depth: int) -> None:
        if depth == self.limits.sibling_first_depth and not self.reset_for_depth_first:
            self.reset_for_depth_first = True
            self.node_total = 0

    @property
    def truncated(self) -> bool:
        return self.truncated_branches > 0 or self.max_depth_hits > 0
