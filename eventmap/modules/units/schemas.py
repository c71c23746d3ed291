from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from eventmap.modules.units.defaults import DEFAULT_DIALOGUE_MENUS, DEFAULT_PATH_CONVERGENCE


class DialogueMenuConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    menuHubPattern: str = Field(min_length=1)
    menuExitPatterns: list[str] = Field(default_factory=list)
    hubChoiceMatchThreshold: float | None = None
    passWhenOnlyExitPatternsAvailable: bool = False

    @model_validator(mode="after")
    def validate_threshold(self):
        if self.hubChoiceMatchThreshold is not None and self.hubChoiceMatchThreshold <= 0:
            raise ValueError("hubChoiceMatchThreshold must be positive; omit it for immediate mode")
        self.menuExitPatterns = [pattern for pattern in self.menuExitPatterns if pattern]
        return self

    @property
    def uses_threshold(self) -> bool:
        return self.hubChoiceMatchThreshold is not None

    def is_hub_text(self, text: str | None) -> bool:
        return bool(text) and self.menuHubPattern in text

    def is_exit(self, text: str | None) -> bool:
        return bool(text) and any(pattern in text for pattern in self.menuExitPatterns)


class PathConvergenceConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    skipPatterns: list[str] = Field(default_factory=list)

    def skips(self, text: str | None) -> bool:
        return bool(text) and any(pattern in text for pattern in self.skipPatterns)


class UnitTuning(BaseModel):
    model_config = ConfigDict(extra="forbid")

    dialogue_menus: dict[str, DialogueMenuConfig] = Field(default_factory=dict)
    path_convergence: dict[str, PathConvergenceConfig] = Field(default_factory=dict)

    def dialogue_menu(self, unit_name: str) -> DialogueMenuConfig | None:
        return self.dialogue_menus.get(unit_name)

    def convergence(self, unit_name: str) -> PathConvergenceConfig | None:
        return self.path_convergence.get(unit_name)


def default_unit_tuning() -> UnitTuning:
    return UnitTuning.model_validate(
        {
            "dialogue_menus": DEFAULT_DIALOGUE_MENUS,
            "path_convergence": DEFAULT_PATH_CONVERGENCE,
        }
    )
