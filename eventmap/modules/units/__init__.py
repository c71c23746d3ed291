from eventmap.modules.units.schemas import (
    DialogueMenuConfig,
    PathConvergenceConfig,
    UnitTuning,
    default_unit_tuning,
)

__all__ = [
    "DialogueMenuConfig",
    "PathConvergenceConfig",
    "UnitTuning",
    "default_unit_tuning",
]
