from eventmap.modules.pipeline.io import UnitRecord, dump_trees, load_trees, load_units, parse_units, write_trees
from eventmap.modules.pipeline.service import RunReport, build_trees, build_unit_tree, run_pipeline

__all__ = [
    "RunReport",
    "UnitRecord",
    "build_trees",
    "build_unit_tree",
    "dump_trees",
    "load_trees",
    "load_units",
    "parse_units",
    "run_pipeline",
    "write_trees",
]
