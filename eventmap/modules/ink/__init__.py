from eventmap.modules.ink.analysis import InkAnalysis, analyze_bytecode, load_bytecode
from eventmap.modules.ink.engine import StoryEngine, StoryEngineFactory, checkout, load_engine_factory

__all__ = [
    "InkAnalysis",
    "StoryEngine",
    "StoryEngineFactory",
    "analyze_bytecode",
    "checkout",
    "load_bytecode",
    "load_engine_factory",
]
