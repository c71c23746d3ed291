from __future__ import annotations

import importlib
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Protocol, Sequence

from eventmap.errors import StoryEngineLoadError


class StoryState(Protocol):
    def snapshot(self) -> Any: ...

    def restore(self, snapshot: Any) -> None: ...


class StoryEngine(Protocol):
    """Adapter contract for the story VM; one instance per unit."""

    @property
    def can_continue(self) -> bool: ...

    @property
    def current_choices(self) -> Sequence[Any]: ...

    @property
    def state(self) -> StoryState: ...

    def continue_step(self) -> str: ...

    def choose_choice(self, index: int) -> None: ...


StoryEngineFactory = Callable[[str], StoryEngine]


def load_engine_factory(factory_path: str) -> StoryEngineFactory:
    module_name, sep, attr = str(factory_path or "").partition(":")
    if not sep or not module_name.strip() or not attr.strip():
        raise StoryEngineLoadError(factory_path=factory_path, detail="expected 'module:callable'")
    try:
        module = importlib.import_module(module_name.strip())
    except ImportError as exc:
        raise StoryEngineLoadError(factory_path=factory_path, detail=str(exc)) from exc
    factory = getattr(module, attr.strip(), None)
    if not callable(factory):
        raise StoryEngineLoadError(factory_path=factory_path, detail=f"{attr!r} is not callable")
    return factory


def choice_text(choice: Any) -> str:
    if isinstance(choice, dict):
        return str(choice.get("text") or "")
    return str(getattr(choice, "text", "") or "")


def current_location(engine: StoryEngine) -> str:
    return str(getattr(engine.state, "current_path", None) or "")


@contextmanager
def checkout(engine: StoryEngine) -> Iterator[Any]:
    """Snapshot the VM and restore it on every exit path."""
    snapshot = engine.state.snapshot()
    try:
        yield snapshot
    finally:
        engine.state.restore(snapshot)
