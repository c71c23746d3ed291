from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from eventmap.errors import UnitInputError
from eventmap.modules.tree.model import EventTree


class UnitRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    type: Any = None
    artwork: Any = None
    text: str | None = None
    caption: str | None = None

    @property
    def display_name(self) -> str:
        return self.caption or self.name


def parse_units(payload: object, *, source: str = "<memory>") -> list[UnitRecord]:
    if not isinstance(payload, list):
        raise UnitInputError(path=source, detail="expected a JSON list of units")
    units: list[UnitRecord] = []
    for position, item in enumerate(payload):
        if not isinstance(item, dict):
            raise UnitInputError(path=source, detail=f"entry {position} is not an object")
        try:
            units.append(UnitRecord.model_validate(item))
        except ValidationError as exc:
            raise UnitInputError(path=source, detail=f"entry {position}: {exc.errors()[0]['msg']}") from exc
    return units


def load_units(path: Path) -> list[UnitRecord]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise UnitInputError(path=str(path), detail=str(exc)) from exc
    return parse_units(payload, source=str(path))


def dump_trees(trees: list[EventTree]) -> str:
    return json.dumps([tree.to_dict() for tree in trees], ensure_ascii=False, indent=2)


def write_trees(trees: list[EventTree], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_trees(trees), encoding="utf-8")


def load_trees(path: Path) -> list[EventTree]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise UnitInputError(path=str(path), detail=str(exc)) from exc
    if not isinstance(payload, list):
        raise UnitInputError(path=str(path), detail="expected a JSON list of trees")
    try:
        return [EventTree.from_dict(item) for item in payload]
    except (KeyError, TypeError, ValueError) as exc:
        raise UnitInputError(path=str(path), detail=f"malformed tree: {exc}") from exc
