from __future__ import annotations

import json
from pathlib import Path

from pydantic import TypeAdapter

from eventmap.errors import UnitInputError
from eventmap.modules.alterations.defaults import DEFAULT_ALTERATIONS
from eventmap.modules.alterations.schemas import Alteration, UnitAlterations

_UNIT_ALTERATIONS_LIST = TypeAdapter(list[UnitAlterations])


def load_alterations(payload: object) -> list[UnitAlterations]:
    """Validate raw alteration data; raises pydantic.ValidationError before anything is applied."""
    return _UNIT_ALTERATIONS_LIST.validate_python(payload)


def load_alterations_file(path: Path) -> list[UnitAlterations]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise UnitInputError(path=str(path), detail=f"cannot read alterations: {exc}") from exc
    return load_alterations(payload)


def default_alterations() -> list[UnitAlterations]:
    return load_alterations(DEFAULT_ALTERATIONS)


def alterations_by_unit(entries: list[UnitAlterations]) -> dict[str, list[Alteration]]:
    grouped: dict[str, list[Alteration]] = {}
    for entry in entries:
        grouped.setdefault(entry.name, []).extend(entry.alterations)
    return grouped
