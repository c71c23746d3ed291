from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterator

from eventmap.errors import BytecodeParseError
from eventmap.modules.content.random_values import RandomRange

logger = logging.getLogger(__name__)

NAMED_CONTENT_INDEX = 2
SKIPPED_DEFINITION_KEYS = frozenset({"global decl"})


@dataclass(slots=True)
class InkAnalysis:
    random_vars: dict[str, list[RandomRange]] = field(default_factory=dict)
    function_definitions: dict[str, list[str]] = field(default_factory=dict)
    function_calls: dict[str, str] = field(default_factory=dict)
    knots: dict[str, Any] = field(default_factory=dict)


def load_bytecode(raw: str, *, unit_name: str) -> dict[str, Any]:
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise BytecodeParseError(unit_name=unit_name, detail=str(exc)) from exc
    if not isinstance(payload, dict):
        raise BytecodeParseError(unit_name=unit_name, detail="top-level value is not an object")
    return payload


def _iter_lists(node: Any) -> Iterator[list[Any]]:
    stack = [node]
    while stack:
        item = stack.pop()
        if isinstance(item, list):
            yield item
            stack.extend(reversed(item))
        elif isinstance(item, dict):
            stack.extend(reversed(list(item.values())))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _named_content(bytecode: dict[str, Any]) -> dict[str, Any]:
    root = bytecode.get("root")
    if not isinstance(root, list) or len(root) <= NAMED_CONTENT_INDEX:
        return {}
    definitions = root[NAMED_CONTENT_INDEX]
    return definitions if isinstance(definitions, dict) else {}


def detect_random_variables(bytecode: dict[str, Any]) -> dict[str, list[RandomRange]]:
    """Find `VAR = RANDOM(min, max)` assignments.

    Compiled form: `["ev", min, max, "rnd", "/ev", {"VAR=": name}]`.
    """
    random_vars: dict[str, list[RandomRange]] = {}
    for items in _iter_lists(bytecode):
        for index in range(len(items) - 5):
            window = items[index : index + 6]
            if (
                window[0] == "ev"
                and _is_number(window[1])
                and _is_number(window[2])
                and window[3] == "rnd"
                and window[4] == "/ev"
                and isinstance(window[5], dict)
                and "VAR=" in window[5]
            ):
                value_range = RandomRange(int(window[1]), int(window[2]))
                ranges = random_vars.setdefault(str(window[5]["VAR="]), [])
                if value_range not in ranges:
                    ranges.append(value_range)
    return random_vars


def _return_values(body: Any) -> list[str]:
    values: list[str] = []
    for items in _iter_lists(body):
        for index in range(len(items) - 5):
            window = items[index : index + 6]
            if (
                window[0] == "ev"
                and window[1] == "str"
                and isinstance(window[2], str)
                and window[2].startswith("^")
                and window[3] == "/str"
                and window[4] == "/ev"
                and window[5] == "~ret"
            ):
                value = window[2][1:]
                if value and value not in values:
                    values.append(value)
    return values


def parse_function_definitions(bytecode: dict[str, Any]) -> dict[str, list[str]]:
    definitions: dict[str, list[str]] = {}
    for name, body in _named_content(bytecode).items():
        if name.startswith("#") or name in SKIPPED_DEFINITION_KEYS:
            continue
        definitions[name] = _return_values(body)
    return definitions


def detect_function_calls(bytecode: dict[str, Any]) -> dict[str, str]:
    """Map variables to the function whose result they store.

    Compiled form: `["ev", {"f()": fn}, "/ev", {"VAR=": name}]` in the main flow.
    """
    root = bytecode.get("root")
    if not isinstance(root, list) or not root:
        return {}
    calls: dict[str, str] = {}
    for items in _iter_lists(root[0]):
        for index in range(len(items) - 3):
            window = items[index : index + 4]
            if (
                window[0] == "ev"
                and isinstance(window[1], dict)
                and "f()" in window[1]
                and window[2] == "/ev"
                and isinstance(window[3], dict)
                and "VAR=" in window[3]
            ):
                calls[str(window[3]["VAR="])] = str(window[1]["f()"])
    return calls


def detect_knot_definitions(bytecode: dict[str, Any]) -> dict[str, Any]:
    return {
        name: body
        for name, body in _named_content(bytecode).items()
        if not name.startswith("#") and name not in SKIPPED_DEFINITION_KEYS
    }


def analyze_bytecode(bytecode: dict[str, Any], *, unit_name: str = "") -> InkAnalysis:
    analysis = InkAnalysis(
        random_vars=detect_random_variables(bytecode),
        function_definitions=parse_function_definitions(bytecode),
        function_calls=detect_function_calls(bytecode),
        knots=detect_knot_definitions(bytecode),
    )
    if analysis.random_vars:
        logger.debug(
            "unit=%s random variables: %s",
            unit_name,
            ", ".join(
                f"{name}({'/'.join(f'{r.minimum}-{r.maximum}' for r in ranges)})"
                for name, ranges in analysis.random_vars.items()
            ),
        )
    if analysis.function_calls:
        logger.debug(
            "unit=%s function calls: %s",
            unit_name,
            ", ".join(f"{var}={fn}()" for var, fn in analysis.function_calls.items()),
        )
    return analysis
