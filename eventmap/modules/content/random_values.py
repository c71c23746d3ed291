from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Mapping

from eventmap.modules.tree.model import Node, NodeType

logger = logging.getLogger(__name__)

RANDOM_KEYWORD = "«random»"
RANDOM_KEYWORD_CHOICE_LABEL = f"Add {RANDOM_KEYWORD}"

_ADDKEYWORD_RANDOM_LIST_RE = re.compile(r"ADDKEYWORD:\s*random\s*\[")
_RANDOM_EFFECT_RES = {
    "GOLD": re.compile(r"^GOLD:\s*random\s*\[\s*(\d+)\s*-\s*(\d+)\s*\]$", re.IGNORECASE),
    "DAMAGE": re.compile(r"^DAMAGE:\s*random\s*\[\s*(\d+)\s*-\s*(\d+)\s*\]$", re.IGNORECASE),
}
_NUMBER_IN_TEXT_RES = {
    "GOLD": re.compile(r"\b(\d+)\s*(gold)\b", re.IGNORECASE),
    "DAMAGE": re.compile(r"\b(\d+)\s*(damage)\b", re.IGNORECASE),
}
_RANDOM_VARIABLE_NAMES = {"GOLD": "gold", "DAMAGE": "damage"}


@dataclass(frozen=True, slots=True)
class RandomRange:
    minimum: int
    maximum: int

    def contains(self, value: int) -> bool:
        return self.minimum <= value <= self.maximum

    def label(self) -> str:
        return f"random [{self.minimum} - {self.maximum}]"


RandomRanges = Mapping[str, list[RandomRange]]


def ranges_for(random_vars: RandomRanges, var_name: str) -> list[RandomRange]:
    return list(random_vars.get(var_name) or random_vars.get(var_name[:1].upper() + var_name[1:]) or [])


def normalize_random_effects_in_line(line: str, random_vars: RandomRanges) -> str:
    """Rewrite `GOLD:47` to `GOLD:random [10 - 50]` when 47 is a rolled value."""
    if not random_vars or ">>>>" not in line:
        return line
    normalized = line
    for command, var_name in _RANDOM_VARIABLE_NAMES.items():
        ranges = ranges_for(random_vars, var_name)
        if not ranges:
            continue

        def _replace(match: re.Match[str], ranges: list[RandomRange] = ranges) -> str:
            value = int(match.group(2))
            for candidate in ranges:
                if candidate.contains(value):
                    return f"{match.group(1)}:{candidate.label()}"
            return match.group(0)

        normalized = re.sub(rf"({command}):(\d+)\b", _replace, normalized, flags=re.IGNORECASE)
    return normalized


def normalize_random_effects(effects: Iterable[str], random_vars: RandomRanges) -> list[str]:
    normalized: list[str] = []
    for effect in effects:
        replaced = effect
        for command, var_name in _RANDOM_VARIABLE_NAMES.items():
            match = re.match(rf"^{command}:\s*(\d+)$", effect, re.IGNORECASE)
            if match is None:
                continue
            value = int(match.group(1))
            for candidate in ranges_for(random_vars, var_name):
                if candidate.contains(value):
                    replaced = f"{command}: {candidate.label()}"
                    break
        normalized.append(replaced)
    return normalized


def _randomize_numbers(text: str, command: str, value_range: RandomRange) -> str:
    def _replace(match: re.Match[str]) -> str:
        if value_range.contains(int(match.group(1))):
            return f"{RANDOM_KEYWORD} {match.group(2)}"
        return f"{match.group(1)} {match.group(2)}"

    return _NUMBER_IN_TEXT_RES[command].sub(_replace, text)


def _random_effect_range(effects: list[str], command: str) -> RandomRange | None:
    for effect in effects:
        match = _RANDOM_EFFECT_RES[command].match(str(effect))
        if match is not None:
            return RandomRange(int(match.group(1)), int(match.group(2)))
    return None


def clean_up_random_values(root: Node) -> int:
    """Show rolled gold/damage amounts in text as `«random»`.

    When the amount was split into a single dialogue child, the random effect
    moves to that child along with the rewrite.
    """
    updated = 0
    for node in root.walk():
        ranges: dict[str, RandomRange] = {}
        if node.effects and node.text:
            new_text = node.text
            for command in _RANDOM_EFFECT_RES:
                value_range = _random_effect_range(node.effects, command)
                if value_range is None:
                    continue
                ranges[command] = value_range
                new_text = _randomize_numbers(new_text, command, value_range)
            if new_text != node.text:
                node.text = new_text
                updated += 1

        if not ranges or len(node.children) != 1:
            continue
        child = node.children[0]
        if child.type != NodeType.DIALOGUE or not child.text:
            continue
        child_text = child.text
        moved_effects: list[str] = []
        for command, value_range in ranges.items():
            child_text = _randomize_numbers(child_text, command, value_range)
            moved_effects.append(f"{command}: {value_range.label()}")
        if child_text != child.text:
            child.text = child_text
            child.effects = [*child.effects, *moved_effects]
            node.effects = [effect for effect in node.effects if effect not in moved_effects]
            updated += 1
    return updated


def normalize_add_keyword_random_choice_labels(root: Node) -> int:
    updated = 0
    for node in root.walk():
        if node.type != NodeType.CHOICE or len(node.children) != 1:
            continue
        if any(_ADDKEYWORD_RANDOM_LIST_RE.search(effect) for effect in node.children[0].effects):
            node.choice_label = RANDOM_KEYWORD_CHOICE_LABEL
            updated += 1
    return updated
