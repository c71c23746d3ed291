from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Mapping

from eventmap.modules.tree.model import NodeType

COMMAND_SENTINEL_RE = re.compile(r">>>>?")
COMMAND_PIECE_RE = re.compile(r"^([A-Za-z_]+)(?::([A-Za-z0-9_:'\[\]()\s\-/]+))?$")
COMBAT_COMMANDS = frozenset({"COMBAT", "DIRECTCOMBAT"})

CHOICE_REQUIREMENT_RE = re.compile(r"^([!]?[a-z]+(?::[^;]+)?);")

_PLACEHOLDER_WITH_VALUE_RE = re.compile(r">>>>?([A-Z_]+):([^;\n>\"]+?)(?=>>>|;|\n|\"|$)", re.IGNORECASE)
_PLACEHOLDER_BARE_RE = re.compile(r">>>>?([A-Z_]+)(?![:\w])", re.IGNORECASE)
_COLOR_OPEN_RE = re.compile(r"<color=[^>]+>", re.IGNORECASE)
_COLOR_CLOSE_RE = re.compile(r"</color[^>]*>", re.IGNORECASE)
_STYLE_TAG_RE = re.compile(r"</?[bi]>", re.IGNORECASE)
_SPEAKER_TAG_RE = re.compile(r"\{#[^}]+\}")
_CONDITIONAL_DISPLAY_RE = re.compile(r"\[\?[^\]]+\]")
_CONTINUE_MARKER_RE = re.compile(r"\[continue\]", re.IGNORECASE)
_LEFTOVER_STAT_BRACKET_RE = re.compile(r"\[(DAMAGE|GOLD|HEALTH):[^\]]+\];?\s*", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")
_REPEATED_SEMICOLON_RE = re.compile(r";+")

_VALUE_PLACEHOLDERS = {
    "COMBAT": "[Combat: {value}]",
    "DIRECTCOMBAT": "[Combat: {value}]",
    "MERCHANT": "[Merchant]",
    "GOLD": "[Gold: {value}]",
    "HEALTH": "[Health: {value}]",
    "RELOADEVENTS": "[Reload Events]",
    "QUESTFLAG": "[Quest Flag: {value}]",
    "NEXTSTATUS": "[Status: {value}]",
}
_BARE_PLACEHOLDERS = {
    "MERCHANT": "[Merchant]",
    "RELOADEVENTS": "",
    "END": "[End]",
}

KEYWORD_RANDOM = "a keyword"
KEYWORD_CHAOS = "chaos"
CHAOS_EFFECTS = ("ADDKEYWORD: random", "ADDKEYWORD: random", "ADDTYPE: Corruption", "SWAPCOST: blood")


@dataclass(frozen=True, slots=True)
class CommandChain:
    start: int
    end: int
    commands: tuple[tuple[str, str | None], ...]
    prose: str = ""


@dataclass(slots=True)
class ExtractedContent:
    effects: list[str] = field(default_factory=list)
    cleaned_text: str = ""


@dataclass(slots=True)
class ChoiceMetadata:
    requirements: list[str] = field(default_factory=list)
    cleaned_text: str = ""


def _parse_piece(piece: str) -> tuple[str, str | None] | None:
    match = COMMAND_PIECE_RE.match(piece.strip())
    if match is None:
        return None
    value = (match.group(2) or "").strip()
    return match.group(1).upper(), value or None


def parse_command_chain(text: str, sentinel: re.Match[str]) -> CommandChain | None:
    """Parse the `IDENT[:value];IDENT...` chain that follows a command sentinel.

    With a newline ahead the chain runs to it; otherwise it stops at the first
    `"; "` so the trailing prose stays in the text. Returns None when the first
    command does not parse.
    """
    body_start = sentinel.end()
    while body_start < len(text) and text[body_start] == ">":
        body_start += 1

    newline_at = text.find("\n", body_start)
    quote_at = text.find('"', body_start)
    if newline_at != -1:
        stop = newline_at if quote_at == -1 else min(newline_at, quote_at)
        body = text[body_start:stop]
        commands: list[tuple[str, str | None]] = []
        prose: list[str] = []
        for index, piece in enumerate(body.split(";")):
            if not piece.strip():
                continue
            parsed = _parse_piece(piece)
            if parsed is None:
                if index == 0:
                    return None
                prose.append(piece.strip())
                continue
            commands.append(parsed)
        return CommandChain(start=sentinel.start(), end=stop, commands=tuple(commands), prose="; ".join(prose))

    stop = len(text) if quote_at == -1 else quote_at
    body = text[body_start:stop]
    prose_at = body.find("; ")
    if prose_at != -1:
        chain_text = body[:prose_at]
        end = body_start + prose_at + 2
    else:
        chain_text = body
        end = stop
    commands = []
    for index, piece in enumerate(chain_text.split(";")):
        if not piece.strip():
            continue
        parsed = _parse_piece(piece)
        if parsed is None:
            if index == 0:
                return None
            break
        commands.append(parsed)
    if not commands:
        return None
    return CommandChain(start=sentinel.start(), end=end, commands=tuple(commands))


def iter_command_chains(text: str) -> list[CommandChain]:
    chains: list[CommandChain] = []
    cursor = 0
    while True:
        sentinel = COMMAND_SENTINEL_RE.search(text, cursor)
        if sentinel is None:
            return chains
        chain = parse_command_chain(text, sentinel)
        if chain is None:
            cursor = sentinel.end()
            continue
        chains.append(chain)
        cursor = max(chain.end, sentinel.end())


def find_first_command(text: str, *, skip_commands: frozenset[str] = COMBAT_COMMANDS) -> CommandChain | None:
    for chain in iter_command_chains(text):
        if chain.commands and chain.commands[0][0] not in skip_commands:
            return chain
    return None


def resolve_keyword_effects(
    value: str,
    *,
    function_definitions: Mapping[str, list[str]] | None = None,
    function_calls: Mapping[str, str] | None = None,
) -> list[str]:
    if value == KEYWORD_RANDOM:
        return ["ADDKEYWORD: random"]
    if value == KEYWORD_CHAOS:
        return list(CHAOS_EFFECTS)
    definitions = function_definitions or {}
    for function_name in (function_calls or {}).values():
        return_values = definitions.get(function_name) or []
        if value in return_values:
            return [f"ADDKEYWORD: random [{', '.join(return_values)}]"]
    return [f"ADDKEYWORD: {value}"]


def _format_effects(
    command: str,
    value: str | None,
    *,
    function_definitions: Mapping[str, list[str]] | None,
    function_calls: Mapping[str, str] | None,
) -> list[str]:
    if value is None:
        return [command]
    if command in COMBAT_COMMANDS:
        return [f"COMBAT: {value}"]
    if command == "ADDKEYWORD":
        return resolve_keyword_effects(
            value,
            function_definitions=function_definitions,
            function_calls=function_calls,
        )
    return [f"{command}: {value}"]


def extract_effects(
    text: str | None,
    *,
    function_definitions: Mapping[str, list[str]] | None = None,
    function_calls: Mapping[str, str] | None = None,
) -> ExtractedContent:
    """Pull embedded commands out of a raw segment.

    `">>>>GOLD:47; You take the coins"` gives effects `["GOLD: 47"]` and
    cleaned text `"You take the coins"`.
    """
    if not text:
        return ExtractedContent()

    effects: list[str] = []
    parts: list[str] = []
    cursor = 0
    for chain in iter_command_chains(text):
        parts.append(text[cursor : chain.start])
        if chain.prose:
            parts.append(chain.prose)
        for command, value in chain.commands:
            effects.extend(
                _format_effects(
                    command,
                    value,
                    function_definitions=function_definitions,
                    function_calls=function_calls,
                )
            )
        cursor = chain.end
    parts.append(text[cursor:])

    remaining = _REPEATED_SEMICOLON_RE.sub(";", "".join(parts)).strip(";")
    return ExtractedContent(effects=effects, cleaned_text=clean_text(remaining))


def _value_placeholder(match: re.Match[str]) -> str:
    command = match.group(1).upper()
    value = match.group(2).strip()
    template = _VALUE_PLACEHOLDERS.get(command, "[{command}: {value}]")
    return template.format(command=match.group(1), value=value)


def _bare_placeholder(match: re.Match[str]) -> str:
    command = match.group(1).upper()
    if command in _BARE_PLACEHOLDERS:
        return _BARE_PLACEHOLDERS[command]
    return f"[{match.group(1)}]"


def clean_text(text: str | None) -> str:
    if not text:
        return ""
    cleaned = _PLACEHOLDER_WITH_VALUE_RE.sub(_value_placeholder, text)
    cleaned = _PLACEHOLDER_BARE_RE.sub(_bare_placeholder, cleaned)
    cleaned = _COLOR_OPEN_RE.sub("", cleaned)
    cleaned = _COLOR_CLOSE_RE.sub("", cleaned)
    cleaned = _STYLE_TAG_RE.sub("", cleaned)
    cleaned = _SPEAKER_TAG_RE.sub("", cleaned)
    cleaned = _CONDITIONAL_DISPLAY_RE.sub("", cleaned)
    cleaned = _CONTINUE_MARKER_RE.sub("", cleaned)
    cleaned = _LEFTOVER_STAT_BRACKET_RE.sub("", cleaned)
    cleaned = cleaned.replace("\\n", " ")
    cleaned = _WHITESPACE_RE.sub(" ", cleaned)
    return cleaned.strip()


def extract_choice_metadata(choice_text: str | None) -> ChoiceMetadata:
    """Split leading `req:value;` / `!req;` gates off a choice label."""
    requirements: list[str] = []
    remaining = choice_text or ""
    while True:
        match = CHOICE_REQUIREMENT_RE.match(remaining)
        if match is None:
            break
        requirement = match.group(1)
        if requirement.startswith("!"):
            requirement = f"NOT {requirement[1:]}"
        requirements.append(requirement)
        remaining = remaining[match.end() :].strip()
    return ChoiceMetadata(requirements=requirements, cleaned_text=clean_text(remaining))


def determine_node_type(raw_text: str | None, *, is_leaf: bool) -> NodeType:
    if not raw_text:
        return NodeType.CHOICE
    if "COMBAT:" in raw_text:
        return NodeType.COMBAT
    if is_leaf:
        return NodeType.END
    return NodeType.DIALOGUE
