from __future__ import annotations


class EventmapError(RuntimeError):
    def __init__(self, *, code: str, message: str) -> None:
        super().__init__(message)
        self.code = str(code)
        self.message = str(message)


class BytecodeParseError(EventmapError):
    """Raised when a unit's compiled story JSON cannot be decoded."""

    def __init__(self, *, unit_name: str, detail: str) -> None:
        super().__init__(
            code="BYTECODE_PARSE_FAILED",
            message=f"story bytecode for {unit_name!r} is not valid JSON ({detail})",
        )
        self.unit_name = unit_name


class NameLookupError(EventmapError):
    """Raised when the card/talent id lookup cannot be fetched."""

    def __init__(self, *, url: str, detail: str) -> None:
        super().__init__(code="NAME_LOOKUP_FAILED", message=f"name lookup failed for {url}: {detail}")
        self.url = url


class StoryEngineLoadError(EventmapError):
    def __init__(self, *, factory_path: str, detail: str) -> None:
        super().__init__(
            code="STORY_ENGINE_UNAVAILABLE",
            message=f"cannot load story engine factory {factory_path!r}: {detail}",
        )
        self.factory_path = factory_path


class UnitInputError(EventmapError):
    def __init__(self, *, path: str, detail: str) -> None:
        super().__init__(code="UNIT_INPUT_INVALID", message=f"input file {path} is invalid: {detail}")
        self.path = path
