from eventmap.modules.validation.engine import InvalidRef, check_invalid_refs, find_invalid_refs

__all__ = ["InvalidRef", "check_invalid_refs", "find_invalid_refs"]
