"""Argument validation helpers for generated tool models.

Every failure is reported in one message so a calling model can correct
all of its arguments in a single retry.
"""

from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

_TRUE_WORDS = frozenset({"true", "1", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "0", "no", "off", ""})


def _location(err: Mapping[str, Any]) -> str:
    path = ""
    for part in err["loc"]:
        path += f"[{part}]" if isinstance(part, int) else f".{part}"
    return path.lstrip(".") or "arguments"


def _describe(err: Mapping[str, Any]) -> str:
    text = f"{_location(err)} - {err['msg']}"
    # the input of a missing field is the whole argument object
    if err["type"] != "missing":
        text += f" (received: {err.get('input')!r})"
    return text


def format_validation_errors(error: ValidationError, context: str = "arguments") -> str:
    """Render a ValidationError of a tool argument model for the caller.

    Fields are named by their original OpenAPI names since generated models
    alias every field.

    Args:
        error: The failed validation
        context: What was validated, e.g. ``"arguments for listPets"``

    Returns:
        ``"Invalid <context>: <field> - <reason>"`` for one failure, or a
        bulleted list for several
    """
    errors = error.errors()
    if len(errors) == 1:
        return f"Invalid {context}: {_describe(errors[0])}"

    lines = [f"Invalid {context} - {len(errors)} errors:"]
    lines.extend(f"  • {_describe(err).replace(' - ', ': ', 1)}" for err in errors)
    lines.append("\nPlease fix all errors and retry with correct types.")
    return "\n".join(lines)


def coerce_bool(v: Any) -> bool | Any:
    """Map boolean spellings such as ``"yes"`` or ``"0"`` onto booleans."""
    if isinstance(v, str):
        word = v.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return v


def _parse_or_keep(v: Any, parse: Callable[[str], Any]) -> Any:
    if not isinstance(v, str):
        return v
    try:
        return parse(v)
    except ValueError:
        # pydantic reports the original string
        return v


def coerce_int(v: Any) -> int | Any:
    """Convert integer strings, leaving anything else to pydantic."""
    return _parse_or_keep(v, int)


def coerce_float(v: Any) -> float | Any:
    """Convert numeric strings, leaving anything else to pydantic."""
    return _parse_or_keep(v, float)
