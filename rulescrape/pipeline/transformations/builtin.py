"""Built-in text and value transformations."""

import functools
import html
import re
from typing import Any, Callable, Mapping
from urllib.parse import quote_plus, unquote_plus

from rulescrape.pipeline.document import NodeValue, as_text

from .dates import parse_date, validate_parse_date
from .registry import TransformationError, TransformationFunc, TransformationRegistry

_INTEGER_RE = re.compile(r"[+-]?\d+")
_FLOAT_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _skip_none(func: TransformationFunc) -> TransformationFunc:
    """Let None (an empty match) pass through a transformation untouched."""

    @functools.wraps(func)
    def wrapper(value: Any, params: Mapping[str, Any]) -> Any:
        if value is None:
            return None
        return func(value, params)

    return wrapper


@_skip_none
def extract_text(value: Any, params: Mapping[str, Any]) -> str:
    """Text of a node and its descendants with spaces at element boundaries."""
    if isinstance(value, NodeValue):
        return value.extract_text()
    return as_text(value).strip()


@_skip_none
def html_decode(value: Any, params: Mapping[str, Any]) -> str:
    return html.unescape(as_text(value))


@_skip_none
def html_encode(value: Any, params: Mapping[str, Any]) -> str:
    return html.escape(as_text(value), quote=bool(params.get("quote", True)))


@_skip_none
def url_decode(value: Any, params: Mapping[str, Any]) -> str:
    return unquote_plus(as_text(value))


@_skip_none
def url_encode(value: Any, params: Mapping[str, Any]) -> str:
    return quote_plus(as_text(value), safe=str(params.get("safe", "")))


@_skip_none
def remove_extra_whitespace(value: Any, params: Mapping[str, Any]) -> str:
    """Collapse whitespace runs (newlines and tabs included) to one space and trim."""
    return " ".join(as_text(value).split())


@_skip_none
def trim(value: Any, params: Mapping[str, Any]) -> str:
    return as_text(value).strip(params.get("chars"))


@_skip_none
def split(value: Any, params: Mapping[str, Any]) -> list[str]:
    """Split a string into a list of trimmed, non-empty parts."""
    separator = params.get("separator", ",")
    parts = (part.strip() for part in as_text(value).split(separator))
    return [part for part in parts if part]


def _validate_split(params: Mapping[str, Any]) -> None:
    separator = params.get("separator", ",")
    if not isinstance(separator, str) or not separator:
        raise ValueError("Split 'separator' must be a non-empty string")


@_skip_none
def cast_to_integer(value: Any, params: Mapping[str, Any]) -> int:
    """Parse a base-10 integer."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    text = as_text(value).strip()
    if not _INTEGER_RE.fullmatch(text):
        raise TransformationError(f"Cannot cast '{text}' to integer")
    return int(text, 10)


@_skip_none
def cast_to_float(value: Any, params: Mapping[str, Any]) -> float:
    """Parse a float using '.' as decimal separator regardless of locale."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    text = as_text(value).strip()
    if not _FLOAT_RE.fullmatch(text):
        raise TransformationError(f"Cannot cast '{text}' to float")
    return float(text)


def _compile_pattern(params: Mapping[str, Any]) -> re.Pattern[str]:
    flags = re.IGNORECASE if params.get("ignore_case") else 0
    return re.compile(params["pattern"], flags)


@_skip_none
def regex_extract(value: Any, params: Mapping[str, Any]) -> Any:
    """Return a capture group of the first match, or None when nothing matches."""
    match = _compile_pattern(params).search(as_text(value))
    if match is None:
        return None
    return match.group(params.get("group", 1))


def validate_regex(params: Mapping[str, Any]) -> None:
    """Check that a regex pattern compiles and defines the requested group."""
    pattern = params.get("pattern")
    if not isinstance(pattern, str) or not pattern:
        raise ValueError("Regex requires a non-empty 'pattern' parameter")
    try:
        compiled = _compile_pattern(params)
    except re.error as e:
        raise ValueError(f"Invalid regex pattern '{pattern}': {e}") from e

    group = params.get("group", 1)
    if isinstance(group, bool) or not isinstance(group, (int, str)):
        raise ValueError(f"Regex group must be a number or a name, got {group!r}")
    if isinstance(group, int) and not 0 <= group <= compiled.groups:
        raise ValueError(f"Regex pattern '{pattern}' has no group {group}")
    if isinstance(group, str) and group not in compiled.groupindex:
        raise ValueError(f"Regex pattern '{pattern}' has no group named '{group}'")


BUILTIN_TRANSFORMATIONS: list[tuple[str, TransformationFunc, str, Callable[..., None] | None]] = [
    ("ExtractText", extract_text, "Text of a node with spaces between elements", None),
    ("HtmlDecode", html_decode, "Decode HTML character entities", None),
    ("HtmlEncode", html_encode, "Encode HTML special characters", None),
    ("UrlDecode", url_decode, "Percent-decode a string ('+' becomes a space)", None),
    ("UrlEncode", url_encode, "Percent-encode a string (a space becomes '+')", None),
    ("RemoveExtraWhitespace", remove_extra_whitespace, "Collapse whitespace runs and trim", None),
    ("Trim", trim, "Strip leading and trailing whitespace", None),
    ("Split", split, "Split a string into a list on 'separator'", _validate_split),
    ("CastToInteger", cast_to_integer, "Parse a base-10 integer", None),
    ("CastToFloat", cast_to_float, "Parse a decimal number", None),
    ("ParseDate", parse_date, "Parse a date with optional 'format' and 'culture'", validate_parse_date),
    ("Regex", regex_extract, "Extract a capture group with 'pattern' and 'group'", validate_regex),
]


def register_builtins(registry: TransformationRegistry) -> None:
    """Register all built-in transformations on a registry."""
    for name, func, description, validate in BUILTIN_TRANSFORMATIONS:
        registry.register(name, func, description, validate)
