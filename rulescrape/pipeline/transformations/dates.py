"""Culture-aware date parsing.

Custom formats use the .NET pattern letters found in existing rulesets
(yyyy, MM, MMMM, dd, HH, mm, ss, tt, ...). Month names, day names and
AM/PM designators come from the CLDR tables shipped with babel, so the
culture is always an explicit parameter and never process-wide state.
"""

import functools
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping

from babel import Locale, UnknownLocaleError
from babel.dates import get_day_names, get_month_names, get_period_names
from dateutil import parser as dateutil_parser

from rulescrape.pipeline.document import as_text

from .registry import TransformationError

DEFAULT_CULTURE = "en-US"
_PATTERN_LETTERS = "yMdHhmsft"
_ENGLISH_MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


@dataclass(frozen=True)
class _CultureNames:
    """Lower-cased localized names mapped to their numeric values."""

    months: dict[str, int]
    days: dict[str, int]
    periods: dict[str, str]
    day_first: bool
    year_first: bool


def _alternation(names: Any) -> str:
    """Regex alternation that prefers longer names."""
    return "|".join(re.escape(name) for name in sorted(names, key=len, reverse=True))


@functools.lru_cache(maxsize=64)
def _load_locale(culture: str) -> Locale:
    try:
        return Locale.parse(culture.replace("-", "_"))
    except (UnknownLocaleError, ValueError) as e:
        raise ValueError(f"Unknown culture '{culture}'") from e


def _name_variants(name: str) -> set[str]:
    lowered = name.lower()
    return {lowered, lowered.rstrip(".")}


@functools.lru_cache(maxsize=64)
def _culture_names(culture: str) -> _CultureNames:
    locale = _load_locale(culture)
    months: dict[str, int] = {}
    days: dict[str, int] = {}
    for context in ("format", "stand-alone"):
        for width in ("wide", "abbreviated"):
            for number, name in get_month_names(width, context, locale).items():
                for variant in _name_variants(name):
                    months.setdefault(variant, number)
            for number, name in get_day_names(width, context, locale).items():
                for variant in _name_variants(name):
                    days.setdefault(variant, number)

    periods = {
        name.lower(): key
        for key, name in get_period_names(locale=locale).items()
        if key in ("am", "pm")
    }
    periods.setdefault("am", "am")
    periods.setdefault("pm", "pm")

    short_pattern = locale.date_formats["short"].pattern
    day_index = short_pattern.find("d")
    month_index = short_pattern.find("M")
    year_index = short_pattern.find("y")
    return _CultureNames(
        months=months,
        days=days,
        periods=periods,
        day_first=0 <= day_index < month_index,
        year_first=0 <= year_index < min((i for i in (day_index, month_index) if i >= 0), default=-1),
    )


def _token_regex(letter: str, count: int, names: _CultureNames) -> str:
    """Named-group regex for one run of a format letter."""
    if letter == "y":
        return r"(?P<year>\d{4})" if count != 2 else r"(?P<year2>\d{2})"
    if letter == "M":
        if count >= 3:
            return f"(?P<monthname>{_alternation(names.months)})"
        return r"(?P<month>\d{2})" if count == 2 else r"(?P<month>\d{1,2})"
    if letter == "d":
        if count >= 3:
            return f"(?:{_alternation(names.days)})"
        return r"(?P<day>\d{2})" if count == 2 else r"(?P<day>\d{1,2})"
    if letter in "Hh":
        group = "hour" if letter == "H" else "hour12"
        return rf"(?P<{group}>\d{{2}})" if count >= 2 else rf"(?P<{group}>\d{{1,2}})"
    if letter == "m":
        return r"(?P<minute>\d{2})" if count >= 2 else r"(?P<minute>\d{1,2})"
    if letter == "s":
        return r"(?P<second>\d{2})" if count >= 2 else r"(?P<second>\d{1,2})"
    if letter == "f":
        return rf"(?P<fraction>\d{{{count}}})"
    return f"(?P<period>{_alternation(names.periods)})"


@functools.lru_cache(maxsize=256)
def _compile_format(fmt: str, culture: str) -> re.Pattern[str]:
    """Translate a custom date format into an anchored regex."""
    names = _culture_names(culture)
    parts: list[str] = []
    seen: set[str] = set()
    i = 0
    while i < len(fmt):
        char = fmt[i]
        if char in _PATTERN_LETTERS:
            count = 1
            while i + count < len(fmt) and fmt[i + count] == char:
                count += 1
            token = _token_regex(char, count, names)
            group = re.match(r"\(\?P<(\w+)>", token)
            if group:
                if group.group(1) in seen:
                    raise ValueError(f"Date format '{fmt}' repeats '{char}'")
                seen.add(group.group(1))
            parts.append(token)
            i += count
        elif char in "'\"":
            end = fmt.find(char, i + 1)
            if end < 0:
                raise ValueError(f"Unterminated literal in date format '{fmt}'")
            parts.append(re.escape(fmt[i + 1 : end]))
            i = end + 1
        elif char == "\\" and i + 1 < len(fmt):
            parts.append(re.escape(fmt[i + 1]))
            i += 2
        elif char.isspace():
            while i < len(fmt) and fmt[i].isspace():
                i += 1
            parts.append(r"\s+")
        else:
            parts.append(re.escape(char))
            i += 1
    return re.compile("".join(parts), re.IGNORECASE)


def _build_datetime(match: re.Match[str], names: _CultureNames) -> datetime:
    fields = match.groupdict()
    if fields.get("year2") is not None:
        short_year = int(fields["year2"])
        year = 2000 + short_year if short_year <= 49 else 1900 + short_year
    elif fields.get("year") is not None:
        year = int(fields["year"])
    else:
        year = date.today().year

    if fields.get("monthname") is not None:
        month = names.months[fields["monthname"].lower()]
    else:
        month = int(fields.get("month") or 1)

    hour = int(fields.get("hour") or 0)
    if fields.get("hour12") is not None:
        hour = int(fields["hour12"]) % 12
        period = fields.get("period")
        if period is not None and names.periods.get(period.lower()) == "pm":
            hour += 12

    fraction = fields.get("fraction") or ""
    microsecond = int(fraction.ljust(6, "0")[:6]) if fraction else 0

    return datetime(
        year,
        month,
        int(fields.get("day") or 1),
        hour,
        int(fields.get("minute") or 0),
        int(fields.get("second") or 0),
        microsecond,
    )


def _parse_exact(text: str, fmt: str, culture: str) -> datetime:
    match = _compile_format(fmt, culture).fullmatch(text)
    if match is None:
        raise TransformationError(f"'{text}' does not match date format '{fmt}' ({culture})")
    try:
        return _build_datetime(match, _culture_names(culture))
    except ValueError as e:
        raise TransformationError(f"Invalid date '{text}': {e}") from e


def _to_english(text: str, names: _CultureNames) -> str:
    """Replace localized month names with English ones and drop day names."""
    month_re = re.compile(rf"(?<!\w)({_alternation(names.months)})(?!\w)", re.IGNORECASE)
    text = month_re.sub(lambda m: _ENGLISH_MONTHS[names.months[m.group(1).lower()] - 1], text)
    day_re = re.compile(rf"(?<!\w)({_alternation(names.days)})(?!\w),?", re.IGNORECASE)
    return day_re.sub("", text)


def _parse_best_effort(text: str, culture: str | None) -> datetime:
    names = _culture_names(culture or DEFAULT_CULTURE)
    if culture:
        text = _to_english(text, names)
    try:
        return dateutil_parser.parse(
            text,
            dayfirst=names.day_first,
            yearfirst=names.year_first,
            default=datetime.combine(date.today(), datetime.min.time()),
        )
    except (ValueError, OverflowError) as e:
        raise TransformationError(f"Cannot parse date '{text}': {e}") from e


def parse_date(value: Any, params: Mapping[str, Any]) -> datetime | None:
    """Parse a date, strictly against 'format' when given, else best-effort.

    'culture' (e.g. fr-FR) selects month names, day names and the
    day/month order used by best-effort parsing.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    text = as_text(value).strip()
    if not text:
        return None

    culture = params.get("culture")
    fmt = params.get("format")
    if fmt:
        return _parse_exact(text, fmt, culture or DEFAULT_CULTURE)
    return _parse_best_effort(text, culture)


def validate_parse_date(params: Mapping[str, Any]) -> None:
    """Check that the culture exists and the format compiles."""
    culture = params.get("culture")
    if culture is not None and not isinstance(culture, str):
        raise ValueError("ParseDate 'culture' must be a string")
    fmt = params.get("format")
    if fmt is not None and not isinstance(fmt, str):
        raise ValueError("ParseDate 'format' must be a string")
    _culture_names(culture or DEFAULT_CULTURE)
    if fmt:
        _compile_format(fmt, culture or DEFAULT_CULTURE)
