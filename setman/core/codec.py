"""Type Codec: converts typed setting values to and from their canonical string form.

Common scalars get cheap, human-readable encodings (``42``, ``true``,
``3.14``, ``2024-03-20T15:04:05Z``, ``1h30m0s``). Everything else is stored
as compact JSON with sorted keys.

Decoding dispatches on the requested type object through an explicit
registry of parsers; unregistered types fall back to JSON. A string that
cannot be read as the requested type raises TypeConversionError rather than
being coerced to a default.
"""

import dataclasses
import json
import logging
import math
import re
import struct
import types
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Type, TypeVar, Union, get_args, get_origin, get_type_hints

from setman.domain.models.common import Float32, RawValue
from setman.domain.models.errors import TypeConversionError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Parser = Callable[[str], Any]

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_TRUE_STRINGS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_STRINGS = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_RFC3339_PATTERN = re.compile(
    r"([0-9]{4}-[0-9]{2}-[0-9]{2})[Tt]([0-9]{2}:[0-9]{2}:[0-9]{2})(?:\.([0-9]{1,9}))?([Zz]|[+-][0-9]{2}:[0-9]{2})"
)

_NONE_TYPE = type(None)
# `X | None` annotations have their own origin on 3.10+.
_UNION_TYPES = (Union, types.UnionType) if hasattr(types, "UnionType") else (Union,)

# Microseconds per duration unit. timedelta cannot hold nanoseconds, so
# "ns" values are rounded to the nearest microsecond.
_DURATION_UNITS_US = {
    "ns": 0.001,
    "us": 1,
    "µs": 1,  # U+00B5 micro sign
    "μs": 1,  # U+03BC greek mu
    "ms": 1_000,
    "s": 1_000_000,
    "m": 60_000_000,
    "h": 3_600_000_000,
}
_DURATION_PART = re.compile(r"([0-9]*(?:\.[0-9]*)?)(ns|us|µs|μs|ms|s|m|h)")


# --- Scalar helpers ---

def _to_float32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def format_float32(value: float) -> str:
    """Shortest decimal that round-trips through an IEEE-754 single."""
    if math.isnan(value) or math.isinf(value):
        return repr(float(value))
    try:
        single = _to_float32(value)
    except OverflowError as e:
        raise TypeConversionError(value, Float32, "out of range for 32-bit float") from e
    for precision in range(1, 10):
        text = f"{single:.{precision}g}"
        if _to_float32(float(text)) == single:
            return repr(float(text))
    return repr(single)


def format_duration(value: timedelta) -> str:
    """Formats a timedelta as ``[-]XhYmZs`` (``0s`` for zero)."""
    total_us = (value.days * 86_400 + value.seconds) * 1_000_000 + value.microseconds
    if total_us == 0:
        return "0s"
    sign = "-" if total_us < 0 else ""
    total_us = abs(total_us)

    if total_us < 1_000_000:
        if total_us % 1_000 == 0:
            return f"{sign}{total_us // 1_000}ms"
        return f"{sign}{total_us}us"

    whole_seconds, micros = divmod(total_us, 1_000_000)
    hours, rest = divmod(whole_seconds, 3_600)
    minutes, seconds = divmod(rest, 60)
    seconds_text = str(seconds)
    if micros:
        seconds_text += "." + f"{micros:06d}".rstrip("0")

    if hours:
        return f"{sign}{hours}h{minutes}m{seconds_text}s"
    if minutes:
        return f"{sign}{minutes}m{seconds_text}s"
    return f"{sign}{seconds_text}s"


def format_datetime(value: datetime) -> str:
    """RFC 3339 text; a zero UTC offset is written as ``Z``."""
    offset = value.utcoffset()
    if offset is None:
        raise TypeConversionError(value, datetime, "naive datetime has no UTC offset")
    if offset.seconds % 60 or offset.microseconds:
        raise TypeConversionError(value, datetime, "UTC offset is not a whole number of minutes")
    text = value.isoformat()
    if offset == timedelta(0):
        text = text[: -len("+00:00")] + "Z"
    return text


# --- Parsers ---

def parse_int(raw: str) -> int:
    if not _INT_PATTERN.fullmatch(raw):
        raise ValueError("invalid syntax")
    return int(raw)


def parse_float(raw: str) -> float:
    if raw != raw.strip() or "_" in raw:
        raise ValueError("invalid syntax")
    return float(raw)


def parse_float32(raw: str) -> Float32:
    value = parse_float(raw)
    try:
        return Float32(_to_float32(value))
    except OverflowError as e:
        raise ValueError("value out of range") from e


def parse_bool(raw: str) -> bool:
    if raw in _TRUE_STRINGS:
        return True
    if raw in _FALSE_STRINGS:
        return False
    raise ValueError("invalid syntax")


def parse_datetime(raw: str) -> datetime:
    """Parses an RFC 3339 date-time; the UTC offset is mandatory.

    Fractions longer than microseconds are truncated.
    """
    match = _RFC3339_PATTERN.fullmatch(raw)
    if match is None:
        raise ValueError("expected RFC 3339 date-time")
    date_part, time_part, fraction, offset = match.groups()
    text = f"{date_part}T{time_part}"
    if fraction:
        text += "." + fraction[:6].ljust(6, "0")
    text += "+00:00" if offset in ("Z", "z") else offset
    parsed = datetime.fromisoformat(text)
    if parsed.utcoffset() == timedelta(0):
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_duration(raw: str) -> timedelta:
    """Parses ``1h30m``, ``-1.5s``, ``300ms`` style durations."""
    text = raw
    negative = False
    if text[:1] in ("+", "-"):
        negative = text[0] == "-"
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError("invalid duration")

    total = timedelta(0)
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None or match.group(1) in ("", "."):
            raise ValueError("invalid duration")
        number, unit = match.groups()
        total += timedelta(microseconds=float(number) * _DURATION_UNITS_US[unit])
        pos = match.end()
    return -total if negative else total


def parse_str(raw: str) -> str:
    return raw


class TypeCodec:
    """Encodes values to canonical strings and decodes them back by type."""

    def __init__(self):
        self._parsers: Dict[Any, Parser] = {}
        self.register(str, parse_str)
        self.register(int, parse_int)
        self.register(float, parse_float)
        self.register(Float32, parse_float32)
        self.register(bool, parse_bool)
        self.register(datetime, parse_datetime)
        self.register(timedelta, parse_duration)

    def register(self, type_: Any, parser: Parser) -> None:
        """Registers a dedicated parser for an exact target type.

        Lookups match the type object itself, so distinct types never share a
        parser even if their names collide.
        """
        self._parsers[type_] = parser
        logger.debug(f"Registered parser for {getattr(type_, '__name__', type_)}")

    def has_parser(self, type_: Any) -> bool:
        return type_ in self._parsers

    # --- Encoding ---

    def encode(self, value: Any) -> RawValue:
        """Reduces a value to its canonical string form.

        Raises:
            TypeConversionError: If a composite value is not JSON-serializable.
        """
        if isinstance(value, str):
            return RawValue(value)
        if isinstance(value, bool):
            return RawValue("true" if value else "false")
        if isinstance(value, int):
            return RawValue(str(int(value)))
        if isinstance(value, Float32):
            return RawValue(format_float32(value))
        if isinstance(value, float):
            return RawValue(repr(float(value)))
        if isinstance(value, datetime):
            return RawValue(format_datetime(value))
        if isinstance(value, timedelta):
            return RawValue(format_duration(value))
        return RawValue(self._encode_structured(value))

    def _encode_structured(self, value: Any) -> str:
        try:
            return json.dumps(value, sort_keys=True, separators=(",", ":"),
                              ensure_ascii=False, default=self._json_default)
        except (TypeError, ValueError) as e:
            raise TypeConversionError(value, str, f"not serializable: {e}") from e

    @staticmethod
    def _json_default(value: Any) -> Any:
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            return dataclasses.asdict(value)
        if isinstance(value, datetime):
            return format_datetime(value)
        if isinstance(value, timedelta):
            return format_duration(value)
        if isinstance(value, (set, frozenset)):
            return sorted(value)
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")

    # --- Decoding ---

    def decode(self, raw: str, type_: Type[T]) -> T:
        """Interprets a stored string as type_.

        Raises:
            TypeConversionError: If raw cannot be read as type_.
        """
        parser = self._parsers.get(type_)
        if parser is not None:
            try:
                return parser(raw)
            except (ValueError, TypeError, OverflowError) as e:
                raise TypeConversionError(raw, type_, str(e)) from e
        return self._decode_structured(raw, type_)

    def _decode_structured(self, raw: str, type_: Any) -> Any:
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise TypeConversionError(raw, type_, f"invalid JSON: {e}") from e
        try:
            return self._from_json(data, type_)
        except (ValueError, TypeError, OverflowError) as e:
            raise TypeConversionError(raw, type_, str(e)) from e

    def _from_json(self, data: Any, type_: Any) -> Any:
        """Rebuilds a value of type_ from decoded JSON, recursing into fields and items.

        Registered types nested inside containers or dataclasses go through
        their parsers, so a ``datetime`` field written as RFC 3339 text comes
        back as a ``datetime``.
        """
        if type_ is Any or type_ is object:
            return data

        origin = get_origin(type_) or type_
        args = get_args(type_)

        if origin in _UNION_TYPES:
            if data is None and _NONE_TYPE in args:
                return None
            reasons = []
            for arg in args:
                if arg is _NONE_TYPE:
                    continue
                try:
                    return self._from_json(data, arg)
                except (ValueError, TypeError) as e:
                    reasons.append(str(e))
            raise ValueError("; ".join(reasons) or "JSON null is not allowed")

        parser = self._parsers.get(origin)
        if parser is not None:
            return self._scalar_from_json(data, origin, parser)

        if dataclasses.is_dataclass(origin):
            return self._dataclass_from_json(data, origin)

        if origin in (list, tuple, set, frozenset):
            if not isinstance(data, list):
                raise ValueError(f"expected a JSON array, got {type(data).__name__}")
            if origin is tuple and args and not (len(args) == 2 and args[1] is Ellipsis):
                if len(args) != len(data):
                    raise ValueError(f"expected {len(args)} items, got {len(data)}")
                return tuple(self._from_json(item, arg) for item, arg in zip(data, args))
            item_type = args[0] if args else Any
            return origin(self._from_json(item, item_type) for item in data)

        if origin is dict:
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            key_type, value_type = args if args else (Any, Any)
            return {
                self._from_json(key, key_type): self._from_json(value, value_type)
                for key, value in data.items()
            }

        if isinstance(origin, type):
            if isinstance(data, origin):
                return data
            if isinstance(data, dict):
                return origin(**data)
            if isinstance(data, (str, int, float)) and issubclass(origin, (str, int, float)):
                return origin(data)

        raise ValueError(f"JSON value is {type(data).__name__}")

    def _scalar_from_json(self, data: Any, type_: Any, parser: Parser) -> Any:
        if isinstance(data, str):
            return parser(data)
        if type_ is not str and isinstance(data, (bool, int, float)):
            return parser(self.encode(data))
        raise ValueError(f"expected {getattr(type_, '__name__', type_)}, got JSON {type(data).__name__}")

    def _dataclass_from_json(self, data: Any, cls: Any) -> Any:
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        hints = _field_types(cls)
        skipped = {f.name for f in dataclasses.fields(cls) if not f.init}
        kwargs = {
            name: self._from_json(value, hints.get(name, Any))
            for name, value in data.items()
            if name not in skipped
        }
        return cls(**kwargs)


def _field_types(cls: Any) -> Dict[str, Any]:
    """Resolved annotations of a dataclass; unresolvable forward references read as Any."""
    try:
        return get_type_hints(cls)
    except NameError as e:
        logger.debug(f"Could not resolve annotations of {cls.__name__}: {e}")
        return {f.name: (Any if isinstance(f.type, str) else f.type) for f in dataclasses.fields(cls)}
