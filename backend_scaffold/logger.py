"""Structured logging with text or JSON output and trace correlation."""

from __future__ import annotations

import json
import sys
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Callable, Iterable, TextIO

TIME_KEY = "time"
LEVEL_KEY = "level"
MESSAGE_KEY = "msg"
TRACE_ID_KEY = "trace_id"
SPAN_ID_KEY = "span_id"

Attr = tuple[str, Any]
ReplaceAttr = Callable[[list[str], Attr], "Attr | None"]


class Format(Enum):
    """Log output format."""

    JSON = "json"
    TEXT = "text"


class Level(IntEnum):
    """Logging severity levels."""

    DEBUG = -4
    INFO = 0
    WARN = 4
    ERROR = 8

    def __str__(self) -> str:
        return self.name


DEFAULT_LEVEL = Level.INFO


def _check_hex(value: str, length: int, what: str) -> None:
    if len(value) != length or not set(value) <= set("0123456789abcdef"):
        raise ValueError(f"invalid {what}: {value!r}")


@dataclass(frozen=True)
class SpanContext:
    """Trace and span identifiers as lower-case hex: 32 digits and 16 digits."""

    trace_id: str = "0" * 32
    span_id: str = "0" * 16

    def __post_init__(self) -> None:
        _check_hex(self.trace_id, 32, "trace id")
        _check_hex(self.span_id, 16, "span id")

    def is_valid(self) -> bool:
        """True when both identifiers are non-zero."""
        return self.trace_id.strip("0") != "" and self.span_id.strip("0") != ""


def _scalar(value: Any) -> Any:
    """Reduce a leaf value to a str, bool, int, float or None."""
    if value is None or isinstance(value, (bool, str, float)):
        return value
    if isinstance(value, Enum):
        return str(value)
    if isinstance(value, int):
        return value
    if isinstance(value, datetime):
        text = value.isoformat(timespec="milliseconds")
        return text[:-6] + "Z" if text.endswith("+00:00") else text
    return str(value)


def _resolve(value: Any) -> Any:
    log_value = getattr(value, "log_value", None)
    return log_value() if callable(log_value) else value


class _Group(list):
    """Prepared attributes rendered nested under one key."""


def _json_encode(attrs: Iterable[Attr]) -> str:
    parts = [
        f"{json.dumps(key, ensure_ascii=False)}:"
        + (_json_encode(value) if isinstance(value, _Group) else json.dumps(value, ensure_ascii=False))
        for key, value in attrs
    ]
    return "{" + ",".join(parts) + "}"


def _text_value(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value)
    if not text or any(ch in '="' or ch.isspace() or not ch.isprintable() for ch in text):
        return json.dumps(text, ensure_ascii=False)
    return text


def _text_pairs(attrs: Iterable[Attr], prefix: str = "") -> Iterable[str]:
    for key, value in attrs:
        if isinstance(value, _Group):
            yield from _text_pairs(value, prefix + key + ".")
        else:
            yield f"{_text_value(prefix + key)}={_text_value(value)}"


class Logger:
    """A structured logger writing one line per record."""

    def __init__(
        self,
        writer: TextIO | None = None,
        level: int = DEFAULT_LEVEL,
        format: Format = Format.TEXT,
        replace_attr: ReplaceAttr | None = None,
    ) -> None:
        self._writer = writer if writer is not None else sys.stdout
        self._lock = threading.Lock()
        self._level = int(level)
        self._format = format if format is Format.TEXT else Format.JSON
        self._replace_attr = replace_attr
        self._attrs: list[Attr] = []

    def debug(self, ctx: SpanContext | None, msg: str, **kwargs: Any) -> None:
        """Log a debug message."""
        self._log(ctx, Level.DEBUG, msg, kwargs)

    def info(self, ctx: SpanContext | None, msg: str, **kwargs: Any) -> None:
        """Log an info message."""
        self._log(ctx, Level.INFO, msg, kwargs)

    def warn(self, ctx: SpanContext | None, msg: str, **kwargs: Any) -> None:
        """Log a warning message."""
        self._log(ctx, Level.WARN, msg, kwargs)

    def error(self, ctx: SpanContext | None, msg: str, **kwargs: Any) -> None:
        """Log an error message."""
        self._log(ctx, Level.ERROR, msg, kwargs)

    def with_attrs(self, **kwargs: Any) -> Logger:
        """Return a logger that adds the given attributes to every record."""
        child = Logger(self._writer, self._level, self._format, self._replace_attr)
        child._lock = self._lock
        child._attrs = [*self._attrs, *kwargs.items()]
        return child

    def _log(self, ctx: SpanContext | None, level: Level, msg: str, kwargs: dict[str, Any]) -> None:
        if level < self._level:
            return
        trace: list[Attr] = []
        if isinstance(ctx, SpanContext) and ctx.is_valid():
            trace = [(TRACE_ID_KEY, ctx.trace_id), (SPAN_ID_KEY, ctx.span_id)]
        attrs = [
            (TIME_KEY, datetime.now().astimezone()),
            (LEVEL_KEY, level),
            (MESSAGE_KEY, msg),
            *self._attrs,
            *trace,
            *kwargs.items(),
        ]
        prepared = self._prepare_all([], attrs)
        line = " ".join(_text_pairs(prepared)) if self._format is Format.TEXT else _json_encode(prepared)
        with self._lock:
            self._writer.write(line + "\n")

    def _prepare_all(self, groups: list[str], attrs: Iterable[Attr]) -> list[Attr]:
        return [item for key, value in attrs for item in self._prepare(groups, key, value)]

    def _prepare(self, groups: list[str], key: str, value: Any) -> list[Attr]:
        value = _resolve(value)
        if isinstance(value, dict):
            members = self._prepare_all([*groups, key] if key else groups, value.items())
            if not members or not key:
                return members
            return [(key, _Group(members))]
        attr: Attr | None = (key, value)
        if self._replace_attr is not None:
            attr = self._replace_attr(list(groups), attr)
        if attr is None or not attr[0]:
            return []
        new_key, new_value = attr[0], _resolve(attr[1])
        if isinstance(new_value, dict):
            return self._prepare(groups, new_key, new_value)
        return [(new_key, _scalar(new_value))]