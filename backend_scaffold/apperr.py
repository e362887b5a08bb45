"""Application errors carrying gRPC-style status codes, context and stack traces."""

from __future__ import annotations

import traceback
from enum import IntEnum
from typing import Any, Iterable

STACKTRACE_KEY = "stacktrace"
_MAX_FRAMES = 32


class Code(IntEnum):
    """gRPC status codes."""

    OK = 0
    CANCELED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16

    def __str__(self) -> str:
        if self is Code.OK:
            return "OK"
        return "".join(part.capitalize() for part in self.name.split("_"))

    def __format__(self, spec: str) -> str:
        return format(str(self), spec)


class AppErr(Exception):
    """An application error with a status code, an optional cause and log attributes.

    ``attrs`` is a list of ``(key, value)`` pairs kept in insertion order.
    """

    def __init__(
        self,
        code: Code,
        msg: str = "",
        cause: BaseException | None = None,
        attrs: Iterable[tuple[str, Any]] | None = None,
    ) -> None:
        super().__init__(msg)
        self.code = Code(code)
        self.msg = msg
        self.cause = cause
        self.attrs: list[tuple[str, Any]] = list(attrs or [])
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return self.msg

    def __repr__(self) -> str:
        return f"AppErr(code={self.code}, msg={self.msg!r}, cause={self.cause!r})"

    def unwrap(self) -> BaseException | None:
        """Return the underlying cause, if any."""
        return self.cause

    def matches(self, target: Any) -> bool:
        """True if target is an AppErr with the same code, or the cause matches it."""
        if target is None:
            return False
        if isinstance(target, AppErr):
            return self.code == target.code
        return is_error(self.cause, target)

    def log_value(self) -> dict[str, Any]:
        """Return the error's context as a structured mapping for logging."""
        value: dict[str, Any] = {"msg": self.msg, "code": str(self.code)}
        if self.cause is not None:
            value["cause"] = str(self.cause)
        if self.attrs:
            value["attrs"] = dict(self.attrs)
        return value


def _unwrap(err: BaseException) -> BaseException | None:
    if isinstance(err, AppErr):
        return err.cause
    return err.__cause__


def _chain(err: BaseException | None):
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        err = _unwrap(err)


def is_error(err: BaseException | None, target: Any) -> bool:
    """Report whether any error in err's chain matches target.

    A link matches if it is target itself, is an instance of target when target
    is an exception class, or is an AppErr whose ``matches`` accepts target.
    """
    if err is None or target is None:
        return err is target
    for current in _chain(err):
        if current is target:
            return True
        if isinstance(target, type) and isinstance(current, target):
            return True
        if isinstance(current, AppErr) and current.matches(target):
            return True
    return False


def as_app_err(err: BaseException | None) -> AppErr | None:
    """Return the first AppErr in err's chain, or None."""
    for current in _chain(err):
        if isinstance(current, AppErr):
            return current
    return None


def _with_stack() -> tuple[str, str]:
    # Drop this function and the public constructor that called it.
    frames = traceback.extract_stack()[:-2]
    if not frames:
        return (STACKTRACE_KEY, "unknown")
    selected = list(reversed(frames))[:_MAX_FRAMES]
    text = "".join(f"{frame.name}\n\t{frame.filename}:{frame.lineno}\n" for frame in selected)
    return (STACKTRACE_KEY, text)


def new(code: Code, msg: str, **kwargs: Any) -> AppErr:
    """Create an AppErr without a cause; keyword arguments become attributes."""
    code = Code(code)
    attrs = list(kwargs.items())
    attrs.append(_with_stack())
    return AppErr(code, f"{msg} ({code})", attrs=attrs)


def wrap(err: BaseException, code: Code, msg: str, **kwargs: Any) -> AppErr:
    """Wrap err with a message and code; keyword arguments become attributes.

    Wrapping an AppErr flattens the chain: messages are joined, the new code
    wins, the original attributes and stack trace are kept and the original
    cause is preserved.
    """
    if err is None:
        raise TypeError("cannot wrap None")
    code = Code(code)
    attrs = list(kwargs.items())
    attrs.append(_with_stack())

    app_err = as_app_err(err)
    if app_err is None:
        return AppErr(code, f"{msg}: {err} ({code})", cause=err, attrs=attrs)

    combined = f"{msg} ({code}): {app_err.msg}"
    merged = list(app_err.attrs)
    merged.extend(attr for attr in attrs if attr[0] != STACKTRACE_KEY)
    cause = app_err.cause if app_err.cause is not None else app_err
    return AppErr(code, combined, cause=cause, attrs=merged)


ERR_CANCELED = AppErr(Code.CANCELED)
ERR_UNKNOWN = AppErr(Code.UNKNOWN)
ERR_INVALID_ARGUMENT = AppErr(Code.INVALID_ARGUMENT)
ERR_DEADLINE_EXCEEDED = AppErr(Code.DEADLINE_EXCEEDED)
ERR_NOT_FOUND = AppErr(Code.NOT_FOUND)
ERR_ALREADY_EXISTS = AppErr(Code.ALREADY_EXISTS)
ERR_PERMISSION_DENIED = AppErr(Code.PERMISSION_DENIED)
ERR_RESOURCE_EXHAUSTED = AppErr(Code.RESOURCE_EXHAUSTED)
ERR_FAILED_PRECONDITION = AppErr(Code.FAILED_PRECONDITION)
ERR_ABORTED = AppErr(Code.ABORTED)
ERR_OUT_OF_RANGE = AppErr(Code.OUT_OF_RANGE)
ERR_UNIMPLEMENTED = AppErr(Code.UNIMPLEMENTED)
ERR_INTERNAL = AppErr(Code.INTERNAL)
ERR_UNAVAILABLE = AppErr(Code.UNAVAILABLE)
ERR_DATA_LOSS = AppErr(Code.DATA_LOSS)
ERR_UNAUTHENTICATED = AppErr(Code.UNAUTHENTICATED)