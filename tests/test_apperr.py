import pytest

from backend_scaffold.apperr import (
    ERR_FAILED_PRECONDITION,
    ERR_INTERNAL,
    ERR_INVALID_ARGUMENT,
    ERR_NOT_FOUND,
    AppErr,
    Code,
    as_app_err,
    is_error,
    new,
    wrap,
)

NO_ROWS = LookupError("sql: no rows in result set")
TX_DONE = RuntimeError("sql: transaction has already been committed or rolled back")


def _stacktrace(err):
    values = [value for key, value in err.attrs if key == "stacktrace"]
    assert len(values) == 1
    return values[0]


def _non_stack_attrs(err):
    return [(k, v) for k, v in err.attrs if k != "stacktrace"]


@pytest.mark.parametrize(
    "code, name",
    [
        (Code.INVALID_ARGUMENT, "InvalidArgument"),
        (Code.OK, "OK"),
        (Code.FAILED_PRECONDITION, "FailedPrecondition"),
        (Code.CANCELED, "Canceled"),
    ],
)
def test_code_names(code, name):
    err = new(code, "boom")
    assert str(err) == f"boom ({name})"
    assert err.log_value()["code"] == name


@pytest.mark.parametrize(
    "err, want",
    [
        (AppErr(Code.INVALID_ARGUMENT, "invalid input (InvalidArgument)"), "invalid input (InvalidArgument)"),
        (
            AppErr(
                Code.INTERNAL,
                "failed to process request: database error (Internal)",
                cause=ValueError("database error"),
            ),
            "failed to process request: database error (Internal)",
        ),
    ],
)
def test_str(err, want):
    assert str(err) == want


def test_unwrap_returns_cause():
    original = ValueError("original error")
    err = AppErr(Code.INTERNAL, "test error: original error (Internal)", cause=original)
    assert err.unwrap() is original


def test_unwrap_returns_none_without_cause():
    err = AppErr(Code.INVALID_ARGUMENT, "test error (InvalidArgument)")
    assert err.unwrap() is None


@pytest.mark.parametrize(
    "err, target, want",
    [
        (AppErr(Code.INTERNAL, "test error", cause=NO_ROWS), NO_ROWS, True),
        (AppErr(Code.INTERNAL, "test error", cause=NO_ROWS), TX_DONE, False),
        (AppErr(Code.INVALID_ARGUMENT, "test error"), ValueError("original error"), False),
        (AppErr(Code.INTERNAL, "test error", cause=NO_ROWS), ERR_INTERNAL, True),
        (AppErr(Code.INTERNAL, "test error", cause=NO_ROWS), ERR_INVALID_ARGUMENT, False),
        (AppErr(Code.NOT_FOUND, "test error"), ERR_NOT_FOUND, True),
        (AppErr(Code.NOT_FOUND, "test error"), ERR_INTERNAL, False),
    ],
)
def test_matches(err, target, want):
    assert err.matches(target) is want


def test_matches_none_is_false():
    assert AppErr(Code.NOT_FOUND, "x").matches(None) is False


LOG_ATTRS = [("user_id", "123"), ("attempt", 3)]


@pytest.mark.parametrize(
    "err, want, want_attrs",
    [
        (
            AppErr(Code.INTERNAL, "test error", cause=ValueError("database error"), attrs=LOG_ATTRS),
            {"msg": "test error", "code": "Internal", "cause": "database error"},
            {"user_id": "123", "attempt": 3},
        ),
        (
            AppErr(Code.INVALID_ARGUMENT, "test error", attrs=LOG_ATTRS),
            {"msg": "test error", "code": "InvalidArgument"},
            {"user_id": "123", "attempt": 3},
        ),
        (
            AppErr(Code.NOT_FOUND, "not found"),
            {"msg": "not found", "code": "NotFound"},
            {},
        ),
        (
            AppErr(Code.UNKNOWN, "unknown error", cause=None, attrs=LOG_ATTRS),
            {"msg": "unknown error", "code": "Unknown"},
            {"user_id": "123", "attempt": 3},
        ),
    ],
)
def test_log_value(err, want, want_attrs):
    value = err.log_value()
    expected_len = len(want) + (1 if want_attrs else 0)
    assert len(value) == expected_len
    for key, expected in want.items():
        assert value[key] == expected
    assert value.get("attrs", {}) == want_attrs


def test_log_value_with_app_err_cause():
    err = AppErr(
        Code.INTERNAL,
        "wrapped error",
        cause=AppErr(Code.INVALID_ARGUMENT, "invalid input (InvalidArgument)"),
        attrs=LOG_ATTRS,
    )
    value = err.log_value()
    assert set(value) == {"msg", "code", "cause", "attrs"}
    assert value["cause"] == "invalid input (InvalidArgument)"
    assert value["code"] == "Internal"


@pytest.mark.parametrize(
    "code, msg, attrs, target, error_str",
    [
        (
            Code.INVALID_ARGUMENT,
            "invalid email format",
            {"field": "email", "value": "invalid-email"},
            ERR_INVALID_ARGUMENT,
            "invalid email format (InvalidArgument)",
        ),
        (Code.INTERNAL, "internal server error", {}, ERR_INTERNAL, "internal server error (Internal)"),
    ],
)
def test_new(code, msg, attrs, target, error_str):
    err = new(code, msg, **attrs)
    assert is_error(err, target)
    assert as_app_err(err) is err
    assert err.cause is None
    assert err.code == code
    assert len(err.attrs) == len(attrs) + 1
    assert _non_stack_attrs(err) == list(attrs.items())
    stack = _stacktrace(err)
    lines = stack.split("\n")
    assert len(lines) >= 2
    assert lines[0] == "test_new"
    assert str(err) == error_str


def test_wrap_standard_error_with_attrs():
    err = wrap(NO_ROWS, Code.NOT_FOUND, "failed to create user", user_id="123", operation="create_user")
    assert is_error(err, ERR_NOT_FOUND)
    assert err.cause is NO_ROWS
    assert err.code == Code.NOT_FOUND
    assert _non_stack_attrs(err) == [("user_id", "123"), ("operation", "create_user")]
    assert len(err.attrs) == 3
    assert _stacktrace(err).split("\n")[0] == "test_wrap_standard_error_with_attrs"
    assert str(err) == "failed to create user: sql: no rows in result set (NotFound)"
    assert is_error(err, NO_ROWS)


def test_wrap_standard_error_without_attrs():
    err = wrap(TX_DONE, Code.FAILED_PRECONDITION, "invalid input")
    assert is_error(err, ERR_FAILED_PRECONDITION)
    assert err.cause is TX_DONE
    assert err.code == Code.FAILED_PRECONDITION
    assert len(err.attrs) == 1
    assert str(err) == (
        "invalid input: sql: transaction has already been committed or rolled back (FailedPrecondition)"
    )


def test_wrap_flattens_new_and_concatenates_messages():
    inner = new(Code.INVALID_ARGUMENT, "invalid email format", field="email")
    err = wrap(inner, Code.INTERNAL, "failed to create user", user_id="123", operation="create_user")
    assert is_error(err, ERR_INTERNAL)
    assert is_error(err.cause, new(Code.INVALID_ARGUMENT, "invalid email format", field="email"))
    assert err.cause is inner
    assert err.code == Code.INTERNAL
    assert _non_stack_attrs(err) == [("field", "email"), ("user_id", "123"), ("operation", "create_user")]
    assert len(err.attrs) == 4
    # The original stack trace is kept.
    assert _stacktrace(err) == _stacktrace(inner)
    assert "test_wrap_flattens_new_and_concatenates_messages" in _stacktrace(err)
    assert str(err) == "failed to create user (Internal): invalid email format (InvalidArgument)"


def test_wrap_flattens_new_without_attrs():
    inner = new(Code.NOT_FOUND, "user not found")
    err = wrap(inner, Code.INTERNAL, "database operation failed")
    assert is_error(err, ERR_INTERNAL)
    assert is_error(err.cause, ERR_NOT_FOUND)
    assert err.code == Code.INTERNAL
    assert len(err.attrs) == 1
    assert str(err) == "database operation failed (Internal): user not found (NotFound)"


def test_wrap_flattens_wrap_and_preserves_original_cause():
    inner = wrap(NO_ROWS, Code.NOT_FOUND, "invalid input")
    err = wrap(inner, Code.INTERNAL, "failed to process request", request_id="abc123")
    assert is_error(err, ERR_INTERNAL)
    assert err.cause is NO_ROWS
    assert err.code == Code.INTERNAL
    assert _non_stack_attrs(err) == [("request_id", "abc123")]
    assert len(err.attrs) == 2
    assert str(err) == (
        "failed to process request (Internal): invalid input: sql: no rows in result set (NotFound)"
    )
    assert as_app_err(err) is err


def test_wrap_finds_app_err_deeper_in_chain():
    inner = new(Code.NOT_FOUND, "missing")
    try:
        raise KeyError("outer") from inner
    except KeyError as exc:
        outer = exc
    assert as_app_err(outer) is inner
    err = wrap(outer, Code.INTERNAL, "lookup failed")
    assert str(err) == "lookup failed (Internal): missing (NotFound)"
    assert err.cause is inner


def test_wrap_none_raises():
    with pytest.raises(TypeError):
        wrap(None, Code.INTERNAL, "nothing")


def test_as_app_err_returns_none_for_plain_error():
    assert as_app_err(ValueError("plain")) is None


def test_is_error_with_exception_class():
    err = wrap(NO_ROWS, Code.NOT_FOUND, "lookup")
    assert is_error(err, LookupError) is True
    assert is_error(err, KeyError) is False


def test_app_err_can_be_raised_and_caught():
    err = new(Code.PERMISSION_DENIED, "no access")
    assert err.code == Code.PERMISSION_DENIED
    assert str(err) == "no access (PermissionDenied)"
    with pytest.raises(AppErr) as info:
        raise err
    assert info.value is err
    assert is_error(info.value, new(Code.PERMISSION_DENIED, "other"))