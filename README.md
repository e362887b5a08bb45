# backend-scaffold

A starting point for a small backend service, with no dependencies outside
the standard library. It bundles three pieces that are useful on their own
and a server that ties them together:

- `backend_scaffold.apperr`: application errors that carry an RPC status
  code (`Code`), a message, an optional cause and structured attributes,
  including a captured stack trace.
- `backend_scaffold.logger`: a structured logger writing JSON or
  `key=value` text, with trace and span IDs taken from a `SpanContext`.
- `backend_scaffold.handlers` and `backend_scaffold.server`: user and post
  services answering Connect-style JSON requests over HTTP.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Running the server

```
backend-scaffold-api
```

The server listens on port 9090 on all interfaces and logs a line when it
starts. Stop it with Ctrl+C. If the port cannot be bound, the command exits
with "Server failed to start: ..." and the reason.

From Python, `initialize_connect_server()` builds a `ConnectServer` with a
`UserHandler` and a `PostHandler` already wired in. `start()` listens and
serves until `stop()` is called from another thread; `wait_until_serving()`
blocks until it is listening and `address` gives the bound host and port.
The address to listen on can be passed as `port`, in the form `host:port`
(for example `"127.0.0.1:0"` for any free port).

### Procedures

Each procedure is a `POST` with a JSON body to its path:

| Path | Request body | Response body |
| --- | --- | --- |
| `/api.v1.UserService/GetUser` | `{"userId": "42"}` | `{"user": {"id": {...}, "name": {...}, "email": {...}}}` |
| `/api.v1.UserService/CreateUser` | `{"user": {"id": {"value": "1"}, "name": {"value": "Ann"}}}` | `{"user": {...}}` |
| `/api.v1.PostService/GetPost` | `{"postId": "7"}` | `{"post": {"id": {...}, "title": {...}}}` |
| `/api.v1.PostService/CreatePost` | `{"post": {"id": {"value": "7"}, "title": {"value": "Hi"}}}` | `{"post": {...}}` |

Field names are accepted in camelCase or snake_case (`userId` or
`user_id`). String fields are wrapped as `{"value": "..."}`.

A failed call answers with a JSON body such as
`{"code": "invalid_argument", "message": "user_id is required"}` and an HTTP
status that follows the code (400 for invalid argument, 404 for not found,
and so on; 500 for codes without a mapping). A body that is not valid JSON,
or has fields of the wrong type, is an invalid-argument error. An unknown
path, or any `GET`, answers `404 page not found`.

`ConnectServer.handle(path, body)` runs the same dispatch without a network
and returns a `Reply` with `status`, `body` and `content_type`.

### What the services do

`UserHandler` offers `get_user` and `create_user`; `PostHandler` offers
`get_post` and `create_post`. Each takes a request object
(`GetUserRequest`, `CreateUserRequest`, `GetPostRequest`,
`CreatePostRequest`) and returns the matching response. A missing request or
a missing required field raises `ConnectError` with an invalid-argument code.

`get_user` and `get_post` return fixed example data under the requested ID.
`create_user` and `create_post` echo the given record back with the ID
prefixed by `generated-user-id-` or `generated-post-id-`.

### What the package does not do

- Nothing is stored: there is no database or other storage, so created users
  and posts are not kept and lookups never find real records.
- Only JSON over HTTP/1.1 unary calls are served: no binary protobuf
  messages, no streaming, no gRPC transport.
- `HTTPHandler.handle_home` answers the root path with a welcome message and
  everything else with not found, but it is not mounted on `ConnectServer`;
  it is there to be routed by your own code.

## Application errors

`new` creates an error from a code and a message; `wrap` adds context to an
existing error. Keyword arguments become attributes. Wrapping an `AppErr`
flattens the chain: messages are joined, the new code wins, and the original
cause, attributes and stack trace are kept.

```python
from backend_scaffold.apperr import ERR_INTERNAL, Code, as_app_err, is_error, new, wrap

err = new(Code.INVALID_ARGUMENT, "invalid email format", field="email")
str(err)   # "invalid email format (InvalidArgument)"

outer = wrap(err, Code.INTERNAL, "failed to create user", user_id="123")
str(outer) # "failed to create user (Internal): invalid email format (InvalidArgument)"

is_error(outer, ERR_INTERNAL)   # True: matches by code
as_app_err(outer).log_value()   # msg, code, cause and attrs as a dict
```

An `AppErr` matches another `AppErr` with the same code, or anything its
cause matches. `is_error` walks the whole chain of causes and also accepts an
exception class as the target. Predefined errors `ERR_CANCELED` through
`ERR_UNAUTHENTICATED` exist for every non-OK code.

## Logging

```python
import io
from backend_scaffold.logger import Format, Level, Logger, SpanContext

buf = io.StringIO()
log = Logger(buf, Level.INFO, Format.JSON, None)
log.info(None, "user created", user_id="123")

request_log = log.with_attrs(module="auth")
request_log.warn(None, "login attempt failed", email="someone@example.com")

span = SpanContext("0102030405060708090a0b0c0d0e0f10", "a1a2a3a4a5a6a7a8")
log.error(span, "request failed")
```

The default writer is standard output and the default format is text.
Messages below the configured level are dropped. Every record starts with
`time`, `level` and `msg`; when the first argument is a valid `SpanContext`,
`trace_id` and `span_id` follow, before the record's own attributes.
`SpanContext` takes lower-case hex IDs of 32 and 16 digits and raises
`ValueError` otherwise.

The `replace_attr` argument is called as `replace_attr(groups, (key, value))`
for each attribute and may return a changed pair, or `None` to drop it:

```python
def drop_time(groups, attr):
    return None if attr[0] == "time" else attr

Logger(buf, Level.INFO, Format.TEXT, drop_time)
```

Dicts, and values with a `log_value()` method such as `AppErr`, are written
as nested groups: `{"err": {...}}` in JSON, `err.msg=... err.code=...` in
text.