"""Connect service handlers for users and posts, with their messages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .apperr import Code


class ConnectError(Exception):
    """An RPC error carrying a status code and a message."""

    def __init__(self, code: Code, message: str) -> None:
        super().__init__(message)
        self.code = Code(code)
        self.message = message

    @property
    def code_name(self) -> str:
        """The code as it appears on the wire, e.g. ``invalid_argument``."""
        return self.code.name.lower()

    def __str__(self) -> str:
        return f"{self.code_name}: {self.message}"

    def to_dict(self) -> dict[str, str]:
        """The error as a JSON-ready mapping."""
        return {"code": self.code_name, "message": self.message}


def _object(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    return data


def _read_wrapped(data: dict[str, Any], key: str) -> str | None:
    wrapper = data.get(key)
    if wrapper is None:
        return None
    value = _object(wrapper).get("value")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key}.value: expected a string")
    return value


def _read_string(data: dict[str, Any], camel: str, snake: str) -> str:
    value = data.get(camel, data.get(snake))
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{snake}: expected a string")
    return value


def _wrapped_fields(**fields: str | None) -> dict[str, Any]:
    return {key: ({"value": value} if value else {}) for key, value in fields.items() if value is not None}


@dataclass
class User:
    """A user; a field left as None is absent from the message."""

    id: str | None = None
    name: str | None = None
    email: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _wrapped_fields(id=self.id, name=self.name, email=self.email)

    @classmethod
    def from_dict(cls, data: Any) -> User:
        data = _object(data)
        return cls(*(_read_wrapped(data, key) for key in ("id", "name", "email")))


@dataclass
class Post:
    """A post; a field left as None is absent from the message."""

    id: str | None = None
    title: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _wrapped_fields(id=self.id, title=self.title)

    @classmethod
    def from_dict(cls, data: Any) -> Post:
        data = _object(data)
        return cls(_read_wrapped(data, "id"), _read_wrapped(data, "title"))


@dataclass
class GetUserRequest:
    user_id: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> GetUserRequest:
        return cls(_read_string(_object(data), "userId", "user_id"))


@dataclass
class CreateUserRequest:
    user: User | None = None

    @classmethod
    def from_dict(cls, data: Any) -> CreateUserRequest:
        value = _object(data).get("user")
        return cls(None if value is None else User.from_dict(value))


@dataclass
class GetPostRequest:
    post_id: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> GetPostRequest:
        return cls(_read_string(_object(data), "postId", "post_id"))


@dataclass
class CreatePostRequest:
    post: Post | None = None

    @classmethod
    def from_dict(cls, data: Any) -> CreatePostRequest:
        value = _object(data).get("post")
        return cls(None if value is None else Post.from_dict(value))


@dataclass
class _UserResponse:
    user: User | None = None

    def to_dict(self) -> dict[str, Any]:
        return {} if self.user is None else {"user": self.user.to_dict()}


@dataclass
class _PostResponse:
    post: Post | None = None

    def to_dict(self) -> dict[str, Any]:
        return {} if self.post is None else {"post": self.post.to_dict()}


class GetUserResponse(_UserResponse):
    pass


class CreateUserResponse(_UserResponse):
    pass


class GetPostResponse(_PostResponse):
    pass


class CreatePostResponse(_PostResponse):
    pass


def _invalid(message: str) -> ConnectError:
    return ConnectError(Code.INVALID_ARGUMENT, message)


class UserHandler:
    """Serves the user service."""

    def get_user(self, req: GetUserRequest | None) -> GetUserResponse:
        """Return the user with the requested ID."""
        if req is None:
            raise _invalid("request cannot be nil")
        if not req.user_id:
            raise _invalid("user_id is required")
        return GetUserResponse(User(req.user_id, "Example User", "example@example.com"))

    def create_user(self, req: CreateUserRequest | None) -> CreateUserResponse:
        """Create a user and return it with a generated ID."""
        if req is None:
            raise _invalid("request cannot be nil")
        if req.user is None:
            raise _invalid("user is required")
        user = req.user
        return CreateUserResponse(User("generated-user-id-" + (user.id or ""), user.name, user.email))


class PostHandler:
    """Serves the post service."""

    def get_post(self, req: GetPostRequest | None) -> GetPostResponse:
        """Return the post with the requested ID."""
        if req is None:
            raise _invalid("request cannot be nil")
        if not req.post_id:
            raise _invalid("post_id is required")
        return GetPostResponse(Post(req.post_id, "Example Post Title"))

    def create_post(self, req: CreatePostRequest | None) -> CreatePostResponse:
        """Create a post and return it with a generated ID."""
        if req is None:
            raise _invalid("request cannot be nil")
        if req.post is None:
            raise _invalid("post is required")
        return CreatePostResponse(Post("generated-post-id-" + (req.post.id or ""), req.post.title))