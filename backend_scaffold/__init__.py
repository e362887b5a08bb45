"""Backend scaffold: application errors, structured logging and Connect-style services over HTTP."""

__version__ = "1.0.0"
__all__ = ["apperr", "logger", "handlers", "server"]