"""Exceptions raised by the middleware stack."""

from __future__ import annotations

from typing import Any


class MiddlewareStackError(Exception):
    """Base class for every error raised by this package."""


class MiddlewareNotFoundError(MiddlewareStackError, LookupError):
    """A target middleware could not be located in the stack."""

    def __init__(self, target: Any, where: str) -> None:
        self.target = target
        self.where = where
        super().__init__(f"No such middleware to insert {where}: {target!r}")


class FrozenStackError(MiddlewareStackError, RuntimeError):
    """The stack was edited after it had been built."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Cannot {operation} middleware: the stack has already been built")


__all__ = ["FrozenStackError", "MiddlewareNotFoundError", "MiddlewareStackError"]
