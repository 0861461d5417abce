"""Exceptions raised by the operation registry and executor."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Mapping


class RegistryError(Exception):
    """Base class for catalog lookup, validation and execution failures."""


class CatalogError(RegistryError):
    """The catalog definition itself is inconsistent (raised at import time)."""


class UnknownOperation(RegistryError):
    def __init__(self, domain: str, operation: str) -> None:
        self.domain = domain
        self.operation = operation
        super().__init__(f"Unknown operation: {domain}.{operation}")


class ValidationFailed(RegistryError):
    """The argument bag was rejected before any statement ran.

    The rejected bag is kept on ``arguments`` (``args`` is taken by
    :class:`BaseException`).
    """

    def __init__(self, domain: str, operation: str, arguments: Mapping[str, Any]) -> None:
        self.domain = domain
        self.operation = operation
        self.arguments = dict(arguments)
        super().__init__(f"Validation failed for {domain}.{operation}")


class FailureKind(StrEnum):
    UNIQUE = "unique"
    FOREIGN_KEY = "foreign_key"
    NOT_NULL = "not_null"
    CHECK = "check"
    SYNTAX = "syntax"
    CONNECTIVITY = "connectivity"
    OTHER = "other"


class ExecutionFailed(RegistryError):
    """The database rejected a validated statement.

    The driver error is chained as ``__cause__``; *kind* classifies it.
    """

    def __init__(self, domain: str, operation: str, kind: FailureKind, message: str) -> None:
        self.domain = domain
        self.operation = operation
        self.kind = kind
        self.message = message
        super().__init__(f"{domain}.{operation} failed ({kind}): {message}")
