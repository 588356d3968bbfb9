"""Exception hierarchy for typescan.

Matching itself never raises: a candidate that cannot satisfy a query is
simply not yielded. These errors cover malformed inputs, which are
detected while a graph or query is being constructed or looked up.
"""

from __future__ import annotations


class ScanError(Exception):
    """Base class for all typescan errors."""


class QueryError(ScanError, ValueError):
    """A query value is structurally malformed."""


class DuplicateTypeError(ScanError, ValueError):
    """A type graph declares the same qualified name more than once."""

    def __init__(self, name: str, modules: tuple[str, ...]) -> None:
        self.name = name
        self.modules = modules
        super().__init__(
            f"Type '{name}' is declared more than once (in {', '.join(modules)})",
        )


class UnknownTypeError(ScanError, KeyError):
    """A type name does not resolve in the type graph."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Unknown type '{self.name}'"


class UnknownModuleError(ScanError, KeyError):
    """A module name does not resolve in the type graph."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Unknown module '{self.name}'"
