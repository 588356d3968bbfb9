"""Wildcard name filters.

A filter string holds one or more comma-separated alternatives. Within an
alternative ``*`` stands for any run of characters; everything else is
literal. A name matches when it equals at least one alternative in full.

    "*Service"                 -> App.OrderService, Other.Service
    "App.*Handler,App.*Query"  -> App.CreateHandler, App.ListQuery
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field


@dataclass(frozen=True)
class WildcardPattern:
    """A compiled wildcard filter."""

    source: str
    _regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        alternatives = (
            re.escape(segment).replace(r"\*", ".*")
            for segment in self.source.split(",")
        )
        object.__setattr__(
            self,
            "_regex",
            re.compile("|".join(f"(?:{alt})" for alt in alternatives), re.DOTALL),
        )

    @property
    def alternatives(self) -> tuple[str, ...]:
        return tuple(self.source.split(","))

    def matches(self, name: str) -> bool:
        """Return True if ``name`` fully matches one of the alternatives."""
        return self._regex.fullmatch(name) is not None

    __call__ = matches


def compile_pattern(pattern: str | None) -> WildcardPattern | None:
    """Compile a wildcard filter string.

    Returns None for a None pattern, meaning "no filter".
    """
    if pattern is None:
        return None
    return WildcardPattern(pattern)


def matches(pattern: WildcardPattern | None, name: str) -> bool:
    """Apply an optional compiled filter; a missing filter accepts everything."""
    return pattern is None or pattern.matches(name)
