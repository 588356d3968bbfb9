"""Assignability between a candidate type and a target type.

The target is either an open generic definition (``IHandler<>``: any
instantiation qualifies) or a specific type (``IHandler<string>``,
``BaseService``: only that exact type qualifies). Every instantiation of
the target found in the candidate's ancestry is reported as a
Generalization, because a class may implement the same generic interface
several times with different arguments.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from typescan.graph import TypeKind

if TYPE_CHECKING:
    from typescan.graph import TypeGraph
    from typescan.types import TypeRef


@dataclass(frozen=True)
class Generalization:
    """Witness that ``candidate`` is assignable to a queried target.

    Attributes:
        candidate: The type being tested.
        target: The concrete instantiation of the target found in the
            candidate's ancestry (the candidate itself for an exact match).

    """

    candidate: TypeRef
    target: TypeRef


@dataclass(frozen=True)
class Assignability:
    """Outcome of an assignability check."""

    generalizations: tuple[Generalization, ...] = ()

    @property
    def matched(self) -> bool:
        return bool(self.generalizations)

    @property
    def targets(self) -> tuple[TypeRef, ...]:
        """The matched instantiations, in discovery order."""
        return tuple(g.target for g in self.generalizations)

    def __bool__(self) -> bool:
        return self.matched


NOT_ASSIGNABLE = Assignability()


def _found(candidate: TypeRef, targets: list[TypeRef]) -> Assignability:
    # dict preserves order while dropping structural duplicates
    unique = dict.fromkeys(targets)
    return Assignability(tuple(Generalization(candidate, t) for t in unique))


def is_assignable(graph: TypeGraph, candidate: TypeRef, target: TypeRef) -> Assignability:
    """Decide whether ``candidate`` is assignable to ``target``.

    Args:
        graph: The type graph both types live in.
        candidate: The type being tested.
        target: An open generic definition or a specific type.

    Returns:
        An Assignability holding every Generalization that justifies the
        match; empty (and falsy) when there is none.

    Example:
        # class MultiHandler : IHandler<string>, IHandler<object>
        result = is_assignable(graph, MULTI_HANDLER, TypeRef("App.IHandler"))
        result.targets  # (IHandler<System.String>, IHandler<System.Object>)

    """
    if candidate == target:
        return _found(candidate, [candidate])

    kind = graph.kind_of(target)
    if kind is None:
        return NOT_ASSIGNABLE

    if graph.is_open_definition(target):
        if kind is TypeKind.INTERFACE:
            return _found(
                candidate,
                [
                    iface
                    for iface in graph.all_interfaces(candidate)
                    if iface.args and iface.definition == target
                ],
            )
        for base in graph.base_types(candidate):
            if base.args and base.definition == target:
                return _found(candidate, [base])
        return NOT_ASSIGNABLE

    if kind is TypeKind.INTERFACE:
        if target in graph.all_interfaces(candidate):
            return _found(candidate, [target])
        return NOT_ASSIGNABLE

    for base in graph.base_types(candidate):
        if base == target:
            return _found(candidate, [base])
    return NOT_ASSIGNABLE
