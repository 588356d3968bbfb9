"""Generic-constraint solver for handler signatures.

A handler signature such as

    void AddHandler<THandler, TCommand>()
        where THandler : class, ICommandHandler<TCommand>
        where TCommand : ICommand

is satisfied by a candidate type when the candidate can be bound to the
first parameter and every other parameter can be derived from the
candidate's generalizations while honoring all constraints. Only the
first parameter is seeded; the rest are discovered by aligning constraint
type arguments against concrete instantiations in the candidate's
ancestry.

A parameter whose constraints are still being checked further up the
current path is accepted when reached again, so cyclic constraints
(``X : ISmth<Y>, Y : ISmth<X>``) terminate instead of recursing forever.
A parameter that is already fully resolved is accepted again only for
the same type: every constraint holds under one simultaneous
substitution. Both the bindings and the in-progress set are scoped to a
single top-level solve.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from typescan.assignability import Generalization, is_assignable
from typescan.errors import QueryError
from typescan.graph import Accessibility
from typescan.types import (
    TypeExpr,
    TypeParamRef,
    TypeRef,
    has_type_params,
    type_name,
    type_params_in,
)

if TYPE_CHECKING:
    from typescan.graph import TypeGraph

logger = logging.getLogger(__name__)

# Partial assignment for one branch of the search.
type _State = Mapping[str, TypeRef]


@dataclass(frozen=True)
class _Search:
    """Context threaded through one top-level solve.

    Attributes:
        pinned: Generalization the candidate was matched through, if any.
        in_progress: Parameters whose constraints are being checked on the
            current path. Reaching one of them again closes a cycle.

    """

    pinned: Generalization | None = None
    in_progress: frozenset[str] = frozenset()

    def entering(self, name: str) -> _Search:
        return _Search(self.pinned, self.in_progress | {name})


class HandlerKind(StrEnum):
    """How a query's handler is invoked for each match."""

    METHOD = "method"
    """Generic method on the declaring type; the match binds its parameters."""

    TYPE_METHOD = "type_method"
    """Static method declared on every matched type; nothing to bind."""


@dataclass(frozen=True)
class GenericParameter:
    """A generic parameter of a handler signature, with its constraints.

    Constraint types refer to sibling parameters through TypeParamRef, so
    parameters may constrain each other in either direction.

    Attributes:
        name: Parameter name, unique within the signature.
        reference_type: ``class`` constraint.
        value_type: ``struct`` constraint.
        unmanaged: ``unmanaged`` constraint.
        constructor: ``new()`` constraint.
        constraint_types: Types the bound type must be assignable to.

    """

    name: str
    reference_type: bool = False
    value_type: bool = False
    unmanaged: bool = False
    constructor: bool = False
    constraint_types: tuple[TypeRef, ...] = ()

    @property
    def ref(self) -> TypeParamRef:
        return TypeParamRef(self.name)


@dataclass(frozen=True)
class HandlerSignature:
    """The handler a query's matches are passed to."""

    name: str
    parameters: tuple[GenericParameter, ...] = ()
    kind: HandlerKind = HandlerKind.METHOD

    def __post_init__(self) -> None:
        names = [p.name for p in self.parameters]
        if len(set(names)) != len(names):
            msg = f"Handler '{self.name}' declares duplicate generic parameters: {names}"
            raise QueryError(msg)
        if self.kind is HandlerKind.TYPE_METHOD and self.parameters:
            msg = f"Handler '{self.name}' is a type method and cannot declare generic parameters"
            raise QueryError(msg)

        for param in self.parameters:
            if param.reference_type and (param.value_type or param.unmanaged):
                msg = (
                    f"Parameter '{param.name}' cannot be both a reference type "
                    "and a value type"
                )
                raise QueryError(msg)
            for constraint in param.constraint_types:
                unknown = set(type_params_in(constraint)) - set(names)
                if unknown:
                    msg = (
                        f"Constraint {type_name(constraint)} on '{param.name}' "
                        f"references undeclared parameters: {sorted(unknown)}"
                    )
                    raise QueryError(msg)

    def parameter(self, name: str) -> GenericParameter:
        for param in self.parameters:
            if param.name == name:
                return param
        raise KeyError(name)

    def ordinal(self, name: str) -> int:
        """Position of the named parameter in the signature."""
        return [p.name for p in self.parameters].index(name)


@dataclass(frozen=True)
class Binding:
    """Concrete types for every parameter of a handler, in signature order."""

    entries: tuple[tuple[str, TypeRef], ...] = ()

    def __getitem__(self, name: str) -> TypeRef:
        for key, value in self.entries:
            if key == name:
                return value
        raise KeyError(name)

    def __contains__(self, name: object) -> bool:
        return any(key == name for key, _ in self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[str]:
        return (key for key, _ in self.entries)

    def __str__(self) -> str:
        items = ", ".join(f"{k}={type_name(v)}" for k, v in self.entries)
        return f"{{{items}}}"

    @property
    def types(self) -> tuple[TypeRef, ...]:
        """Bound types in parameter order (the handler's type arguments)."""
        return tuple(value for _, value in self.entries)

    def as_dict(self) -> dict[str, TypeRef]:
        return dict(self.entries)


class ConstraintSolver:
    """Finds every Binding of a handler signature admitted by a candidate."""

    def __init__(self, graph: TypeGraph, signature: HandlerSignature) -> None:
        self.graph = graph
        self.signature = signature
        self._params = {p.name: p for p in signature.parameters}

    def solve(
        self,
        candidate: TypeRef,
        generalization: Generalization | None = None,
    ) -> tuple[Binding, ...]:
        """Solve the signature for one candidate.

        Args:
            candidate: Type bound to the first parameter.
            generalization: Optional instantiation the candidate was matched
                through. Constraints on the candidate that use the same
                generic definition only consider this instantiation.

        Returns:
            Distinct bindings in discovery order; empty if unsatisfiable.

        """
        params = self.signature.parameters
        if not params:
            return (Binding(),)

        found: dict[Binding, None] = {}
        search = _Search(pinned=generalization)
        for state in self._satisfies(candidate, params[0], {}, search):
            missing = [p.name for p in params if p.name not in state]
            if missing:
                logger.debug(
                    "%s leaves %s unbound for handler %s",
                    type_name(candidate),
                    ", ".join(missing),
                    self.signature.name,
                )
                continue
            binding = Binding(tuple((p.name, state[p.name]) for p in params))
            if binding not in found:
                logger.debug("Solved %s for %s", binding, type_name(candidate))
                found[binding] = None
        return tuple(found)

    def _satisfies(
        self,
        node: TypeRef,
        param: GenericParameter,
        state: _State,
        search: _Search,
    ) -> list[_State]:
        """Bind ``param`` to ``node`` and check all of its constraints."""
        if param.name in search.in_progress:
            return [state]
        if param.name in state:
            if state[param.name] == node:
                return [state]
            logger.debug(
                "%s conflicts with %s already bound to %s",
                type_name(node),
                type_name(state[param.name]),
                param.name,
            )
            return []

        state = {**state, param.name: node}
        if reason := self._violated_flag(node, param):
            logger.debug("%s rejected for %s: %s", type_name(node), param.name, reason)
            return []

        inner = search.entering(param.name)
        states = [state]
        for constraint in param.constraint_types:
            states = [
                after
                for before in states
                for after in self._satisfies_constraint(node, constraint, before, inner)
            ]
            if not states:
                logger.debug(
                    "%s rejected for %s: not assignable to %s",
                    type_name(node),
                    param.name,
                    type_name(constraint),
                )
                break
        return states

    def _violated_flag(self, node: TypeRef, param: GenericParameter) -> str | None:
        graph = self.graph
        if param.reference_type and graph.is_value_type(node):
            return "value type violates the reference-type constraint"
        if param.value_type and not graph.is_value_type(node):
            return "not a value type"
        if param.unmanaged and not graph.is_unmanaged(node):
            return "not an unmanaged type"
        if param.constructor and not any(
            ctor.accessibility is Accessibility.PUBLIC
            and ctor.parameter_count == 0
            and not ctor.is_static
            for ctor in graph.constructors(node)
        ):
            return "no public parameterless constructor"
        return None

    def _satisfies_constraint(
        self,
        node: TypeRef,
        constraint: TypeRef,
        state: _State,
        search: _Search,
    ) -> list[_State]:
        if not has_type_params(constraint):
            return [state] if is_assignable(self.graph, node, constraint) else []

        # ICommandHandler<TCommand>: find every ICommandHandler<...> the node
        # implements and try to align each one's arguments.
        pinned = search.pinned
        if (
            pinned is not None
            and node == pinned.candidate
            and constraint.definition == pinned.target.definition
        ):
            targets: tuple[TypeRef, ...] = (pinned.target,)
        else:
            targets = is_assignable(self.graph, node, constraint.definition).targets

        results: list[_State] = []
        for target in targets:
            if len(target.args) != len(constraint.args):
                continue
            results.extend(self._align_all(constraint.args, target.args, state, search))
        return results

    def _align_all(
        self,
        expected: tuple[TypeExpr, ...],
        actual: tuple[TypeExpr, ...],
        state: _State,
        search: _Search,
    ) -> list[_State]:
        states = [state]
        for exp, act in zip(expected, actual, strict=True):
            states = [
                after
                for before in states
                for after in self._align(exp, act, before, search)
            ]
            if not states:
                break
        return states

    def _align(
        self,
        expected: TypeExpr,
        actual: TypeExpr,
        state: _State,
        search: _Search,
    ) -> list[_State]:
        """Match one constraint argument against one concrete argument."""
        if not isinstance(actual, TypeRef):
            return []

        match expected:
            case TypeParamRef(name=name):
                return self._satisfies(actual, self._params[name], state, search)
            case TypeRef() if not has_type_params(expected):
                return [state] if expected == actual else []
            case TypeRef(name=name, args=args):
                if actual.name != name or len(actual.args) != len(args):
                    return []
                return self._align_all(args, actual.args, state, search)
        return []


def solve(
    graph: TypeGraph,
    candidate: TypeRef,
    signature: HandlerSignature,
    generalization: Generalization | None = None,
) -> tuple[Binding, ...]:
    """Solve ``signature`` for ``candidate`` (see ConstraintSolver.solve)."""
    return ConstraintSolver(graph, signature).solve(candidate, generalization)
