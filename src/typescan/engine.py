"""Query evaluation: scan candidates, filter them, bind handler parameters.

Example usage:
    from typescan import (
        GenericParameter,
        HandlerSignature,
        Query,
        TypeParamRef,
        TypeRef,
        evaluate,
        type_name,
    )

    query = Query(
        declaring_type="App.ServiceCollectionExtensions",
        assignable_to=TypeRef("App.ICommandHandler"),
        handler=HandlerSignature(
            "AddHandler",
            (
                GenericParameter(
                    "THandler",
                    reference_type=True,
                    constraint_types=(TypeRef("App.ICommandHandler", (TypeParamRef("TCommand"),)),),
                ),
                GenericParameter("TCommand"),
            ),
        ),
    )

    for match in evaluate(query, graph):
        print(type_name(match.type), match.binding)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from typescan.assignability import Generalization, is_assignable
from typescan.graph import Position, TypeDecl, TypeGraph, TypeKind
from typescan.patterns import WildcardPattern, compile_pattern
from typescan.query import Query
from typescan.scanner import scan
from typescan.solver import Binding, ConstraintSolver, HandlerKind
from typescan.types import TypeRef, type_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Match:
    """One accepted candidate.

    Attributes:
        type: The matched type.
        binding: Handler type arguments, or None if the query has no handler.
        generalizations: Instantiations of the assignable-to target the
            type was matched through (empty without an assignable-to target).
            With a handler, only those whose solve produced ``binding``.

    """

    type: TypeRef
    binding: Binding | None = None
    generalizations: tuple[TypeRef, ...] = ()

    def __str__(self) -> str:
        if self.binding is None:
            return type_name(self.type)
        return f"{type_name(self.type)} {self.binding}"


@dataclass(frozen=True)
class _Filters:
    """A query with its names compiled and its references resolved."""

    query: Query
    position: Position
    type_name_filter: WildcardPattern | None
    exclude_by_type_name: WildcardPattern | None
    solver: ConstraintSolver | None
    unsatisfiable: tuple[str, ...] = ()


class QueryEngine:
    """Evaluates queries against one immutable type graph.

    Holds no per-query state, so one engine can serve many queries,
    including from several threads at once.
    """

    def __init__(self, graph: TypeGraph) -> None:
        self.graph = graph

    def evaluate(self, query: Query) -> Iterator[Match]:
        """Lazily produce the matches of ``query``.

        Matches follow scan order, then generalization order within a
        type. The returned iterator is single-pass.

        Raises:
            UnknownTypeError: If the declaring type is not in the graph.
                Raised here, before any candidate is produced.

        """
        filters = self._prepare(query)
        if filters.unsatisfiable:
            for reason in filters.unsatisfiable:
                logger.warning("Query in %s matches nothing: %s", query.declaring_type, reason)
            return iter(())
        return self._run(filters)

    def evaluate_all(self, queries: Iterable[Query]) -> Iterator[tuple[Query, list[Match]]]:
        """Evaluate several queries independently, in order."""
        for query in queries:
            yield query, list(self.evaluate(query))

    def _prepare(self, query: Query) -> _Filters:
        graph = self.graph
        module = graph.module_of(query.declaring_type)

        unsatisfiable: list[str] = []
        for label, target in (
            ("assignable-to target", query.assignable_to),
            ("required marker", query.attribute_filter),
        ):
            if target is not None and not graph.resolves(target):
                unsatisfiable.append(f"{label} {type_name(target)} is not in the type graph")
        for label, target in (
            ("exclude-assignable-to target", query.exclude_assignable_to),
            ("excluded marker", query.exclude_by_attribute),
        ):
            if target is not None and not graph.resolves(target):
                logger.warning(
                    "%s %s is not in the type graph; ignoring it",
                    label,
                    type_name(target),
                )

        solver = None
        if query.handler is not None and query.handler.kind is HandlerKind.METHOD:
            solver = ConstraintSolver(graph, query.handler)

        return _Filters(
            query=query,
            position=Position(module.name, query.declaring_type),
            type_name_filter=compile_pattern(query.type_name_filter),
            exclude_by_type_name=compile_pattern(query.exclude_by_type_name),
            solver=solver,
            unsatisfiable=tuple(unsatisfiable),
        )

    def _run(self, filters: _Filters) -> Iterator[Match]:
        for decl in scan(self.graph, filters.query):
            yield from self._accept(decl, filters)

    def _accept(self, decl: TypeDecl, filters: _Filters) -> list[Match]:  # noqa: PLR0911
        """Run one candidate through the filters in their fixed order."""
        graph = self.graph
        query = filters.query
        candidate = decl.ref

        if reason := self._ineligible(decl, query):
            return self._reject(decl, reason)

        if query.attribute_filter is not None and (
            query.attribute_filter not in graph.attributes(candidate)
        ):
            return self._reject(decl, f"missing marker {type_name(query.attribute_filter)}")
        if query.exclude_by_attribute is not None and (
            query.exclude_by_attribute in graph.attributes(candidate)
        ):
            return self._reject(decl, f"has marker {type_name(query.exclude_by_attribute)}")

        if filters.type_name_filter is not None and not filters.type_name_filter.matches(
            decl.display_name,
        ):
            return self._reject(decl, f"name does not match '{query.type_name_filter}'")
        if filters.exclude_by_type_name is not None and filters.exclude_by_type_name.matches(
            decl.display_name,
        ):
            return self._reject(decl, f"name matches '{query.exclude_by_type_name}'")

        if query.exclude_assignable_to is not None and is_assignable(
            graph,
            candidate,
            query.exclude_assignable_to,
        ):
            return self._reject(
                decl,
                f"assignable to excluded {type_name(query.exclude_assignable_to)}",
            )

        generalizations: tuple[Generalization, ...] = ()
        if query.assignable_to is not None:
            assignability = is_assignable(graph, candidate, query.assignable_to)
            if not assignability:
                return self._reject(
                    decl,
                    f"not assignable to {type_name(query.assignable_to)}",
                )
            generalizations = assignability.generalizations

        bindings: dict[Binding | None, tuple[TypeRef, ...]] = {
            None: tuple(g.target for g in generalizations),
        }
        if query.handler is not None:
            bindings = self._bind(candidate, generalizations, filters)
            if not bindings:
                return self._reject(
                    decl,
                    f"does not satisfy the constraints of {query.handler.name}",
                )

        if not graph.is_visible_from(filters.position, candidate):
            return self._reject(decl, f"not accessible from {query.declaring_type}")

        return [Match(candidate, binding, targets) for binding, targets in bindings.items()]

    def _ineligible(self, decl: TypeDecl, query: Query) -> str | None:
        if decl.kind is not TypeKind.CLASS:
            return f"{decl.kind} is not a class"
        if decl.is_abstract:
            return "abstract"
        if not decl.nameable:
            return "cannot be referenced by name"
        if decl.is_static and not query.allows_static:
            return "static"
        if decl.is_generic and query.handler is not None:
            return "open generic types cannot be passed to a handler"
        return None

    def _bind(
        self,
        candidate: TypeRef,
        generalizations: tuple[Generalization, ...],
        filters: _Filters,
    ) -> dict[Binding | None, tuple[TypeRef, ...]]:
        """Distinct bindings, each with the generalizations that produced it."""
        if filters.solver is None:
            return {Binding(): tuple(g.target for g in generalizations)}

        found: dict[Binding | None, list[TypeRef]] = {}
        for generalization in generalizations or (None,):
            for binding in filters.solver.solve(candidate, generalization):
                targets = found.setdefault(binding, [])
                if generalization is not None:
                    targets.append(generalization.target)
        return {binding: tuple(targets) for binding, targets in found.items()}

    def _reject(self, decl: TypeDecl, reason: str) -> list[Match]:
        logger.debug("Skipping %s: %s", decl.display_name, reason)
        return []


def evaluate(query: Query, graph: TypeGraph) -> Iterator[Match]:
    """Evaluate ``query`` against ``graph`` (see QueryEngine.evaluate)."""
    return QueryEngine(graph).evaluate(query)
