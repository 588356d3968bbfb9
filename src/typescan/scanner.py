"""Candidate enumeration: which modules to scan and the types they declare."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

from typescan.graph import iter_declarations
from typescan.patterns import WildcardPattern
from typescan.types import type_name

if TYPE_CHECKING:
    from typescan.graph import Module, TypeDecl, TypeGraph
    from typescan.query import Query

logger = logging.getLogger(__name__)


def select_modules(graph: TypeGraph, query: Query) -> tuple[Module, ...]:
    """Pick the modules a query scans.

    The first applicable rule wins:
    1. ``module_of_type`` names a declared type: that type's module only.
    2. ``module_name_filter`` is set: every module in the declaring
       module's reference closure (itself included) whose name matches.
    3. Otherwise: the declaring module.

    Raises:
        UnknownTypeError: If the query's declaring type is not in the graph.

    """
    declaring = graph.module_of(query.declaring_type)

    if query.module_of_type is not None:
        if query.module_of_type.name in graph:
            return (graph.module_of(query.module_of_type.name),)
        logger.warning(
            "Module-of type %s is not in the type graph; ignoring it",
            type_name(query.module_of_type),
        )

    if query.module_name_filter is not None:
        pattern = WildcardPattern(query.module_name_filter)
        return tuple(
            module
            for module in graph.reference_closure(declaring.name)
            if pattern.matches(module.name)
        )

    return (declaring,)


def types_of(module: Module) -> Iterator[TypeDecl]:
    """Every type declared in a module, depth-first in declaration order."""
    return iter_declarations(module.root)


def scan(graph: TypeGraph, query: Query) -> Iterator[TypeDecl]:
    """Candidate declarations for a query, module by module."""
    for module in select_modules(graph, query):
        logger.debug("Scanning module %s", module.name)
        yield from types_of(module)
