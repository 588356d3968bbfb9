"""Builtins conversion for graphs, queries and matches.

Lets hosts keep type graphs and queries as plain data (dicts, lists,
strings, booleans) and feed them to the engine, e.g. from JSON files.

Type expressions are tagged so they decode unambiguously:
    {"tag": "type", "name": "App.IHandler", "args": [{"tag": "param", "name": "T"}]}
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import fields, is_dataclass
from enum import Enum
from typing import Any

from typescan.graph import (
    Accessibility,
    Constructor,
    Module,
    Namespace,
    TypeDecl,
    TypeGraph,
    TypeKind,
)
from typescan.query import Query
from typescan.solver import GenericParameter, HandlerKind, HandlerSignature
from typescan.types import TypeExpr, TypeParamRef, TypeRef

_TAG_KEY = "tag"

_TAGS: dict[type, str] = {
    TypeRef: "type",
    TypeParamRef: "param",
    Namespace: "namespace",
    TypeDecl: "decl",
}


def to_builtins(obj: Any) -> Any:
    """Convert a graph, query, match or any part of one to builtins.

    Returns:
        JSON-compatible Python value (dict, list, str, int, bool, None)

    """
    if isinstance(obj, TypeGraph):
        return {"modules": [to_builtins(m) for m in obj.modules]}

    # StrEnum members are str instances; encode them by value
    if isinstance(obj, Enum):
        return obj.value

    if is_dataclass(obj) and not isinstance(obj, type):
        result: dict[str, Any] = {}
        if tag := _TAGS.get(type(obj)):
            result[_TAG_KEY] = tag
        for f in fields(obj):
            if not f.name.startswith("_"):
                result[f.name] = to_builtins(getattr(obj, f.name))
        return result

    if isinstance(obj, Sequence) and not isinstance(obj, str | bytes):
        return [to_builtins(item) for item in obj]

    if isinstance(obj, Mapping):
        return {k: to_builtins(v) for k, v in obj.items()}

    return obj


# =============================================================================
# Decoding
# =============================================================================


def _identity(value: Any) -> Any:
    return value


def _optional[T](decode: Callable[[Any], T]) -> Callable[[Any], T | None]:
    return lambda value: None if value is None else decode(value)


def _many[T](decode: Callable[[Any], T]) -> Callable[[Any], tuple[T, ...]]:
    return lambda values: tuple(decode(v) for v in values)


def _decode_dataclass[T](
    cls: type[T],
    data: Mapping[str, Any],
    decoders: Mapping[str, Callable[[Any], Any]],
) -> T:
    """Build a dataclass from the fields present in ``data``.

    Missing fields take their defaults; unknown keys are ignored.
    """
    if not isinstance(data, Mapping):
        msg = f"Expected an object for {cls.__name__}, got {type(data).__name__}"
        raise ValueError(msg)
    kwargs = {
        f.name: decoders.get(f.name, _identity)(data[f.name])
        for f in fields(cls)  # type: ignore[arg-type]
        if f.name in data
    }
    return cls(**kwargs)


def _expect_tag(data: Any, *tags: str) -> str:
    if not isinstance(data, Mapping) or _TAG_KEY not in data:
        msg = f"Missing required '{_TAG_KEY}' field"
        raise KeyError(msg)
    tag = data[_TAG_KEY]
    if tag not in tags:
        msg = f"Unknown tag '{tag}', expected one of {', '.join(tags)}"
        raise ValueError(msg)
    return tag


def type_expr_from_builtins(data: Any) -> TypeExpr:
    """Decode a tagged type expression."""
    if _expect_tag(data, "type", "param") == "param":
        return TypeParamRef(data["name"])
    return TypeRef(
        data["name"],
        tuple(type_expr_from_builtins(a) for a in data.get("args", ())),
    )


def type_ref_from_builtins(data: Any) -> TypeRef:
    """Decode a type expression that must name a type."""
    texpr = type_expr_from_builtins(data)
    if not isinstance(texpr, TypeRef):
        msg = f"Expected a type, got parameter '{texpr.name}'"
        raise ValueError(msg)
    return texpr


_type_refs = _many(type_ref_from_builtins)


def _constructor(data: Any) -> Constructor:
    return _decode_dataclass(Constructor, data, {"accessibility": Accessibility})


def decl_from_builtins(data: Any) -> TypeDecl:
    """Decode a type declaration, including its nested declarations."""
    _expect_tag(data, "decl")
    return _decode_dataclass(
        TypeDecl,
        data,
        {
            "kind": TypeKind,
            "accessibility": Accessibility,
            "type_params": tuple,
            "base": _optional(type_ref_from_builtins),
            "interfaces": _type_refs,
            "attributes": _type_refs,
            "constructors": _many(_constructor),
            "nested": _many(decl_from_builtins),
        },
    )


def _namespace_member(data: Any) -> Namespace | TypeDecl:
    if _expect_tag(data, "namespace", "decl") == "namespace":
        return _namespace(data)
    return decl_from_builtins(data)


def _namespace(data: Any) -> Namespace:
    return _decode_dataclass(Namespace, data, {"members": _many(_namespace_member)})


def module_from_builtins(data: Any) -> Module:
    """Decode a module and its namespace tree."""
    return _decode_dataclass(
        Module,
        data,
        {"root": _namespace, "references": tuple},
    )


def graph_from_builtins(data: Mapping[str, Any]) -> TypeGraph:
    """Decode a type graph: ``{"modules": [...]}``.

    Raises:
        KeyError: If the 'modules' field or a required tag is missing.
        ValueError: If a tag is unknown.
        DuplicateTypeError: If two declarations share a qualified name.

    """
    return TypeGraph(module_from_builtins(m) for m in data["modules"])


def _parameter(data: Any) -> GenericParameter:
    return _decode_dataclass(GenericParameter, data, {"constraint_types": _type_refs})


def handler_from_builtins(data: Any) -> HandlerSignature:
    return _decode_dataclass(
        HandlerSignature,
        data,
        {"parameters": _many(_parameter), "kind": HandlerKind},
    )


def query_from_builtins(data: Mapping[str, Any]) -> Query:
    """Decode a query.

    Raises:
        QueryError: If the decoded query is malformed.

    """
    optional_ref = _optional(type_ref_from_builtins)
    return _decode_dataclass(
        Query,
        data,
        {
            "module_of_type": optional_ref,
            "assignable_to": optional_ref,
            "exclude_assignable_to": optional_ref,
            "attribute_filter": optional_ref,
            "exclude_by_attribute": optional_ref,
            "handler": _optional(handler_from_builtins),
        },
    )
