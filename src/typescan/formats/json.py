"""JSON format adapter."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from typescan.codecs import graph_from_builtins, query_from_builtins, to_builtins

if TYPE_CHECKING:
    from typescan.graph import TypeGraph
    from typescan.query import Query


def to_json(obj: Any, *, indent: int | None = 2) -> str:
    """Serialize a graph, query, or matches to a JSON string.

    Args:
        obj: The object to serialize
        indent: JSON indentation level (default 2, None for compact)

    Returns:
        JSON string representation

    """
    return json.dumps(to_builtins(obj), indent=indent)


def _load_object(s: str, what: str) -> dict[str, Any]:
    data = json.loads(s)
    if not isinstance(data, dict):
        msg = f"Expected JSON object describing a {what}"
        raise ValueError(msg)
    return data


def graph_from_json(s: str) -> TypeGraph:
    """Deserialize a JSON string to a TypeGraph.

    Raises:
        ValueError: If the JSON doesn't describe a valid graph
        KeyError: If a required field is missing

    """
    return graph_from_builtins(_load_object(s, "type graph"))


def query_from_json(s: str) -> Query:
    """Deserialize a JSON string to a Query.

    Raises:
        ValueError: If the JSON doesn't describe a valid query
        TypeError: If the declaring type is missing

    """
    return query_from_builtins(_load_object(s, "query"))
