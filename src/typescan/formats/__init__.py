"""Format adapters for serialization.

Each format module provides to_<format> and <kind>_from_<format>
functions built on the core to_builtins/from_builtins conversion.
"""

from typescan.formats.json import graph_from_json, query_from_json, to_json

__all__ = ["graph_from_json", "query_from_json", "to_json"]
