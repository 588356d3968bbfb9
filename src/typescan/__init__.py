"""typescan - declarative type-graph queries with generic constraint solving."""

from typescan.assignability import (
    Assignability,
    Generalization,
    is_assignable,
)
from typescan.codecs import (
    graph_from_builtins,
    query_from_builtins,
    to_builtins,
)
from typescan.engine import (
    Match,
    QueryEngine,
    evaluate,
)
from typescan.errors import (
    DuplicateTypeError,
    QueryError,
    ScanError,
    UnknownModuleError,
    UnknownTypeError,
)
from typescan.formats.json import (
    graph_from_json,
    query_from_json,
    to_json,
)
from typescan.graph import (
    Accessibility,
    Constructor,
    Module,
    Namespace,
    Position,
    TypeDecl,
    TypeGraph,
    TypeKind,
)
from typescan.patterns import (
    WildcardPattern,
    compile_pattern,
)
from typescan.query import Query
from typescan.scanner import (
    scan,
    select_modules,
    types_of,
)
from typescan.solver import (
    Binding,
    ConstraintSolver,
    GenericParameter,
    HandlerKind,
    HandlerSignature,
    solve,
)
from typescan.types import (
    TypeExpr,
    TypeParamRef,
    TypeRef,
    type_name,
)

__all__ = [
    # Graph
    "Accessibility",
    # Assignability
    "Assignability",
    # Solving
    "Binding",
    "ConstraintSolver",
    "Constructor",
    # Errors
    "DuplicateTypeError",
    "Generalization",
    "GenericParameter",
    "HandlerKind",
    "HandlerSignature",
    # Engine
    "Match",
    "Module",
    "Namespace",
    "Position",
    "Query",
    "QueryEngine",
    "QueryError",
    "ScanError",
    "TypeDecl",
    # Type expressions
    "TypeExpr",
    "TypeGraph",
    "TypeKind",
    "TypeParamRef",
    "TypeRef",
    "UnknownModuleError",
    "UnknownTypeError",
    # Patterns
    "WildcardPattern",
    "compile_pattern",
    "evaluate",
    # Serialization
    "graph_from_builtins",
    "graph_from_json",
    "is_assignable",
    "query_from_builtins",
    "query_from_json",
    # Scanning
    "scan",
    "select_modules",
    "solve",
    "to_builtins",
    "to_json",
    "type_name",
    "types_of",
]
