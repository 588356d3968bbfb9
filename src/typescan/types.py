"""Type expressions used throughout the type graph and queries.

A type is referenced by value: the fully-qualified name of its
declaration plus an ordered tuple of type arguments. Two references
denote the same type exactly when they compare equal, so generic
instantiations reached along different inheritance edges are
interchangeable.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class TypeRef:
    """A named type with optional type arguments.

    Examples:
        System.String             -> TypeRef("System.String")
        IHandler<> (definition)   -> TypeRef("App.IHandler")
        IHandler<string>          -> TypeRef("App.IHandler", (TypeRef("System.String"),))
        IHandler<T>               -> TypeRef("App.IHandler", (TypeParamRef("T"),))

    """

    name: str
    args: tuple[TypeExpr, ...] = ()

    def __repr__(self) -> str:
        if not self.args:
            return f"TypeRef({self.name})"
        args_str = ", ".join(repr(a) for a in self.args)
        return f"TypeRef({self.name}, ({args_str}))"

    @property
    def definition(self) -> TypeRef:
        """The generic definition this reference instantiates."""
        return TypeRef(self.name) if self.args else self

    def __getitem__(self, args: TypeExpr | tuple[TypeExpr, ...]) -> TypeRef:
        """Instantiate with arguments: ``IHandler[STRING]``."""
        if not isinstance(args, tuple):
            args = (args,)
        return TypeRef(self.name, args)


@dataclass(frozen=True)
class TypeParamRef:
    """Reference to a generic parameter by name (e.g. T in IHandler<T>)."""

    name: str

    def __repr__(self) -> str:
        return f"TypeParamRef({self.name})"


type TypeExpr = TypeRef | TypeParamRef
"""Union type for type expressions."""


def type_params_in(texpr: TypeExpr) -> Iterator[str]:
    """Yield names of every parameter referenced in a type expression."""
    match texpr:
        case TypeParamRef(name=name):
            yield name
        case TypeRef(args=args):
            for arg in args:
                yield from type_params_in(arg)


def has_type_params(texpr: TypeExpr) -> bool:
    """Return True if the expression mentions any generic parameter."""
    return next(type_params_in(texpr), None) is not None


def is_closed(texpr: TypeExpr) -> bool:
    """Return True if no generic parameter occurs anywhere within."""
    return not has_type_params(texpr)


def substitute(texpr: TypeExpr, mapping: Mapping[str, TypeExpr]) -> TypeExpr:
    """Replace parameter references with their mapped expressions.

    Parameters missing from the mapping are left in place.
    """
    match texpr:
        case TypeParamRef(name=name):
            return mapping.get(name, texpr)
        case TypeRef(name=name, args=args):
            if not args:
                return texpr
            return TypeRef(name, tuple(substitute(a, mapping) for a in args))


def type_name(texpr: TypeExpr) -> str:
    """Convert a type expression to its display string.

    >>> type_name(TypeRef("App.IHandler", (TypeRef("System.String"),)))
    'App.IHandler<System.String>'
    """
    match texpr:
        case TypeParamRef(name=name):
            return name
        case TypeRef(name=name, args=()):
            return name
        case TypeRef(name=name, args=args):
            args_str = ", ".join(type_name(a) for a in args)
            return f"{name}<{args_str}>"
