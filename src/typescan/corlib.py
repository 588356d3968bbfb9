"""Core library declarations shared by most type graphs.

Graphs usually need a handful of framework types (object, string, the
primitive value types) as constraint targets and type arguments. This
module provides them as a ready-made module so front ends and tests do
not have to redeclare them.
"""

from __future__ import annotations

from typescan.graph import Constructor, Module, TypeDecl, TypeKind
from typescan.types import TypeParamRef, TypeRef

MODULE_NAME = "System.Runtime"

OBJECT = TypeRef("System.Object")
VALUE_TYPE = TypeRef("System.ValueType")
ATTRIBUTE = TypeRef("System.Attribute")
STRING = TypeRef("System.String")
BOOLEAN = TypeRef("System.Boolean")
INT32 = TypeRef("System.Int32")
INT64 = TypeRef("System.Int64")
DECIMAL = TypeRef("System.Decimal")
GUID = TypeRef("System.Guid")
ENUMERABLE = TypeRef("System.Collections.Generic.IEnumerable")
LIST = TypeRef("System.Collections.Generic.List")


def _struct(ref: TypeRef) -> TypeDecl:
    return TypeDecl(
        ref.name,
        kind=TypeKind.STRUCT,
        base=VALUE_TYPE,
        is_sealed=True,
        is_unmanaged=True,
    )


def corlib(name: str = MODULE_NAME) -> Module:
    """Build the core library module."""
    return Module.of(
        name,
        TypeDecl(OBJECT.name),
        TypeDecl(VALUE_TYPE.name, base=OBJECT, is_abstract=True, constructors=()),
        TypeDecl(ATTRIBUTE.name, base=OBJECT, is_abstract=True, constructors=()),
        TypeDecl(
            STRING.name,
            base=OBJECT,
            is_sealed=True,
            interfaces=(ENUMERABLE[TypeRef("System.Char")],),
            constructors=(Constructor(parameter_count=1),),
        ),
        _struct(TypeRef("System.Char")),
        _struct(BOOLEAN),
        _struct(INT32),
        _struct(INT64),
        _struct(DECIMAL),
        _struct(GUID),
        TypeDecl(ENUMERABLE.name, kind=TypeKind.INTERFACE, type_params=("T",), is_abstract=True),
        TypeDecl(
            LIST.name,
            type_params=("T",),
            base=OBJECT,
            interfaces=(ENUMERABLE[TypeParamRef("T")],),
        ),
    )
