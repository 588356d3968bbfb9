"""Immutable type graph: declarations, modules, and their relationships.

The graph is built once from module declarations and is never mutated
afterwards. It answers the structural questions the matcher needs:
the base-type chain of a (possibly instantiated) type, its flattened
interface set, its marker tags, and whether it is visible from a given
position.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import cast

from typescan.errors import DuplicateTypeError, UnknownModuleError, UnknownTypeError
from typescan.types import TypeExpr, TypeRef, substitute


class TypeKind(StrEnum):
    """Declaration kind. Structs and enums are value kinds."""

    CLASS = "class"
    INTERFACE = "interface"
    STRUCT = "struct"
    ENUM = "enum"

    @property
    def is_value_kind(self) -> bool:
        return self in (TypeKind.STRUCT, TypeKind.ENUM)


class Accessibility(StrEnum):
    """Declared accessibility of a type or constructor."""

    PUBLIC = "public"
    INTERNAL = "internal"
    PROTECTED = "protected"
    PRIVATE = "private"


@dataclass(frozen=True)
class Constructor:
    """A declared constructor."""

    accessibility: Accessibility = Accessibility.PUBLIC
    parameter_count: int = 0
    is_static: bool = False


@dataclass(frozen=True)
class TypeDecl:
    """A type declaration in the graph.

    Attributes:
        name: Fully-qualified name (e.g. "App.Handlers.OrderHandler").
            Nested types include their containing type's name
            ("App.Outer.Inner").
        kind: Declaration kind.
        type_params: Names of the declaration's own generic parameters.
        base: Direct base-type edge. May mention the declaration's own
            parameters (``class Repo<T> : RepoBase<T>``).
        interfaces: Directly declared interface edges.
        attributes: Marker tags attached to the declaration.
        constructors: Declared constructors. Defaults to the implicit
            public parameterless constructor.
        accessibility: Declared accessibility.
        is_abstract: Abstract class (or interface).
        is_static: Static class.
        is_sealed: Sealed class; recorded but irrelevant to matching.
        is_unmanaged: Value kind without managed references.
        nameable: False for compiler-generated or anonymous types.
        nested: Types declared inside this one, in declaration order.

    """

    name: str
    kind: TypeKind = TypeKind.CLASS
    type_params: tuple[str, ...] = ()
    base: TypeRef | None = None
    interfaces: tuple[TypeRef, ...] = ()
    attributes: tuple[TypeRef, ...] = ()
    constructors: tuple[Constructor, ...] = (Constructor(),)
    accessibility: Accessibility = Accessibility.PUBLIC
    is_abstract: bool = False
    is_static: bool = False
    is_sealed: bool = False
    is_unmanaged: bool = False
    nameable: bool = True
    nested: tuple[TypeDecl, ...] = ()

    @property
    def ref(self) -> TypeRef:
        """Reference to this declaration (the open definition if generic)."""
        return TypeRef(self.name)

    @property
    def arity(self) -> int:
        return len(self.type_params)

    @property
    def is_generic(self) -> bool:
        return bool(self.type_params)

    @property
    def is_value_type(self) -> bool:
        return self.kind.is_value_kind

    @property
    def display_name(self) -> str:
        """Name used by name filters: ``App.Repo<T>`` for generic definitions."""
        if not self.type_params:
            return self.name
        return f"{self.name}<{', '.join(self.type_params)}>"


@dataclass(frozen=True)
class Namespace:
    """A namespace and its members, in declaration order."""

    name: str = ""
    members: tuple[Namespace | TypeDecl, ...] = ()


@dataclass(frozen=True)
class Module:
    """A compiled module (assembly): a namespace tree plus references.

    Attributes:
        name: Module name, matched by module name filters.
        root: The global namespace.
        references: Names of directly referenced modules, in order.

    """

    name: str
    root: Namespace = field(default_factory=Namespace)
    references: tuple[str, ...] = ()

    @classmethod
    def of(
        cls,
        name: str,
        *types: TypeDecl,
        references: Iterable[str] = (),
    ) -> Module:
        """Build a module from top-level declarations.

        Namespaces are derived from the qualified names and created in
        order of first appearance.

        Example:
            Module.of("App", TypeDecl("App.IService"), TypeDecl("App.Impl.Service"))

        """
        builder = _NamespaceBuilder("")
        for decl in types:
            namespace, _, _ = decl.name.rpartition(".")
            builder.child_path(namespace).members.append(decl)
        return cls(name=name, root=builder.build(), references=tuple(references))


class _NamespaceBuilder:
    """Mutable namespace tree used while assembling a Module."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.members: list[_NamespaceBuilder | TypeDecl] = []
        self._children: dict[str, _NamespaceBuilder] = {}

    def child_path(self, dotted: str) -> _NamespaceBuilder:
        node = self
        if not dotted:
            return node
        for segment in dotted.split("."):
            if segment not in node._children:
                child = _NamespaceBuilder(segment)
                node._children[segment] = child
                node.members.append(child)
            node = node._children[segment]
        return node

    def build(self) -> Namespace:
        members = tuple(
            m.build() if isinstance(m, _NamespaceBuilder) else m for m in self.members
        )
        return Namespace(name=self.name, members=members)


@dataclass(frozen=True)
class Position:
    """Where a query is declared: the module and the declaring type."""

    module: str
    type_name: str | None = None


def iter_declarations(namespace: Namespace) -> Iterator[TypeDecl]:
    """Depth-first walk of a namespace tree in declaration order.

    Each type is yielded before the types nested inside it.
    """
    for member in namespace.members:
        if isinstance(member, Namespace):
            yield from iter_declarations(member)
        else:
            yield from _walk_type(member)


def _walk_type(decl: TypeDecl) -> Iterator[TypeDecl]:
    yield decl
    for nested in decl.nested:
        yield from _walk_type(nested)


class TypeGraph:
    """Read-only view over a set of modules and their declarations.

    Modules keep the order they were given in; every structural query is
    deterministic for identical inputs.
    """

    def __init__(self, modules: Iterable[Module]) -> None:
        self._modules: dict[str, Module] = {}
        self._decls: dict[str, TypeDecl] = {}
        self._owners: dict[str, str] = {}
        self._containers: dict[str, str] = {}

        for module in modules:
            self._modules[module.name] = module
            for decl in iter_declarations(module.root):
                if decl.name in self._decls:
                    raise DuplicateTypeError(
                        decl.name,
                        (self._owners[decl.name], module.name),
                    )
                self._decls[decl.name] = decl
                self._owners[decl.name] = module.name
                for nested in decl.nested:
                    self._containers[nested.name] = decl.name

    def __repr__(self) -> str:
        return (
            f"TypeGraph(modules={list(self._modules)!r}, "
            f"types={len(self._decls)})"
        )

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    @property
    def modules(self) -> tuple[Module, ...]:
        return tuple(self._modules.values())

    def module(self, name: str) -> Module:
        """Get a module by name.

        Raises:
            UnknownModuleError: If no module has that name.

        """
        try:
            return self._modules[name]
        except KeyError:
            raise UnknownModuleError(name) from None

    def get(self, name: str) -> TypeDecl | None:
        """Get a declaration by qualified name, or None."""
        return self._decls.get(name)

    def __getitem__(self, name: str) -> TypeDecl:
        try:
            return self._decls[name]
        except KeyError:
            raise UnknownTypeError(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._decls

    def __iter__(self) -> Iterator[TypeDecl]:
        return iter(self._decls.values())

    def __len__(self) -> int:
        return len(self._decls)

    def resolves(self, ref: TypeRef) -> bool:
        """Return True if every named type in ``ref`` is declared."""
        if ref.name not in self._decls:
            return False
        return all(self.resolves(a) for a in ref.args if isinstance(a, TypeRef))

    def module_of(self, name: str) -> Module:
        """The module declaring the named type.

        Raises:
            UnknownTypeError: If the type is not declared.

        """
        if name not in self._owners:
            raise UnknownTypeError(name)
        return self._modules[self._owners[name]]

    def containing_type(self, name: str) -> str | None:
        """Name of the type a nested type is declared in, or None."""
        return self._containers.get(name)

    def reference_closure(self, module_name: str) -> tuple[Module, ...]:
        """The module plus every module reachable through its references.

        Breadth-first, in reference order. References to modules that are
        not part of the graph are skipped.
        """
        start = self.module(module_name)
        seen: dict[str, Module] = {start.name: start}
        queue = [start]
        while queue:
            current = queue.pop(0)
            for ref_name in current.references:
                if ref_name in seen or ref_name not in self._modules:
                    continue
                seen[ref_name] = self._modules[ref_name]
                queue.append(self._modules[ref_name])
        return tuple(seen.values())

    # -------------------------------------------------------------------------
    # Structure
    # -------------------------------------------------------------------------

    def is_open_definition(self, ref: TypeRef) -> bool:
        """True if ``ref`` names a generic declaration without arguments."""
        decl = self._decls.get(ref.name)
        return decl is not None and decl.is_generic and not ref.args

    def kind_of(self, ref: TypeRef) -> TypeKind | None:
        decl = self._decls.get(ref.name)
        return decl.kind if decl is not None else None

    def is_value_type(self, texpr: TypeExpr) -> bool:
        if not isinstance(texpr, TypeRef):
            return False
        decl = self._decls.get(texpr.name)
        return decl is not None and decl.is_value_type

    def is_unmanaged(self, texpr: TypeExpr) -> bool:
        if not isinstance(texpr, TypeRef):
            return False
        decl = self._decls.get(texpr.name)
        return decl is not None and decl.is_value_type and decl.is_unmanaged

    def _arguments(self, decl: TypeDecl, ref: TypeRef) -> dict[str, TypeExpr]:
        """Map a declaration's own parameters to the arguments in ``ref``."""
        if ref.args and len(ref.args) == decl.arity:
            return dict(zip(decl.type_params, ref.args, strict=True))
        return {}

    def _edge(self, decl: TypeDecl, ref: TypeRef, edge: TypeRef) -> TypeRef:
        return cast("TypeRef", substitute(edge, self._arguments(decl, ref)))

    def base_type(self, ref: TypeRef) -> TypeRef | None:
        """Direct base type of ``ref``, instantiated with its arguments."""
        decl = self._decls.get(ref.name)
        if decl is None or decl.base is None:
            return None
        return self._edge(decl, ref, decl.base)

    def base_types(self, ref: TypeRef) -> Iterator[TypeRef]:
        """Walk the base-type chain upward, excluding ``ref`` itself."""
        seen = {ref.name}
        current = self.base_type(ref)
        while current is not None and current.name not in seen:
            seen.add(current.name)
            yield current
            current = self.base_type(current)

    def interfaces(self, ref: TypeRef) -> tuple[TypeRef, ...]:
        """Directly declared interfaces of ``ref``, instantiated."""
        decl = self._decls.get(ref.name)
        if decl is None:
            return ()
        return tuple(self._edge(decl, ref, i) for i in decl.interfaces)

    def all_interfaces(self, ref: TypeRef) -> tuple[TypeRef, ...]:
        """Every interface implemented by ``ref``, directly or inherited.

        Declared interfaces come first (each followed by the interfaces it
        extends), then those of the base chain. Duplicates reached along
        several paths are reported once, at their first occurrence.
        """
        found: dict[TypeRef, None] = {}

        def visit(iface: TypeRef) -> None:
            if iface in found or iface == ref:
                return
            found[iface] = None
            for inherited in self.interfaces(iface):
                visit(inherited)

        for current in (ref, *self.base_types(ref)):
            for iface in self.interfaces(current):
                visit(iface)
        return tuple(found)

    def attributes(self, ref: TypeRef) -> tuple[TypeRef, ...]:
        decl = self._decls.get(ref.name)
        return decl.attributes if decl is not None else ()

    def constructors(self, texpr: TypeExpr) -> tuple[Constructor, ...]:
        if not isinstance(texpr, TypeRef):
            return ()
        decl = self._decls.get(texpr.name)
        return decl.constructors if decl is not None else ()

    # -------------------------------------------------------------------------
    # Visibility
    # -------------------------------------------------------------------------

    def is_visible_from(self, position: Position, texpr: TypeExpr) -> bool:
        """Return True if the type can be named at ``position``.

        Instantiations are visible only if all their arguments are too.
        """
        if not isinstance(texpr, TypeRef):
            return True
        decl = self._decls.get(texpr.name)
        if decl is None:
            return False
        if not all(self.is_visible_from(position, arg) for arg in texpr.args):
            return False
        return self._is_accessible(position, decl)

    def _is_accessible(self, position: Position, decl: TypeDecl) -> bool:
        container = self._containers.get(decl.name)
        if container is None:
            return (
                decl.accessibility is Accessibility.PUBLIC
                or self._owners[decl.name] == position.module
            )
        if not self._is_accessible(position, self._decls[container]):
            return False

        match decl.accessibility:
            case Accessibility.PUBLIC:
                return True
            case Accessibility.INTERNAL:
                return self._owners[decl.name] == position.module
            case Accessibility.PRIVATE:
                return self._is_within(position.type_name, container)
            case Accessibility.PROTECTED:
                return self._is_within(
                    position.type_name,
                    container,
                ) or self._derives_within(position.type_name, container)

    def _enclosing(self, type_name: str | None) -> Iterator[str]:
        """``type_name`` followed by each type it is nested in."""
        while type_name is not None:
            yield type_name
            type_name = self._containers.get(type_name)

    def _is_within(self, type_name: str | None, container: str) -> bool:
        return container in self._enclosing(type_name)

    def _derives_within(self, type_name: str | None, container: str) -> bool:
        return any(
            base.name == container
            for enclosing in self._enclosing(type_name)
            for base in self.base_types(TypeRef(enclosing))
        )
