"""Query values: what to scan and which types to accept."""

from __future__ import annotations

from dataclasses import dataclass

from typescan.errors import QueryError
from typescan.solver import HandlerKind, HandlerSignature
from typescan.types import TypeRef, is_closed, type_name


@dataclass(frozen=True)
class Query:
    """Immutable description of the types to collect.

    Attributes:
        declaring_type: Qualified name of the type declaring the query. Its
            module is scanned by default and matches must be visible from it.
        module_of_type: Scan only the module declaring this type.
        module_name_filter: Scan every module in the declaring module's
            reference closure whose name matches this wildcard filter.
        assignable_to: Keep only types assignable to this target. Give it
            arguments to require a specific instantiation.
        exclude_assignable_to: Drop types assignable to this target.
        attribute_filter: Keep only types carrying this marker tag.
        exclude_by_attribute: Drop types carrying this marker tag.
        type_name_filter: Keep only types whose name matches this filter.
        exclude_by_type_name: Drop types whose name matches this filter.
        handler: Handler the matches are passed to; its generic parameters
            are bound for every match.

    """

    declaring_type: str
    module_of_type: TypeRef | None = None
    module_name_filter: str | None = None
    assignable_to: TypeRef | None = None
    exclude_assignable_to: TypeRef | None = None
    attribute_filter: TypeRef | None = None
    exclude_by_attribute: TypeRef | None = None
    type_name_filter: str | None = None
    exclude_by_type_name: str | None = None
    handler: HandlerSignature | None = None

    def __post_init__(self) -> None:
        if not self.declaring_type:
            msg = "Query requires a declaring type"
            raise QueryError(msg)
        for label, target in (
            ("assignable_to", self.assignable_to),
            ("exclude_assignable_to", self.exclude_assignable_to),
            ("attribute_filter", self.attribute_filter),
            ("exclude_by_attribute", self.exclude_by_attribute),
            ("module_of_type", self.module_of_type),
        ):
            if target is not None and not is_closed(target):
                msg = f"{label} must not reference generic parameters: {type_name(target)}"
                raise QueryError(msg)

    @property
    def allows_static(self) -> bool:
        """Static classes qualify only for type-method handlers."""
        return self.handler is not None and self.handler.kind is HandlerKind.TYPE_METHOD
