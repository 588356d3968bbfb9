"""Tests for the generic-constraint solver."""

import pytest

from typescan.assignability import Generalization
from typescan.corlib import GUID, INT32, LIST, MODULE_NAME, OBJECT, STRING, corlib
from typescan.errors import QueryError
from typescan.graph import Accessibility, Constructor, Module, TypeDecl, TypeGraph, TypeKind
from typescan.solver import (
    Binding,
    ConstraintSolver,
    GenericParameter,
    HandlerKind,
    HandlerSignature,
    solve,
)
from typescan.types import TypeParamRef, TypeRef

ISERVICE = TypeRef("App.IService")
IHANDLER = TypeRef("App.IHandler")
ISMTH = TypeRef("App.ISmth")
IMAP = TypeRef("App.IMap")
ICOMMAND = TypeRef("App.ICommand")
ICOMMAND_HANDLER = TypeRef("App.ICommandHandler")
ICOMPARABLE = TypeRef("App.IComparableTo")
IA = TypeRef("App.IA")
IB = TypeRef("App.IB")


def t(name: str) -> TypeRef:
    return TypeRef(f"App.{name}")


def p(name: str) -> TypeParamRef:
    return TypeParamRef(name)


def graph() -> TypeGraph:
    interface = TypeKind.INTERFACE
    return TypeGraph(
        [
            corlib(),
            Module.of(
                "App",
                TypeDecl(ISERVICE.name, kind=interface),
                TypeDecl(IHANDLER.name, kind=interface, type_params=("T",)),
                TypeDecl(ISMTH.name, kind=interface, type_params=("T",)),
                TypeDecl(IMAP.name, kind=interface, type_params=("K", "V")),
                TypeDecl(ICOMMAND.name, kind=interface),
                TypeDecl(ICOMMAND_HANDLER.name, kind=interface, type_params=("T",)),
                TypeDecl(ICOMPARABLE.name, kind=interface, type_params=("T",)),
                TypeDecl(IA.name, kind=interface, type_params=("T",)),
                TypeDecl(IB.name, kind=interface, type_params=("T",)),
                # new() candidates
                TypeDecl("App.Service", base=OBJECT, interfaces=(ISERVICE,)),
                TypeDecl(
                    "App.ServiceWithArgs",
                    base=OBJECT,
                    interfaces=(ISERVICE,),
                    constructors=(Constructor(parameter_count=1),),
                ),
                TypeDecl(
                    "App.ServiceWithPrivateCtor",
                    base=OBJECT,
                    interfaces=(ISERVICE,),
                    constructors=(Constructor(Accessibility.PRIVATE),),
                ),
                TypeDecl(
                    "App.ServiceWithStaticCtor",
                    base=OBJECT,
                    interfaces=(ISERVICE,),
                    constructors=(Constructor(is_static=True),),
                ),
                TypeDecl("App.ManagedStruct", kind=TypeKind.STRUCT),
                # multi-interface handlers
                TypeDecl("App.Handler1", base=OBJECT, interfaces=(IHANDLER[STRING],)),
                TypeDecl("App.Handler3", base=OBJECT, interfaces=(IHANDLER[INT32],)),
                TypeDecl(
                    "App.MultiHandler",
                    base=OBJECT,
                    interfaces=(IHANDLER[STRING], IHANDLER[OBJECT]),
                ),
                # mutually recursive constraints
                TypeDecl("App.SmthX", base=OBJECT, interfaces=(ISMTH[t("SmthY")],)),
                TypeDecl("App.SmthY", base=OBJECT, interfaces=(ISMTH[t("SmthX")],)),
                TypeDecl("App.SmthString", base=OBJECT, interfaces=(ISMTH[STRING],)),
                TypeDecl("App.Money", base=OBJECT, interfaces=(ICOMPARABLE[t("Money")],)),
                # nested and concrete constraint arguments
                TypeDecl("App.ListHandler", base=OBJECT, interfaces=(IHANDLER[LIST[INT32]],)),
                TypeDecl("App.StringMap", base=OBJECT, interfaces=(IMAP[STRING, INT32],)),
                TypeDecl("App.IntMap", base=OBJECT, interfaces=(IMAP[INT32, INT32],)),
                # one parameter reached through two constraints
                TypeDecl("App.Conflicting", base=OBJECT, interfaces=(IA[STRING], IB[INT32])),
                TypeDecl("App.Consistent", base=OBJECT, interfaces=(IA[STRING], IB[STRING])),
                TypeDecl(
                    "App.Overlapping",
                    base=OBJECT,
                    interfaces=(IA[STRING], IA[INT32], IB[INT32]),
                ),
                # transitive parameter constraints
                TypeDecl("App.ValidCommand", base=OBJECT, interfaces=(ICOMMAND,)),
                TypeDecl("App.InvalidCommand", base=OBJECT),
                TypeDecl(
                    "App.ValidHandler",
                    base=OBJECT,
                    interfaces=(ICOMMAND_HANDLER[t("ValidCommand")],),
                ),
                TypeDecl(
                    "App.InvalidHandler",
                    base=OBJECT,
                    interfaces=(ICOMMAND_HANDLER[t("InvalidCommand")],),
                ),
                references=(MODULE_NAME,),
            ),
        ],
    )


def handler(*parameters: GenericParameter) -> HandlerSignature:
    return HandlerSignature("Handle", parameters)


def solved(candidate: TypeRef, signature: HandlerSignature) -> list[dict[str, TypeRef]]:
    return [b.as_dict() for b in solve(graph(), candidate, signature)]


class TestSingleParameter:
    """The candidate is bound to the first parameter."""

    def test_no_parameters_gives_one_empty_binding(self) -> None:
        assert solve(graph(), t("Service"), handler()) == (Binding(),)

    def test_unconstrained(self) -> None:
        assert solved(t("Service"), handler(GenericParameter("T"))) == [
            {"T": t("Service")},
        ]

    def test_constraint_type(self) -> None:
        sig = handler(GenericParameter("T", constraint_types=(ISERVICE,)))
        assert solved(t("Service"), sig) == [{"T": t("Service")}]
        assert solved(t("Handler1"), sig) == []

    @pytest.mark.parametrize(
        ("name", "accepted"),
        [
            ("Service", True),
            ("ServiceWithArgs", False),
            ("ServiceWithPrivateCtor", False),
            ("ServiceWithStaticCtor", False),
        ],
    )
    def test_constructor_constraint(self, name: str, accepted: bool) -> None:  # noqa: FBT001
        sig = handler(GenericParameter("T", constructor=True, constraint_types=(ISERVICE,)))
        assert bool(solved(t(name), sig)) is accepted

    def test_reference_type_constraint(self) -> None:
        sig = handler(GenericParameter("T", reference_type=True))
        assert solved(STRING, sig) == [{"T": STRING}]
        assert solved(INT32, sig) == []

    def test_value_type_constraint(self) -> None:
        sig = handler(GenericParameter("T", value_type=True))
        assert solved(GUID, sig) == [{"T": GUID}]
        assert solved(STRING, sig) == []

    def test_unmanaged_constraint(self) -> None:
        sig = handler(GenericParameter("T", unmanaged=True))
        assert solved(INT32, sig) == [{"T": INT32}]
        assert solved(t("ManagedStruct"), sig) == []
        assert solved(STRING, sig) == []


class TestDependentParameters:
    """Later parameters are derived from the candidate's generalizations."""

    def handler_arg(self, **arg_flags: bool) -> HandlerSignature:
        return handler(
            GenericParameter("THandler", reference_type=True, constraint_types=(IHANDLER[p("TArg")],)),
            GenericParameter("TArg", **arg_flags),
        )

    def test_one_binding_per_implemented_interface(self) -> None:
        assert solved(t("MultiHandler"), self.handler_arg()) == [
            {"THandler": t("MultiHandler"), "TArg": STRING},
            {"THandler": t("MultiHandler"), "TArg": OBJECT},
        ]

    def test_dependent_constraint_filters_arguments(self) -> None:
        sig = self.handler_arg(reference_type=True)
        assert solved(t("Handler1"), sig) == [{"THandler": t("Handler1"), "TArg": STRING}]
        assert solved(t("Handler3"), sig) == []

    def test_generalization_pins_the_matching_definition(self) -> None:
        g = graph()
        multi = t("MultiHandler")
        bindings = solve(
            g,
            multi,
            self.handler_arg(),
            Generalization(multi, IHANDLER[OBJECT]),
        )
        assert [b["TArg"] for b in bindings] == [OBJECT]

    def test_unrelated_generalization_does_not_pin(self) -> None:
        multi = t("MultiHandler")
        bindings = solve(graph(), multi, self.handler_arg(), Generalization(multi, OBJECT))
        assert [b["TArg"] for b in bindings] == [STRING, OBJECT]

    def test_transitive_constraints(self) -> None:
        sig = handler(
            GenericParameter(
                "THandler",
                reference_type=True,
                constraint_types=(ICOMMAND_HANDLER[p("TCommand")],),
            ),
            GenericParameter("TCommand", reference_type=True, constraint_types=(ICOMMAND,)),
        )
        assert solved(t("ValidHandler"), sig) == [
            {"THandler": t("ValidHandler"), "TCommand": t("ValidCommand")},
        ]
        assert solved(t("InvalidHandler"), sig) == []

    def test_unreachable_parameter_is_rejected(self) -> None:
        sig = handler(
            GenericParameter("T", constraint_types=(ISERVICE,)),
            GenericParameter("TOther"),
        )
        assert solved(t("Service"), sig) == []

    def test_nested_parameter(self) -> None:
        sig = handler(
            GenericParameter("THandler", constraint_types=(IHANDLER[LIST[p("TItem")]],)),
            GenericParameter("TItem"),
        )
        assert solved(t("ListHandler"), sig) == [
            {"THandler": t("ListHandler"), "TItem": INT32},
        ]
        assert solved(t("Handler1"), sig) == []

    def test_concrete_argument_must_be_equal(self) -> None:
        sig = handler(
            GenericParameter("TMap", constraint_types=(IMAP[STRING, p("TValue")],)),
            GenericParameter("TValue"),
        )
        assert solved(t("StringMap"), sig) == [{"TMap": t("StringMap"), "TValue": INT32}]
        assert solved(t("IntMap"), sig) == []

    def shared_argument(self) -> HandlerSignature:
        return handler(
            GenericParameter("TH", constraint_types=(IA[p("T")], IB[p("T")])),
            GenericParameter("T"),
        )

    def test_parameter_reached_twice_must_agree(self) -> None:
        """Every constraint holds for the one type bound to a parameter."""
        assert solved(t("Conflicting"), self.shared_argument()) == []
        assert solved(t("Consistent"), self.shared_argument()) == [
            {"TH": t("Consistent"), "T": STRING},
        ]

    def test_only_consistent_alternatives_survive(self) -> None:
        assert solved(t("Overlapping"), self.shared_argument()) == [
            {"TH": t("Overlapping"), "T": INT32},
        ]


class TestRecursiveConstraints:
    """Constraint cycles terminate and accept matching shapes."""

    def mutual(self) -> HandlerSignature:
        return handler(
            GenericParameter("X", constraint_types=(ISMTH[p("Y")],)),
            GenericParameter("Y", constraint_types=(ISMTH[p("X")],)),
        )

    def test_mutual_cycle_accepts_paired_types(self) -> None:
        assert solved(t("SmthX"), self.mutual()) == [{"X": t("SmthX"), "Y": t("SmthY")}]
        assert solved(t("SmthY"), self.mutual()) == [{"X": t("SmthY"), "Y": t("SmthX")}]

    def test_mutual_cycle_rejects_unrelated_argument(self) -> None:
        assert solved(t("SmthString"), self.mutual()) == []

    def test_self_referencing_constraint(self) -> None:
        sig = handler(GenericParameter("T", constraint_types=(ICOMPARABLE[p("T")],)))
        assert solved(t("Money"), sig) == [{"T": t("Money")}]

    def test_solver_is_reusable_across_candidates(self) -> None:
        solver = ConstraintSolver(graph(), self.mutual())
        first = solver.solve(t("SmthX"))
        assert solver.solve(t("SmthString")) == ()
        assert solver.solve(t("SmthX")) == first


class TestSignatureValidation:
    """Malformed signatures are rejected at construction."""

    def test_duplicate_parameter_names(self) -> None:
        with pytest.raises(QueryError, match="duplicate"):
            handler(GenericParameter("T"), GenericParameter("T"))

    def test_type_method_cannot_declare_parameters(self) -> None:
        with pytest.raises(QueryError, match="type method"):
            HandlerSignature("Handler", (GenericParameter("T"),), HandlerKind.TYPE_METHOD)

    def test_conflicting_kind_constraints(self) -> None:
        with pytest.raises(QueryError, match="both a reference type and a value type"):
            handler(GenericParameter("T", reference_type=True, value_type=True))

    def test_undeclared_parameter_in_constraint(self) -> None:
        with pytest.raises(QueryError, match="TMissing"):
            handler(GenericParameter("T", constraint_types=(IHANDLER[p("TMissing")],)))

    def test_ordinals(self) -> None:
        sig = handler(GenericParameter("A"), GenericParameter("B"))
        assert sig.ordinal("B") == 1
        assert sig.parameter("A") == GenericParameter("A")


class TestBinding:
    """Tests for the Binding value."""

    def test_mapping_access(self) -> None:
        binding = Binding((("THandler", t("Handler1")), ("TArg", STRING)))
        assert binding["TArg"] == STRING
        assert "THandler" in binding
        assert "TOther" not in binding
        assert list(binding) == ["THandler", "TArg"]
        assert len(binding) == 2
        assert binding.types == (t("Handler1"), STRING)

    def test_missing_parameter_raises(self) -> None:
        with pytest.raises(KeyError):
            Binding()["T"]

    def test_str(self) -> None:
        binding = Binding((("THandler", t("Handler1")), ("TArg", STRING)))
        assert str(binding) == "{THandler=App.Handler1, TArg=System.String}"
