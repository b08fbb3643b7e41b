from __future__ import annotations

import pytest
import sympy as sp

from src.rheology.errors import ModelDefinitionError
from src.rheology.expressions import T, W
from src.rheology.model_class import MODULI, define_model_class


def _spring_dashpot():
    return define_model_class(
        "Custom",
        ["eta", "k"],
        G="k*exp(-k*t/eta)",
        Gpp="eta*omega",
        constraint="(eta > 0) & (k > 0)",
        description="test model",
    )


def test_define_model_class_stores_trees() -> None:
    model = _spring_dashpot()
    assert model.parameters == ("eta", "k")
    assert isinstance(model.G, sp.Basic)
    assert model.G.free_symbols == {sp.Symbol("eta"), sp.Symbol("k"), T}
    assert model.Gpp == sp.Symbol("eta") * W
    assert model.available_moduli() == ("G", "Gpp")
    assert model.has_modulus("G") and not model.has_modulus("J")
    assert set(model.expressions()) == set(MODULI)


def test_define_model_class_records_lineage() -> None:
    model = _spring_dashpot()
    (entry,) = model.lineage
    assert entry.action == "define"
    assert entry.as_dict()["parameters"] == "eta,k"


def test_describe_lists_parameters() -> None:
    assert _spring_dashpot().describe() == "Custom(eta, k): test model"


def test_define_model_class_accepts_sympy_trees() -> None:
    k = sp.Symbol("k")
    model = define_model_class("Tree", ["k"], G=k * T, constraint=k > 0)
    assert model.G == k * T


@pytest.mark.parametrize(
    "kwargs",
    [
        {"G": "k*t + q"},
        {"G": "k*w"},
        {"Gp": "k*t"},
        {"J": "k*s"},
    ],
)
def test_undeclared_symbols_rejected(kwargs) -> None:
    with pytest.raises(ModelDefinitionError):
        define_model_class("Bad", ["k"], **kwargs)


def test_laplace_variable_allowed_inside_invlaplace() -> None:
    model = define_model_class("Creep", ["k"], J="invlaplace(1/(s*k), s, t)")
    assert model.has_modulus("J")


@pytest.mark.parametrize("parameters", [[], ["t"], ["k", "k"], ["2k"]])
def test_invalid_parameter_lists_rejected(parameters) -> None:
    with pytest.raises(ModelDefinitionError):
        define_model_class("Bad", parameters, G="1")


def test_empty_name_and_non_predicate_constraint_rejected() -> None:
    with pytest.raises(ModelDefinitionError):
        define_model_class("  ", ["k"], G="k")
    with pytest.raises(ModelDefinitionError):
        define_model_class("Bad", ["k"], G="k", constraint="k + 1")


def test_unknown_modulus_name_rejected() -> None:
    with pytest.raises(ModelDefinitionError):
        _spring_dashpot().expression("Gppp")


def test_model_class_is_immutable() -> None:
    model = _spring_dashpot()
    with pytest.raises(AttributeError):
        model.name = "Other"
