"""Model class definitions: named parameters plus symbolic moduli."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple, Union

import sympy as sp
from sympy.logic.boolalg import Boolean

from .data import LogEntry, ProvenanceLog
from .errors import ModelDefinitionError
from .expressions import T, W, check_parameter_names, check_symbols, parse_expression

logger = logging.getLogger(__name__)

MODULI: Tuple[str, ...] = ("G", "J", "Gp", "Gpp")

VARIABLES: Dict[str, sp.Symbol] = {
    "G": T,
    "J": T,
    "Gp": W,
    "Gpp": W,
}

ExpressionSource = Union[str, float, sp.Basic, None]


def _check_modulus(modulus: str) -> str:
    if modulus not in VARIABLES:
        raise ModelDefinitionError(f"Unknown modulus '{modulus}'; expected one of {list(MODULI)}")
    return modulus


@dataclass(frozen=True)
class ModelClass:
    """A reusable viscoelastic model with symbolic parameters.

    ``G`` and ``J`` are trees in ``t``; ``Gp`` and ``Gpp`` in ``w``. A modulus
    set to ``None`` has no closed form for this model.
    """

    name: str
    parameters: Tuple[str, ...]
    G: Optional[sp.Basic] = None
    J: Optional[sp.Basic] = None
    Gp: Optional[sp.Basic] = None
    Gpp: Optional[sp.Basic] = None
    constraint: sp.Basic = sp.true
    description: str = ""
    lineage: ProvenanceLog = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", check_parameter_names(self.parameters))
        object.__setattr__(self, "lineage", tuple(self.lineage))
        for modulus in MODULI:
            expr = getattr(self, modulus)
            if expr is not None:
                check_symbols(expr, self.parameters, VARIABLES[modulus])
        check_symbols(self.constraint, self.parameters, None)

    def expression(self, modulus: str) -> Optional[sp.Basic]:
        return getattr(self, _check_modulus(modulus))

    def expressions(self) -> Dict[str, Optional[sp.Basic]]:
        return {modulus: getattr(self, modulus) for modulus in MODULI}

    def has_modulus(self, modulus: str) -> bool:
        return self.expression(modulus) is not None

    def available_moduli(self) -> Tuple[str, ...]:
        return tuple(modulus for modulus in MODULI if getattr(self, modulus) is not None)

    def describe(self) -> str:
        params = ", ".join(self.parameters)
        return f"{self.name}({params}): {self.description}"


def define_model_class(
    name: str,
    parameters: Sequence[str],
    G: ExpressionSource = None,
    J: ExpressionSource = None,
    Gp: ExpressionSource = None,
    Gpp: ExpressionSource = None,
    *,
    constraint: ExpressionSource = True,
    description: str = "",
) -> ModelClass:
    """Parse and validate a model definition.

    Expressions may be strings (``^`` is accepted for powers) or sympy trees.
    Strings can use ``mittleff(a, b, z)``, ``gamma(x)`` and
    ``invlaplace(F(s), s, t)`` besides the usual elementary functions.
    """
    if not str(name).strip():
        raise ModelDefinitionError("Model name must not be empty")
    names = check_parameter_names(parameters)
    if not names:
        raise ModelDefinitionError(f"Model '{name}' must declare at least one parameter")
    parsed = {}
    for modulus, source in (("G", G), ("J", J), ("Gp", Gp), ("Gpp", Gpp)):
        parsed[modulus] = None if source is None else parse_expression(source, names)
    predicate = parse_expression(constraint if constraint is not None else True, names)
    if not isinstance(predicate, Boolean):
        raise ModelDefinitionError(f"Constraint of model '{name}' is not a predicate: {predicate}")
    model_class = ModelClass(
        name=str(name),
        parameters=names,
        constraint=predicate,
        description=description,
        lineage=(LogEntry.make("define", model=str(name), parameters=",".join(names)),),
        **parsed,
    )
    logger.debug("defined model class %s with moduli %s", name, model_class.available_moduli())
    return model_class


__all__ = [
    "MODULI",
    "VARIABLES",
    "ModelClass",
    "define_model_class",
]
