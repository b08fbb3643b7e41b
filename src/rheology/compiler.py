"""Bind and freeze model parameters, producing evaluators and reduced classes."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .data import LogEntry
from .errors import (
    ExtraParameterError,
    MissingParameterError,
    ParameterMismatchError,
    UnknownParameterError,
)
from .expressions import CompiledExpression, compile_expression, evaluate_predicate, substitute
from .instance import NOT_APPLICABLE, ModelInstance
from .model_class import MODULI, VARIABLES, ModelClass, _check_modulus

logger = logging.getLogger(__name__)

ParameterValues = Union[Mapping[str, float], Sequence[float]]


def _format_values(values: Mapping[str, float]) -> str:
    return ", ".join(f"{name}={value!r}" for name, value in values.items())


def resolve_parameters(model_class: ModelClass, values: Mapping[str, float]) -> Dict[str, float]:
    """Check ``values`` names exactly the class parameters; return them in declaration order."""
    declared = model_class.parameters
    missing = tuple(name for name in declared if name not in values)
    extra = tuple(name for name in values if name not in declared)
    if missing:
        raise MissingParameterError(
            f"{model_class.name}: missing values for parameters {list(missing)}",
            missing=missing,
            extra=extra,
        )
    if extra:
        raise ExtraParameterError(
            f"{model_class.name}: unexpected parameters {list(extra)}; "
            f"declared parameters are {list(declared)}",
            extra=extra,
        )
    return {name: float(values[name]) for name in declared}


def parameter_vector(model_class: ModelClass, values: ParameterValues) -> Tuple[float, ...]:
    """Normalise a mapping or positional sequence to a tuple in declaration order."""
    if isinstance(values, Mapping):
        return tuple(resolve_parameters(model_class, values).values())
    vector = tuple(float(value) for value in np.ravel(np.asarray(values, dtype=float)))
    expected = len(model_class.parameters)
    if len(vector) < expected:
        raise MissingParameterError(
            f"{model_class.name}: expected {expected} parameter values, got {len(vector)}",
            missing=model_class.parameters[len(vector):],
        )
    if len(vector) > expected:
        raise ExtraParameterError(
            f"{model_class.name}: expected {expected} parameter values, got {len(vector)}",
        )
    return vector


def bind(model_class: ModelClass, parameter_values: Mapping[str, float]) -> ModelInstance:
    """Substitute every parameter and compile the residual moduli."""
    values = resolve_parameters(model_class, parameter_values)
    expressions = {}
    evaluators: Dict[str, Optional[CompiledExpression]] = {}
    for modulus in MODULI:
        expr = model_class.expression(modulus)
        if expr is None:
            expressions[modulus] = None
            evaluators[modulus] = None
            continue
        residual = substitute(expr, values)
        expressions[modulus] = residual
        evaluators[modulus] = compile_expression(residual, VARIABLES[modulus])
    logger.info("bind %s %s", model_class.name, json.dumps(values, sort_keys=True))
    return ModelInstance(
        model_class=model_class,
        parameters=MappingProxyType(dict(values)),
        expressions=MappingProxyType(expressions),
        evaluators=MappingProxyType(evaluators),
        log=model_class.lineage + (LogEntry("bind", tuple(values.items())),),
    )


def freeze(model_class: ModelClass, partial_values: Mapping[str, float]) -> ModelClass:
    """Fix some parameters to constants and return the reduced class."""
    if not partial_values:
        raise ParameterMismatchError(f"{model_class.name}: no parameters given to freeze")
    unknown = [name for name in partial_values if name not in model_class.parameters]
    if unknown:
        raise UnknownParameterError(
            f"{model_class.name}: cannot freeze undeclared parameters {unknown}; "
            f"declared parameters are {list(model_class.parameters)}"
        )
    frozen = {
        name: float(partial_values[name])
        for name in model_class.parameters
        if name in partial_values
    }
    remaining = tuple(name for name in model_class.parameters if name not in frozen)
    label = _format_values(frozen)
    substituted = {
        modulus: None if expr is None else substitute(expr, frozen)
        for modulus, expr in model_class.expressions().items()
    }
    reduced = ModelClass(
        name=f"{model_class.name}[{label}]",
        parameters=remaining,
        constraint=substitute(model_class.constraint, frozen),
        description=f"{model_class.description} (frozen: {label})".strip(),
        lineage=model_class.lineage
        + (LogEntry("freeze", (("model", model_class.name),) + tuple(frozen.items())),),
        **substituted,
    )
    logger.info("freeze %s -> %s free=%s", model_class.name, reduced.name, list(remaining))
    return reduced


@lru_cache(maxsize=256)
def _compiled_modulus(model_class: ModelClass, modulus: str) -> Optional[CompiledExpression]:
    expr = model_class.expression(modulus)
    if expr is None:
        return None
    return compile_expression(expr, VARIABLES[modulus], model_class.parameters)


def evaluate_trial(
    model_class: ModelClass,
    modulus: str,
    values,
    parameters: ParameterValues,
    *,
    workers: Optional[int] = None,
):
    """Evaluate one modulus for a trial parameter vector without binding.

    Returns ``NOT_APPLICABLE`` when the class does not define ``modulus``.
    """
    compiled = _compiled_modulus(model_class, _check_modulus(modulus))
    if compiled is None:
        return NOT_APPLICABLE
    vector = parameter_vector(model_class, parameters)
    return compiled.evaluate_array(values, vector, workers=workers)


def check_constraint(model_class: ModelClass, parameters: ParameterValues) -> bool:
    """Return whether a candidate parameter set satisfies the class constraint."""
    vector = parameter_vector(model_class, parameters)
    return evaluate_predicate(model_class.constraint, dict(zip(model_class.parameters, vector)))


__all__ = [
    "bind",
    "check_constraint",
    "evaluate_trial",
    "freeze",
    "parameter_vector",
    "resolve_parameters",
]
