"""Expression trees for model moduli: parsing, substitution and evaluation.

Model expressions are kept as sympy trees. Binding parameters is a pure
tree rewrite (``substitute``); evaluation walks the residual tree and
dispatches each node to numpy, so no source code is generated at runtime.
"""

from __future__ import annotations

import keyword
import logging
import operator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import reduce
from typing import Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import sympy as sp

from . import kernels
from .config import as_array
from .errors import ModelDefinitionError

logger = logging.getLogger(__name__)

T = sp.Symbol("t")
W = sp.Symbol("w")
S = sp.Symbol("s")


class MittagLeffler(sp.Function):
    """mittleff(a, z) or mittleff(a, b, z); kept unevaluated symbolically."""

    nargs = (2, 3)


class InverseLaplace(sp.Function):
    """invlaplace(F(s), s, t): time-domain value of a Laplace-domain kernel."""

    nargs = 3


_FUNCTIONS: Dict[str, object] = {
    "mittleff": MittagLeffler,
    "invlaplace": InverseLaplace,
    "gamma": sp.gamma,
    "exp": sp.exp,
    "log": sp.log,
    "sqrt": sp.sqrt,
    "sin": sp.sin,
    "cos": sp.cos,
    "tan": sp.tan,
    "sinh": sp.sinh,
    "cosh": sp.cosh,
    "tanh": sp.tanh,
    "Abs": sp.Abs,
    "Piecewise": sp.Piecewise,
    "Min": sp.Min,
    "Max": sp.Max,
    "pi": sp.pi,
}

_VARIABLE_ALIASES = {
    "t": T,
    "w": W,
    "omega": W,
    "ω": W,
    "s": S,
}

RESERVED_NAMES = frozenset(_FUNCTIONS) | frozenset(_VARIABLE_ALIASES)

_NUMPY_FUNCS: Dict[object, Callable] = {
    sp.exp: np.exp,
    sp.log: np.log,
    sp.sin: np.sin,
    sp.cos: np.cos,
    sp.tan: np.tan,
    sp.sinh: np.sinh,
    sp.cosh: np.cosh,
    sp.tanh: np.tanh,
    sp.Abs: np.abs,
    sp.sign: np.sign,
    sp.gamma: kernels.gamma,
}

_RELATIONALS: Dict[type, Callable] = {
    sp.StrictLessThan: np.less,
    sp.LessThan: np.less_equal,
    sp.StrictGreaterThan: np.greater,
    sp.GreaterThan: np.greater_equal,
    sp.Equality: np.equal,
    sp.Unequality: np.not_equal,
}

_ml_vectorized = np.vectorize(kernels.mittag_leffler, otypes=[float])

Env = Mapping[sp.Symbol, object]


def check_parameter_names(names: Iterable[str]) -> Tuple[str, ...]:
    ordered = tuple(str(name) for name in names)
    seen = set()
    for name in ordered:
        if not name.isidentifier() or keyword.iskeyword(name):
            raise ModelDefinitionError(f"Parameter name '{name}' is not a valid identifier")
        if name in RESERVED_NAMES:
            raise ModelDefinitionError(f"Parameter name '{name}' is reserved")
        if name in seen:
            raise ModelDefinitionError(f"Duplicate parameter name '{name}'")
        seen.add(name)
    return ordered


def parse_expression(source: Union[str, sp.Basic], parameters: Sequence[str]) -> sp.Basic:
    """Parse ``source`` into a sympy tree over the given parameter names."""
    if isinstance(source, sp.Basic):
        return source
    if isinstance(source, bool):
        return sp.true if source else sp.false
    if isinstance(source, (int, float)):
        return sp.Float(source)
    local_dict: Dict[str, object] = dict(_FUNCTIONS)
    local_dict.update(_VARIABLE_ALIASES)
    local_dict.update({name: sp.Symbol(name) for name in parameters})
    text = str(source).replace("^", "**")
    try:
        return sp.sympify(text, locals=local_dict)
    except (sp.SympifyError, SyntaxError, TypeError) as exc:
        raise ModelDefinitionError(f"Failed to parse expression '{source}': {exc}") from exc


def bound_symbols(expr: sp.Basic) -> set:
    """Laplace variables bound inside ``invlaplace`` nodes."""
    return {node.args[1] for node in expr.atoms(InverseLaplace)}


def check_symbols(expr: sp.Basic, parameters: Sequence[str], variable: Optional[sp.Symbol]) -> None:
    allowed = {sp.Symbol(name) for name in parameters} | bound_symbols(expr)
    if variable is not None:
        allowed.add(variable)
    unknown = sorted(str(sym) for sym in expr.free_symbols - allowed)
    if unknown:
        raise ModelDefinitionError(
            f"Expression '{expr}' references undeclared symbols: {', '.join(unknown)}"
        )


def substitute(expr: sp.Basic, values: Mapping[str, float]) -> sp.Basic:
    """Replace every parameter leaf named in ``values`` by its numeric value."""
    if not values:
        return expr
    mapping = {sp.Symbol(name): sp.Float(float(value)) for name, value in values.items()}
    return expr.xreplace(mapping)


def _is_constant(expr: sp.Basic) -> bool:
    return expr.is_Number or isinstance(expr, sp.NumberSymbol) or expr is sp.S.ImaginaryUnit


def evaluate(expr: sp.Basic, env: Env):
    """Evaluate ``expr`` with symbols looked up in ``env`` (scalars or arrays)."""
    if isinstance(expr, sp.Symbol):
        try:
            return env[expr]
        except KeyError as exc:
            raise ModelDefinitionError(f"No value bound for symbol '{expr}'") from exc
    if expr is sp.S.ImaginaryUnit:
        return 1j
    if expr is sp.S.ComplexInfinity or expr is sp.S.Infinity:
        return np.inf
    if expr is sp.S.NegativeInfinity:
        return -np.inf
    if expr is sp.S.NaN:
        return np.nan
    if _is_constant(expr):
        value = complex(expr)
        return value.real if value.imag == 0.0 else value
    if expr is sp.true:
        return True
    if expr is sp.false:
        return False
    if isinstance(expr, sp.Add):
        return reduce(operator.add, (evaluate(arg, env) for arg in expr.args))
    if isinstance(expr, sp.Mul):
        return reduce(operator.mul, (evaluate(arg, env) for arg in expr.args))
    if isinstance(expr, sp.Pow):
        base = evaluate(expr.base, env)
        exponent = evaluate(expr.exp, env)
        return np.power(base, exponent)
    if isinstance(expr, MittagLeffler):
        values = [evaluate(arg, env) for arg in expr.args]
        if len(values) == 2:
            values.insert(1, 1.0)
        return _ml_vectorized(*(np.real(value) for value in values))
    if isinstance(expr, InverseLaplace):
        return _evaluate_inverse_laplace(expr, env)
    if isinstance(expr, sp.Piecewise):
        return _evaluate_piecewise(expr, env)
    if isinstance(expr, sp.And):
        return reduce(np.logical_and, (evaluate(arg, env) for arg in expr.args))
    if isinstance(expr, sp.Or):
        return reduce(np.logical_or, (evaluate(arg, env) for arg in expr.args))
    if isinstance(expr, sp.Not):
        return np.logical_not(evaluate(expr.args[0], env))
    if isinstance(expr, sp.Min):
        return reduce(np.minimum, (evaluate(arg, env) for arg in expr.args))
    if isinstance(expr, sp.Max):
        return reduce(np.maximum, (evaluate(arg, env) for arg in expr.args))
    relational = _RELATIONALS.get(type(expr))
    if relational is not None:
        return relational(evaluate(expr.lhs, env), evaluate(expr.rhs, env))
    func = _NUMPY_FUNCS.get(expr.func)
    if func is not None:
        return func(*(evaluate(arg, env) for arg in expr.args))
    raise ModelDefinitionError(f"Unsupported expression node '{expr.func}' in '{expr}'")


def _evaluate_piecewise(expr: sp.Piecewise, env: Env):
    conditions = []
    choices = []
    with np.errstate(all="ignore"):
        for branch, condition in expr.args:
            choices.append(evaluate(branch, env))
            conditions.append(evaluate(condition, env))
    shape = np.broadcast(*choices, *conditions).shape
    conditions = [np.broadcast_to(cond, shape) for cond in conditions]
    choices = [np.broadcast_to(choice, shape) for choice in choices]
    return np.select(conditions, choices, default=np.nan)


def _evaluate_inverse_laplace(expr: InverseLaplace, env: Env):
    kernel_expr, laplace_var, time_expr = expr.args
    times = evaluate(time_expr, env)
    scope = dict(env)

    def kernel(s_value: complex) -> complex:
        scope[laplace_var] = s_value
        return complex(evaluate(kernel_expr, scope))

    return kernels.invert_laplace(kernel, times)


@dataclass(frozen=True)
class CompiledExpression:
    """A tree ready to evaluate over one variable plus ordered parameters."""

    variable: sp.Symbol
    tokens: Tuple[str, ...]
    sympy_expr: sp.Basic

    def _environment(self, values, params: Sequence[float]) -> Dict[sp.Symbol, object]:
        if len(params) != len(self.tokens):
            raise ModelDefinitionError(
                f"Expected {len(self.tokens)} parameter values, got {len(params)}"
            )
        env: Dict[sp.Symbol, object] = {
            sp.Symbol(name): float(value) for name, value in zip(self.tokens, params)
        }
        env[self.variable] = values
        return env

    def _evaluate_chunk(self, values: np.ndarray, params: Sequence[float]) -> np.ndarray:
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            raw = evaluate(self.sympy_expr, self._environment(values, params))
        result = np.broadcast_to(np.real(raw), values.shape)
        return as_array(result)

    def evaluate_array(
        self,
        values,
        params: Sequence[float] = (),
        *,
        workers: Optional[int] = None,
    ) -> np.ndarray:
        inputs = as_array(values)
        if not workers or workers <= 1 or inputs.size <= workers:
            return self._evaluate_chunk(inputs, params)
        chunks = np.array_split(inputs, workers)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            parts = list(pool.map(lambda chunk: self._evaluate_chunk(chunk, params), chunks))
        return np.concatenate(parts)

    def evaluate(self, value, params: Sequence[float] = ()):
        return self.evaluate_array([value], params)[0]


def compile_expression(
    expr: sp.Basic,
    variable: sp.Symbol,
    parameters: Sequence[str] = (),
) -> CompiledExpression:
    check_symbols(expr, parameters, variable)
    logger.debug("compile %s over %s with parameters %s", expr, variable, list(parameters))
    return CompiledExpression(variable=variable, tokens=tuple(parameters), sympy_expr=expr)


def evaluate_predicate(expr: sp.Basic, parameters: Mapping[str, float]) -> bool:
    env = {sp.Symbol(name): float(value) for name, value in parameters.items()}
    with np.errstate(all="ignore"):
        result = evaluate(expr, env)
    return bool(np.all(result))


__all__ = [
    "RESERVED_NAMES",
    "S",
    "T",
    "W",
    "CompiledExpression",
    "InverseLaplace",
    "MittagLeffler",
    "check_parameter_names",
    "check_symbols",
    "compile_expression",
    "evaluate",
    "evaluate_predicate",
    "parse_expression",
    "substitute",
]
