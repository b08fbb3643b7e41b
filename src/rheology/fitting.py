"""Prediction and least-squares fitting on top of bound moduli.

The optimiser is scipy's ``least_squares``; this module only supplies the
residual functions. Candidate parameter vectors that violate a model's
constraint receive a flat penalty residual instead of raising.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Union

import numpy as np
from scipy.optimize import least_squares

from .compiler import bind, check_constraint, evaluate_trial, parameter_vector
from .data import FreqDataKind, FrequencySeriesRecord, LogEntry, TimeSeriesRecord, append_log
from .errors import DataConsistencyError, ModelUnavailableError
from .instance import ModelInstance
from .model_class import ModelClass

logger = logging.getLogger(__name__)

_PENALTY = 1e10

ParameterValues = Union[Mapping[str, float], Sequence[float]]


@dataclass(frozen=True)
class FitResult:
    """Outcome of a least-squares fit."""

    instance: ModelInstance
    cost: float
    success: bool
    message: str
    nfev: int
    elapsed_s: float

    @property
    def parameters(self) -> Mapping[str, float]:
        return self.instance.parameters


def _lags(record: TimeSeriesRecord) -> np.ndarray:
    if record.sampling != "constant":
        raise DataConsistencyError("hereditary prediction requires constant sampling")
    return np.asarray(record.time - record.time[0], dtype=float)


def _kernel(evaluate, lags: np.ndarray) -> np.ndarray:
    values = np.array(evaluate(lags), dtype=float, copy=True)
    if values.size > 1 and not np.isfinite(values[0]):
        # singular at t=0 (springpot terms): use the value half a sample in
        values[0] = float(evaluate(np.array([0.5 * lags[1]]))[0])
    return values


def hereditary_response(kernel: np.ndarray, controlled: np.ndarray) -> np.ndarray:
    """Discrete Boltzmann superposition: sum_j K(t_i - t_j) * d(input)_j."""
    increments = np.diff(np.asarray(controlled, dtype=float), prepend=0.0)
    return np.convolve(increments, kernel)[: increments.size]


def predict_stress(record: TimeSeriesRecord, instance: ModelInstance) -> TimeSeriesRecord:
    """Stress response of ``instance`` to the strain history in ``record``."""
    if record.strain.size == 0:
        raise DataConsistencyError("predict_stress needs a record with strain data")
    if not instance.has_modulus("G"):
        raise ModelUnavailableError(f"{instance.name} does not define a relaxation modulus")
    kernel = _kernel(lambda x: instance.evaluate("G", x), _lags(record))
    stress = hereditary_response(kernel, record.strain)
    log = append_log(record.log, "predict_stress", model=instance.describe())
    return TimeSeriesRecord(record.time, stress, record.strain, log)


def predict_strain(record: TimeSeriesRecord, instance: ModelInstance) -> TimeSeriesRecord:
    """Strain response of ``instance`` to the stress history in ``record``."""
    if record.stress.size == 0:
        raise DataConsistencyError("predict_strain needs a record with stress data")
    if not instance.has_modulus("J"):
        raise ModelUnavailableError(f"{instance.name} does not define a creep modulus")
    kernel = _kernel(lambda x: instance.evaluate("J", x), _lags(record))
    strain = hereditary_response(kernel, record.stress)
    log = append_log(record.log, "predict_strain", model=instance.describe())
    return TimeSeriesRecord(record.time, record.stress, strain, log)


def _bounds(size: int, lower, upper):
    lo = np.full(size, -np.inf) if lower is None else np.asarray(lower, dtype=float)
    hi = np.full(size, np.inf) if upper is None else np.asarray(upper, dtype=float)
    if lo.shape != (size,) or hi.shape != (size,):
        raise DataConsistencyError(f"bounds must each hold {size} values")
    return lo, hi


def _finish(
    model_class: ModelClass,
    solution,
    started: float,
    action: str,
) -> FitResult:
    values = dict(zip(model_class.parameters, (float(v) for v in solution.x)))
    instance = bind(model_class, values)
    elapsed = time.perf_counter() - started
    entry = LogEntry.make(action, cost=float(solution.cost), nfev=int(solution.nfev), message=str(solution.message))
    instance = dataclasses.replace(instance, log=instance.log + (entry,))
    logger.info(
        "%s %s cost=%.6g nfev=%d elapsed=%.3fs status=%s",
        action,
        model_class.name,
        solution.cost,
        solution.nfev,
        elapsed,
        solution.message,
    )
    return FitResult(
        instance=instance,
        cost=float(solution.cost),
        success=bool(solution.success),
        message=str(solution.message),
        nfev=int(solution.nfev),
        elapsed_s=elapsed,
    )


def fit_model(
    model_class: ModelClass,
    record: TimeSeriesRecord,
    p0: ParameterValues,
    lower: Optional[Sequence[float]] = None,
    upper: Optional[Sequence[float]] = None,
    *,
    modulus: str = "G",
    **solver_kwargs,
) -> FitResult:
    """Fit ``model_class`` to a strain-and-stress record.

    ``modulus="G"`` predicts stress from strain, ``modulus="J"`` strain
    from stress.
    """
    if modulus not in ("G", "J"):
        raise ValueError(f"modulus must be 'G' or 'J', got '{modulus}'")
    if record.stress.size == 0 or record.strain.size == 0:
        raise DataConsistencyError("fit_model needs a record with both stress and strain")
    if not model_class.has_modulus(modulus):
        raise ModelUnavailableError(f"{model_class.name} does not define {modulus}")
    lags = _lags(record)
    controlled, measured = (
        (record.strain, record.stress) if modulus == "G" else (record.stress, record.strain)
    )
    x0 = np.asarray(parameter_vector(model_class, p0), dtype=float)
    lo, hi = _bounds(x0.size, lower, upper)

    def residual(params: np.ndarray) -> np.ndarray:
        if not check_constraint(model_class, params):
            return np.full(measured.size, _PENALTY)
        kernel = _kernel(lambda x: evaluate_trial(model_class, modulus, x, params), lags)
        predicted = hereditary_response(kernel, controlled)
        diff = predicted - measured
        return np.where(np.isfinite(diff), diff, _PENALTY)

    started = time.perf_counter()
    solution = least_squares(residual, x0, bounds=(lo, hi), **solver_kwargs)
    return _finish(model_class, solution, started, "fit")


def fit_frequency(
    model_class: ModelClass,
    record: FrequencySeriesRecord,
    p0: ParameterValues,
    lower: Optional[Sequence[float]] = None,
    upper: Optional[Sequence[float]] = None,
    **solver_kwargs,
) -> FitResult:
    """Fit storage and loss moduli jointly using relative residuals."""
    if record.kind is not FreqDataKind.WITH_MODULUS:
        raise DataConsistencyError("fit_frequency needs storage and loss modulus data")
    for modulus in ("Gp", "Gpp"):
        if not model_class.has_modulus(modulus):
            raise ModelUnavailableError(f"{model_class.name} does not define {modulus}")
    x0 = np.asarray(parameter_vector(model_class, p0), dtype=float)
    lo, hi = _bounds(x0.size, lower, upper)
    storage = np.asarray(record.storage_modulus, dtype=float)
    loss = np.asarray(record.loss_modulus, dtype=float)
    storage_scale = np.where(storage != 0.0, np.abs(storage), 1.0)
    loss_scale = np.where(loss != 0.0, np.abs(loss), 1.0)

    def residual(params: np.ndarray) -> np.ndarray:
        if not check_constraint(model_class, params):
            return np.full(2 * storage.size, _PENALTY)
        gp = evaluate_trial(model_class, "Gp", record.frequency, params)
        gpp = evaluate_trial(model_class, "Gpp", record.frequency, params)
        diff = np.concatenate([(gp - storage) / storage_scale, (gpp - loss) / loss_scale])
        return np.where(np.isfinite(diff), diff, _PENALTY)

    started = time.perf_counter()
    solution = least_squares(residual, x0, bounds=(lo, hi), **solver_kwargs)
    return _finish(model_class, solution, started, "fit_frequency")


__all__ = [
    "FitResult",
    "fit_frequency",
    "fit_model",
    "hereditary_response",
    "predict_strain",
    "predict_stress",
]
