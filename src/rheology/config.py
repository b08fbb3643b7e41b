"""Process-wide numeric configuration and dtype coercion helpers."""

from __future__ import annotations

import hashlib
import json
import logging
import os
from dataclasses import dataclass, replace
from typing import Dict

import numpy as np

from .errors import ConfigError

logger = logging.getLogger(__name__)

_PRECISIONS = {
    "float64": np.float64,
    "float32": np.float32,
}
_LAPLACE_METHODS = ("talbot", "stehfest", "dehoog")


@dataclass(frozen=True)
class NumericConfig:
    """Settings applied to every numeric conversion in the engine."""

    precision: str = "float64"
    ml_dps: int = 30
    laplace_method: str = "talbot"

    def __post_init__(self) -> None:
        if self.precision not in _PRECISIONS:
            raise ConfigError(
                f"Unsupported precision '{self.precision}'; expected one of {sorted(_PRECISIONS)}"
            )
        if int(self.ml_dps) < 15:
            raise ConfigError(f"ml_dps must be at least 15, got {self.ml_dps}")
        if self.laplace_method not in _LAPLACE_METHODS:
            raise ConfigError(
                f"Unsupported inverse Laplace method '{self.laplace_method}'; "
                f"expected one of {list(_LAPLACE_METHODS)}"
            )

    @property
    def dtype(self) -> type:
        return _PRECISIONS[self.precision]

    def as_dict(self) -> Dict[str, object]:
        return {
            "precision": self.precision,
            "ml_dps": self.ml_dps,
            "laplace_method": self.laplace_method,
        }

    def identity(self) -> str:
        payload = json.dumps(self.as_dict(), sort_keys=True)
        return hashlib.sha256(payload.encode("utf8")).hexdigest()


def _from_environment() -> NumericConfig:
    precision = os.environ.get("RHEOLOGY_PRECISION", "float64").strip().lower()
    raw_dps = os.environ.get("RHEOLOGY_ML_DPS")
    try:
        ml_dps = int(raw_dps) if raw_dps else 30
    except ValueError as exc:
        raise ConfigError(f"RHEOLOGY_ML_DPS must be an integer, got '{raw_dps}'") from exc
    return NumericConfig(precision=precision, ml_dps=ml_dps)


_CURRENT = _from_environment()


def get_config() -> NumericConfig:
    return _CURRENT


def configure(**changes) -> NumericConfig:
    """Replace the process-wide configuration.

    Intended to be called once at start-up, before models are bound; values
    already produced keep the precision they were built with.
    """
    global _CURRENT
    try:
        updated = replace(_CURRENT, **changes)
    except TypeError as exc:
        raise ConfigError(str(exc)) from exc
    if updated != _CURRENT:
        logger.info("numeric_config %s", json.dumps(updated.as_dict(), sort_keys=True))
    _CURRENT = updated
    return updated


def dtype() -> type:
    return _CURRENT.dtype


def as_array(values) -> np.ndarray:
    """Coerce to a 1-D array of the configured dtype (a fresh copy)."""
    array = np.array(values, dtype=_CURRENT.dtype, copy=True)
    return np.atleast_1d(array)


def as_scalar(value):
    return _CURRENT.dtype(value)


__all__ = [
    "NumericConfig",
    "as_array",
    "as_scalar",
    "configure",
    "dtype",
    "get_config",
]
