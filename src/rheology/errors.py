"""Domain-specific exceptions for the rheology model engine."""

from __future__ import annotations

from typing import Sequence


class RheologyError(RuntimeError):
    """Base class for rheology engine errors."""


class ConfigError(RheologyError):
    """Raised when the numeric configuration is invalid."""


class DataConsistencyError(RheologyError):
    """Raised when a data container is built from inconsistent arrays."""


class TimelineMismatchError(DataConsistencyError):
    """Raised when arithmetic combines records with different kinds or time grids."""


class ModelDefinitionError(RheologyError):
    """Raised when a model class is defined with invalid parameters or expressions."""


class ParameterMismatchError(RheologyError):
    """Raised when supplied parameter values do not cover a model's parameters exactly."""

    def __init__(
        self,
        message: str,
        *,
        missing: Sequence[str] = (),
        extra: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.missing = tuple(missing)
        self.extra = tuple(extra)


class MissingParameterError(ParameterMismatchError):
    """Raised when a required parameter value was not supplied."""


class ExtraParameterError(ParameterMismatchError):
    """Raised when a supplied parameter name is not declared by the model."""


class UnknownParameterError(RheologyError):
    """Raised when freezing a parameter the model class does not declare."""


class UnknownModelError(RheologyError, KeyError):
    """Raised when a catalog lookup names a model that does not exist."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class ModelUnavailableError(RheologyError):
    """Raised when a consumer needs a modulus the model does not provide."""


__all__ = [
    "RheologyError",
    "ConfigError",
    "DataConsistencyError",
    "TimelineMismatchError",
    "ModelDefinitionError",
    "ParameterMismatchError",
    "MissingParameterError",
    "ExtraParameterError",
    "UnknownParameterError",
    "UnknownModelError",
    "ModelUnavailableError",
]
