"""Public exports for the rheology model engine."""

from .catalog import CATALOG, DEFAULT_PARAMETERS, default_parameters, get_model_class
from .compiler import bind, check_constraint, evaluate_trial, freeze
from .config import NumericConfig, configure, get_config
from .data import (
    FreqDataKind,
    FrequencySeriesRecord,
    LogEntry,
    TimeDataKind,
    TimeSeriesRecord,
)
from .datagen import (
    line_load,
    noise_load,
    ramp_load,
    repeat_load,
    sinusoid_load,
    step_load,
    time_line,
)
from .errors import (
    DataConsistencyError,
    ExtraParameterError,
    MissingParameterError,
    ParameterMismatchError,
    RheologyError,
    TimelineMismatchError,
    UnknownParameterError,
)
from .instance import NOT_APPLICABLE, ModelInstance, is_not_applicable
from .model_class import MODULI, ModelClass, define_model_class

__all__ = [
    "CATALOG",
    "DEFAULT_PARAMETERS",
    "MODULI",
    "NOT_APPLICABLE",
    "DataConsistencyError",
    "ExtraParameterError",
    "FreqDataKind",
    "FrequencySeriesRecord",
    "LogEntry",
    "MissingParameterError",
    "ModelClass",
    "ModelInstance",
    "NumericConfig",
    "ParameterMismatchError",
    "RheologyError",
    "TimeDataKind",
    "TimeSeriesRecord",
    "TimelineMismatchError",
    "UnknownParameterError",
    "bind",
    "check_constraint",
    "configure",
    "default_parameters",
    "define_model_class",
    "evaluate_trial",
    "freeze",
    "get_config",
    "get_model_class",
    "is_not_applicable",
    "line_load",
    "noise_load",
    "ramp_load",
    "repeat_load",
    "sinusoid_load",
    "step_load",
    "time_line",
]
