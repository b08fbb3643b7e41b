"""Time- and frequency-domain data containers with a provenance log."""

from __future__ import annotations

import numbers
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Sequence, Tuple

import numpy as np
import pandas as pd

from .config import as_array, dtype
from .errors import DataConsistencyError, TimelineMismatchError

_SAMPLING_DECIMALS = 4


@dataclass(frozen=True)
class LogEntry:
    """One structured step in a provenance history."""

    action: str
    params: Tuple[Tuple[str, object], ...] = ()

    @classmethod
    def make(cls, action: str, **params) -> "LogEntry":
        return cls(action=action, params=tuple(params.items()))

    def as_dict(self) -> Dict[str, object]:
        return {"action": self.action, **dict(self.params)}

    def __str__(self) -> str:
        if not self.params:
            return self.action
        details = ", ".join(f"{key}={value}" for key, value in self.params)
        return f"{self.action}: {details}"


ProvenanceLog = Tuple[LogEntry, ...]


def append_log(log: Sequence[LogEntry], action: str, **params) -> ProvenanceLog:
    return tuple(log) + (LogEntry.make(action, **params),)


def combine_logs(left: Sequence[LogEntry], right: Sequence[LogEntry], action: str, **params) -> ProvenanceLog:
    return tuple(left) + tuple(right) + (LogEntry.make(action, **params),)


class TimeDataKind(Enum):
    TIME_ONLY = "time_only"
    STRAIN_ONLY = "strain_only"
    STRESS_ONLY = "stress_only"
    STRAIN_AND_STRESS = "strain_and_stress"


class FreqDataKind(Enum):
    FREQ_ONLY = "freq_only"
    WITH_MODULUS = "with_modulus"


def _empty() -> np.ndarray:
    return np.zeros(0, dtype=dtype())


def _frozen_array(values, label: str) -> np.ndarray:
    if values is None:
        array = _empty()
    else:
        array = as_array(values) if np.size(values) else _empty()
    if array.ndim != 1:
        raise DataConsistencyError(f"{label} must be one-dimensional, got shape {array.shape}")
    array.flags.writeable = False
    return array


def _check_axis(values: np.ndarray, label: str) -> None:
    if values.size == 0:
        raise DataConsistencyError(f"{label} must not be empty")
    if not np.all(np.isfinite(values)):
        raise DataConsistencyError(f"{label} contains non-finite values")
    if values.size > 1 and not np.all(np.diff(values) > 0):
        raise DataConsistencyError(f"{label} must be strictly increasing")


def _check_column(values: np.ndarray, axis: np.ndarray, label: str) -> None:
    if values.size and values.size != axis.size:
        raise DataConsistencyError(
            f"{label} has {values.size} samples but the axis has {axis.size}"
        )


@dataclass(frozen=True, eq=False)
class TimeSeriesRecord:
    """Stress/strain samples over a strictly increasing time axis.

    Absent columns are stored as empty arrays; ``kind`` is derived from which
    columns are present and is never stored.
    """

    time: np.ndarray
    stress: np.ndarray = field(default_factory=_empty)
    strain: np.ndarray = field(default_factory=_empty)
    log: ProvenanceLog = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "time", _frozen_array(self.time, "time"))
        object.__setattr__(self, "stress", _frozen_array(self.stress, "stress"))
        object.__setattr__(self, "strain", _frozen_array(self.strain, "strain"))
        object.__setattr__(self, "log", tuple(self.log))
        _check_axis(self.time, "time")
        _check_column(self.stress, self.time, "stress")
        _check_column(self.strain, self.time, "strain")

    @classmethod
    def from_columns(
        cls,
        time,
        stress=None,
        strain=None,
        *,
        source: str = "none",
    ) -> "TimeSeriesRecord":
        """Build a record from raw columns as recorded by an instrument.

        Leading samples where a supplied stress or strain value is NaN are
        dropped and time is rebased so the first kept sample sits at 0.
        """
        raw_time = np.asarray(time, dtype=float)
        columns = {
            name: np.asarray(values, dtype=float)
            for name, values in (("stress", stress), ("strain", strain))
            if values is not None
        }
        for name, values in columns.items():
            if values.shape != raw_time.shape:
                raise DataConsistencyError(
                    f"{name} has {values.size} samples but time has {raw_time.size}"
                )
        if raw_time.size == 0:
            raise DataConsistencyError("time must not be empty")
        valid = np.ones(raw_time.shape, dtype=bool)
        for values in columns.values():
            valid &= ~np.isnan(values)
        if not valid.any():
            raise DataConsistencyError("every sample contains NaN stress or strain")
        start = int(np.argmax(valid))
        kept_time = raw_time[start:]
        kept_time = kept_time - kept_time.min()
        complete = len(columns) == 2
        log = (LogEntry.make("load", complete=complete, source=source, dropped=start),)
        return cls(
            time=kept_time,
            stress=columns["stress"][start:] if "stress" in columns else None,
            strain=columns["strain"][start:] if "strain" in columns else None,
            log=log,
        )

    @property
    def kind(self) -> TimeDataKind:
        has_stress = self.stress.size > 0
        has_strain = self.strain.size > 0
        if has_stress and has_strain:
            return TimeDataKind.STRAIN_AND_STRESS
        if has_stress:
            return TimeDataKind.STRESS_ONLY
        if has_strain:
            return TimeDataKind.STRAIN_ONLY
        return TimeDataKind.TIME_ONLY

    @property
    def sampling(self) -> str:
        if self.time.size < 3:
            return "constant"
        steps = np.round(np.diff(self.time.astype(float)), _SAMPLING_DECIMALS)
        return "constant" if np.all(steps == steps[0]) else "variable"

    def __len__(self) -> int:
        return int(self.time.size)

    def with_stress(self, func: Callable[[float], float], info: str = "apply stress function") -> "TimeSeriesRecord":
        values = [func(value) for value in self.time]
        return TimeSeriesRecord(self.time, values, self.strain, append_log(self.log, info))

    def with_strain(self, func: Callable[[float], float], info: str = "apply strain function") -> "TimeSeriesRecord":
        values = [func(value) for value in self.time]
        return TimeSeriesRecord(self.time, self.stress, values, append_log(self.log, info))

    def _require_same_timeline(self, other: "TimeSeriesRecord", operation: str) -> None:
        if self.kind is TimeDataKind.TIME_ONLY or other.kind is TimeDataKind.TIME_ONLY:
            raise TimelineMismatchError(f"cannot {operation} records without stress or strain data")
        if self.kind is not other.kind:
            raise TimelineMismatchError(
                f"cannot {operation} {self.kind.value} and {other.kind.value} records"
            )
        if self.time.shape != other.time.shape or not np.array_equal(self.time, other.time):
            raise TimelineMismatchError(f"cannot {operation} records with different time samples")

    def _combine(self, other: "TimeSeriesRecord", op: Callable, operation: str) -> "TimeSeriesRecord":
        self._require_same_timeline(other, operation)
        kind = self.kind
        if kind is TimeDataKind.STRAIN_AND_STRESS:
            stress, strain = op(self.stress, other.stress), op(self.strain, other.strain)
        elif kind is TimeDataKind.STRESS_ONLY:
            stress, strain = op(self.stress, other.stress), None
        elif kind is TimeDataKind.STRAIN_ONLY:
            stress, strain = None, op(self.strain, other.strain)
        else:  # pragma: no cover - rejected by _require_same_timeline
            raise TimelineMismatchError(f"unsupported data kind {kind}")
        return TimeSeriesRecord(
            self.time,
            stress,
            strain,
            combine_logs(self.log, other.log, operation),
        )

    def _scale(self, factor: float, operation: str, /, **params) -> "TimeSeriesRecord":
        kind = self.kind
        if kind is TimeDataKind.TIME_ONLY:
            raise TimelineMismatchError(f"cannot {operation} a record without stress or strain data")
        stress = self.stress * factor if self.stress.size else None
        strain = self.strain * factor if self.strain.size else None
        return TimeSeriesRecord(self.time, stress, strain, append_log(self.log, operation, **params))

    def __add__(self, other):
        if not isinstance(other, TimeSeriesRecord):
            return NotImplemented
        return self._combine(other, np.add, "add")

    def __sub__(self, other):
        if not isinstance(other, TimeSeriesRecord):
            return NotImplemented
        return self._combine(other, np.subtract, "subtract")

    def __neg__(self):
        return self._scale(-1.0, "negate")

    def __mul__(self, factor):
        if isinstance(factor, bool) or not isinstance(factor, numbers.Real):
            return NotImplemented
        return self._scale(float(factor), "multiply", factor=float(factor))

    __rmul__ = __mul__

    def to_frame(self) -> pd.DataFrame:
        data = {"time": self.time}
        if self.stress.size:
            data["stress"] = self.stress
        if self.strain.size:
            data["strain"] = self.strain
        frame = pd.DataFrame(data)
        frame.attrs["kind"] = self.kind.value
        frame.attrs["provenance"] = [str(entry) for entry in self.log]
        return frame


@dataclass(frozen=True, eq=False)
class FrequencySeriesRecord:
    """Storage and loss modulus samples over angular frequency."""

    frequency: np.ndarray
    storage_modulus: np.ndarray = field(default_factory=_empty)
    loss_modulus: np.ndarray = field(default_factory=_empty)
    log: ProvenanceLog = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "frequency", _frozen_array(self.frequency, "frequency"))
        object.__setattr__(self, "storage_modulus", _frozen_array(self.storage_modulus, "storage_modulus"))
        object.__setattr__(self, "loss_modulus", _frozen_array(self.loss_modulus, "loss_modulus"))
        object.__setattr__(self, "log", tuple(self.log))
        _check_axis(self.frequency, "frequency")
        if bool(self.storage_modulus.size) != bool(self.loss_modulus.size):
            raise DataConsistencyError("storage and loss modulus must be supplied together")
        _check_column(self.storage_modulus, self.frequency, "storage_modulus")
        _check_column(self.loss_modulus, self.frequency, "loss_modulus")

    @property
    def kind(self) -> FreqDataKind:
        if self.storage_modulus.size:
            return FreqDataKind.WITH_MODULUS
        return FreqDataKind.FREQ_ONLY

    def __len__(self) -> int:
        return int(self.frequency.size)

    def to_frame(self) -> pd.DataFrame:
        data = {"frequency": self.frequency}
        if self.kind is FreqDataKind.WITH_MODULUS:
            data["storage_modulus"] = self.storage_modulus
            data["loss_modulus"] = self.loss_modulus
        frame = pd.DataFrame(data)
        frame.attrs["kind"] = self.kind.value
        frame.attrs["provenance"] = [str(entry) for entry in self.log]
        return frame


__all__ = [
    "FreqDataKind",
    "FrequencySeriesRecord",
    "LogEntry",
    "ProvenanceLog",
    "TimeDataKind",
    "TimeSeriesRecord",
    "append_log",
    "combine_logs",
]
