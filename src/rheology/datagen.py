"""Synthetic loading patterns for driving and testing models.

Generated records carry the same pattern in stress and strain so either can
be used as the controlled input. Shape helpers (``hstep``, ``ramp``, ...)
evaluate at a time ``t`` or, called without it, return a closure for
:meth:`TimeSeriesRecord.with_strain` / :meth:`TimeSeriesRecord.with_stress`.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np

from .data import LogEntry, TimeSeriesRecord, append_log
from .errors import DataConsistencyError

logger = logging.getLogger(__name__)

# Logistic steepness: the transition spans roughly t_trans.
_LOGISTIC_SPAN = 10.0


def _grid(t_total: float, stepsize: float, t_start: float = 0.0) -> np.ndarray:
    if stepsize <= 0:
        raise DataConsistencyError(f"stepsize must be positive, got {stepsize}")
    if t_total <= t_start:
        raise DataConsistencyError(f"end time {t_total} must exceed start time {t_start}")
    count = int(math.floor((t_total - t_start) / stepsize + 1e-9)) + 1
    return t_start + stepsize * np.arange(count, dtype=float)


def _pattern(t: np.ndarray, data: np.ndarray, action: str, **params) -> TimeSeriesRecord:
    log = (LogEntry.make(action, **params),)
    return TimeSeriesRecord(time=t, stress=data, strain=data, log=log)


def time_line(t_start: float = 0.0, t_end: float = 10.0, step: Optional[float] = None) -> TimeSeriesRecord:
    """Time axis only, ``step`` defaulting to 1/250 of the span."""
    if step is None:
        step = (t_end - t_start) / 250.0
    t = _grid(t_end, step, t_start)
    log = (LogEntry.make("timeline", t_start=t_start, t_end=t_end, step=step),)
    return TimeSeriesRecord(time=t, log=log)


def line_load(t_total: float, stepsize: float = 1.0) -> TimeSeriesRecord:
    t = _grid(t_total, stepsize)
    return _pattern(t, np.ones_like(t), "line", t_total=t_total, stepsize=stepsize)


def step_load(
    t_total: float,
    t_on: float,
    t_trans: float = 0.0,
    stepsize: float = 1.0,
    amplitude: float = 1.0,
    baseline: float = 0.0,
) -> TimeSeriesRecord:
    """Step from ``baseline`` to ``baseline + amplitude`` at ``t_on``.

    With ``t_trans > 0`` the step is a logistic curve centred on ``t_on``.
    """
    if t_trans < 0:
        raise DataConsistencyError(f"t_trans must be non-negative, got {t_trans}")
    t = _grid(t_total, stepsize)
    if t_trans > 0:
        k = _LOGISTIC_SPAN / t_trans
        shape = 1.0 / (1.0 + np.exp(-k * (t - t_on)))
    else:
        shape = np.where(t >= t_on, 1.0, 0.0)
    data = baseline + amplitude * shape
    return _pattern(
        t,
        data,
        "step",
        t_total=t_total,
        t_on=t_on,
        t_trans=t_trans,
        stepsize=stepsize,
        amplitude=amplitude,
        baseline=baseline,
    )


def ramp_load(t_total: float, t_start: float, t_stop: float, stepsize: float = 1.0) -> TimeSeriesRecord:
    """Linear rise from 0 at ``t_start`` to 1 at ``t_stop``, then hold."""
    if t_stop <= t_start:
        raise DataConsistencyError(f"t_stop {t_stop} must exceed t_start {t_start}")
    t = _grid(t_total, stepsize)
    slope = 1.0 / (t_stop - t_start)
    data = np.clip((t - t_start) * slope, 0.0, 1.0)
    return _pattern(t, data, "ramp", t_total=t_total, t_start=t_start, t_stop=t_stop, stepsize=stepsize)


def sinusoid_load(
    t_total: float,
    frequency: float,
    t_start: float = 0.0,
    phase: float = 0.0,
    stepsize: float = 1.0,
) -> TimeSeriesRecord:
    """Unit sine of ``frequency`` Hz switched on at ``t_start``."""
    t = _grid(t_total, stepsize)
    data = np.where(t >= t_start, np.sin(2 * np.pi * frequency * (t - t_start) + phase), 0.0)
    return _pattern(
        t,
        data,
        "sinusoid",
        t_total=t_total,
        frequency=frequency,
        t_start=t_start,
        phase=phase,
        stepsize=stepsize,
    )


def noise_load(t_total: float, seed: Optional[int] = None, stepsize: float = 1.0) -> TimeSeriesRecord:
    """Uniform noise in [-1, 1); pass ``seed`` for reproducible output."""
    if seed is not None and seed < 0:
        raise DataConsistencyError(f"seed must be non-negative, got {seed}")
    t = _grid(t_total, stepsize)
    rng = np.random.default_rng(seed)
    data = 2.0 * rng.random(t.size) - 1.0
    return _pattern(t, data, "noise", t_total=t_total, seed=seed, stepsize=stepsize)


def _smoothing_pulse(t: np.ndarray, boundary: float, t_trans: float, jump: float) -> np.ndarray:
    """Logistic correction that replaces a jump of ``jump`` at ``boundary``.

    Zero outside ``|t - boundary| <= t_trans / 2``; inside it moves the
    signal from the tail value to the head value continuously.
    """
    half = 0.5 * t_trans
    k = _LOGISTIC_SPAN / t_trans
    offset = t - boundary
    logistic = 1.0 / (1.0 + np.exp(-k * offset))
    step = np.where(offset > 0.0, 1.0, 0.0)
    pulse = jump * (logistic - step)
    pulse[np.abs(offset) > half] = 0.0
    return pulse


def repeat_load(record: TimeSeriesRecord, n: int, t_trans: float = 0.0) -> TimeSeriesRecord:
    """Repeat a generated pattern ``n`` times.

    Consecutive repeats share their boundary sample, giving ``n*(L-1)+1``
    samples. With ``t_trans > 0`` a logistic smoothing pulse is added at each
    boundary: samples within ``t_trans/2`` of it are moved by at most the size
    of the jump between the pattern's last and first values, everything
    further away is untouched.
    """
    if n < 1:
        raise DataConsistencyError(f"repeat count must be at least 1, got {n}")
    if t_trans < 0:
        raise DataConsistencyError(f"t_trans must be non-negative, got {t_trans}")
    if record.stress.size == 0 or not np.array_equal(record.stress, record.strain):
        raise DataConsistencyError("repeat_load requires identical stress and strain patterns")
    if record.sampling != "constant" or len(record) < 2:
        raise DataConsistencyError("repeat_load requires constant sampling with at least two samples")

    pattern = np.asarray(record.stress, dtype=float)
    step = float(record.time[1] - record.time[0])
    segment = pattern[1:]
    data = np.concatenate([pattern[:1]] + [segment] * n)
    t = record.time[0] + step * np.arange(data.size, dtype=float)

    if n > 1 and t_trans > 0:
        jump = float(pattern[0] - pattern[-1])
        for index in range(1, n):
            boundary = float(t[index * (len(record) - 1)])
            data = data + _smoothing_pulse(t, boundary, t_trans, jump)
        logger.debug("repeat_load smoothing jump=%g window=%g", jump, t_trans)

    log = append_log(record.log, "repeat", n=n, t_trans=t_trans)
    return TimeSeriesRecord(time=t, stress=data, strain=data, log=log)


def hstep(t: Optional[float] = None, *, offset: float = 0.0, amp: float = 1.0):
    if t is None:
        return lambda x: hstep(x, offset=offset, amp=amp)
    return 0.0 if t < offset else amp


def ramp(t: Optional[float] = None, *, offset: float = 0.0, amp: float = 1.0):
    if t is None:
        return lambda x: ramp(x, offset=offset, amp=amp)
    return 0.0 if t < offset else (t - offset) * amp


def stairs(t: Optional[float] = None, *, offset: float = 0.0, amp: float = 1.0, width: float = 1.0):
    if t is None:
        return lambda x: stairs(x, offset=offset, amp=amp, width=width)
    return 0.0 if t < offset else amp * math.ceil((t - offset) / width)


def square(
    t: Optional[float] = None,
    *,
    offset: float = 0.0,
    amp: float = 1.0,
    period: float = 1.0,
    width: Optional[float] = None,
):
    high = 0.5 * period if width is None else width
    if t is None:
        return lambda x: square(x, offset=offset, amp=amp, period=period, width=high)
    if t < offset:
        return 0.0
    return amp if ((t - offset) % period) < high else 0.0


def sawtooth(t: Optional[float] = None, *, offset: float = 0.0, amp: float = 1.0, period: float = 1.0):
    if t is None:
        return lambda x: sawtooth(x, offset=offset, amp=amp, period=period)
    if t < offset:
        return 0.0
    return amp * ((t - offset) % period) / period


def triangle(
    t: Optional[float] = None,
    *,
    offset: float = 0.0,
    amp: float = 1.0,
    period: float = 1.0,
    width: Optional[float] = None,
):
    rise = 0.5 * period if width is None else width
    if t is None:
        return lambda x: triangle(x, offset=offset, amp=amp, period=period, width=rise)
    if t < offset:
        return 0.0
    phase = (t - offset) % period
    if phase < rise:
        return amp * phase / rise
    return amp * (period - phase) / (period - rise)


__all__ = [
    "hstep",
    "line_load",
    "noise_load",
    "ramp",
    "ramp_load",
    "repeat_load",
    "sawtooth",
    "sinusoid_load",
    "square",
    "stairs",
    "step_load",
    "time_line",
    "triangle",
]
