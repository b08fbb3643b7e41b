"""Special-function kernels: Mittag-Leffler, gamma and numerical inverse Laplace.

Thin adapters over mpmath and scipy.special with a fixed call signature. The
expression layer treats these as black boxes.
"""

from __future__ import annotations

import math
import threading
from typing import Callable, Optional

import mpmath
import numpy as np
from scipy import special

from .config import as_array, dtype, get_config

LaplaceKernel = Callable[[complex], complex]

# Above this many guard digits the alternating series is abandoned in favour
# of inverting the Laplace transform of t^(b-1) E_{a,b}(-lam t^a).
_MAX_GUARD_DIGITS = 400
_MAX_TERMS = 200000
_INITIAL_VALUE_S = 1e12

# mpmath keeps its working precision in a process-global context.
_MP_LOCK = threading.RLock()


def gamma(x):
    return special.gamma(x)


def _ml_series(alpha: float, beta: float, z: float, dps: int) -> float:
    with _MP_LOCK, mpmath.workdps(dps):
        mz = mpmath.mpf(z)
        total = mpmath.mpf(0)
        power = mpmath.mpf(1)
        eps = mpmath.mpf(10) ** (-(get_config().ml_dps))
        peak = abs(z) ** (1.0 / alpha) / alpha if z else 0.0
        k = 0
        while k < _MAX_TERMS:
            term = power * mpmath.rgamma(alpha * k + beta)
            total += term
            if k > peak and abs(term) <= eps * max(abs(total), eps):
                break
            power *= mz
            k += 1
        return float(total)


def _ml_laplace(alpha: float, beta: float, z: float) -> float:
    lam = -z

    def transform(s):
        return s ** (alpha - beta) / (s**alpha + lam)

    with _MP_LOCK, mpmath.workdps(get_config().ml_dps):
        return float(mpmath.re(mpmath.invertlaplace(transform, 1.0, method=get_config().laplace_method)))


def mittag_leffler(alpha: float, beta: float, z: float) -> float:
    """Two-parameter Mittag-Leffler function E_{alpha,beta}(z) for real z."""
    alpha = float(alpha)
    beta = float(beta)
    z = float(z)
    if alpha < 0.0:
        raise ValueError(f"Mittag-Leffler alpha must be non-negative, got {alpha}")
    if math.isnan(z):
        return math.nan
    if alpha == 0.0:
        return 1.0 / ((1.0 - z) * special.gamma(beta))
    base = get_config().ml_dps
    if z >= 0.0:
        return _ml_series(alpha, beta, z, base)
    guard = int(math.ceil(abs(z) ** (1.0 / alpha) * math.log10(math.e)))
    if guard > _MAX_GUARD_DIGITS:
        return _ml_laplace(alpha, beta, z)
    return _ml_series(alpha, beta, z, base + guard)


def _invert_one(kernel: LaplaceKernel, t: float, method: str) -> float:
    if t < 0.0:
        return 0.0
    if t == 0.0:
        # initial value theorem: f(0+) = lim s F(s)
        s = _INITIAL_VALUE_S
        return float(np.real(s * kernel(complex(s, 0.0))))

    def transform(p):
        return mpmath.mpc(kernel(complex(p)))

    with _MP_LOCK:
        return float(mpmath.re(mpmath.invertlaplace(transform, t, method=method)))


def invert_laplace(kernel: LaplaceKernel, t, method: Optional[str] = None):
    """Invert a Laplace-domain kernel at time(s) ``t``.

    Scalars return a scalar of the configured dtype, sequences an array of the
    same length and order.
    """
    chosen = method or get_config().laplace_method
    if np.ndim(t) == 0:
        return dtype()(_invert_one(kernel, float(t), chosen))
    times = as_array(t)
    return as_array([_invert_one(kernel, float(value), chosen) for value in times])


__all__ = ["gamma", "invert_laplace", "mittag_leffler"]
