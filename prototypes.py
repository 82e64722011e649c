# =============================
# prototypes.py
# Normalized analog low-pass prototypes (cutoff at 1 rad/s) as zeros/poles/gain.
# =============================
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np

from errors import InvalidParameter

log = logging.getLogger("iirdesign.prototypes")


class Method(str, Enum):
    BUTTERWORTH = "butterworth"
    CHEBYSHEV1 = "chebyshev1"
    CHEBYSHEV2 = "chebyshev2"
    ELLIPTIC = "elliptic"

    @classmethod
    def parse(cls, value: Union[str, "Method"]) -> "Method":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for m in cls:
            if m.value == key:
                return m
        raise InvalidParameter(f"Unknown IIR method '{value}'. Known: {', '.join(m.value for m in cls)}")

    @property
    def needs_ripple(self) -> bool:
        return self in (Method.CHEBYSHEV1, Method.ELLIPTIC)

    @property
    def needs_attenuation(self) -> bool:
        return self in (Method.CHEBYSHEV2, Method.ELLIPTIC)


class _Infinity(Enum):
    AT_INFINITY = "inf"

    def __repr__(self) -> str:
        return "AT_INFINITY"


# A zero slot with no finite root. Kept out of the arithmetic on purpose:
# every stage filters it before touching numbers.
AT_INFINITY = _Infinity.AT_INFINITY

Root = Union[complex, _Infinity]


@dataclass(frozen=True)
class ZPK:
    """Zeros/poles/gain of a continuous-time transfer function."""
    zeros: Tuple[Root, ...]
    poles: Tuple[complex, ...]
    gain: float

    @property
    def finite_zeros(self) -> np.ndarray:
        return np.array([z for z in self.zeros if z is not AT_INFINITY], dtype=np.complex128)

    @property
    def pole_array(self) -> np.ndarray:
        return np.array(self.poles, dtype=np.complex128)

    @property
    def infinite_zero_count(self) -> int:
        return sum(1 for z in self.zeros if z is AT_INFINITY)

    @property
    def relative_degree(self) -> int:
        """Pole count minus finite zero count."""
        return len(self.poles) - len(self.finite_zeros)


def _as_zpk(zeros, poles, gain) -> ZPK:
    return ZPK(tuple(complex(z) if z is not AT_INFINITY else z for z in zeros),
               tuple(complex(p) for p in np.asarray(poles).ravel()),
               float(gain))


# ---------- Validation ----------

def check_order(order) -> int:
    try:
        n = int(order)
    except (TypeError, ValueError):
        raise InvalidParameter(f"Filter order must be an integer, got {order!r}") from None
    if n != order or n < 1:
        raise InvalidParameter(f"Filter order must be a positive integer, got {order!r}")
    return n


def check_db(value: Optional[float], name: str, method: Method) -> float:
    if value is None:
        raise InvalidParameter(f"{method.value} design requires {name}")
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise InvalidParameter(f"{name} must be a number of dB, got {value!r}") from None
    if not np.isfinite(v) or v <= 0.0:
        raise InvalidParameter(f"{name} must be a positive number of dB, got {value!r}")
    return v


# ---------- Prototypes ----------

def _chebyshev_angles(n: int) -> np.ndarray:
    m = np.arange(1, n + 1)
    return np.pi * (2 * m - 1) / (2 * n)


def _chebyshev_ellipse(n: int, mu: float) -> np.ndarray:
    theta = _chebyshev_angles(n)
    return -np.sinh(mu) * np.sin(theta) + 1j * np.cosh(mu) * np.cos(theta)


def butterworth(n: int) -> ZPK:
    k = np.arange(1, n + 1)
    p = np.exp(1j * np.pi * (2 * k + n - 1) / (2 * n))
    return _as_zpk((), p, 1.0)


def chebyshev1(n: int, ripple_db: float) -> ZPK:
    """Equiripple passband of `ripple_db`; poles on an ellipse, no finite zeros.

    For even n the response at DC sits at the bottom of the ripple, so the gain
    is pulled down by sqrt(1 + eps^2) to match.
    """
    eps = np.sqrt(10.0 ** (ripple_db / 10.0) - 1.0)
    mu = np.arcsinh(1.0 / eps) / n
    p = _chebyshev_ellipse(n, mu)
    k = np.prod(-p)
    if n % 2 == 0:
        k = k / np.sqrt(1.0 + eps ** 2)
    return _as_zpk((), p, np.real(k))


def chebyshev2(n: int, attenuation_db: float) -> ZPK:
    """Equiripple stopband `attenuation_db` down; zeros on the imaginary axis.

    Poles are the reciprocals of the Chebyshev I ellipse. Odd orders carry one
    zero at infinity.
    """
    eps = 1.0 / np.sqrt(10.0 ** (attenuation_db / 10.0) - 1.0)
    mu = np.arcsinh(1.0 / eps) / n

    theta = _chebyshev_angles(n)[: n // 2]
    z_half = 1j / np.cos(theta)
    zeros = list(z_half) + list(np.conj(z_half))
    if n % 2 == 1:
        zeros.append(AT_INFINITY)

    p = 1.0 / _chebyshev_ellipse(n, mu)
    zf = np.array([z for z in zeros if z is not AT_INFINITY], dtype=np.complex128)
    k = np.real(np.prod(-p) / np.prod(-zf))
    return _as_zpk(zeros, p, k)


def elliptic(n: int, ripple_db: float, attenuation_db: float) -> ZPK:
    """Approximate elliptic design.

    Reuses the Chebyshev I geometry for `ripple_db` and lowers the gain by
    `attenuation_db`. There is no Jacobi elliptic synthesis here, so the
    response is not a true Cauer response.
    """
    cheb = chebyshev1(n, ripple_db)
    return ZPK(cheb.zeros, cheb.poles, cheb.gain * 10.0 ** (-attenuation_db / 20.0))


def design_prototype(order: int, method: Union[str, Method], ripple_db: Optional[float] = None,
                     attenuation_db: Optional[float] = None) -> ZPK:
    n = check_order(order)
    m = Method.parse(method)
    rp = check_db(ripple_db, "ripple_db", m) if m.needs_ripple else None
    rs = check_db(attenuation_db, "attenuation_db", m) if m.needs_attenuation else None

    if m is Method.BUTTERWORTH:
        zpk = butterworth(n)
    elif m is Method.CHEBYSHEV1:
        zpk = chebyshev1(n, rp)
    elif m is Method.CHEBYSHEV2:
        zpk = chebyshev2(n, rs)
    else:
        zpk = elliptic(n, rp, rs)
    log.debug("%s prototype n=%d: %d poles, %d zeros (%d at infinity), k=%.6g",
              m.value, n, len(zpk.poles), len(zpk.zeros), zpk.infinite_zero_count, zpk.gain)
    return zpk
