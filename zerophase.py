# =============================
# zerophase.py
# Direct IIR recursion (transposed direct form II) and forward-backward filtering.
# =============================
from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

from errors import DegenerateCoefficients, InvalidInput


def _normalize(b: Sequence[float], a: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
    b = np.atleast_1d(np.asarray(b, dtype=np.float64))
    a = np.atleast_1d(np.asarray(a, dtype=np.float64))
    if b.ndim != 1 or a.ndim != 1 or b.size == 0 or a.size == 0:
        raise DegenerateCoefficients("b and a must be non-empty 1-D coefficient vectors")
    if a[0] == 0.0:
        raise DegenerateCoefficients("a[0] must be non-zero")
    # equal lengths make the last delay cell the same update as the others
    L = max(b.size, a.size)
    b = np.pad(b, (0, L - b.size)) / a[0]
    a = np.pad(a, (0, L - a.size)) / a[0]
    return b, a


def _as_2d(x) -> Tuple[np.ndarray, bool]:
    x = np.asarray(x, dtype=np.float64)
    if x.ndim == 0 or x.ndim > 2:
        raise InvalidInput(f"Signal must be 1-D (N,) or 2-D (N, C), got shape {x.shape}")
    if x.shape[0] == 0:
        raise InvalidInput("Signal is empty")
    return (x[:, None], True) if x.ndim == 1 else (x, False)


def _run(b: np.ndarray, a: np.ndarray, x: np.ndarray) -> np.ndarray:
    # x: (N, C); one delay row per cell, vectorized across channels
    n, C = x.shape
    nz = b.size - 1
    y = np.empty_like(x)
    if nz == 0:
        np.multiply(x, b[0], out=y)
        return y
    z = np.zeros((nz, C), dtype=np.float64)
    b_tail = b[1:, None]
    a_tail = a[1:, None]
    for i in range(n):
        xi = x[i]
        yi = b[0] * xi + z[0]
        y[i] = yi
        upd = b_tail * xi - a_tail * yi
        upd[:-1] += z[1:]
        z = upd
    return y


def lfilter(b: Sequence[float], a: Sequence[float], x) -> np.ndarray:
    """Single causal pass of the IIR filter b/a over `x` from a zero state.

    `x` is (N,) or (N, C); channels are filtered independently along axis 0.
    """
    bn, an = _normalize(b, a)
    x2, was_1d = _as_2d(x)
    y = _run(bn, an, x2)
    return y[:, 0] if was_1d else y


def filtfilt(b: Sequence[float], a: Sequence[float], x) -> np.ndarray:
    """Zero-phase filtering: forward pass, then the same filter over the reversed output.

    The magnitude response is applied twice (|H|^2) and the phase cancels. The
    state starts at zero for both passes and the edges are not padded, so the
    first and last few time constants of a short signal show the start-up
    transient.
    """
    bn, an = _normalize(b, a)
    x2, was_1d = _as_2d(x)
    y = _run(bn, an, x2)
    y = _run(bn, an, y[::-1].copy())[::-1]
    y = np.ascontiguousarray(y)
    return y[:, 0] if was_1d else y
