# =============================
# realizer.py
# s-plane zeros/poles/gain -> digital b/a through the bilinear transform.
# =============================
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

import numpy as np

from bandxform import FS2
from prototypes import ZPK

log = logging.getLogger("iirdesign.realizer")

# Relative size of the imaginary part left over after expanding conjugate pairs.
_IMAG_TOL = 1e-8


@dataclass(frozen=True)
class DigitalCoefficients:
    b: np.ndarray
    a: np.ndarray

    def __post_init__(self):
        b = np.array(self.b, dtype=np.float64)
        a = np.array(self.a, dtype=np.float64)
        b.setflags(write=False)
        a.setflags(write=False)
        object.__setattr__(self, "b", b)
        object.__setattr__(self, "a", a)

    @property
    def order(self) -> int:
        return max(len(self.b), len(self.a)) - 1

    def as_dict(self) -> dict:
        return {"b": self.b.tolist(), "a": self.a.tolist()}


def poly_from_roots(roots: Iterable[complex]) -> np.ndarray:
    """Coefficients of prod(x - r), highest power first.

    Roots are expected in conjugate pairs (or real), so the result is real; the
    imaginary residue is checked and then dropped.
    """
    coeffs = np.ones(1, dtype=np.complex128)
    for r in roots:
        nxt = np.zeros(len(coeffs) + 1, dtype=np.complex128)
        nxt[:-1] += coeffs
        nxt[1:] -= r * coeffs
        coeffs = nxt

    residue = float(np.max(np.abs(coeffs.imag)))
    scale = max(1.0, float(np.max(np.abs(coeffs.real))))
    log.debug("poly_from_roots: degree=%d imag residue=%.3g", len(coeffs) - 1, residue)
    assert residue <= _IMAG_TOL * scale, f"complex residue {residue:.3g} in expanded polynomial"
    return coeffs.real.copy()


def bilinear(zpk: ZPK) -> ZPK:
    """Map s-plane roots to the z-plane with z = (FS2 + s) / (FS2 - s).

    Zeros at infinity are dropped and every missing zero becomes z = -1, so the
    result has as many zeros as poles.
    """
    z, p = zpk.finite_zeros, zpk.pole_array
    z_d = (FS2 + z) / (FS2 - z)
    p_d = (FS2 + p) / (FS2 - p)
    z_d = np.concatenate([z_d, -np.ones(len(p_d) - len(z_d), dtype=np.complex128)])
    k_d = zpk.gain * float(np.real(np.prod(FS2 - z) / np.prod(FS2 - p)))
    return ZPK(tuple(z_d), tuple(p_d), k_d)


def to_digital(zpk: ZPK) -> DigitalCoefficients:
    dz = bilinear(zpk)
    b = dz.gain * poly_from_roots(dz.zeros)
    a = poly_from_roots(dz.poles)
    b, a = b / a[0], a / a[0]
    return DigitalCoefficients(b, a)
