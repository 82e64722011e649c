# =============================
# bandxform.py
# Low-pass prototype -> low/high/band-pass/band-stop, still in the s-plane.
# =============================
from __future__ import annotations

import logging
from enum import Enum
from typing import Sequence, Tuple, Union

import numpy as np

from errors import InvalidParameter
from prototypes import AT_INFINITY, ZPK

log = logging.getLogger("iirdesign.bandxform")

# Bilinear map used downstream: s = FS2 * (1 - z^-1) / (1 + z^-1).
# Pre-warping has to use the same constant or the band edges drift.
FS2 = 2.0


class Band(str, Enum):
    LOW = "low"
    HIGH = "high"
    BANDPASS = "bandpass"
    BANDSTOP = "bandstop"

    @classmethod
    def parse(cls, value: Union[str, "Band"]) -> "Band":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        aliases = {"lowpass": cls.LOW, "highpass": cls.HIGH, "band": cls.BANDPASS,
                   "pass": cls.BANDPASS, "stop": cls.BANDSTOP, "notch": cls.BANDSTOP}
        if key in aliases:
            return aliases[key]
        for b in cls:
            if b.value == key:
                return b
        raise InvalidParameter(f"Unknown band '{value}'. Known: {', '.join(b.value for b in cls)}")

    @property
    def n_cutoffs(self) -> int:
        return 2 if self in (Band.BANDPASS, Band.BANDSTOP) else 1


def as_cutoffs(cutoffs) -> Tuple[float, ...]:
    if cutoffs is None:
        raise InvalidParameter("Cutoffs are required")
    try:
        return tuple(float(c) for c in np.atleast_1d(np.asarray(cutoffs, dtype=np.float64)).ravel())
    except (TypeError, ValueError):
        raise InvalidParameter(f"Cutoffs must be a number or a sequence of numbers, got {cutoffs!r}") from None


def check_cutoffs(band: Band, cutoffs: Union[float, Sequence[float]]) -> Tuple[float, ...]:
    """Normalized cutoffs (fraction of Nyquist) in the shape `band` needs."""
    wn = as_cutoffs(cutoffs)
    if len(wn) != band.n_cutoffs:
        raise InvalidParameter(f"{band.value} filter needs {band.n_cutoffs} cutoff(s), got {len(wn)}: {wn}")
    for c in wn:
        if not (0.0 < c < 1.0):
            raise InvalidParameter(f"Normalized cutoff must lie strictly inside (0, 1), got {c}")
    if len(wn) == 2 and not wn[0] < wn[1]:
        raise InvalidParameter(f"Band cutoffs must be strictly increasing, got {wn}")
    return wn


def prewarp(wn: float) -> float:
    """Analog frequency that the bilinear map sends to normalized `wn`."""
    return FS2 * float(np.tan(np.pi * wn / 2.0))


def _quadratic_pair(half: np.ndarray, wo: float) -> np.ndarray:
    # Both roots of x^2 - 2*half*x + wo^2 = 0, interleaved per input root.
    disc = np.sqrt(half.astype(np.complex128) ** 2 - wo ** 2)
    return np.column_stack((half + disc, half - disc)).ravel()


def _gain_ratio(z: np.ndarray, p: np.ndarray) -> float:
    return float(np.real(np.prod(-z) / np.prod(-p)))


def _check_band(wo: float, bw: float) -> None:
    # transform() always passes w1 < w2; this covers direct callers
    if not (wo > 0.0 and bw > 0.0):
        raise InvalidParameter(f"Band centre and width must be positive, got wo={wo}, bw={bw}")


def lp2lp(proto: ZPK, wo: float) -> ZPK:
    zeros = tuple(z if z is AT_INFINITY else z * wo for z in proto.zeros)
    poles = tuple(proto.pole_array * wo)
    return ZPK(zeros, poles, proto.gain * wo ** proto.relative_degree)


def lp2hp(proto: ZPK, wo: float) -> ZPK:
    z, p = proto.finite_zeros, proto.pole_array
    gain = proto.gain * _gain_ratio(z, p)
    # zeros at infinity land on the origin
    zeros = tuple(wo / z) + (0j,) * proto.relative_degree
    return ZPK(zeros, tuple(wo / p), gain)


def lp2bp(proto: ZPK, wo: float, bw: float) -> ZPK:
    _check_band(wo, bw)
    z, p = proto.finite_zeros, proto.pole_array
    poles = _quadratic_pair(p * bw / 2.0, wo)
    zeros = tuple(_quadratic_pair(z * bw / 2.0, wo)) + (0j,) * proto.relative_degree
    return ZPK(zeros, tuple(poles), proto.gain * bw ** proto.relative_degree)


def lp2bs(proto: ZPK, wo: float, bw: float) -> ZPK:
    _check_band(wo, bw)
    z, p = proto.finite_zeros, proto.pole_array
    gain = proto.gain * _gain_ratio(z, p)
    poles = _quadratic_pair((bw / 2.0) / p, wo)
    degree = proto.relative_degree
    zeros = tuple(_quadratic_pair((bw / 2.0) / z, wo)) + (1j * wo,) * degree + (-1j * wo,) * degree
    return ZPK(zeros, tuple(poles), gain)


def transform(proto: ZPK, band: Union[str, Band], cutoffs: Union[float, Sequence[float]]) -> ZPK:
    b = Band.parse(band)
    wn = check_cutoffs(b, cutoffs)

    if b is Band.LOW:
        out = lp2lp(proto, prewarp(wn[0]))
    elif b is Band.HIGH:
        out = lp2hp(proto, prewarp(wn[0]))
    else:
        w1, w2 = prewarp(wn[0]), prewarp(wn[1])
        wo, bw = float(np.sqrt(w1 * w2)), w2 - w1
        out = lp2bp(proto, wo, bw) if b is Band.BANDPASS else lp2bs(proto, wo, bw)

    log.debug("%s transform at %s: %d poles, %d zeros, k=%.6g",
              b.value, wn, len(out.poles), len(out.zeros), out.gain)
    return out
