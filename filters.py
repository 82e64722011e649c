# =============================
# filters.py
# Filter descriptions, the design/apply entry points and a name registry
# for the CLI (Hz parameters + sample rate -> FilterSpec).
# =============================
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

import numpy as np

from bandxform import Band, as_cutoffs, check_cutoffs, transform
from errors import InvalidInput, InvalidParameter
from prototypes import Method, check_db, check_order, design_prototype
from realizer import DigitalCoefficients, to_digital
from zerophase import filtfilt

log = logging.getLogger("iirdesign.filters")

DEFAULT_ORDER = 4
DEFAULT_RIPPLE_DB = 1.0
DEFAULT_ATTENUATION_DB = 40.0


# ---------- Spec & core entry points ----------
@dataclass(frozen=True)
class FilterSpec:
    """What to design. Cutoffs are fractions of Nyquist."""
    order: int
    band: Band
    cutoffs: Tuple[float, ...]
    method: Method = Method.BUTTERWORTH
    ripple_db: Optional[float] = None
    attenuation_db: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "band", Band.parse(self.band))
        object.__setattr__(self, "method", Method.parse(self.method))
        object.__setattr__(self, "cutoffs", as_cutoffs(self.cutoffs))

    def validate(self) -> None:
        check_order(self.order)
        check_cutoffs(self.band, self.cutoffs)
        if self.method.needs_ripple:
            check_db(self.ripple_db, "ripple_db", self.method)
        if self.method.needs_attenuation:
            check_db(self.attenuation_db, "attenuation_db", self.method)

    @property
    def working_order(self) -> int:
        return self.order * self.band.n_cutoffs


def design_filter(spec: FilterSpec) -> DigitalCoefficients:
    spec.validate()
    proto = design_prototype(spec.order, spec.method, spec.ripple_db, spec.attenuation_db)
    analog = transform(proto, spec.band, spec.cutoffs)
    coeffs = to_digital(analog)
    log.debug("Designed %s %s n=%d (working order %d) Wn=%s -> %d taps", spec.method.value, spec.band.value,
              spec.order, spec.working_order, spec.cutoffs, len(coeffs.b))
    return coeffs


def apply_filter(coeffs: DigitalCoefficients, signal) -> np.ndarray:
    """Zero-phase application of designed coefficients to (N,) or (N, C) data."""
    x = np.asarray(signal, dtype=np.float64)
    if x.size == 0:
        raise InvalidInput("Cannot filter an empty signal")
    return filtfilt(coeffs.b, coeffs.a, x)


# ---------- Hz front end ----------
def normalize_cutoffs(cutoffs_hz: Union[float, Sequence[float]], fs: float) -> Tuple[float, ...]:
    try:
        fs = float(fs)
    except (TypeError, ValueError):
        raise InvalidParameter(f"Sampling frequency must be a number, got {fs!r}") from None
    if not fs > 0.0:
        raise InvalidParameter(f"Sampling frequency must be positive, got {fs}")
    nyquist = 0.5 * fs
    out = []
    for fc in as_cutoffs(cutoffs_hz):
        if not (0.0 < fc < nyquist):
            raise InvalidParameter(f"Cutoff {fc} Hz must lie between 0 and Nyquist ({nyquist} Hz)")
        out.append(fc / nyquist)
    return tuple(out)


def make_spec(fs: float, cutoffs_hz: Union[float, Sequence[float]], band: Union[str, Band] = Band.LOW,
              order: int = DEFAULT_ORDER, method: Union[str, Method] = Method.BUTTERWORTH,
              ripple_db: float = DEFAULT_RIPPLE_DB, attenuation_db: float = DEFAULT_ATTENUATION_DB) -> FilterSpec:
    return FilterSpec(order=order, band=band, cutoffs=normalize_cutoffs(cutoffs_hz, fs), method=method,
                      ripple_db=ripple_db, attenuation_db=attenuation_db)


def filter_signal(data, fs: float, cutoffs_hz: Union[float, Sequence[float]], band: Union[str, Band] = Band.LOW,
                  order: int = DEFAULT_ORDER, method: Union[str, Method] = Method.BUTTERWORTH,
                  ripple_db: float = DEFAULT_RIPPLE_DB, attenuation_db: float = DEFAULT_ATTENUATION_DB) -> np.ndarray:
    """One-shot design + zero-phase apply with cutoffs in Hz."""
    spec = make_spec(fs, cutoffs_hz, band, order, method, ripple_db, attenuation_db)
    return apply_filter(design_filter(spec), data)


# ---------- Registry ----------
FilterFactory = Callable[[Dict[str, Any], float], FilterSpec]
_REGISTRY: Dict[str, Tuple[str, FilterFactory]] = {}


def register_filter(name: str, *, help: str) -> Callable[[FilterFactory], FilterFactory]:
    key = name.strip().lower()
    def _decorator(factory: FilterFactory) -> FilterFactory:
        if key in _REGISTRY:
            raise ValueError(f"Duplicate filter name: {name}")
        _REGISTRY[key] = (help, factory)
        return factory
    return _decorator


def available_filters() -> Dict[str, str]:
    return {k: v[0] for k, v in sorted(_REGISTRY.items())}


def build_filter(name: str, sr: float, **kwargs: Any) -> FilterSpec:
    key = name.strip().lower()
    if key not in _REGISTRY:
        raise KeyError(f"Unknown filter '{name}'. Available: {', '.join(available_filters().keys()) or '(none)'}")
    _help, factory = _REGISTRY[key]
    return factory(kwargs, sr)


def _require(params: Dict[str, Any], key: str) -> float:
    if params.get(key) is None:
        raise InvalidParameter(f"Missing parameter '{key}'")
    try:
        return float(params[key])
    except (TypeError, ValueError):
        raise InvalidParameter(f"Parameter '{key}' must be a number, got {params[key]!r}") from None


def _band_cutoffs(params: Dict[str, Any], band: Band) -> Tuple[float, ...]:
    if band.n_cutoffs == 2:
        if params.get("band") is not None:
            return as_cutoffs(params["band"])
        return _require(params, "low"), _require(params, "high")
    return (_require(params, "cutoff"),)


def _spec_from_params(params: Dict[str, Any], sr: float, band: Band, method: Union[str, Method]) -> FilterSpec:
    return make_spec(sr, _band_cutoffs(params, band), band,
                     order=params.get("order", DEFAULT_ORDER),
                     method=method,
                     ripple_db=params.get("ripple_db", DEFAULT_RIPPLE_DB),
                     attenuation_db=params.get("attenuation_db", DEFAULT_ATTENUATION_DB))


_SHARED_HELP = "order (4), method (butterworth|chebyshev1|chebyshev2|elliptic), ripple_db (1), attenuation_db (40)"


@register_filter("lowpass", help=f"Zero-phase LPF. Params: cutoff (Hz), {_SHARED_HELP}")
def _lowpass(params: Dict[str, Any], sr: float) -> FilterSpec:
    return _spec_from_params(params, sr, Band.LOW, params.get("method", Method.BUTTERWORTH))


@register_filter("highpass", help=f"Zero-phase HPF. Params: cutoff (Hz), {_SHARED_HELP}")
def _highpass(params: Dict[str, Any], sr: float) -> FilterSpec:
    return _spec_from_params(params, sr, Band.HIGH, params.get("method", Method.BUTTERWORTH))


@register_filter("bandpass", help=f"Zero-phase BPF. Params: low, high (Hz) or band=low,high, {_SHARED_HELP}")
def _bandpass(params: Dict[str, Any], sr: float) -> FilterSpec:
    return _spec_from_params(params, sr, Band.BANDPASS, params.get("method", Method.BUTTERWORTH))


@register_filter("bandstop", help=f"Zero-phase band reject. Params: low, high (Hz) or band=low,high, {_SHARED_HELP}")
def _bandstop(params: Dict[str, Any], sr: float) -> FilterSpec:
    return _spec_from_params(params, sr, Band.BANDSTOP, params.get("method", Method.BUTTERWORTH))


def _register_method(method: Method, extra_help: str) -> None:
    @register_filter(method.value, help=(f"{method.value.capitalize()} design. Params: type (low|high|bandpass|bandstop), "
                                         f"cutoff or low/high (Hz), order (4){extra_help}"))
    def _factory(params: Dict[str, Any], sr: float) -> FilterSpec:
        band = Band.parse(params.get("type", Band.LOW))
        return _spec_from_params(params, sr, band, method)


_register_method(Method.BUTTERWORTH, "")
_register_method(Method.CHEBYSHEV1, ", ripple_db (1)")
_register_method(Method.CHEBYSHEV2, ", attenuation_db (40)")
_register_method(Method.ELLIPTIC, ", ripple_db (1), attenuation_db (40)")
