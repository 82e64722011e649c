# =============================
# errors.py
# Exceptions raised by the design/apply core.
# =============================
from __future__ import annotations


class FilterDesignError(ValueError):
    """Base class for everything the design/apply core raises."""


class InvalidParameter(FilterDesignError):
    """A filter description cannot be designed.

    Raised for:
      - order < 1
      - a cutoff outside (0, 1) of Nyquist (or outside (0, fs/2) in Hz)
      - the wrong number of cutoffs for the band, or band cutoffs not increasing
      - ripple / attenuation missing or not positive for a method that needs it
    """


class InvalidInput(FilterDesignError):
    """The signal handed to the applier is unusable (empty, wrong rank)."""


class DegenerateCoefficients(FilterDesignError):
    """The leading denominator coefficient is exactly zero."""
