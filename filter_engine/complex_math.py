"""Complex helpers on top of Python's built-in `complex` and numpy `complex128`.

Addition, multiplication, conjugation and magnitude come for free with the
built-in type. This module adds the few operations the response code needs
that the built-in type lacks, all of which work on scalars and arrays alike.
"""
from __future__ import annotations

from typing import Union

import numpy as np

ComplexLike = Union[complex, np.ndarray]
RealLike = Union[float, np.ndarray]

COMPLEX_ONE = 1.0 + 0.0j
COMPLEX_ZERO = 0.0 + 0.0j


def expj(phase_rad: RealLike) -> ComplexLike:
    """Unit phasor e^{j*phase}."""
    return from_polar(1.0, phase_rad)


def from_polar(magnitude: RealLike, phase_rad: RealLike) -> ComplexLike:
    return magnitude * np.cos(phase_rad) + 1j * (magnitude * np.sin(phase_rad))


def safe_divide(num: ComplexLike, den: ComplexLike) -> ComplexLike:
    """Complex division that yields 0 where the divisor is exactly 0."""
    num = np.asarray(num, dtype=np.complex128)
    den = np.asarray(den, dtype=np.complex128)
    zero = den == 0
    out = np.divide(num, np.where(zero, 1.0, den))
    out = np.where(zero, COMPLEX_ZERO, out)
    return out[()] if out.ndim == 0 else out


def normalize(z: ComplexLike, eps: float = 1e-12) -> ComplexLike:
    """Scale to unit magnitude; values with |z| <= eps become 1 + 0j."""
    z = np.asarray(z, dtype=np.complex128)
    mag = np.abs(z)
    small = mag <= eps
    out = np.where(small, COMPLEX_ONE, z / np.where(small, 1.0, mag))
    return out[()] if out.ndim == 0 else out
