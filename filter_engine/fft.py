"""In-place radix-2 complex FFT over separate real/imaginary buffers.

Bit-reversal permutation followed by iterative Cooley-Tukey butterflies,
one vectorized pass per stage. The inverse transform divides by the length.
"""
from __future__ import annotations

import math

import numpy as np

from .errors import InvalidInputError


def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def next_power_of_two(n: float) -> int:
    """Smallest power of two >= n (1 for n <= 1 or non-finite n)."""
    if not math.isfinite(n) or n <= 1:
        return 1
    v = math.ceil(n)
    if is_power_of_two(v):
        return v
    v -= 1
    shift = 1
    while shift < 64:
        v |= v >> shift
        shift <<= 1
    return v + 1


def bit_reversal_permutation(n: int) -> np.ndarray:
    bits = n.bit_length() - 1
    idx = np.arange(n)
    rev = np.zeros(n, dtype=np.int64)
    for b in range(bits):
        rev |= ((idx >> b) & 1) << (bits - 1 - b)
    return rev


def fft_radix2(re: np.ndarray, im: np.ndarray, inverse: bool = False) -> None:
    """Transform (re, im) in place.

    Raises InvalidInputError unless both buffers are 1-D floating-point numpy
    arrays of the same length, and that length is a power of two.
    """
    if not (isinstance(re, np.ndarray) and isinstance(im, np.ndarray)):
        raise InvalidInputError("re and im must be numpy arrays")
    if re.dtype.kind != "f" or im.dtype.kind != "f":
        raise InvalidInputError(f"re and im must be floating-point (got {re.dtype}, {im.dtype})")
    if re.ndim != 1 or im.ndim != 1:
        raise InvalidInputError("re and im must be 1-D arrays")
    n = re.shape[0]
    if n != im.shape[0]:
        raise InvalidInputError("re and im must have same length")
    if not is_power_of_two(n):
        raise InvalidInputError(f"FFT length must be a power of two (got {n})")
    if n <= 1:
        return

    perm = bit_reversal_permutation(n)
    xr = np.asarray(re, dtype=float)[perm]
    xi = np.asarray(im, dtype=float)[perm]

    sign = 1.0 if inverse else -1.0
    size = 2
    while size <= n:
        half = size >> 1
        theta = sign * 2.0 * np.pi * np.arange(half) / size
        wr, wi = np.cos(theta), np.sin(theta)

        r = xr.reshape(-1, size)
        i = xi.reshape(-1, size)
        lr, li = r[:, :half].copy(), i[:, :half].copy()
        hr, hi = r[:, half:], i[:, half:]
        tr = hr * wr - hi * wi
        ti = hr * wi + hi * wr
        r[:, :half] = lr + tr
        i[:, :half] = li + ti
        r[:, half:] = lr - tr
        i[:, half:] = li - ti
        size <<= 1

    if inverse:
        xr /= n
        xi /= n
    re[:] = xr
    im[:] = xi
