# dsp/gaussian.py
import math

import numpy as np

MIN_SIGMA, MAX_SIGMA = 0.5, 5.0
MIN_SIZE, MAX_SIZE = 3, 21

# discrete kernels must fit 16-bit weights
MAX_WEIGHT = 65535


def clamp_sigma(sigma: float) -> float:
    return max(MIN_SIGMA, min(MAX_SIGMA, float(sigma)))


def clamp_size(size: int) -> int:
    return max(MIN_SIZE, min(MAX_SIZE, int(size) | 1))


def gaussian_2d(sigma: float, size: int) -> np.ndarray:
    """
    Samples of G(x,y) = exp(-(x^2 + y^2) / 2*sigma^2) / (2*pi*sigma^2)
    at integer offsets -(size//2)..size//2 around the center.
    """
    r = size // 2
    ax = np.arange(-r, r + 1, dtype=np.float64)
    xx, yy = np.meshgrid(ax, ax, indexing="xy")
    sqr_sigma = sigma * sigma
    return np.exp(-(xx**2 + yy**2) / (2.0 * sqr_sigma)) / (2.0 * math.pi * sqr_sigma)


def generate(sigma: float = 1.4, size: int = 5) -> np.ndarray:
    """
    Integer approximation of a 2D Gaussian kernel.

    sigma is clamped to [0.5, 5.0], size is made odd and clamped to [3, 21].
    All samples are scaled so the corner (smallest) sample becomes 1, unless
    that would push the center sample over 65535, in which case the center is
    scaled to 65535 instead. Scaled samples are rounded to the nearest integer.

    sigma=1.4, size=5 gives:
        1 2 3 2 1
        2 5 6 5 2
        3 6 8 6 3
        2 5 6 5 2
        1 2 3 2 1
    """
    sigma = clamp_sigma(sigma)
    size = clamp_size(size)
    samples = gaussian_2d(sigma, size)

    r = size >> 1
    factor = 1.0 / samples[0, 0]
    if samples[r, r] * factor > MAX_WEIGHT:
        factor = MAX_WEIGHT / samples[r, r]

    return np.rint(samples * factor).astype(np.int64)
