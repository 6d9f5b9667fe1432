# dsp/filters.py
import logging
from contextlib import contextmanager
from typing import Optional, Sequence, Union

import numpy as np

from dsp.conv import convolve, correlate
from dsp.errors import InvalidImageProperties, UnsupportedImageFormat
from dsp.gaussian import clamp_sigma, clamp_size, generate
from dsp.image import ImageBuffer, PixelFormat, Rectangle
from dsp.kernel import KernelSpec

log = logging.getLogger(__name__)

RectLike = Union[Rectangle, Sequence[int], None]

MEAN_KERNEL = [
    [1, 1, 1],
    [1, 1, 1],
    [1, 1, 1],
]

BLUR_KERNEL = [
    [1, 2, 3, 2, 1],
    [2, 4, 5, 4, 2],
    [3, 5, 6, 5, 3],
    [2, 4, 5, 4, 2],
    [1, 2, 3, 2, 1],
]

DEFAULT_SIGMA = 1.4
DEFAULT_SIZE = 5


def _clip_rect(rect: RectLike, image: ImageBuffer) -> Rectangle:
    if rect is None:
        return image.bounds
    if not isinstance(rect, Rectangle):
        rect = Rectangle(*(int(v) for v in rect))
    return rect.intersect(image.bounds)


@contextmanager
def _snapshot(image: ImageBuffer):
    """Independent copy of `image` used as the source for the block."""
    copy = image.copy()
    log.debug("snapshot %dx%d %s (%d bytes)", image.width, image.height,
              image.pixel_format.label, len(copy.data))
    yield copy


class KernelFilter:
    """
    Common surface of kernel filters: apply() into a new image,
    apply_in_place() over an optional rectangle, apply_to() between two
    distinct buffers.
    """
    supported_formats = frozenset(PixelFormat)

    def __init__(self, kernel, divisor: Optional[int] = None, engine=convolve):
        self._spec = KernelSpec.create(kernel, divisor)
        self._engine = engine

    @property
    def spec(self) -> KernelSpec:
        return self._spec

    @property
    def kernel(self) -> np.ndarray:
        return self._spec.kernel

    @kernel.setter
    def kernel(self, value):
        # divisor is not recalculated
        self._spec = self._spec.with_kernel(value)

    @property
    def divisor(self) -> int:
        return self._spec.divisor

    @divisor.setter
    def divisor(self, value: int):
        self._spec = self._spec.with_divisor(value)

    def _check_format(self, image: ImageBuffer):
        if image.pixel_format not in self.supported_formats:
            raise UnsupportedImageFormat(
                f"{type(self).__name__} does not support {image.pixel_format.label} images")

    def apply(self, image: ImageBuffer) -> ImageBuffer:
        dst = ImageBuffer.allocate(image.width, image.height, image.pixel_format)
        self.apply_to(image, dst)
        return dst

    def apply_to(self, source: ImageBuffer, destination: ImageBuffer, rect: RectLike = None) -> None:
        self._check_format(source)
        if not source.same_layout(destination):
            raise InvalidImageProperties(
                "Source and destination images must have the same size and pixel format")
        if source.data is destination.data:
            raise InvalidImageProperties(
                "Source and destination images must not share pixel data, use apply_in_place()")
        region = _clip_rect(rect, source)
        if region.is_empty:
            return
        self._engine(source, destination, region, self._spec)

    def apply_in_place(self, image: ImageBuffer, rect: RectLike = None) -> None:
        self._check_format(image)
        region = _clip_rect(rect, image)
        if region.is_empty:
            return
        with _snapshot(image) as source:
            self._engine(source, image, region, self._spec)


class Convolution(KernelFilter):
    """
    Convolution filter.

    Without an explicit divisor, the divisor is the kernel sum (1 when the
    sum is zero). Border pixels use a dynamic divisor unless
    dynamic_divisor_for_edges is turned off.
    """

    def __init__(self, kernel, divisor: Optional[int] = None):
        super().__init__(kernel, divisor, engine=convolve)

    @property
    def dynamic_divisor_for_edges(self) -> bool:
        return self._spec.dynamic_divisor_for_edges

    @dynamic_divisor_for_edges.setter
    def dynamic_divisor_for_edges(self, value: bool):
        self._spec = self._spec.with_dynamic_edges(value)


class Correlation(KernelFilter):
    """Kernel filter normalizing every pixel, borders included, by the divisor."""

    def __init__(self, kernel, divisor: Optional[int] = None):
        super().__init__(kernel, divisor, engine=correlate)


def mean() -> Convolution:
    return Convolution(MEAN_KERNEL)


def blur() -> Convolution:
    return Convolution(BLUR_KERNEL)


def sharpen_kernel(gaussian) -> np.ndarray:
    """
    Unsharp-mask kernel from a Gaussian one: center becomes 2*S - center,
    every other cell is negated (S = Gaussian kernel sum). The result sums to S.
    """
    g = np.array(gaussian, dtype=np.int64)
    total = int(g.sum())
    c = g.shape[0] >> 1
    out = -g
    out[c, c] = 2 * total - g[c, c]
    return out


class _GaussianDerived:
    """sigma/size owner that rebuilds its inner filter on every change."""

    def __init__(self, sigma: float = DEFAULT_SIGMA, size: int = DEFAULT_SIZE):
        self._sigma = clamp_sigma(sigma)
        self._size = clamp_size(size)
        self._filter = self._create_filter()

    def _create_filter(self) -> KernelFilter:
        raise NotImplementedError

    @property
    def sigma(self) -> float:
        return self._sigma

    @sigma.setter
    def sigma(self, value: float):
        self._sigma = clamp_sigma(value)
        self._filter = self._create_filter()

    @property
    def size(self) -> int:
        return self._size

    @size.setter
    def size(self, value: int):
        self._size = clamp_size(value)
        self._filter = self._create_filter()

    @property
    def kernel(self) -> np.ndarray:
        return self._filter.kernel

    @property
    def divisor(self) -> int:
        return self._filter.divisor

    def apply(self, image: ImageBuffer) -> ImageBuffer:
        return self._filter.apply(image)

    def apply_to(self, source: ImageBuffer, destination: ImageBuffer, rect: RectLike = None) -> None:
        self._filter.apply_to(source, destination, rect)

    def apply_in_place(self, image: ImageBuffer, rect: RectLike = None) -> None:
        self._filter.apply_in_place(image, rect)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(sigma={self._sigma}, size={self._size})"


class GaussianBlur(_GaussianDerived):
    """Gaussian blur; sigma in [0.5, 5.0] (default 1.4), size odd in [3, 21] (default 5)."""

    def _create_filter(self) -> KernelFilter:
        return Correlation(generate(self._sigma, self._size))


class SharpenEx(_GaussianDerived):
    """Gaussian based sharpen; same sigma/size rules as GaussianBlur."""

    def _create_filter(self) -> KernelFilter:
        return Convolution(sharpen_kernel(generate(self._sigma, self._size)))
