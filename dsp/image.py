# dsp/image.py
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from dsp.errors import InvalidImageProperties


class PixelFormat(Enum):
    """
    Supported pixel layouts.

    value: (label, channels, bytes per channel, filtered color channels)
    Channels inside a pixel are ordered R, G, B[, A] (indices 0, 1, 2[, 3]).
    16-bit samples are little-endian words.
    """
    GRAY8 = ("gray-8", 1, 1, 1)
    GRAY16 = ("gray-16", 1, 2, 1)
    RGB24 = ("rgb-24", 3, 1, 3)
    RGB32 = ("rgb-32", 4, 1, 3)
    ARGB32 = ("argb-32", 4, 1, 3)
    RGB48 = ("rgb-48", 3, 2, 3)
    RGB64 = ("rgb-64", 4, 2, 3)

    def __init__(self, label: str, channels: int, bytes_per_channel: int, color_channels: int):
        self.label = label
        self.channels = channels
        self.bytes_per_channel = bytes_per_channel
        self.color_channels = color_channels

    @property
    def bytes_per_pixel(self) -> int:
        return self.channels * self.bytes_per_channel

    @property
    def max_value(self) -> int:
        return (1 << (8 * self.bytes_per_channel)) - 1

    @property
    def dtype(self) -> np.dtype:
        return np.dtype("u1") if self.bytes_per_channel == 1 else np.dtype("<u2")

    @property
    def has_passthrough_channel(self) -> bool:
        # 4th channel of 32/64-bit formats (alpha or padding) is never filtered
        return self.channels > self.color_channels

    @classmethod
    def from_label(cls, label: str) -> "PixelFormat":
        for fmt in cls:
            if fmt.label == label:
                return fmt
        raise ValueError(f"Unknown pixel format: {label}")


@dataclass(frozen=True)
class Rectangle:
    left: int
    top: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def intersect(self, other: "Rectangle") -> "Rectangle":
        left = max(self.left, other.left)
        top = max(self.top, other.top)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        if right <= left or bottom <= top:
            return Rectangle(0, 0, 0, 0)
        return Rectangle(left, top, right - left, bottom - top)


def _default_stride(width: int, pixel_format: PixelFormat) -> int:
    # rows padded to 4 bytes, as bitmaps are
    row = width * pixel_format.bytes_per_pixel
    return (row + 3) & ~3


@dataclass(eq=False)
class ImageBuffer:
    """
    Raw pixel storage: `height` rows of `stride` bytes each, row y starting at
    byte y * stride. Bytes past width * bytes_per_pixel in a row are padding.
    """
    width: int
    height: int
    stride: int
    pixel_format: PixelFormat
    data: bytearray

    def __post_init__(self):
        fmt = self.pixel_format
        if not isinstance(fmt, PixelFormat):
            raise InvalidImageProperties(f"Unknown pixel format: {fmt!r}")
        if not isinstance(self.data, bytearray):
            raise InvalidImageProperties(
                f"Pixel data must be a writable bytearray, got {type(self.data).__name__}")
        if self.width < 0 or self.height < 0:
            raise InvalidImageProperties("Image dimensions can not be negative")
        if self.stride < self.width * fmt.bytes_per_pixel:
            raise InvalidImageProperties(
                f"Stride {self.stride} is smaller than row size {self.width * fmt.bytes_per_pixel}")
        if self.stride % fmt.bytes_per_channel != 0:
            raise InvalidImageProperties("Stride must be a multiple of the channel width")
        if len(self.data) < self.stride * self.height:
            raise InvalidImageProperties(
                f"Pixel data holds {len(self.data)} bytes, {self.stride * self.height} required")

    @classmethod
    def allocate(cls, width: int, height: int, pixel_format: PixelFormat,
                 stride: Optional[int] = None) -> "ImageBuffer":
        if stride is None:
            stride = _default_stride(width, pixel_format)
        return cls(width, height, stride, pixel_format, bytearray(stride * max(height, 0)))

    @classmethod
    def from_array(cls, array, pixel_format: PixelFormat,
                   stride: Optional[int] = None) -> "ImageBuffer":
        """
        array: HxW (single channel formats) or HxWxC integer samples
        """
        arr = np.asarray(array)
        if arr.ndim == 2:
            arr = arr[..., None]
        if arr.ndim != 3 or arr.shape[2] != pixel_format.channels:
            raise InvalidImageProperties(
                f"Array of shape {np.asarray(array).shape} does not fit {pixel_format.label}")
        if arr.size and not np.issubdtype(arr.dtype, np.integer):
            raise InvalidImageProperties("Pixel samples must be integers")
        if arr.size and (arr.min() < 0 or arr.max() > pixel_format.max_value):
            raise InvalidImageProperties(
                f"Pixel samples out of range [0, {pixel_format.max_value}]")
        height, width = arr.shape[:2]
        image = cls.allocate(width, height, pixel_format, stride)
        image.view()[...] = arr
        return image

    @property
    def bounds(self) -> Rectangle:
        return Rectangle(0, 0, self.width, self.height)

    def view(self) -> np.ndarray:
        """Writable HxWxC view over `data`; padding bytes are not part of it."""
        fmt = self.pixel_format
        if self.width == 0 or self.height == 0:
            return np.zeros((self.height, self.width, fmt.channels), dtype=fmt.dtype)
        return np.ndarray(shape=(self.height, self.width, fmt.channels),
                          dtype=fmt.dtype,
                          buffer=self.data,
                          strides=(self.stride, fmt.bytes_per_pixel, fmt.bytes_per_channel))

    def to_array(self) -> np.ndarray:
        out = self.view().copy()
        if self.pixel_format.channels == 1:
            return out[..., 0]
        return out

    def copy(self) -> "ImageBuffer":
        return ImageBuffer(self.width, self.height, self.stride, self.pixel_format, bytearray(self.data))

    def same_layout(self, other: "ImageBuffer") -> bool:
        return (self.pixel_format is other.pixel_format
                and self.width == other.width
                and self.height == other.height)
