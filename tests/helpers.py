import numpy as np

from dsp.image import ImageBuffer, PixelFormat


def gray8(rows):
    return ImageBuffer.from_array(np.array(rows, dtype=np.uint8), PixelFormat.GRAY8)


def uniform(width, height, value, pixel_format=PixelFormat.GRAY8):
    shape = (height, width) if pixel_format.channels == 1 else (height, width, pixel_format.channels)
    return ImageBuffer.from_array(np.full(shape, value, dtype=pixel_format.dtype), pixel_format)


IDENTITY_3 = [[0, 0, 0], [0, 1, 0], [0, 0, 0]]
