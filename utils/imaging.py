import io
import numpy as np
from PIL import Image

from dsp.errors import UnsupportedImageFormat
from dsp.image import ImageBuffer, PixelFormat

_MODE_TO_FORMAT = {
    "L": PixelFormat.GRAY8,
    "I;16": PixelFormat.GRAY16,
    "RGB": PixelFormat.RGB24,
    "RGBA": PixelFormat.ARGB32,
}

def allowed(filename: str, allowed_exts: set) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in allowed_exts

def pil_to_bytes(pil_img: Image.Image, fmt="PNG") -> io.BytesIO:
    buf = io.BytesIO()
    pil_img.save(buf, format=fmt)
    buf.seek(0)
    return buf

def from_pil(pil_img: Image.Image) -> ImageBuffer:
    """L, I;16, RGB and RGBA map directly; any other mode is converted to RGB."""
    if pil_img.mode not in _MODE_TO_FORMAT:
        pil_img = pil_img.convert("RGB")
    fmt = _MODE_TO_FORMAT[pil_img.mode]
    return ImageBuffer.from_array(np.asarray(pil_img), fmt)

def to_pil(image: ImageBuffer) -> Image.Image:
    fmt = image.pixel_format
    arr = image.to_array()
    if fmt is PixelFormat.GRAY16:
        return Image.frombytes("I;16", (image.width, image.height), arr.astype("<u2").tobytes())
    if fmt is PixelFormat.RGB32:
        # drop the unused 4th byte
        arr = np.ascontiguousarray(arr[..., :3])
    elif fmt not in (PixelFormat.GRAY8, PixelFormat.RGB24, PixelFormat.ARGB32):
        raise UnsupportedImageFormat(f"No PIL mode for {fmt.label} images")
    return Image.fromarray(arr)
