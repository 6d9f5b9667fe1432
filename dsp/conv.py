# dsp/conv.py
import logging
from typing import Optional

import numpy as np

from dsp.image import ImageBuffer, Rectangle
from dsp.kernel import KernelSpec

log = logging.getLogger(__name__)


def _window_sums(block: np.ndarray, kernel: np.ndarray):
    """
    block: HxWxC int64 samples of the processing region.

    For every pixel, sums kernel-weighted neighbours, skipping kernel cells
    whose sample falls outside the block. Returns
    (weighted sums HxWxC, applied weight HxW, applied cell count HxW).
    """
    h, w = block.shape[:2]
    size = kernel.shape[0]
    r = size >> 1

    sums = np.zeros(block.shape, dtype=np.int64)
    weights = np.zeros((h, w), dtype=np.int64)
    cells = np.zeros((h, w), dtype=np.int64)

    for i in range(size):
        dy = i - r
        # output rows whose sample row y + dy stays inside the block
        y0, y1 = max(0, -dy), min(h, h - dy)
        if y0 >= y1:
            continue
        for j in range(size):
            dx = j - r
            x0, x1 = max(0, -dx), min(w, w - dx)
            if x0 >= x1:
                continue
            k = int(kernel[i, j])
            cells[y0:y1, x0:x1] += 1
            weights[y0:y1, x0:x1] += k
            if k:
                sums[y0:y1, x0:x1] += k * block[y0 + dy:y1 + dy, x0 + dx:x1 + dx]

    return sums, weights, cells


def _trunc_divide(num: np.ndarray, div: np.ndarray) -> np.ndarray:
    """Integer division rounding toward zero; where div == 0 the sum is kept."""
    safe = np.where(div == 0, 1, div)
    q = np.abs(num) // np.abs(safe)
    return np.where((num < 0) != (safe < 0), -q, q)


def _process(source: ImageBuffer, destination: ImageBuffer, region: Optional[Rectangle],
             spec: KernelSpec, dynamic_edges: bool, name: str) -> None:
    fmt = source.pixel_format
    region = source.bounds if region is None else region.intersect(source.bounds)
    if region.is_empty:
        return

    log.debug("%s %s region=(%d,%d %dx%d) kernel=%dx%d divisor=%d dynamic_edges=%s",
              name, fmt.label, region.left, region.top, region.width, region.height,
              spec.size, spec.size, spec.divisor, dynamic_edges)

    rows = slice(region.top, region.bottom)
    cols = slice(region.left, region.right)
    src = source.view()[rows, cols]
    dst = destination.view()[rows, cols]
    nc = fmt.color_channels

    sums, weights, cells = _window_sums(src[..., :nc].astype(np.int64), spec.kernel)

    if dynamic_edges:
        # truncated windows are normalized by the weights actually applied
        div = np.where(cells == spec.cell_count, spec.divisor, weights)
    else:
        div = np.full(cells.shape, spec.divisor, dtype=np.int64)

    result = _trunc_divide(sums, div[..., None])
    dst[..., :nc] = np.clip(result, 0, fmt.max_value).astype(fmt.dtype)

    if fmt.has_passthrough_channel:
        dst[..., nc:] = src[..., nc:]


def convolve(source: ImageBuffer, destination: ImageBuffer, region: Optional[Rectangle],
             spec: KernelSpec) -> None:
    """
    Kernel-weighted sum over `region` of `source`, written to the same pixels
    of `destination`.

    The kernel window is clipped to the region: cells sampling outside it are
    skipped. For such border pixels the divisor is the sum of applied weights
    when spec.dynamic_divisor_for_edges is set, otherwise spec.divisor.
    A zero divisor leaves the raw sum. Results are truncated toward zero and
    clamped to the channel range. Source and destination must not share memory.
    """
    _process(source, destination, region, spec, spec.dynamic_divisor_for_edges, "convolve")


def correlate(source: ImageBuffer, destination: ImageBuffer, region: Optional[Rectangle],
              spec: KernelSpec) -> None:
    """Same as convolve(), always normalizing by spec.divisor."""
    _process(source, destination, region, spec, False, "correlate")
