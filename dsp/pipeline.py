# dsp/pipeline.py
from typing import Any, Dict

from dsp.errors import EmptySequenceError
from dsp.filters import DEFAULT_SIGMA, DEFAULT_SIZE, GaussianBlur, SharpenEx, blur, mean
from dsp.image import ImageBuffer


class FiltersSequence:
    """Filters applied one after another, each to the previous result."""

    def __init__(self, *filters):
        self._filters = list(filters)

    def add(self, image_filter) -> None:
        self._filters.append(image_filter)

    def __len__(self) -> int:
        return len(self._filters)

    def __getitem__(self, index):
        return self._filters[index]

    def __iter__(self):
        return iter(self._filters)

    def apply(self, image: ImageBuffer) -> ImageBuffer:
        if not self._filters:
            raise EmptySequenceError("No filters in the sequence")
        out = image
        for f in self._filters:
            out = f.apply(out)
        return out


class FilterIterator:
    """Applies the same filter `iterations` times (1..255)."""

    def __init__(self, base_filter, iterations: int = 1):
        self.base_filter = base_filter
        self.iterations = iterations

    @property
    def iterations(self) -> int:
        return self._iterations

    @iterations.setter
    def iterations(self, value: int):
        self._iterations = max(1, min(255, int(value)))

    def apply(self, image: ImageBuffer) -> ImageBuffer:
        out = self.base_filter.apply(image)
        for _ in range(1, self._iterations):
            out = self.base_filter.apply(out)
        return out


def build_pipeline(params: Dict[str, Any]) -> FiltersSequence:
    """
    Optional params:
      - mean_iterations: 0..10
      - blur:            bool
      - gaussian_sigma / gaussian_size
      - sharpen_sigma  / sharpen_size

    Order: mean -> blur -> gaussian -> sharpen
    """
    seq = FiltersSequence()

    mi = params.get("mean_iterations", None)
    if mi is not None:
        n = max(0, min(10, int(mi)))
        if n:
            seq.add(FilterIterator(mean(), n))

    if params.get("blur"):
        seq.add(blur())

    gs = params.get("gaussian_sigma", None)
    gz = params.get("gaussian_size", None)
    if gs is not None or gz is not None:
        gs = DEFAULT_SIGMA if gs is None else float(gs)
        gz = DEFAULT_SIZE if gz is None else int(gz)
        seq.add(GaussianBlur(gs, gz))

    ss = params.get("sharpen_sigma", None)
    sz = params.get("sharpen_size", None)
    if ss is not None or sz is not None:
        ss = DEFAULT_SIGMA if ss is None else float(ss)
        sz = DEFAULT_SIZE if sz is None else int(sz)
        seq.add(SharpenEx(ss, sz))

    return seq


def apply_pipeline(image: ImageBuffer, params: Dict[str, Any]) -> ImageBuffer:
    """Runs build_pipeline(params) on a new image; no params gives a copy."""
    seq = build_pipeline(params)
    if not len(seq):
        return image.copy()
    return seq.apply(image)
