# dsp/kernel.py
import math
import numbers
from dataclasses import dataclass, replace
from typing import Optional

import numpy as np

from dsp.errors import InvalidDivisor, InvalidKernel, InvalidKernelSize

MIN_KERNEL_SIZE = 3
MAX_KERNEL_SIZE = 25


def as_kernel(kernel) -> np.ndarray:
    """
    Validate a square odd-sized integer matrix and return it as a read-only
    int64 array. Side length must be in [3, 25].
    """
    try:
        arr = np.array(kernel)
    except ValueError as exc:
        # ragged rows
        raise InvalidKernelSize("Invalid kernel size") from exc

    if arr.ndim != 2:
        raise InvalidKernelSize("Invalid kernel size")
    s = arr.shape[0]
    if s != arr.shape[1] or s < MIN_KERNEL_SIZE or s > MAX_KERNEL_SIZE or s % 2 == 0:
        raise InvalidKernelSize(f"Invalid kernel size: {arr.shape[0]}x{arr.shape[1]}")

    if np.issubdtype(arr.dtype, np.floating):
        if not np.all(np.isfinite(arr)) or not np.all(arr == np.round(arr)):
            raise InvalidKernel("Kernel values must be integers")
    elif not np.issubdtype(arr.dtype, np.integer):
        raise InvalidKernel("Kernel values must be integers")

    out = arr.astype(np.int64)
    out.setflags(write=False)
    return out


def kernel_sum(kernel) -> int:
    return int(np.asarray(kernel, dtype=np.int64).sum())


def auto_divisor(kernel) -> int:
    # zero-sum kernels (edge detectors) pass raw differences through
    total = kernel_sum(kernel)
    return total if total != 0 else 1


def check_divisor(divisor) -> int:
    if not isinstance(divisor, numbers.Integral):
        # integral floats (JSON 2.0) are accepted
        if (not isinstance(divisor, numbers.Real) or not math.isfinite(divisor)
                or int(divisor) != divisor):
            raise InvalidDivisor(f"Divisor must be an integer, got {divisor!r}")
    if divisor == 0:
        raise InvalidDivisor("Divisor can not be equal to zero")
    return int(divisor)


@dataclass(frozen=True, eq=False)
class KernelSpec:
    """Validated kernel + divisor + edge policy. Build with KernelSpec.create()."""
    kernel: np.ndarray
    divisor: int
    dynamic_divisor_for_edges: bool = True

    @classmethod
    def create(cls, kernel, divisor: Optional[int] = None,
               dynamic_divisor_for_edges: bool = True) -> "KernelSpec":
        k = as_kernel(kernel)
        d = auto_divisor(k) if divisor is None else check_divisor(divisor)
        return cls(k, d, bool(dynamic_divisor_for_edges))

    @property
    def size(self) -> int:
        return self.kernel.shape[0]

    @property
    def radius(self) -> int:
        return self.size >> 1

    @property
    def cell_count(self) -> int:
        return self.size * self.size

    def with_kernel(self, kernel) -> "KernelSpec":
        # divisor is kept as is, not recomputed from the new kernel
        return replace(self, kernel=as_kernel(kernel))

    def with_divisor(self, divisor: int) -> "KernelSpec":
        return replace(self, divisor=check_divisor(divisor))

    def with_dynamic_edges(self, enabled: bool) -> "KernelSpec":
        return replace(self, dynamic_divisor_for_edges=bool(enabled))

    def __repr__(self) -> str:
        return (f"KernelSpec(size={self.size}, divisor={self.divisor}, "
                f"dynamic_divisor_for_edges={self.dynamic_divisor_for_edges})")
