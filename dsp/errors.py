# dsp/errors.py


class ImagingError(ValueError):
    """Base class for filter configuration and image precondition errors."""


class InvalidKernel(ImagingError):
    pass


class InvalidKernelSize(InvalidKernel):
    pass


class InvalidDivisor(ImagingError):
    pass


class UnsupportedImageFormat(ImagingError):
    pass


class InvalidImageProperties(ImagingError):
    pass


class EmptySequenceError(ImagingError):
    pass
