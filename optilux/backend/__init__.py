"""Array backend.

All numerical code in optilux goes through this module, imported as
``import optilux.backend as be``. Attribute access is forwarded to the active
array library, so ``be.sqrt``, ``be.where`` or ``be.pi`` behave exactly like
their numpy counterparts.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy

logger = logging.getLogger(__name__)

_AVAILABLE_BACKENDS = {"numpy": numpy}
_PRECISIONS = {"float32": numpy.float32, "float64": numpy.float64}
_COMPLEX = {"float32": numpy.complex64, "float64": numpy.complex128}

_lib = numpy
_backend_name = "numpy"
_precision = "float64"


def set_backend(name: str = "numpy") -> None:
    """Select the array library used by optilux.

    Args:
        name: Backend name. Only ``"numpy"`` ships with optilux.

    Raises:
        ValueError: If the backend is unknown.
    """
    global _lib, _backend_name
    if name not in _AVAILABLE_BACKENDS:
        raise ValueError(
            f"Unknown backend '{name}'. Available: {list_available_backends()}"
        )
    _lib = _AVAILABLE_BACKENDS[name]
    _backend_name = name
    logger.debug("Array backend set to %s", name)


def get_backend() -> str:
    return _backend_name


def list_available_backends() -> list[str]:
    return list(_AVAILABLE_BACKENDS)


def set_precision(precision: str = "float64") -> None:
    """Set the floating point precision of arrays built by optilux.

    Float inputs are cast with :func:`as_float_array` and complex work arrays
    use :func:`complex_dtype`, so ``"float32"`` halves the memory of spectral
    and thin-film evaluations. Lookup tables keep their own storage type.

    Raises:
        ValueError: If ``precision`` is not ``"float32"`` or ``"float64"``.
    """
    global _precision
    if precision not in _PRECISIONS:
        raise ValueError("precision must be 'float32' or 'float64'")
    _precision = precision
    logger.debug("Float precision set to %s", precision)


def get_precision() -> str:
    return _precision


def float_dtype():
    return _PRECISIONS[_precision]


def complex_dtype():
    return _COMPLEX[_precision]


def to_numpy(data: Any) -> numpy.ndarray:
    """Convert backend data (or python scalars/sequences) to a numpy array."""
    return numpy.asarray(data)


def as_float_array(data: Any) -> Any:
    """Return ``data`` as a float array in the active precision."""
    return _lib.asarray(data, dtype=float_dtype())


def readonly(array: Any) -> Any:
    """Return a copy of ``array`` flagged as non-writeable."""
    out = _lib.array(array, copy=True)
    out.setflags(write=False)
    return out


def __getattr__(name: str) -> Any:
    return getattr(_lib, name)
