"""Exceptions raised by optilux.

Construction of optical components validates its parameters and raises one of
these typed errors. Evaluation never raises for physically awkward inputs
(grazing angles, out-of-range wavelengths); those are clamped instead.
"""

from __future__ import annotations


class OptiluxError(Exception):
    """Base class for all optilux errors."""


class InvalidParameterError(OptiluxError, ValueError):
    """A component was constructed with a malformed parameter."""

    def __init__(self, name: str, value, reason: str):
        self.name = name
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {name}={value!r}: {reason}")


class SpectralShapeError(InvalidParameterError):
    """A spectral array does not match the engine's wavelength grid."""

    def __init__(self, length: int, expected: int):
        super().__init__(
            "intensities", f"<{length} samples>", f"expected exactly {expected} samples"
        )
        self.length = length
        self.expected = expected


class MalformedInputError(OptiluxError, ValueError):
    """Serialized input (dict or JSON) could not be decoded."""


def require_finite(name: str, value: float) -> float:
    """Return ``value`` as float, raising if it is NaN or infinite."""
    try:
        value = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidParameterError(name, value, "must be a real number") from exc
    if value != value or value in (float("inf"), float("-inf")):
        raise InvalidParameterError(name, value, "must be finite")
    return value


def require_positive(name: str, value: float) -> float:
    value = require_finite(name, value)
    if value <= 0.0:
        raise InvalidParameterError(name, value, "must be > 0")
    return value


def require_non_negative(name: str, value: float) -> float:
    value = require_finite(name, value)
    if value < 0.0:
        raise InvalidParameterError(name, value, "must be >= 0")
    return value
