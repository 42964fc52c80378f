"""Precomputed Mie phase function lookup table.

The table samples the phase function on a (size parameter, relative index,
cos θ) grid and is interpolated trilinearly. It is built once, on first use,
and is read-only afterwards, so one instance is shared by all callers.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, TypeAlias

import optilux.backend as be
from optilux.spectral import RGB_WAVELENGTHS_NM

from .mie import RAYLEIGH_LIMIT, MieParams, mie_asymmetry_g
from .phase import henyey_greenstein, rayleigh_phase

logger = logging.getLogger(__name__)

Array: TypeAlias = Any  # be.ndarray


class MieLUT:
    """Phase function and asymmetry tables.

    Grid: 32 log-spaced size parameters in [0.1, 30], 8 relative indices in
    [1.0, 1.6] and 128 cos θ samples in [-1, 1]. Tables are stored as float32.
    """

    SIZE_COUNT = 32
    SIZE_MIN = 0.1
    SIZE_MAX = 30.0
    IOR_COUNT = 8
    IOR_MIN = 1.0
    IOR_MAX = 1.6
    ANGLE_COUNT = 128

    def __init__(self):
        sizes = be.exp(be.linspace(be.log(self.SIZE_MIN), be.log(self.SIZE_MAX), self.SIZE_COUNT))
        iors = be.linspace(self.IOR_MIN, self.IOR_MAX, self.IOR_COUNT)
        cosines = be.linspace(-1.0, 1.0, self.ANGLE_COUNT)

        x = sizes[:, None, None]
        m = iors[None, :, None]
        mu = cosines[None, None, :]
        g = be.asarray(mie_asymmetry_g(x, m))
        phase = be.where(
            x < RAYLEIGH_LIMIT,
            be.asarray(rayleigh_phase(mu)),
            be.asarray(henyey_greenstein(mu, g)),
        )

        self.phase_table = be.readonly(be.asarray(phase, dtype=be.float32))
        self.g_table = be.readonly(be.asarray(g[:, :, 0], dtype=be.float32))
        logger.debug("Built Mie LUT (%d bytes)", self.memory_size())

    @classmethod
    def _size_index(cls, size_param):
        log_min = be.log(cls.SIZE_MIN)
        step = (be.log(cls.SIZE_MAX) - log_min) / (cls.SIZE_COUNT - 1)
        x = be.clip(be.as_float_array(size_param), cls.SIZE_MIN, cls.SIZE_MAX)
        return cls._split((be.log(x) - log_min) / step, cls.SIZE_COUNT)

    @classmethod
    def _ior_index(cls, relative_ior):
        step = (cls.IOR_MAX - cls.IOR_MIN) / (cls.IOR_COUNT - 1)
        m = be.clip(be.as_float_array(relative_ior), cls.IOR_MIN, cls.IOR_MAX)
        return cls._split((m - cls.IOR_MIN) / step, cls.IOR_COUNT)

    @classmethod
    def _angle_index(cls, cos_theta):
        step = 2.0 / (cls.ANGLE_COUNT - 1)
        mu = be.clip(be.as_float_array(cos_theta), -1.0, 1.0)
        return cls._split((mu + 1.0) / step, cls.ANGLE_COUNT)

    @staticmethod
    def _split(position, count):
        i0 = be.minimum(be.floor(position).astype(int), count - 2)
        return i0, position - i0

    def lookup(self, cos_theta, size_param, relative_ior):
        """Trilinear interpolation of the phase function; inputs broadcast."""
        i_s, t_s = self._size_index(size_param)
        i_m, t_m = self._ior_index(relative_ior)
        i_a, t_a = self._angle_index(cos_theta)
        i_s, t_s, i_m, t_m, i_a, t_a = be.broadcast_arrays(i_s, t_s, i_m, t_m, i_a, t_a)
        table = self.phase_table

        def corner(ds, dm):
            v0 = table[i_s + ds, i_m + dm, i_a]
            v1 = table[i_s + ds, i_m + dm, i_a + 1]
            return v0 + (v1 - v0) * t_a

        v0 = corner(0, 0) + (corner(0, 1) - corner(0, 0)) * t_m
        v1 = corner(1, 0) + (corner(1, 1) - corner(1, 0)) * t_m
        out = v0 + (v1 - v0) * t_s
        return float(out) if be.ndim(out) == 0 else out

    def lookup_g(self, size_param, relative_ior):
        """Bilinear interpolation of the asymmetry parameter."""
        i_s, t_s = self._size_index(size_param)
        i_m, t_m = self._ior_index(relative_ior)
        i_s, t_s, i_m, t_m = be.broadcast_arrays(i_s, t_s, i_m, t_m)
        g = self.g_table
        g0 = g[i_s, i_m] + (g[i_s, i_m + 1] - g[i_s, i_m]) * t_m
        g1 = g[i_s + 1, i_m] + (g[i_s + 1, i_m + 1] - g[i_s + 1, i_m]) * t_m
        out = g0 + (g1 - g0) * t_s
        return float(out) if be.ndim(out) == 0 else out

    @classmethod
    def memory_size(cls) -> int:
        """Table footprint in bytes (float32 entries)."""
        return (
            cls.SIZE_COUNT * cls.IOR_COUNT * cls.ANGLE_COUNT * 4
            + cls.SIZE_COUNT * cls.IOR_COUNT * 4
        )


_LUT: MieLUT | None = None
_LUT_LOCK = threading.Lock()


def get_mie_lut() -> MieLUT:
    """The shared table, built on first call."""
    global _LUT
    if _LUT is None:
        with _LUT_LOCK:
            if _LUT is None:
                _LUT = MieLUT()
    return _LUT


def get_mie_lut_memory() -> int:
    return get_mie_lut().memory_size()


def mie_fast(cos_theta, size_param, relative_ior):
    """Phase function from the shared table."""
    return get_mie_lut().lookup(cos_theta, size_param, relative_ior)


def mie_particle(cos_theta, params: MieParams, wavelength_nm: float = 550.0):
    return mie_fast(cos_theta, params.size_parameter(wavelength_nm), params.relative_ior())


def mie_particle_rgb(cos_theta: float, params: MieParams) -> Array:
    """Phase function at the 650 / 550 / 450 nm channel wavelengths."""
    return be.asarray([mie_particle(cos_theta, params, wl) for wl in RGB_WAVELENGTHS_NM])
