"""Thin film optics core functions.

Amplitude and power coefficients for single films (Airy summation) and
multilayer stacks (transfer matrix method, TMM). Indices use the n + ik
convention; all functions are vectorized over wavelength and angle grids.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal, TypeAlias

import optilux.backend as be

if TYPE_CHECKING:
    from .stack import TransferMatrixFilm

Array: TypeAlias = Any  # be.ndarray
PolSP = Literal["s", "p"]

COS_EPSILON = 1e-6
_TINY = 1e-30


def _complex_index(n, wavelength_nm) -> Array:
    """Broadcast a real or complex index to the wavelength array as complex."""
    wl = be.as_float_array(wavelength_nm)
    return be.full_like(wl, 0.0, dtype=be.complex_dtype()) + complex(n)


def _n_cos(n_sin0, n):
    """n·cos(θ) inside a medium of complex index ``n`` (Snell invariant n_sin0).

    The root with non-negative imaginary part is the forward, decaying wave.
    Calculation is following 'Thin-Film Optical Filters, Fifth Edition, Macleod,
    Hugh Angus CRC Press, Ch2.6
    """
    root = be.sqrt(n**2 - n_sin0**2 + 0j)
    return be.where(root.imag < 0, -root, root)


def _admittance(n, n_cos, pol: PolSP):
    """Tilted admittance in units of the free-space admittance.

    s: η = n·cos(θ); p: η = n / cos(θ) = n² / (n·cos(θ)).
    """
    if pol == "s":
        return n_cos
    elif pol == "p":
        safe = be.where(be.abs(n_cos) < _TINY, _TINY + 0j, n_cos)
        return n**2 / safe
    else:
        raise ValueError("Invalid polarization state")


def _tmm_coh(film: TransferMatrixFilm, wavelength_nm, theta0_rad, pol: PolSP):
    """
    Compute the reflection and transmission coefficients of a multilayer
    film. Based on the Abelès characteristic matrix, which is the product
    D·P·D⁻¹ of the dynamical and propagation matrices of each layer.
    Calculation is vectorized over wavelength and angle of incidence.

    Ref :
    - F. Abelès, Ann. Phys. Paris, 12ième Series 5 (1950): 596–640.
    - Chap 2. Thin-Film Optical Filters, Fifth Edition, Macleod, Hugh Angus CRC Press
    """
    n0 = _complex_index(film.n_incident, wavelength_nm)
    ns = _complex_index(film.n_substrate, wavelength_nm)
    n_sin0 = n0 * be.sin(theta0_rad)
    eta0 = _admittance(n0, _n_cos(n_sin0, n0), pol)
    etas = _admittance(ns, _n_cos(n_sin0, ns), pol)

    # identity
    m11 = be.ones_like(eta0, dtype=be.complex_dtype())
    m12 = be.zeros_like(eta0, dtype=be.complex_dtype())
    m21 = be.zeros_like(eta0, dtype=be.complex_dtype())
    m22 = be.ones_like(eta0, dtype=be.complex_dtype())

    for layer in film.layers:
        n_l = layer.n_complex(wavelength_nm)
        n_cos_l = _n_cos(n_sin0, n_l)
        eta_l = _admittance(n_l, n_cos_l, pol)
        delta = layer.phase_thickness(wavelength_nm, n_cos_l)
        c = be.cos(delta)
        s = be.sin(delta)
        # -i off-diagonals for the n + ik (exp(-iωt)) convention
        a12 = -1j * s / eta_l
        a21 = -1j * eta_l * s
        m11, m12, m21, m22 = (
            m11 * c + m12 * a21,
            m11 * a12 + m12 * c,
            m21 * c + m22 * a21,
            m21 * a12 + m22 * c,
        )

    B = m11 + m12 * etas
    C = m21 + m22 * etas
    denom = eta0 * B + C
    denom = be.where(be.abs(denom) == 0, _TINY + 0j, denom)

    r = (eta0 * B - C) / denom
    t = 2 * eta0 / denom

    # unclamped so that energy checks downstream see any numerical excess
    R = be.abs(r) ** 2
    T = be.abs(t) ** 2 * etas.real / eta0.real
    A = 1.0 - R - T
    return r, t, R, T, A


def _interface_r(eta_a, eta_b):
    return (eta_a - eta_b) / (eta_a + eta_b)


def airy_reflectance(
    n_incident,
    n_film,
    n_substrate,
    thickness_nm,
    wavelength_nm,
    cos_theta,
):
    """Unpolarized reflectance of one film between two half-spaces.

    The two interface amplitudes are combined through the closed form of
    the Airy multiple-reflection series

        r = (r1 + r2 e^{iδ}) / (1 + r1 r2 e^{iδ}),  δ = 4π n_f d cos(θ_f) / λ

    for s and p separately; the power reflectances are averaged. For
    ``thickness_nm == 0`` this reduces exactly to the single-interface
    Fresnel reflectance between the incident medium and the substrate.

    Args:
        n_incident: Index of the incident medium.
        n_film: Film index.
        n_substrate: Substrate index (may be complex).
        thickness_nm: Film thickness in nm (>= 0).
        wavelength_nm: Wavelength(s) in nm.
        cos_theta: Cosine of the angle of incidence, clamped to [1e-6, 1].

    Returns:
        Reflectance in [0, 1], broadcast over wavelength and cos_theta.
    """
    cos_i = be.clip(be.as_float_array(cos_theta), COS_EPSILON, 1.0)
    wl = be.as_float_array(wavelength_nm)
    n_i = complex(n_incident)
    n_f = complex(n_film)
    n_s = complex(n_substrate)

    n_sin0 = n_i * be.sqrt(1.0 - cos_i**2)
    nc_i = n_i * cos_i + 0j
    nc_f = _n_cos(n_sin0, n_f)
    nc_s = _n_cos(n_sin0, n_s)

    delta = 4 * be.pi * nc_f * thickness_nm / wl
    phase = be.exp(1j * delta)

    R = 0.0
    for pol in ("s", "p"):
        eta_i = _admittance(n_i, nc_i, pol)
        eta_f = _admittance(n_f, nc_f, pol)
        eta_s = _admittance(n_s, nc_s, pol)
        r1 = _interface_r(eta_i, eta_f)
        r2 = _interface_r(eta_f, eta_s)
        r = (r1 + r2 * phase) / (1 + r1 * r2 * phase)
        R = R + 0.5 * be.abs(r) ** 2
    return be.clip(R, 0.0, 1.0)
