"""Thin film optics core functions.

This provides core functions for thin film optics calculations using the
transfer matrix method (TMM), operating on plain complex refractive
indices at a single wavelength. Wavelengths and thicknesses share one
length unit (nm throughout filmstack).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal

import numpy as np

PolSP = Literal["s", "p"]

# admittance of free space, S
SQRT_EPS_MU = 0.002654418729832701370374020517935


def _snell_cos(beta: float, n: complex) -> complex:
    """Transmitted angle cosine with forward-branch selection.

    ``beta`` is the Snell invariant n0·sin(θ0) of the incident medium.
    Calculation is following 'Thin-Film Optical Filters, Fifth Edition, Macleod,
    Hugh Angus CRC Press, Ch2.6
    """
    nr = n.real
    k = n.imag
    return np.sqrt(nr**2 - k**2 - beta**2 - 2j * nr * k) / n


def _admittance(n: complex, cos_t: complex, pol: PolSP) -> complex:
    """Admittance η = sqrt(ε/μ) * n * cos(θ) for s and p polarizations.
    Calculation is following 'Thin-Film Optical Filters, Fifth Edition, Macleod,
    Hugh Angus CRC Press, Ch2.6
    """
    eta_s = SQRT_EPS_MU * n * cos_t

    if pol == "s":
        return eta_s
    elif pol == "p":
        return SQRT_EPS_MU**2 * (n.real - 1j * n.imag) ** 2 / eta_s
    else:
        raise ValueError("Invalid polarization state")


def tmm_coherent(
    indices: Sequence[complex],
    thicknesses: Sequence[float],
    wavelength: float,
    beta: float,
    pol: PolSP,
) -> tuple[float, float]:
    """Power reflectance and transmittance of a coherent multilayer.

    Based on the Abelès characteristic matrix.

    Args:
        indices: Complex indices n + ik, ``[incident, layer_1, ..., exit]``.
        thicknesses: Physical thickness of each inner layer, same unit as
            ``wavelength``.
        wavelength: Vacuum wavelength.
        beta: Snell invariant n0·sin(θ0).
        pol: 's' or 'p'.

    Returns:
        (R, T) for light arriving from ``indices[0]``.

    Ref :
    - Chap 13. Polarized Light and Optical Systems, Russell
        A. Chipman, Wai-Sze Tiffany Lam, and Garam Young
    - F. Abelès, Researches sur la propagation des ondes électromagnétiques
        sinusoïdales dans les milieus stratifies.
        Applications aux couches minces, Ann. Phys. Paris,
        12ième Series 5 (1950): 596–640.
    - Chap 2. Thin-Film Optical Filters, Fifth Edition, Macleod, Hugh Angus CRC Press
    """
    n0 = complex(indices[0])
    ns = complex(indices[-1])
    eta0 = _admittance(n0, _snell_cos(beta, n0), pol)
    etas = _admittance(ns, _snell_cos(beta, ns), pol)

    # Id initial matrix
    A, B, C, D = 1 + 0j, 0j, 0j, 1 + 0j

    k0 = 2 * np.pi / wavelength
    for n_l, d_l in zip(indices[1:-1], thicknesses, strict=True):
        n_l = complex(n_l)
        cos_l = _snell_cos(beta, n_l)
        eta_l = _admittance(n_l, cos_l, pol)
        delta = k0 * n_l * d_l * cos_l
        c = np.cos(delta)
        s = np.sin(delta)
        mB = 1j * (s / eta_l)
        mC = 1j * (eta_l * s)
        A, B, C, D = A * c + B * mC, A * mB + B * c, C * c + D * mC, C * mB + D * c

    denom = eta0 * (A + etas * B) + C + etas * D
    if abs(denom) == 0:
        denom = 1e-30 + 0j

    r = (eta0 * A + eta0 * etas * B - C - etas * D) / denom
    t = np.conj((2 * eta0) / denom)

    R = (r * np.conj(r)).real
    T = (t * np.conj(t)).real * etas.real / eta0.real
    return float(R), float(T)


def tmm_with_backside(
    indices: Sequence[complex],
    thicknesses: Sequence[float],
    wavelength: float,
    beta: float,
    pol: PolSP,
) -> tuple[float, float]:
    """(R, T) of a coated substrate including its uncoated rear face.

    The coating is coherent; the substrate is thick and treated
    incoherently, summing the multiple reflections between the coating and
    the rear face in power. Absorption inside the substrate bulk is not
    modelled since the substrate thickness is not part of the structure.
    ``indices[-1]`` is the substrate; the exit medium is ``indices[0]``.
    """
    ambient = indices[0]
    substrate = indices[-1]
    R1, T1 = tmm_coherent(indices, thicknesses, wavelength, beta, pol)
    R1b, T1b = tmm_coherent(indices[::-1], thicknesses[::-1], wavelength, beta, pol)
    Rb, Tb = tmm_coherent([substrate, ambient], [], wavelength, beta, pol)

    loop = 1.0 - R1b * Rb
    R = R1 + T1 * T1b * Rb / loop
    T = T1 * Tb / loop
    return R, T
