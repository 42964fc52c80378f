"""Measured metal presets.

Complex indices at 650 / 550 / 450 nm (red, green, blue). These values are a
stable public contract: downstream colour output depends on them.
"""

from __future__ import annotations

from .complex_ior import SpectralComplexIOR

GOLD = SpectralComplexIOR.from_rgb((0.18, 0.42, 1.47), (3.00, 2.35, 1.95))
SILVER = SpectralComplexIOR.from_rgb((0.15, 0.13, 0.14), (3.64, 3.04, 2.54))
COPPER = SpectralComplexIOR.from_rgb((0.27, 0.68, 1.13), (3.41, 2.63, 2.57))
ALUMINUM = SpectralComplexIOR.from_rgb((1.35, 0.96, 0.62), (7.47, 6.39, 5.31))
IRON = SpectralComplexIOR.from_rgb((2.91, 2.95, 2.80), (3.08, 3.47, 3.00))
CHROMIUM = SpectralComplexIOR.from_rgb((3.18, 3.14, 2.98), (3.19, 3.34, 3.36))
TITANIUM = SpectralComplexIOR.from_rgb((2.73, 2.16, 1.94), (3.82, 2.94, 2.58))
NICKEL = SpectralComplexIOR.from_rgb((2.01, 1.83, 1.65), (4.05, 3.56, 3.07))
PLATINUM = SpectralComplexIOR.from_rgb((2.38, 2.07, 1.72), (4.36, 3.68, 3.06))
BRASS = SpectralComplexIOR.from_rgb((0.44, 0.58, 0.95), (3.22, 2.85, 2.40))
BRONZE = SpectralComplexIOR.from_rgb((0.35, 0.55, 0.85), (3.30, 2.70, 2.35))
TUNGSTEN = SpectralComplexIOR.from_rgb((3.54, 3.32, 2.76), (2.86, 2.84, 2.51))

_METALS = {
    "gold": GOLD,
    "silver": SILVER,
    "copper": COPPER,
    "aluminum": ALUMINUM,
    "iron": IRON,
    "chromium": CHROMIUM,
    "titanium": TITANIUM,
    "nickel": NICKEL,
    "platinum": PLATINUM,
    "brass": BRASS,
    "bronze": BRONZE,
    "tungsten": TUNGSTEN,
}

_ALIASES = {
    "au": "gold",
    "ag": "silver",
    "cu": "copper",
    "al": "aluminum",
    "aluminium": "aluminum",
    "fe": "iron",
    "cr": "chromium",
    "chrome": "chromium",
    "ti": "titanium",
    "ni": "nickel",
    "pt": "platinum",
    "w": "tungsten",
}


def metal_by_name(name: str) -> SpectralComplexIOR:
    """Look up a metal preset by name or chemical symbol (case-insensitive).

    Raises:
        KeyError: If the name is unknown.
    """
    key = name.strip().lower()
    key = _ALIASES.get(key, key)
    try:
        return _METALS[key]
    except KeyError:
        raise KeyError(
            f"Unknown metal {name!r}. Available: {', '.join(sorted(_METALS))}"
        ) from None


def all_metals() -> dict[str, SpectralComplexIOR]:
    return dict(_METALS)
