"""
Packed RGB color helpers and the RGB -> LAB conversion used for extraction.

A packed color is a 24-bit integer with red in the highest byte and blue in
the lowest, e.g. 0xFF8040.
"""

import math
import re
from typing import NamedTuple


RGB_MAX = 255
HEX_PATTERN = re.compile(r'#?([0-9A-Fa-f]{6})')
RED_SHIFT = 16
GREEN_SHIFT = 8

# sRGB transfer function
SRGB_THRESHOLD = 0.03928
SRGB_FACTOR = 12.92

# RGB to XYZ matrix (sRGB primaries, D65)
XYZ_MATRIX = (
    (0.4124564, 0.3575761, 0.1804375),
    (0.2126729, 0.7151522, 0.0721750),
    (0.0193339, 0.1191920, 0.9503041),
)

# D65 reference white
WHITE_POINT = (0.95047, 1.0, 1.08883)

LAB_EPSILON = 216 / 24389
LAB_FACTOR = 841 / 108
LAB_OFFSET = 4 / 29

# Pairs further apart than this in lightness are never merged
MAX_LIGHTNESS_DELTA = 50
FAR_DISTANCE = 100.0


class RgbColor(NamedTuple):
    r: int
    g: int
    b: int


class LabColor(NamedTuple):
    L: float
    a: float
    b: float


# =============================================================================
# Format Conversion
# =============================================================================

def int_to_hex(color: int) -> str:
    """Convert a packed color to '#RRGGBB'."""
    return f"#{color:06X}"


def hex_to_int(hex_str: str) -> int:
    """Parse '#RRGGBB' (the '#' is optional) into a packed color."""
    match = HEX_PATTERN.fullmatch(hex_str.strip())
    if match is None:
        raise ValueError(f"Invalid hex color: {hex_str!r}")
    return int(match.group(1), 16)


def int_to_rgb(color: int) -> RgbColor:
    return RgbColor(
        (color >> RED_SHIFT) & RGB_MAX,
        (color >> GREEN_SHIFT) & RGB_MAX,
        color & RGB_MAX,
    )


def rgb_to_int(rgb: RgbColor) -> int:
    r, g, b = rgb
    return (r << RED_SHIFT) | (g << GREEN_SHIFT) | b


# =============================================================================
# Color Conversion
# =============================================================================

def srgb_to_linear(value: float) -> float:
    """Undo sRGB gamma for a channel in [0, 1]."""
    if value <= SRGB_THRESHOLD:
        return value / SRGB_FACTOR
    return ((value + 0.055) / 1.055) ** 2.4


def _lab_f(t: float) -> float:
    if t > LAB_EPSILON:
        return t ** (1 / 3)
    return LAB_FACTOR * t + LAB_OFFSET


def to_lab(color: int) -> LabColor:
    """
    Convert a packed RGB color to CIE LAB (D65).

    Args:
        color: Packed color in [0, 0xFFFFFF]

    Returns:
        LabColor with L in [0, 100]
    """
    r, g, b = int_to_rgb(color)
    linear = (
        srgb_to_linear(r / RGB_MAX),
        srgb_to_linear(g / RGB_MAX),
        srgb_to_linear(b / RGB_MAX),
    )

    x, y, z = (
        row[0] * linear[0] + row[1] * linear[1] + row[2] * linear[2]
        for row in XYZ_MATRIX
    )

    xn, yn, zn = WHITE_POINT
    fx = _lab_f(x / xn)
    fy = _lab_f(y / yn)
    fz = _lab_f(z / zn)

    return LabColor(
        L=116 * fy - 16,
        a=500 * (fx - fy),
        b=200 * (fy - fz),
    )


def compute_chroma(lab: LabColor) -> float:
    """Compute chroma (saturation) from LAB coordinates."""
    return math.sqrt(lab.a ** 2 + lab.b ** 2)


def delta_e(lab1: LabColor, lab2: LabColor) -> float:
    """
    Euclidean LAB distance, short-circuited for very different lightness.

    Pairs whose L differs by more than MAX_LIGHTNESS_DELTA get FAR_DISTANCE
    without computing the full distance.
    """
    delta_l = lab2.L - lab1.L
    if abs(delta_l) > MAX_LIGHTNESS_DELTA:
        return FAR_DISTANCE

    delta_a = lab2.a - lab1.a
    delta_b = lab2.b - lab1.b
    return math.sqrt(delta_l * delta_l + delta_a * delta_a + delta_b * delta_b)
