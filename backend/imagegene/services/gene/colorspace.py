"""
Colorspace conversion utilities for the gene analysis engine.

sRGB <-> linear <-> CIELAB (D65) conversions plus the small colour helpers
shared by background estimation, sampling and palette clustering. Every
function works on plain floats as well as numpy arrays.
"""

from typing import Tuple, Union

import numpy as np

ArrayLike = Union[float, np.ndarray]

# CIE standard constants
LAB_EPSILON = 216 / 24389
LAB_KAPPA = 24389 / 27

# D65 reference white
WHITE_X = 0.95047
WHITE_Y = 1.0
WHITE_Z = 1.08883

SRGB_TO_XYZ = np.array([
    [0.4124564, 0.3575761, 0.1804375],
    [0.2126729, 0.7151522, 0.0721750],
    [0.0193339, 0.1191920, 0.9503041],
])


def _as_output(value: np.ndarray) -> ArrayLike:
    """Return python floats for scalar input, arrays otherwise."""
    if np.ndim(value) == 0:
        return float(value)
    return value


def clamp(value: ArrayLike, low: float, high: float) -> ArrayLike:
    """Clamp a value (or array) into [low, high]."""
    return _as_output(np.clip(value, low, high))


def srgb_to_linear(channel: ArrayLike) -> ArrayLike:
    """Inverse sRGB gamma for channel values in [0, 1]."""
    c = np.asarray(channel, dtype=np.float64)
    linear = np.where(c <= 0.04045, c / 12.92, ((c + 0.055) / 1.055) ** 2.4)
    return _as_output(linear)


def lab_f(t: ArrayLike) -> ArrayLike:
    """CIELAB companding function."""
    t = np.asarray(t, dtype=np.float64)
    return _as_output(np.where(t > LAB_EPSILON, np.cbrt(t), (LAB_KAPPA * t + 16) / 116))


def rgb_to_lab(r: ArrayLike, g: ArrayLike, b: ArrayLike) -> Tuple[ArrayLike, ArrayLike, ArrayLike]:
    """
    Convert sRGB channels in [0, 1] to CIELAB.

    Args:
        r, g, b: Channel values (floats or equally shaped arrays)

    Returns:
        Tuple (l, a, b_lab) with l clamped to [0, 100]
    """
    rl = np.asarray(srgb_to_linear(r))
    gl = np.asarray(srgb_to_linear(g))
    bl = np.asarray(srgb_to_linear(b))

    m = SRGB_TO_XYZ
    x = m[0, 0] * rl + m[0, 1] * gl + m[0, 2] * bl
    y = m[1, 0] * rl + m[1, 1] * gl + m[1, 2] * bl
    z = m[2, 0] * rl + m[2, 1] * gl + m[2, 2] * bl

    fx = np.asarray(lab_f(x / WHITE_X))
    fy = np.asarray(lab_f(y / WHITE_Y))
    fz = np.asarray(lab_f(z / WHITE_Z))

    l = np.clip(116 * fy - 16, 0, 100)
    a = 500 * (fx - fy)
    b_lab = 200 * (fy - fz)
    return _as_output(l), _as_output(a), _as_output(b_lab)


def chroma(a: ArrayLike, b_lab: ArrayLike) -> ArrayLike:
    """CIELAB chroma C* = sqrt(a^2 + b^2)."""
    a = np.asarray(a, dtype=np.float64)
    b_lab = np.asarray(b_lab, dtype=np.float64)
    return _as_output(np.sqrt(a * a + b_lab * b_lab))


def hsv_saturation(r: ArrayLike, g: ArrayLike, b: ArrayLike) -> ArrayLike:
    """HSV-style saturation in [0, 100]; 0 when the brightest channel is 0."""
    rgb = np.stack(np.broadcast_arrays(
        np.asarray(r, dtype=np.float64),
        np.asarray(g, dtype=np.float64),
        np.asarray(b, dtype=np.float64),
    ), axis=-1)
    cmax = rgb.max(axis=-1)
    cmin = rgb.min(axis=-1)
    safe_max = np.where(cmax > 0, cmax, 1.0)
    sat = np.where(cmax > 0, (cmax - cmin) / safe_max * 100, 0.0)
    return _as_output(sat)


def squared_lab_distance(l1: ArrayLike, a1: ArrayLike, b1: ArrayLike,
                         l2: ArrayLike, a2: ArrayLike, b2: ArrayLike) -> ArrayLike:
    """Squared euclidean distance in CIELAB."""
    dl = np.asarray(l1, dtype=np.float64) - l2
    da = np.asarray(a1, dtype=np.float64) - a2
    db = np.asarray(b1, dtype=np.float64) - b2
    return _as_output(dl * dl + da * da + db * db)


def quantize_color_key(r8, g8, b8):
    """Pack the top 5 bits of each 8-bit channel into a 15-bit key."""
    r8 = np.asarray(r8).astype(np.int64)
    g8 = np.asarray(g8).astype(np.int64)
    b8 = np.asarray(b8).astype(np.int64)
    key = ((r8 >> 3) << 10) | ((g8 >> 3) << 5) | (b8 >> 3)
    if np.ndim(key) == 0:
        return int(key)
    return key


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values."""
    return int(np.floor(value + 0.5))


def rgb_to_hex(r: float, g: float, b: float) -> str:
    """Convert [0, 1] float channels to a lower-case #rrggbb string."""
    channels = [round_half_up(clamp(c * 255, 0, 255)) for c in (r, g, b)]
    return "#{:02x}{:02x}{:02x}".format(*channels)
