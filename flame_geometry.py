# flame_geometry.py

"""
Flame Geometry Model

Pure, stateless functions describing the flame silhouette and the visual
curves used by the emitter. Nothing in this module holds state or touches
particles; the emitter calls these for spawn positions, the cone clamp and
the per-tick appearance.

Data Contract:
- All distances are in pixels, heights are measured upward from the base.
- flame_half_width() is the single source of truth for the cone shape. The
  static silhouette builder and the dynamic clamp both go through it.
"""

import math
import numpy as np
import numba

# Normalized height at which the cone closes to a point.
TIP_CLOSE_FRACTION = 0.998

# --- JIT-Compiled Kernels ---
# Scalar kernels compiled in nopython mode. The public wrappers below coerce
# their arguments to float so every call hits the same specialization.

@numba.jit(nopython=True)
def _alpha_over_lifecycle_jit(t):
    if t < 0.0:
        t = 0.0
    elif t > 1.0:
        t = 1.0

    if t <= 0.2:
        return 0.5 + 0.5 * (t / 0.2)
    if t <= 0.55:
        return 1.0
    if t <= 0.8:
        return 1.0 - 0.5 * ((t - 0.55) / 0.25)
    return max(0.0, 0.5 * (1.0 - t) / 0.2)


@numba.jit(nopython=True)
def _flame_half_width_jit(base_width, height_above_base, flame_height, min_half_width):
    t = min(1.0, height_above_base / max(1.0, flame_height))
    if t >= TIP_CLOSE_FRACTION:
        return 0.0
    half_width = (base_width / 2.0) * math.sin((1.0 - t) * math.pi * 0.5)
    return max(min_half_width, half_width)


def alpha_over_lifecycle(t: float) -> float:
    """
    Opacity for a particle at normalized age t (age / age_limit).

    Fades in from 0.5 to 1.0 over [0, 0.2], holds at 1.0 until 0.55, drops
    to 0.5 by 0.8 and to 0.0 at 1.0. t is clamped to [0, 1].
    """
    return _alpha_over_lifecycle_jit(float(t))


def flame_half_width(base_width: float, height_above_base: float,
                     flame_height: float, min_half_width: float) -> float:
    """
    Half-width of the flame cone at a given height above its base.

    Quarter-sine taper: rounded at the base, sharp at the tip. Never narrower
    than min_half_width except at the very tip, where it closes to 0.
    flame_height is floored at 1 so a degenerate flame cannot divide by zero.
    """
    return _flame_half_width_jit(
        float(base_width), float(height_above_base), float(flame_height), float(min_half_width)
    )


def flame_tint(height_factor: float) -> int:
    """Red at the base, through yellow to near-white at the tip, as 0xRRGGBB."""
    f = min(1.0, max(0.0, height_factor))
    g = int(round(51 + 204 * f))
    b = int(round(204 * f))
    return (255 << 16) | (g << 8) | b


def static_cone_contour(count: int, emit_x: float, emit_y: float, base_width: float,
                        flame_height: float, min_half_width: float) -> np.ndarray:
    """
    Sample exactly `count` points along the flame silhouette.

    The full contour runs base centre, base left, up the left taper, apex,
    down the right taper, base right. When `count` is smaller than the full
    contour, evenly spaced contour points are kept in the same order.

    - Outputs: (count, 2) float array of (x, y) positions.
    """
    if count <= 0:
        return np.zeros((0, 2), dtype=float)

    left_steps = max(1, (count - 4) // 2)
    right_steps = max(1, count - 4 - left_steps)

    def half_width_at(y):
        return flame_half_width(base_width, emit_y - y, flame_height, min_half_width)

    points = [(emit_x, emit_y), (emit_x - base_width / 2, emit_y)]
    for i in range(1, left_steps + 1):
        y = emit_y - (i / (left_steps + 1)) * flame_height
        points.append((emit_x - half_width_at(y), y))
    points.append((emit_x, emit_y - flame_height))
    for i in range(right_steps, 0, -1):
        y = emit_y - (i / (right_steps + 1)) * flame_height
        points.append((emit_x + half_width_at(y), y))
    points.append((emit_x + base_width / 2, emit_y))

    contour = np.array(points, dtype=float)
    if len(contour) > count:
        keep = np.round(np.linspace(0, len(contour) - 1, count)).astype(int)
        contour = contour[keep]
    return contour
