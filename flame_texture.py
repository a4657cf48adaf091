# flame_texture.py

"""
Procedural flame texture.

Builds the soft radial glow every flame particle is drawn with, so the demo
needs no image files on disk.
"""

import numpy as np
import pygame
import constants


def radial_gradient(width: int, height: int, stops=constants.FLAME_GRADIENT_STOPS,
                    radius_fraction: float = constants.FLAME_TEXTURE_RADIUS) -> np.ndarray:
    """
    Evaluates a radial RGBA gradient over a pixel grid.

    - Inputs: stops - (normalized_radius, (R, G, B, A)) keyframes, A in [0, 1].
    - Outputs: (height, width, 4) uint8 array.
    """
    radius = max(width, height) * radius_fraction
    # Sample at pixel centres
    xs = np.arange(width) + 0.5 - width / 2
    ys = np.arange(height) + 0.5 - height / 2
    xv, yv = np.meshgrid(xs, ys)
    d = np.clip(np.sqrt(xv ** 2 + yv ** 2) / radius, 0, 1)

    positions = np.array([pos for pos, _ in stops], dtype=float)
    colors = np.array([color for _, color in stops], dtype=float)
    colors[:, 3] *= 255

    rgba = np.empty((height, width, 4), dtype=np.uint8)
    for channel in range(4):
        rgba[:, :, channel] = np.round(np.interp(d, positions, colors[:, channel])).astype(np.uint8)
    return rgba


def create_flame_texture(size=constants.FLAME_TEXTURE_SIZE) -> pygame.Surface:
    """Returns a per-pixel-alpha surface holding the flame glow."""
    width, height = size
    if width <= 0 or height <= 0:
        raise ValueError(f"Flame texture size must be positive, got {size}")
    rgba = radial_gradient(width, height)
    surface = pygame.Surface((width, height), pygame.SRCALPHA)

    # surfarray views are indexed (x, y); release them so the surface unlocks.
    rgb_view = pygame.surfarray.pixels3d(surface)
    rgb_view[:] = rgba[:, :, :3].transpose(1, 0, 2)
    del rgb_view
    alpha_view = pygame.surfarray.pixels_alpha(surface)
    alpha_view[:] = rgba[:, :, 3].T
    del alpha_view
    return surface
