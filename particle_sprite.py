# particle_sprite.py

"""
Drawable particle surface.

FlameSprite is the renderable half of a particle: a transform (position,
scale, alpha, tint) applied to a shared texture. ParticleLayer is the
container the host adds to its scene and draws once per frame. The emitter
only writes transforms; the host picks the blend mode.
"""

import pygame

BLEND_MODES = ("add", "normal")


def tint_to_rgb(tint: int) -> tuple:
    """Splits a 0xRRGGBB tint into an (r, g, b) tuple."""
    return ((tint >> 16) & 0xFF, (tint >> 8) & 0xFF, tint & 0xFF)


class FlameSprite(pygame.sprite.Sprite):
    """
    One renderable flame particle, anchored at its bottom centre.
    """
    ANCHOR_X = 0.5
    ANCHOR_Y = 1.0

    def __init__(self, x: float = 0.0, y: float = 0.0, *, scale_x: float = 1.0,
                 scale_y: float = 1.0, alpha: float = 1.0, tint: int = 0xFFFFFF):
        super().__init__()
        self.x = x
        self.y = y
        self.scale_x = scale_x
        self.scale_y = scale_y
        self.alpha = alpha
        self.tint = tint

    def render(self, target: pygame.Surface, texture: pygame.Surface, additive: bool,
               pivot=(0.0, 0.0), view_scale: float = 1.0):
        """
        Scales, tints and blits the texture onto the target.

        pivot and view_scale are the container transform: positions are
        scaled about the pivot and sizes by view_scale. For additive blending
        the colour is premultiplied by alpha, since pygame's additive blit
        ignores per-pixel alpha.
        """
        alpha = min(1.0, max(0.0, self.alpha))
        if alpha <= 0.0:
            return

        tex_w, tex_h = texture.get_size()
        width = max(1, int(round(tex_w * abs(self.scale_x * view_scale))))
        height = max(1, int(round(tex_h * abs(self.scale_y * view_scale))))

        if (width, height) == (tex_w, tex_h):
            image = texture.copy()
        else:
            image = pygame.transform.smoothscale(texture, (width, height))

        r, g, b = tint_to_rgb(self.tint)
        if additive:
            r, g, b = int(r * alpha), int(g * alpha), int(b * alpha)
        image.fill((r, g, b, int(round(alpha * 255))), special_flags=pygame.BLEND_RGBA_MULT)

        pivot_x, pivot_y = pivot
        x = pivot_x + (self.x - pivot_x) * view_scale
        y = pivot_y + (self.y - pivot_y) * view_scale
        left = int(round(x - width * self.ANCHOR_X))
        top = int(round(y - height * self.ANCHOR_Y))
        flags = pygame.BLEND_RGB_ADD if additive else 0
        target.blit(image, (left, top), special_flags=flags)


class ParticleLayer(pygame.sprite.Group):
    """
    Container for all sprites of one emitter, sharing a single texture.

    Data Contract:
    - texture (pygame.Surface): The shared particle image.
    - blend_mode (str): "add" or "normal". Owned by the host.
    - pivot, view_scale: Container transform applied at draw time only.
      Owned by the host; sprite transforms are never rewritten.
    """
    def __init__(self, texture: pygame.Surface, blend_mode: str = "add"):
        super().__init__()
        self.texture = texture
        self.blend_mode = blend_mode
        self.pivot = (0.0, 0.0)
        self.view_scale = 1.0
        self.destroyed = False

    def set_transform(self, pivot_x: float, pivot_y: float, scale: float):
        """Scales the whole layer about (pivot_x, pivot_y) when drawn."""
        if scale <= 0:
            raise ValueError(f"Layer scale must be > 0, got {scale}")
        self.pivot = (float(pivot_x), float(pivot_y))
        self.view_scale = float(scale)

    @property
    def blend_mode(self) -> str:
        return self._blend_mode

    @blend_mode.setter
    def blend_mode(self, mode: str):
        if mode not in BLEND_MODES:
            raise ValueError(f"Unknown blend mode {mode!r}, expected one of {BLEND_MODES}")
        self._blend_mode = mode

    def draw(self, surface: pygame.Surface):
        """Renders every sprite in insertion order."""
        additive = self._blend_mode == "add"
        for sprite in self.sprites():
            sprite.render(surface, self.texture, additive, self.pivot, self.view_scale)

    def destroy(self):
        """Detaches every sprite and drops the texture reference."""
        for sprite in self.sprites():
            sprite.kill()
        self.empty()
        self.texture = None
        self.destroyed = True
