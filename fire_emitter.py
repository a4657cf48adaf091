# fire_emitter.py

import math
import logging
from collections.abc import Mapping
from typing import Optional, Union

import numpy as np

from emitter_config import EmitterConfig, ConfigurationError, merge_config
from flame_geometry import (
    alpha_over_lifecycle,
    flame_half_width,
    flame_tint,
    static_cone_contour,
)
from particle import ParticleRecord, ParticleState
from particle_sprite import FlameSprite, ParticleLayer

logger = logging.getLogger("flame_sim")

# --- Emission tunables (pixels unless noted) ---
BASE_SPAWN_OFFSET = 20.0       # Spawn band sits this far above the base line.
BASE_SPAWN_JITTER = 8.0        # Full vertical jitter of the spawn band.
BASE_SPREAD_FRACTION = 0.82    # Fraction of the half-spread used for spawn x.
CONE_FILL_FRACTION = 0.9       # Fraction of the cone half-width used when seeding inside it.
BELOW_BASE_MARGIN = 50.0       # Recycle once this far below the base.
RECYCLE_AGE_JITTER = 0.2       # Seconds. Recycled age is uniform in [0, this).
TIP_MIN_SPREAD = 8.0
TIP_SPAWN_JITTER = 12.0
SCALE_FLICKER_FREQ = 25.0      # Radians/second.
SPAWN_TINT = 0xFF8844
TIP_SPAWN_TINT = 0xFFCC88


class ResourceUnavailableError(RuntimeError):
    """Raised when the emitter cannot be built for lack of a usable texture."""


class FireEmitter:
    """
    Particle pool and lifecycle controller for one flame.

    Data Contract:
    - Inputs:
        - texture (pygame.Surface): Particle image with a positive pixel size.
        - config (EmitterConfig): Validated emitter configuration.
        - rng (np.random.Generator): Source of every random draw.
    - Outputs: None. The host reads `view` and draws it.
    - Side Effects: Each update() rewrites the transform of every live sprite.
    - Invariants:
        - 0 <= live_count <= config.max_particles.
        - In static-cone mode the first static_cone_count records are never
          touched after construction.
        - Every geometric computation uses the current emit position.
    """
    def __init__(self, texture, config: EmitterConfig, rng: np.random.Generator):
        self.texture = texture
        self.config = config
        self.rng = rng
        self.texture_width, self.texture_height = texture.get_size()
        self.emit_x = config.emit_x
        self.emit_y = config.emit_y

        self.layer = ParticleLayer(texture)
        self.particles = []
        self.spawn_timer = 0.0
        self.static_cone_count = 0
        self.destroyed = False
        self._warned_destroyed = False

        if config.static_cone:
            self._fill_static_cone()
        else:
            for _ in range(config.max_particles):
                self._spawn_one()

        mode = "static-cone" if config.static_cone else "continuous"
        logger.info(f"FireEmitter created in {mode} mode with {self.live_count} particles "
                    f"(max {config.max_particles}) at ({self.emit_x:.1f}, {self.emit_y:.1f}).")

    # --- Host-facing interface ---

    @property
    def view(self) -> ParticleLayer:
        """The drawable container to add to the host scene."""
        return self.layer

    @property
    def live_count(self) -> int:
        return len(self.particles)

    @property
    def flying_count(self) -> int:
        return len(self.particles) - self.static_cone_count

    @property
    def flying_capacity(self) -> int:
        return self.config.max_particles - self.static_cone_count

    @property
    def tip_y(self) -> float:
        return self.emit_y - self.config.flame_height

    def set_emit_position(self, x: float, y: float):
        """Moves the emission origin. Takes effect on the next computation."""
        self.emit_x = float(x)
        self.emit_y = float(y)

    def update(self, dt: float):
        """
        Advances the simulation by dt seconds.

        Iterates from the highest index down to the first non-static record
        so that removals never skip or double-process a record. In continuous
        mode out-of-bounds records are recycled in place; in static-cone mode
        records above the tip are removed and the spawn timer refills.
        """
        if self.destroyed:
            if not self._warned_destroyed:
                logger.warning("update() called on a destroyed FireEmitter; ignoring further updates.")
                self._warned_destroyed = True
            return

        tip_y = self.tip_y
        recycle_mode = not self.config.static_cone

        for i in range(len(self.particles) - 1, self.static_cone_count - 1, -1):
            record = self.particles[i]

            if recycle_mode and self._is_out_of_bounds(record, tip_y):
                self._recycle(record)
                continue

            self._ensure_velocity(record)
            self._integrate(record, dt)
            if recycle_mode:
                self._clamp_to_cone(record)
            self._update_appearance(record, recycle_mode)

            if not recycle_mode and record.position[1] <= tip_y:
                self._remove_at(i)

        if recycle_mode:
            return

        self.spawn_timer -= dt
        if self.spawn_timer <= 0 and self.flying_count < self.flying_capacity:
            self.spawn_timer = self.config.spawn_interval
            self._spawn_flying_from_tip()

    def destroy(self):
        """Releases every particle and the drawable container."""
        if self.destroyed:
            return
        released = len(self.particles)
        for record in self.particles:
            record.sprite.kill()
        self.particles.clear()
        self.layer.destroy()
        self.destroyed = True
        logger.info(f"FireEmitter destroyed, released {released} particles.")

    # --- Random draws ---

    def _uniform(self, bounds) -> float:
        low, high = bounds
        return float(self.rng.uniform(low, high)) if high > low else float(low)

    def _draw_velocity(self) -> np.ndarray:
        return np.array([self._uniform(self.config.velocity_x),
                         self._uniform(self.config.velocity_y)])

    def _draw_phase(self) -> float:
        return float(self.rng.random() * 2 * math.pi)

    def _spawn_spread(self) -> float:
        cfg = self.config
        return cfg.base_width / 2 if cfg.base_width > 0 else cfg.spread_x

    def _base_band_position(self) -> np.ndarray:
        """A point in the narrow spawn band just above the base."""
        x = self.emit_x + (self.rng.random() - 0.5) * 2 * self._spawn_spread() * BASE_SPREAD_FRACTION
        y = self.emit_y - BASE_SPAWN_OFFSET + (self.rng.random() - 0.5) * BASE_SPAWN_JITTER
        return np.array([x, y])

    def _varied_tint(self) -> int:
        cfg = self.config
        return min(0xFFFFFF, cfg.tint_base + int(self.rng.random() * cfg.tint_variation))

    # --- Construction helpers ---

    def _new_sprite(self, position, tint: int, scale: float = 1.0) -> FlameSprite:
        cfg = self.config
        sprite = FlameSprite(
            position[0], position[1],
            scale_x=scale * cfg.particle_width / self.texture_width,
            scale_y=scale * cfg.particle_height / self.texture_height,
            alpha=1.0,
            tint=tint,
        )
        self.layer.add(sprite)
        return sprite

    def _fill_static_cone(self):
        """Places the immobile silhouette particles along the flame contour."""
        cfg = self.config
        contour = static_cone_contour(
            cfg.static_cone_count, self.emit_x, self.emit_y,
            cfg.base_width, cfg.flame_height, cfg.cone_min_half_width
        )
        flame_h = max(1.0, cfg.flame_height)
        for x, y in contour:
            height_factor = min(1.0, max(0.0, self.emit_y - y) / flame_h)
            scale = 0.18 + 0.82 * (1 - height_factor)
            sprite = self._new_sprite((x, y), flame_tint(height_factor), scale)
            self.particles.append(ParticleRecord(
                (x, y), sprite,
                velocity=(0.0, 0.0),
                age=1.0,
                age_limit=1.0,
                state=ParticleState.STATIC,
            ))
        self.static_cone_count = len(contour)
        logger.debug(f"Static cone built with {self.static_cone_count} particles.")

    def _spawn_one(self):
        """Spawns one continuous-mode particle near the base (or inside the cone)."""
        if self.live_count >= self.config.max_particles:
            return
        cfg = self.config
        vy_min, vy_max = cfg.velocity_y
        no_upward = vy_min == 0 and vy_max == 0

        if cfg.base_width > 0 and no_upward:
            height_above_base = self.rng.random() * cfg.flame_height
            half_width = flame_half_width(cfg.base_width, height_above_base,
                                          cfg.flame_height, cfg.cone_min_half_width)
            position = np.array([
                self.emit_x + (self.rng.random() - 0.5) * 2 * half_width * CONE_FILL_FRACTION,
                self.emit_y - height_above_base,
            ])
        else:
            position = self._base_band_position()

        velocity = self._draw_velocity()
        if cfg.base_width > 0 and cfg.cone_spread != 0 and not no_upward:
            velocity[0] += (position[0] - self.emit_x) / (cfg.base_width / 2) * cfg.cone_spread

        sprite = self._new_sprite(position, self._varied_tint())
        # Fresh spawns start at age 0 so the first generation is visible from
        # the first frame. Seeding age at `lifetime` would keep it at alpha 0
        # until its first recycle.
        self.particles.append(ParticleRecord(
            position, sprite,
            velocity=velocity,
            age_limit=cfg.lifetime,
            flicker_phase=self._draw_phase(),
        ))

    def _spawn_flying_from_tip(self):
        """Spawns one flying particle from a narrow band around the cone tip."""
        if self.live_count >= self.config.max_particles:
            return
        cfg = self.config
        tip_spread = max(cfg.cone_min_half_width, TIP_MIN_SPREAD)
        position = np.array([
            self.emit_x + (self.rng.random() - 0.5) * 2 * tip_spread,
            self.tip_y + (self.rng.random() - 0.5) * TIP_SPAWN_JITTER,
        ])
        sprite = self._new_sprite(position, TIP_SPAWN_TINT)
        self.particles.append(ParticleRecord(
            position, sprite,
            velocity=self._draw_velocity(),
            age_limit=cfg.lifetime,
            flicker_phase=self._draw_phase(),
        ))
        logger.debug(f"Flying particle spawned at ({position[0]:.1f}, {position[1]:.1f}); "
                     f"{self.flying_count}/{self.flying_capacity} flying.")

    # --- Per-tick steps ---

    def _is_out_of_bounds(self, record: ParticleRecord, tip_y: float) -> bool:
        cfg = self.config
        horizontal_limit = cfg.base_width if cfg.base_width > 0 else 2 * cfg.spread_x
        x, y = record.position
        return (
            y <= tip_y
            or y > self.emit_y + BELOW_BASE_MARGIN
            or abs(x - self.emit_x) > horizontal_limit
        )

    def _recycle(self, record: ParticleRecord):
        """Resets a record in place near the base, keeping its slot and sprite."""
        record.position = self._base_band_position()
        record.velocity = self._draw_velocity()
        record.age = float(self.rng.random() * RECYCLE_AGE_JITTER)
        record.flicker_phase = self._draw_phase()
        record.state = ParticleState.ALIVE
        record.recycled = True
        record.sprite.tint = SPAWN_TINT
        record.sync_sprite()

    def _ensure_velocity(self, record: ParticleRecord):
        if record.state is ParticleState.UNINITIALIZED:
            record.velocity = self._draw_velocity()
            record.state = ParticleState.ALIVE

    def _integrate(self, record: ParticleRecord, dt: float):
        """Velocity plus horizontal wobble, then age."""
        cfg = self.config
        wobble = cfg.flicker_amplitude * math.sin(record.age * cfg.flicker_freq + record.flicker_phase)
        record.position[0] += (record.velocity[0] + wobble) * dt
        record.position[1] += record.velocity[1] * dt
        record.age += dt
        record.recycled = False

    def _clamp_to_cone(self, record: ParticleRecord):
        cfg = self.config
        if cfg.base_width <= 0:
            return
        height_above_base = max(0.0, self.emit_y - record.position[1])
        half_width = flame_half_width(cfg.base_width, height_above_base,
                                      cfg.flame_height, cfg.cone_min_half_width)
        record.position[0] = min(self.emit_x + half_width,
                                 max(self.emit_x - half_width, record.position[0]))

    def _update_appearance(self, record: ParticleRecord, recycle_mode: bool):
        """Derives alpha, scale and tint from age and height, then syncs the sprite."""
        cfg = self.config
        height_above_base = max(0.0, self.emit_y - record.position[1])
        height_factor = min(1.0, height_above_base / max(1.0, cfg.flame_height))

        scale = 0.5 + 0.5 * height_factor
        if recycle_mode:
            scale *= 0.9 + 0.3 * math.sin(record.age * SCALE_FLICKER_FREQ + record.flicker_phase)

        sprite = record.sprite
        sprite.alpha = alpha_over_lifecycle(record.life_fraction)
        sprite.scale_x = scale * cfg.particle_width / self.texture_width
        sprite.scale_y = scale * cfg.particle_height / self.texture_height
        sprite.tint = flame_tint(height_factor)
        record.sync_sprite()

    def _remove_at(self, index: int):
        record = self.particles.pop(index)
        record.sprite.kill()
        logger.debug(f"Flying particle removed at ({record.x:.1f}, {record.y:.1f}); "
                     f"{self.flying_count}/{self.flying_capacity} flying.")


def create(texture, config: Union[EmitterConfig, Mapping, None] = None,
           rng: Optional[np.random.Generator] = None) -> FireEmitter:
    """
    Builds a FireEmitter after checking its texture and configuration.

    - Inputs:
        - texture: Anything with get_size() returning a positive (width, height).
        - config: An EmitterConfig, a mapping of overrides, or None for defaults.
        - rng: Seeded generator; a fresh default_rng() when omitted.
    - Raises:
        - ResourceUnavailableError: no texture, or a texture with no pixels.
        - ConfigurationError: the configuration is invalid.
    """
    if texture is None or not hasattr(texture, "get_size"):
        raise ResourceUnavailableError("A texture is required to create a FireEmitter.")
    width, height = texture.get_size()
    if width <= 0 or height <= 0:
        raise ResourceUnavailableError(f"Texture has no pixel area ({width}x{height}).")

    if not isinstance(config, EmitterConfig):
        if config is not None and not isinstance(config, Mapping):
            raise ConfigurationError(f"Expected an EmitterConfig or a mapping, got {type(config).__name__}.")
        config = merge_config(config)

    if rng is None:
        rng = np.random.default_rng()
    return FireEmitter(texture, config, rng)
