# emitter_config.py

"""
Emitter Configuration

Defaults for a fire emitter plus a pure merge step that turns caller
overrides (usually the 'emitter' section of config.json) into a validated,
immutable EmitterConfig.

Data Contract:
- DEFAULT_EMITTER_CONFIG is read-only; merge_config() never mutates it.
- Every EmitterConfig returned by merge_config() has passed validation.
- Units: pixels, seconds, pixels/second, radians/second. Tints are 0xRRGGBB.
"""

import math
from dataclasses import dataclass, fields
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class ConfigurationError(ValueError):
    """Raised when an emitter configuration cannot be used."""


DEFAULT_EMITTER_CONFIG = MappingProxyType({
    'max_particles': 10,
    'spawn_interval': 0.06,       # Seconds
    'lifetime': 1.6,              # Seconds
    'emit_x': 0.0,                # Pixels
    'emit_y': 0.0,                # Pixels
    'spread_x': 20.0,             # Half-spread of spawn x when base_width is 0
    'base_width': 0.0,            # 0 disables the cone
    'cone_spread': 28.0,          # Outward drift (px/s) at the base edges
    'cone_slope': 0.32,
    'cone_min_half_width': 10.0,
    'flame_height': 110.0,
    'static_cone': False,
    'static_cone_count': 0,
    'velocity_x': (-20.0, 20.0),  # Pixels/second
    'velocity_y': (-100.0, -60.0),  # Negative is upward
    'flicker_amplitude': 55.0,    # Pixels/second
    'flicker_freq': 18.0,         # Radians/second
    'particle_width': 24.0,
    'particle_height': 36.0,
    'tint_base': 0xFF6600,
    'tint_variation': 0x002200,
})


@dataclass(frozen=True)
class EmitterConfig:
    """Fully populated, validated configuration for one emitter."""
    max_particles: int
    spawn_interval: float
    lifetime: float
    emit_x: float
    emit_y: float
    spread_x: float
    base_width: float
    cone_spread: float
    cone_slope: float
    cone_min_half_width: float
    flame_height: float
    static_cone: bool
    static_cone_count: int
    velocity_x: Tuple[float, float]
    velocity_y: Tuple[float, float]
    flicker_amplitude: float
    flicker_freq: float
    particle_width: float
    particle_height: float
    tint_base: int
    tint_variation: int


_INT_FIELDS = ('max_particles', 'static_cone_count', 'tint_base', 'tint_variation')
_RANGE_FIELDS = ('velocity_x', 'velocity_y')
_BOOL_FIELDS = ('static_cone',)


def _coerce(key, value):
    """Convert one raw config value to the type EmitterConfig expects."""
    try:
        if key in _BOOL_FIELDS:
            if not isinstance(value, bool):
                raise TypeError(f"expected a boolean, got {value!r}")
            return value
        if key in _RANGE_FIELDS:
            low, high = value
            return (float(low), float(high))
        if key in _INT_FIELDS:
            if isinstance(value, bool) or int(value) != value:
                raise TypeError(f"expected an integer, got {value!r}")
            return int(value)
        if isinstance(value, bool):
            raise TypeError(f"expected a number, got {value!r}")
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value for '{key}': {e}") from e


def _validate(values: dict):
    """
    Checks cross-field and range constraints.

    - Inputs: values (dict) - fully merged and coerced config values.
    - Side Effects: None. Raises ConfigurationError on the first violation.
    """
    for key, value in values.items():
        numbers = value if key in _RANGE_FIELDS else (value,)
        for number in numbers:
            if isinstance(number, float) and not math.isfinite(number):
                raise ConfigurationError(f"'{key}' must be finite, got {value!r}")

    for key in ('max_particles', 'spawn_interval', 'lifetime', 'flame_height',
                'particle_width', 'particle_height'):
        if values[key] <= 0:
            raise ConfigurationError(f"'{key}' must be > 0, got {values[key]!r}")

    for key in ('spread_x', 'base_width', 'cone_slope', 'cone_min_half_width',
                'flicker_amplitude', 'static_cone_count'):
        if values[key] < 0:
            raise ConfigurationError(f"'{key}' must be >= 0, got {values[key]!r}")

    for key in _RANGE_FIELDS:
        low, high = values[key]
        if low > high:
            raise ConfigurationError(f"'{key}' range is inverted: [{low}, {high}]")

    for key in ('tint_base', 'tint_variation'):
        if not 0 <= values[key] <= 0xFFFFFF:
            raise ConfigurationError(f"'{key}' must be within 0x000000..0xFFFFFF, got {values[key]:#x}")

    if values['static_cone'] and values['static_cone_count'] > values['max_particles']:
        raise ConfigurationError(
            f"'static_cone_count' ({values['static_cone_count']}) exceeds "
            f"'max_particles' ({values['max_particles']})"
        )


def merge_config(overrides: Optional[Mapping] = None,
                 defaults: Mapping = DEFAULT_EMITTER_CONFIG) -> EmitterConfig:
    """
    Merges caller overrides over the defaults and validates the result.

    Data Contract:
    - Inputs:
        - overrides (Mapping | None): Partial config, snake_case keys.
        - defaults (Mapping): Base values. Must name every EmitterConfig field.
    - Outputs: A new EmitterConfig.
    - Side Effects: None. Neither input is modified.
    - Raises: ConfigurationError for unknown keys or invalid values.
    """
    known = {f.name for f in fields(EmitterConfig)}
    overrides = dict(overrides or {})

    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ConfigurationError(f"Unknown emitter config keys: {', '.join(unknown)}")

    merged = dict(defaults)
    merged.update(overrides)

    missing = sorted(known - set(merged))
    if missing:
        raise ConfigurationError(f"Missing emitter config keys: {', '.join(missing)}")

    values = {key: _coerce(key, merged[key]) for key in known}
    _validate(values)
    return EmitterConfig(**values)
