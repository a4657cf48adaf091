# constants.py

"""
Application Constants

This module defines static configuration values for the demo host.
These are not expected to change between runs; tunable emitter values live
in config.json and emitter_config.DEFAULT_EMITTER_CONFIG.

Data Contract:
- All values are immutable constants.
- Units are specified in comments where applicable.
"""

# Screen dimensions
WIDTH = 800  # Pixels
HEIGHT = 600  # Pixels

# Framerate
FPS = 60  # Frames per second

# Colors (RGB)
BLACK = (0, 0, 0)
TITLE_COLOR = (255, 170, 68)

# Window Title
TITLE = "Phoenix Flame"

# Emission origin, as fractions of the window size.
EMIT_X_FRACTION = 0.5
EMIT_Y_FRACTION = 0.84

# Flame scaling with the window
FIRE_SCALE_REFERENCE = 600  # Shorter window side (pixels) drawn at scale 1.
FIRE_SCALE_MIN = 0.5
FIRE_SCALE_MAX = 2.5
COMPACT_WIDTH = 768  # Below this width: normal blending, no glow pass.

# Flame texture
FLAME_TEXTURE_SIZE = (96, 96)  # Pixels
FLAME_TEXTURE_RADIUS = 0.7     # Gradient radius as a fraction of the larger side.

# Radial gradient keyframes for the flame texture.
# Each keyframe is a tuple: (normalized_radius, (R, G, B, A)) with A in [0, 1].
FLAME_GRADIENT_STOPS = [
    (0.0,   (255, 255, 235, 0.95)),  # White-hot core
    (0.1,   (255, 252, 210, 0.92)),
    (0.22,  (255, 235, 150, 0.78)),  # Yellow
    (0.38,  (255, 180, 70, 0.42)),   # Orange
    (0.52,  (255, 110, 25, 0.12)),
    (0.65,  (255, 60, 0, 0.0)),      # Transparent red edge
    (1.0,   (255, 40, 0, 0.0)),
]

# Bloom effect settings
BLOOM_RADIUS = 4 # Downscale factor for the glow pass. Larger is more diffuse.
BLOOM_INTENSITY = 110 # The brightness of the glow (0-255).

# Status logging cadence
LOG_EVERY_TICKS = 100
