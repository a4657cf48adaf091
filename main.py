# main.py

import pygame
import constants
import json
import logging
import logger_setup
import numpy as np
import fire_emitter
from emitter_config import merge_config
from flame_texture import create_flame_texture

# Get the application's dedicated logger
logger = logging.getLogger(logger_setup.LOGGER_NAME)

import cProfile, pstats


def emit_origin(width, height):
    """Emission origin for a window of the given size."""
    return width * constants.EMIT_X_FRACTION, height * constants.EMIT_Y_FRACTION


def fire_scale(width, height):
    """Flame scale for a window: shorter side over the reference size, clamped."""
    scale = min(width, height) / constants.FIRE_SCALE_REFERENCE
    return max(constants.FIRE_SCALE_MIN, min(constants.FIRE_SCALE_MAX, scale))


def fit_to_window(emitter, width, height):
    """
    Retargets the emitter and its layer for a window size.

    Moves the emission origin, scales the layer about it, and picks the blend
    mode: narrow windows draw with normal blending and no glow pass.

    - Outputs: True when the glow pass should run.
    """
    emit_x, emit_y = emit_origin(width, height)
    emitter.set_emit_position(emit_x, emit_y)
    emitter.view.set_transform(emit_x, emit_y, fire_scale(width, height))
    compact = width < constants.COMPACT_WIDTH
    emitter.view.blend_mode = "normal" if compact else "add"
    return not compact


def draw_frame(screen, emitter, title_surface, bloom=True):
    """
    Clears the screen, draws a blurred glow pass when enabled, then the sharp
    particles on top.
    """
    width, height = screen.get_size()
    screen.fill(constants.BLACK)

    if bloom:
        # Glow pass: draw offscreen and blur it by down/up scaling
        glow_surface = pygame.Surface((width, height))
        emitter.view.draw(glow_surface)
        scale = constants.BLOOM_RADIUS
        scaled_size = (max(1, width // scale), max(1, height // scale))
        scaled_surface = pygame.transform.smoothscale(glow_surface, scaled_size)
        blurred_surface = pygame.transform.smoothscale(scaled_surface, (width, height))
        intensity = constants.BLOOM_INTENSITY
        blurred_surface.fill((intensity, intensity, intensity), special_flags=pygame.BLEND_RGB_MULT)
        screen.blit(blurred_surface, (0, 0), special_flags=pygame.BLEND_RGB_ADD)

    emitter.view.draw(screen)

    screen.blit(title_surface, title_surface.get_rect(midtop=(width // 2, int(height * 0.08))))
    pygame.display.flip()


def run_simulation_loop(emitter, screen, clock, title_surface, max_ticks=None):
    """
    The main frame loop. Runs until the window closes, or for max_ticks frames
    when a tick limit is given (used for profiling runs).
    """
    running = True
    tick = 0
    bloom = fit_to_window(emitter, *screen.get_size())

    while running and (max_ticks is None or tick < max_ticks):
        # Event handling
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.VIDEORESIZE:
                screen = pygame.display.set_mode((event.w, event.h), pygame.RESIZABLE)
                bloom = fit_to_window(emitter, event.w, event.h)
                logger.info(f"Window resized to {event.w}x{event.h}; emitter moved to "
                            f"({emitter.emit_x:.1f}, {emitter.emit_y:.1f}), "
                            f"scale {emitter.view.view_scale:.2f}, blend {emitter.view.blend_mode}.")

        # --- Simulation Update ---
        dt = clock.tick(constants.FPS) / 1000.0
        emitter.update(dt)

        # --- Logging (throttled) ---
        if tick % constants.LOG_EVERY_TICKS == 0:
            logger.debug(
                f"Tick={tick}, "
                f"dt={dt:.4f}, "
                f"Live={emitter.live_count}, "
                f"Flying={emitter.flying_count}, "
                f"FPS={clock.get_fps():.1f}"
            )

        # --- Drawing ---
        draw_frame(screen, emitter, title_surface, bloom)
        tick += 1

    return tick


def main():
    """
    Main function to initialize and run the flame demo.
    Runs under the profiler for a fixed number of ticks when profiling is enabled.
    """
    # --- Setup ---
    logger_setup.setup_logging()

    with open('config.json', 'r') as f:
        config = json.load(f)
    profile_config = config.get('profile', {})

    logger.info("Application starting...")
    logger.info(f"Loaded configuration: {config}")

    # Initialize the master random number generator (RNG)
    rng = np.random.default_rng(config['master_seed'])
    logger.info(f"Master RNG initialized with seed: {config['master_seed']}")

    # --- Initialization ---
    pygame.init()
    screen = pygame.display.set_mode((constants.WIDTH, constants.HEIGHT), pygame.RESIZABLE)
    pygame.display.set_caption(constants.TITLE)
    clock = pygame.time.Clock()

    font = pygame.font.SysFont("sans", 24, bold=True)
    title_surface = font.render(constants.TITLE, True, constants.TITLE_COLOR)

    emit_x, emit_y = emit_origin(constants.WIDTH, constants.HEIGHT)
    emitter_config = merge_config({**config.get('emitter', {}), 'emit_x': emit_x, 'emit_y': emit_y})
    emitter = fire_emitter.create(create_flame_texture(), emitter_config, rng)

    try:
        if profile_config.get('enabled', False):
            profiler = cProfile.Profile()
            profiler.enable()

            ticks = run_simulation_loop(emitter, screen, clock, title_surface,
                                        max_ticks=profile_config.get('ticks', 3000))

            profiler.disable()
            logger.info(f"Profiling complete after {ticks} ticks. Printing stats...")
            stats = pstats.Stats(profiler).sort_stats('cumtime')
            stats.print_stats(20) # Print the top 20 time-consuming functions
        else:
            run_simulation_loop(emitter, screen, clock, title_surface)
    finally:
        emitter.destroy()
        logger.info("Application shutting down.")
        pygame.quit()


if __name__ == "__main__":
    main()
