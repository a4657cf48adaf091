import os

# Run pygame without a real display or audio device.
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import numpy as np
import pygame
import pytest


@pytest.fixture(scope="session", autouse=True)
def pygame_session():
    pygame.init()
    yield
    pygame.quit()


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def texture():
    surface = pygame.Surface((96, 96), pygame.SRCALPHA)
    surface.fill((255, 255, 255, 255))
    return surface
