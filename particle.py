# particle.py

import enum
import numpy as np


class ParticleState(enum.Enum):
    """
    Lifecycle tag for a particle record.

    UNINITIALIZED: velocity has not been drawn yet; the emitter draws it
        before the record's next integration step.
    ALIVE: velocity is authoritative, including a legitimate zero velocity.
    STATIC: fixed silhouette geometry, never integrated.
    """
    UNINITIALIZED = "uninitialized"
    ALIVE = "alive"
    STATIC = "static"


class ParticleRecord:
    """
    Simulation state for one flame particle.

    Owned by the emitter. The paired sprite is the drawable the host renders;
    the emitter writes position and derived appearance into it every tick.

    Data Contract:
    - position, velocity: float arrays of shape (2,), pixels and pixels/second.
    - age, age_limit: seconds. age / age_limit drives alpha.
    - flicker_phase: radians, fixed for the record's whole life unless recycled.
    - recycled: True from a recycle until the record is next integrated.
    """
    def __init__(self, position, sprite, *, velocity=None, age: float = 0.0,
                 age_limit: float = 1.0, flicker_phase: float = 0.0,
                 state: ParticleState = None):
        self.position = np.array(position, dtype=float)
        if velocity is None:
            self.velocity = np.zeros(2, dtype=float)
            default_state = ParticleState.UNINITIALIZED
        else:
            self.velocity = np.array(velocity, dtype=float)
            default_state = ParticleState.ALIVE
        self.state = state if state is not None else default_state
        self.age = age
        self.age_limit = age_limit
        self.flicker_phase = flicker_phase
        self.sprite = sprite
        self.recycled = False
        self.sync_sprite()

    @property
    def x(self) -> float:
        return float(self.position[0])

    @property
    def y(self) -> float:
        return float(self.position[1])

    @property
    def is_static(self) -> bool:
        return self.state is ParticleState.STATIC

    @property
    def life_fraction(self) -> float:
        """Normalized age, with age_limit floored to avoid dividing by ~0."""
        return min(1.0, self.age / max(0.001, self.age_limit))

    def sync_sprite(self):
        """Copies the simulated position onto the drawable."""
        self.sprite.x = float(self.position[0])
        self.sprite.y = float(self.position[1])

    def __repr__(self):
        return (f"ParticleRecord(state={self.state.value}, pos=({self.x:.1f}, {self.y:.1f}), "
                f"vel=({self.velocity[0]:.1f}, {self.velocity[1]:.1f}), age={self.age:.3f})")
