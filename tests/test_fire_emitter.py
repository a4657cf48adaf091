import logging
import math

import numpy as np
import pytest

import fire_emitter
from emitter_config import ConfigurationError, merge_config
from fire_emitter import FireEmitter, ResourceUnavailableError, create
from flame_geometry import alpha_over_lifecycle, flame_half_width, flame_tint
from particle import ParticleRecord, ParticleState
from particle_sprite import FlameSprite, ParticleLayer

DT = 1 / 60
EMIT_X = 200.0
EMIT_Y = 300.0


def continuous_config(**overrides):
    values = {
        'max_particles': 20,
        'emit_x': EMIT_X,
        'emit_y': EMIT_Y,
        'base_width': 100,
        'flame_height': 60,
        'cone_min_half_width': 3,
        'cone_spread': 7,
        'velocity_x': (-6, 6),
        'velocity_y': (-95, -55),
        'flicker_amplitude': 22,
        'flicker_freq': 9,
    }
    values.update(overrides)
    return merge_config(values)


def static_config(**overrides):
    values = {
        'max_particles': 10,
        'static_cone': True,
        'static_cone_count': 6,
        'emit_x': EMIT_X,
        'emit_y': EMIT_Y,
        'base_width': 80,
        'flame_height': 60,
        'cone_min_half_width': 4,
        'spawn_interval': 0.5,
        'velocity_x': (0, 0),
        'velocity_y': (-60, -60),
        'flicker_amplitude': 0,
    }
    values.update(overrides)
    return merge_config(values)


class SizedTexture:
    def __init__(self, width, height):
        self.size = (width, height)

    def get_size(self):
        return self.size


# --- Construction ---

def test_create_requires_a_texture(rng):
    with pytest.raises(ResourceUnavailableError):
        create(None, continuous_config(), rng)


@pytest.mark.parametrize("size", [(0, 96), (96, 0)])
def test_create_rejects_empty_texture(rng, size):
    with pytest.raises(ResourceUnavailableError):
        create(SizedTexture(*size), continuous_config(), rng)


def test_create_merges_mapping_overrides(texture, rng):
    emitter = create(texture, {'max_particles': 7, 'base_width': 50}, rng)
    assert isinstance(emitter, FireEmitter)
    assert emitter.config.max_particles == 7
    assert emitter.live_count == 7


def test_create_rejects_invalid_config(texture, rng):
    with pytest.raises(ConfigurationError):
        create(texture, {'max_particles': 0}, rng)
    with pytest.raises(ConfigurationError):
        create(texture, {'static_cone': True, 'max_particles': 3, 'static_cone_count': 4}, rng)
    with pytest.raises(ConfigurationError):
        create(texture, ['max_particles', 3], rng)


def test_create_without_rng_uses_a_default_generator(texture):
    emitter = create(texture, continuous_config())
    emitter.update(DT)
    assert emitter.live_count == 20


def test_view_is_the_particle_layer(texture, rng):
    emitter = create(texture, continuous_config(), rng)
    assert isinstance(emitter.view, ParticleLayer)
    assert len(emitter.view) == emitter.live_count
    assert all(isinstance(sprite, FlameSprite) for sprite in emitter.view)


def test_sprite_scale_is_relative_to_texture_size(rng):
    emitter = create(SizedTexture(64, 128), continuous_config(particle_width=32, particle_height=64), rng)
    sprite = emitter.particles[0].sprite
    assert sprite.scale_x == pytest.approx(0.5)
    assert sprite.scale_y == pytest.approx(0.5)


def test_same_seed_reproduces_the_simulation(texture):
    a = create(texture, continuous_config(), np.random.default_rng(7))
    b = create(texture, continuous_config(), np.random.default_rng(7))
    for _ in range(120):
        a.update(DT)
        b.update(DT)
    for pa, pb in zip(a.particles, b.particles):
        assert np.array_equal(pa.position, pb.position)
        assert pa.age == pb.age


# --- Continuous mode ---

def test_continuous_mode_fills_pool_at_construction(texture, rng):
    emitter = create(texture, continuous_config(), rng)
    assert emitter.live_count == 20
    assert emitter.static_cone_count == 0
    assert all(p.state is ParticleState.ALIVE for p in emitter.particles)


def test_recycling_preserves_pool_size(texture, rng):
    emitter = create(texture, continuous_config(), rng)
    identities = {id(p) for p in emitter.particles}
    for _ in range(1000):
        emitter.update(DT)
        assert emitter.live_count == 20
        assert len(emitter.view) == 20
    assert {id(p) for p in emitter.particles} == identities


def test_particles_stay_inside_the_cone(texture, rng):
    emitter = create(texture, continuous_config(), rng)
    for _ in range(600):
        emitter.update(DT)
        for p in emitter.particles:
            if p.recycled:
                continue
            height = max(0.0, emitter.emit_y - p.y)
            assert abs(p.x - emitter.emit_x) <= flame_half_width(100, height, 60, 3) + 1e-9


def test_particles_are_recycled_not_removed_by_age(texture, rng):
    config = continuous_config(lifetime=0.05, velocity_y=(-1, -1), flicker_amplitude=0, cone_spread=0)
    emitter = create(texture, config, rng)
    for _ in range(30):
        emitter.update(DT)
    assert emitter.live_count == 20
    assert any(p.age > config.lifetime for p in emitter.particles)
    assert all(p.sprite.alpha == pytest.approx(0.0, abs=1e-9)
               for p in emitter.particles if p.age >= config.lifetime)


def test_out_of_bounds_particle_is_recycled_near_base(texture, rng):
    emitter = create(texture, continuous_config(), rng)
    record = emitter.particles[0]
    record.position[:] = (EMIT_X, EMIT_Y - 61)
    emitter.update(DT)
    assert record.recycled
    assert abs(record.x - EMIT_X) <= 50 * fire_emitter.BASE_SPREAD_FRACTION + 1e-9
    assert EMIT_Y - 24 <= record.y <= EMIT_Y - 16
    assert 0 <= record.age < fire_emitter.RECYCLE_AGE_JITTER
    assert record.velocity[1] <= -55
    assert (record.sprite.x, record.sprite.y) == (record.x, record.y)


def test_recycled_particle_resumes_integration(texture, rng):
    emitter = create(texture, continuous_config(), rng)
    record = emitter.particles[0]
    record.position[:] = (EMIT_X + 150, EMIT_Y)
    emitter.update(DT)
    assert record.recycled
    y_after_recycle = record.y
    emitter.update(DT)
    assert not record.recycled
    assert record.y < y_after_recycle


def height_factor(p, emitter):
    return min(1.0, max(0.0, emitter.emit_y - p.y) / emitter.config.flame_height)


def test_appearance_follows_height_and_age(texture, rng):
    emitter = create(texture, continuous_config(particle_width=40, particle_height=110), rng)
    checked = 0
    for _ in range(90):
        emitter.update(DT)
        for p in emitter.particles:
            if p.recycled:
                continue
            h = height_factor(p, emitter)
            flicker = 0.9 + 0.3 * math.sin(p.age * fire_emitter.SCALE_FLICKER_FREQ + p.flicker_phase)
            scale = (0.5 + 0.5 * h) * flicker
            assert p.sprite.tint == flame_tint(h)
            assert p.sprite.alpha == pytest.approx(alpha_over_lifecycle(p.life_fraction))
            assert p.sprite.scale_x == pytest.approx(scale * 40 / 96)
            assert p.sprite.scale_y == pytest.approx(scale * 110 / 96)
            checked += 1
    assert checked > 0


def test_flying_scale_has_no_flicker(texture, rng):
    emitter = create(texture, static_config(particle_width=48, particle_height=64), rng)
    emitter.update(DT)
    flyer = emitter.particles[-1]
    flyer.position[:] = (EMIT_X, EMIT_Y - 30)
    for _ in range(5):
        emitter.update(DT)
        h = height_factor(flyer, emitter)
        assert flyer.sprite.scale_x == pytest.approx((0.5 + 0.5 * h) * 48 / 96)
        assert flyer.sprite.scale_y == pytest.approx((0.5 + 0.5 * h) * 64 / 96)
        assert flyer.sprite.tint == flame_tint(h)


def test_cone_spread_drifts_outward_from_centre(texture, rng):
    emitter = create(texture, continuous_config(velocity_x=(0, 0), cone_spread=7), rng)
    offsets = []
    for p in emitter.particles:
        offset = p.x - EMIT_X
        assert p.velocity[0] == pytest.approx(offset / 50 * 7)
        offsets.append(offset)
    assert min(offsets) < 0 < max(offsets)


def test_cone_spread_skipped_without_upward_velocity(texture, rng):
    emitter = create(texture, continuous_config(velocity_x=(0, 0), velocity_y=(0, 0), cone_spread=7), rng)
    assert any(p.x != EMIT_X for p in emitter.particles)
    assert all(p.velocity[0] == 0.0 for p in emitter.particles)


def test_cone_spread_skipped_without_base_width(texture, rng):
    emitter = create(texture, continuous_config(velocity_x=(0, 0), base_width=0, cone_spread=7), rng)
    assert all(p.velocity[0] == 0.0 for p in emitter.particles)


def test_spawn_tint_without_variation_is_the_base(texture, rng):
    emitter = create(texture, continuous_config(tint_base=0xFF6600, tint_variation=0), rng)
    assert {p.sprite.tint for p in emitter.particles} == {0xFF6600}


def test_spawn_tint_varies_within_range(texture, rng):
    emitter = create(texture, continuous_config(tint_base=0xFF6600, tint_variation=0x2200), rng)
    tints = [p.sprite.tint for p in emitter.particles]
    assert all(0xFF6600 <= tint < 0xFF6600 + 0x2200 for tint in tints)
    assert len(set(tints)) > 1


def test_spawn_tint_saturates_at_white(texture, rng):
    emitter = create(texture, continuous_config(tint_base=0xFFFFF0, tint_variation=0xFFFF), rng)
    assert all(p.sprite.tint <= 0xFFFFFF for p in emitter.particles)


def test_fresh_spawns_start_at_age_zero(texture, rng):
    emitter = create(texture, continuous_config(lifetime=1.6), rng)
    for p in emitter.particles:
        assert p.age == 0.0
        assert p.age_limit == 1.6
    emitter.update(DT)
    visible = [p for p in emitter.particles if not p.recycled]
    assert all(p.sprite.alpha >= 0.5 for p in visible)


def test_uninitialized_record_draws_velocity_before_moving(texture, rng):
    emitter = create(texture, continuous_config(max_particles=1), rng)
    record = emitter.particles[0]
    record.position[:] = (EMIT_X, EMIT_Y - 20)
    record.velocity[:] = 0.0
    record.state = ParticleState.UNINITIALIZED
    emitter.update(DT)
    assert record.state is ParticleState.ALIVE
    assert -95 <= record.velocity[1] <= -55
    assert record.y < EMIT_Y - 20


def test_alive_record_with_zero_velocity_keeps_it(texture, rng):
    config = continuous_config(max_particles=4, velocity_y=(0, 0), velocity_x=(0, 0), flicker_amplitude=0)
    emitter = create(texture, config, rng)
    before = [p.position.copy() for p in emitter.particles]
    for _ in range(10):
        emitter.update(DT)
    for p, pos in zip(emitter.particles, before):
        assert p.state is ParticleState.ALIVE
        assert np.array_equal(p.velocity, [0.0, 0.0])
        assert p.y == pos[1]


def test_zero_velocity_spawns_inside_the_cone(texture, rng):
    config = continuous_config(velocity_y=(0, 0))
    emitter = create(texture, config, rng)
    for p in emitter.particles:
        height = EMIT_Y - p.y
        assert 0 <= height <= 60
        assert abs(p.x - EMIT_X) <= flame_half_width(100, height, 60, 3)


def test_radial_spread_without_base_width(texture, rng):
    config = continuous_config(base_width=0, spread_x=20)
    emitter = create(texture, config, rng)
    for p in emitter.particles:
        assert abs(p.x - EMIT_X) <= 20 * fire_emitter.BASE_SPREAD_FRACTION + 1e-9
    for _ in range(200):
        emitter.update(DT)
        assert emitter.live_count == 20


def test_origin_retargeting_moves_spawns(texture, rng):
    emitter = create(texture, continuous_config(), rng)
    for _ in range(30):
        emitter.update(DT)
    emitter.set_emit_position(500, 400)
    emitter.update(DT)
    xs = np.array([p.x for p in emitter.particles])
    ys = np.array([p.y for p in emitter.particles])
    assert all(p.recycled for p in emitter.particles)
    assert np.all(np.abs(xs - 500) <= 50 * fire_emitter.BASE_SPREAD_FRACTION + 1e-9)
    assert np.all((ys >= 400 - 24) & (ys <= 400 - 16))
    assert abs(xs.mean() - 500) < abs(xs.mean() - EMIT_X)


# --- Static-cone mode ---

def test_static_mode_builds_cone_only(texture, rng):
    emitter = create(texture, static_config(), rng)
    assert emitter.static_cone_count == 6
    assert emitter.live_count == 6
    assert emitter.flying_count == 0
    assert emitter.flying_capacity == 4
    assert all(p.state is ParticleState.STATIC for p in emitter.particles)


def test_static_slots_are_never_mutated(texture, rng):
    emitter = create(texture, static_config(spawn_interval=0.05, velocity_x=(-20, 20),
                                            velocity_y=(-100, -60), flicker_amplitude=30), rng)
    statics = emitter.particles[:6]
    positions = [p.position.copy() for p in statics]
    sprite_state = [(p.sprite.x, p.sprite.y, p.sprite.scale_x, p.sprite.alpha, p.sprite.tint)
                    for p in statics]
    for _ in range(500):
        emitter.update(DT)
        assert emitter.particles[:6] == statics
    for p, pos, sprite in zip(statics, positions, sprite_state):
        assert np.array_equal(p.position, pos)
        assert (p.sprite.x, p.sprite.y, p.sprite.scale_x, p.sprite.alpha, p.sprite.tint) == sprite


def test_static_mode_pool_bound(texture, rng):
    emitter = create(texture, static_config(spawn_interval=0.01, velocity_y=(-5, -1)), rng)
    peak = 0
    for _ in range(1000):
        emitter.update(DT)
        assert emitter.live_count <= 10
        peak = max(peak, emitter.live_count)
    assert peak == 10


def test_flying_particles_spawn_near_tip(texture, rng):
    emitter = create(texture, static_config(), rng)
    emitter.update(DT)
    assert emitter.flying_count == 1
    flyer = emitter.particles[-1]
    assert abs(flyer.x - EMIT_X) <= 8
    assert abs(flyer.y - emitter.tip_y) <= 6
    assert flyer.velocity[1] == -60
    assert flyer.sprite.tint == fire_emitter.TIP_SPAWN_TINT


def test_flying_removal_frees_capacity(texture, rng):
    emitter = create(texture, static_config(), rng)
    emitter.update(DT)
    assert emitter.live_count == 7
    flyer = emitter.particles[-1]

    ticks = 0
    while emitter.live_count == 7:
        emitter.update(DT)
        ticks += 1
        assert ticks < 20
    assert emitter.live_count == 6
    assert flyer not in emitter.particles
    assert not flyer.sprite.alive()
    assert flyer.y <= emitter.tip_y

    while emitter.live_count == 6:
        emitter.update(DT)
        ticks += 1
        assert ticks < 40
    assert emitter.live_count == 7
    # The replacement waits out the spawn interval
    assert ticks * DT >= 0.5 - DT - 1e-9


def test_flying_particles_are_not_clamped(texture, rng):
    config = static_config(velocity_x=(200, 200), velocity_y=(-1, -1), spawn_interval=10)
    emitter = create(texture, config, rng)
    emitter.update(DT)
    flyer = emitter.particles[-1]
    flyer.position[:] = (EMIT_X, EMIT_Y - 30)
    for _ in range(30):
        emitter.update(DT)
    assert flyer.x - EMIT_X > flame_half_width(80, max(0.0, EMIT_Y - flyer.y), 60, 4)


def test_static_mode_retargets_tip_spawns(texture, rng):
    emitter = create(texture, static_config(), rng)
    emitter.set_emit_position(600, 500)
    emitter.update(DT)
    flyer = emitter.particles[-1]
    assert abs(flyer.x - 600) <= 8
    assert abs(flyer.y - (500 - 60)) <= 6


# --- Teardown ---

def test_destroy_releases_everything(texture, rng):
    emitter = create(texture, static_config(), rng)
    emitter.update(DT)
    sprites = [p.sprite for p in emitter.particles]
    emitter.destroy()
    assert emitter.live_count == 0
    assert len(emitter.view) == 0
    assert emitter.view.destroyed
    assert not any(sprite.alive() for sprite in sprites)
    emitter.update(DT)
    assert emitter.live_count == 0
    emitter.destroy()


def test_update_after_destroy_warns_once(texture, rng, caplog, monkeypatch):
    monkeypatch.setattr(fire_emitter.logger, "propagate", True)
    emitter = create(texture, continuous_config(), rng)
    emitter.destroy()
    with caplog.at_level(logging.WARNING, logger="flame_sim"):
        for _ in range(60):
            emitter.update(DT)
    warnings = [r for r in caplog.records
                if r.name == "flame_sim" and r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "destroyed" in warnings[0].getMessage()
    assert emitter.live_count == 0


def test_record_repr_mentions_state(texture, rng):
    emitter = create(texture, static_config(), rng)
    assert "static" in repr(emitter.particles[0])
    assert isinstance(emitter.particles[0], ParticleRecord)
