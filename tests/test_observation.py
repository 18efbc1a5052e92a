"""Observation layout, ground sentinel and placeholder joint slots."""

from __future__ import annotations

import numpy as np
import pytest

from creaturerl.envs import observation as ob
from creaturerl.envs.config import CreatureEnvConfig
from creaturerl.envs.lifecycle import EpisodeLifecycle
from creaturerl.envs.rig import RigBuilder

from conftest import FixedGenerator


def _no_ground(origin, direction, max_distance):
    return None


def test_layout_is_fixed() -> None:
    assert ob.OBS_DIM == 41
    assert ob.JOINTS == slice(14, 38)
    assert ob.TARGET_LOCAL == slice(38, 41)


def test_length_independent_of_limb_count(single_limb_spec, four_limb_spec, rng) -> None:
    assembler = ob.ObservationAssembler()
    small = assembler.assemble(RigBuilder().build(single_limb_spec, rng))
    large = assembler.assemble(RigBuilder().build(four_limb_spec, rng))
    assert small.shape == large.shape == (ob.OBS_DIM,)
    assert small.dtype == np.float32


def test_ground_sentinel_when_nothing_hit(single_limb_spec, rng) -> None:
    rig = RigBuilder().build(single_limb_spec, rng)
    obs = ob.ObservationAssembler().assemble(rig, ground_query=_no_ground)
    assert obs[ob.GROUND_CLEARANCE] == 10.0


def test_ground_sentinel_past_ray_range(single_limb_spec, rng) -> None:
    rig = RigBuilder(spawn_height=20.0).build(single_limb_spec, rng)
    obs = ob.ObservationAssembler().assemble(rig)
    assert obs[ob.GROUND_CLEARANCE] == 10.0


def test_ground_clearance_measured_from_torso_centre(single_limb_spec, rng) -> None:
    rig = RigBuilder(spawn_height=5.0).build(single_limb_spec, rng)
    obs = ob.ObservationAssembler().assemble(rig)
    # torso centre sits at 5 + 1/2; limbs and target are not on the ground layer
    assert obs[ob.GROUND_CLEARANCE] == pytest.approx(5.5, abs=1e-4)


def test_torso_state_at_spawn(single_limb_spec, rng) -> None:
    rig = RigBuilder(spawn_height=5.0).build(single_limb_spec, rng)
    obs = ob.ObservationAssembler().assemble(rig)
    np.testing.assert_allclose(obs[ob.TORSO_POS], [0.0, 0.0, 5.5], atol=1e-6)
    np.testing.assert_allclose(obs[ob.TORSO_QUAT], [1.0, 0.0, 0.0, 0.0], atol=1e-6)
    np.testing.assert_allclose(obs[ob.TORSO_LINVEL], 0.0, atol=1e-6)
    np.testing.assert_allclose(obs[ob.TORSO_ANGVEL], 0.0, atol=1e-6)


def test_target_in_torso_frame(single_limb_spec, rng) -> None:
    rig = RigBuilder().build(single_limb_spec, rng)
    rig.place_target(rig.torso_position() + np.array([1.0, 2.0, 3.0]))
    obs = ob.ObservationAssembler().assemble(rig)
    np.testing.assert_allclose(obs[ob.TARGET_LOCAL], [1.0, 2.0, 3.0], atol=1e-5)


def test_no_target_gives_zero_vector(single_limb_spec, rng) -> None:
    rig = RigBuilder(with_target=False).build(single_limb_spec, rng)
    obs = ob.ObservationAssembler().assemble(rig)
    np.testing.assert_array_equal(obs[ob.TARGET_LOCAL], np.zeros(3, dtype=np.float32))


def test_empty_slots_are_zero_placeholders(single_limb_spec, rng) -> None:
    rig = RigBuilder().build(single_limb_spec, rng)
    obs = ob.ObservationAssembler().assemble(rig)
    np.testing.assert_array_equal(obs[ob.JOINTS][4:], np.zeros(20, dtype=np.float32))


def test_single_limb_end_to_end(single_limb_spec) -> None:
    life = EpisodeLifecycle(CreatureEnvConfig(), generator=FixedGenerator(single_limb_spec))
    life.begin_episode(np.random.default_rng(0))
    assert life.rig.populated_slots == [0, 1]
    assert sum(slot is None for slot in life.rig.joints) == 10

    out = life.step(np.ones(12, dtype=np.float32))
    joints = out.observation[ob.JOINTS]
    assert joints.shape == (24,)
    assert np.count_nonzero(joints[:4]) == 4
    np.testing.assert_array_equal(joints[4:], np.zeros(20, dtype=np.float32))
    assert out.observation.shape == (ob.OBS_DIM,)
