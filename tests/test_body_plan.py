"""Body-plan generation bounds, layout and reproducibility."""

from __future__ import annotations

import numpy as np
import pytest

from creaturerl.envs.body_plan import (
    MAX_JOINTS,
    BipedalPlan,
    BodyPlanGenerator,
    FreeRangingPlan,
    JointCapacityError,
    make_plan,
)

SEEDS = range(200)


def test_free_ranging_torso_within_bounds() -> None:
    gen = BodyPlanGenerator(FreeRangingPlan())
    for seed in SEEDS:
        spec = gen.generate(np.random.default_rng(seed))
        assert 1.0 <= spec.width <= 1.5
        assert 1.5 <= spec.height <= 2.0
        assert 1.0 <= spec.depth <= 1.5


def test_free_ranging_limb_layout() -> None:
    plan = FreeRangingPlan()
    gen = BodyPlanGenerator(plan)
    catalog = [np.asarray(p) for p in plan.ATTACHMENT_CATALOG]
    seen_counts = set()
    for seed in SEEDS:
        spec = gen.generate(np.random.default_rng(seed))
        assert 1 <= len(spec.limbs) <= 4
        seen_counts.add(len(spec.limbs))
        assert spec.joint_count <= MAX_JOINTS
        for i, limb in enumerate(spec.limbs):
            assert limb.chain_length in (2, 3)
            assert limb.joint_base == 3 * i
            unit = np.asarray(limb.attachment) / np.asarray(spec.torso_size)
            assert any(np.allclose(unit, p) for p in catalog)
            assert np.linalg.norm(limb.direction) == pytest.approx(1.0)
    assert seen_counts == {1, 2, 3, 4}


def test_bipedal_torso_respects_floors() -> None:
    gen = BodyPlanGenerator(BipedalPlan())
    for seed in SEEDS:
        spec = gen.generate(np.random.default_rng(seed))
        assert 1.0 <= spec.width <= 2.0
        assert 1.2 <= spec.height <= 3.0
        assert 1.0 <= spec.depth <= 2.0


def test_bipedal_layout_is_symmetric() -> None:
    spec = BodyPlanGenerator(BipedalPlan()).generate(np.random.default_rng(7))
    assert len(spec.limbs) == 4
    assert spec.joint_count == MAX_JOINTS
    assert [limb.joint_base for limb in spec.limbs] == [0, 3, 6, 9]

    left_leg, right_leg, left_arm, right_arm = spec.limbs
    assert left_leg.attachment[0] == pytest.approx(-right_leg.attachment[0])
    assert left_leg.attachment[2] == pytest.approx(-spec.height / 2)
    assert left_arm.attachment[0] == pytest.approx(-right_arm.attachment[0])
    assert left_arm.attachment[2] == pytest.approx(0.0)
    assert all(limb.direction == (0.0, 0.0, -1.0) for limb in spec.limbs)
    assert len({limb.color for limb in spec.limbs}) == 4


def test_bipedal_head_scales_with_width() -> None:
    spec = BodyPlanGenerator(BipedalPlan(include_head=True)).generate(np.random.default_rng(3))
    assert spec.head_size == pytest.approx(0.5 * spec.width)
    assert BodyPlanGenerator(BipedalPlan()).generate(np.random.default_rng(3)).head_size is None


def test_generation_is_reproducible_from_seed() -> None:
    gen = BodyPlanGenerator(FreeRangingPlan())
    a = gen.generate(np.random.default_rng(42))
    b = gen.generate(np.random.default_rng(42))
    assert a == b


def test_given_torso_size_is_kept() -> None:
    spec = BodyPlanGenerator().generate(np.random.default_rng(0), torso_size=(1.0, 1.0, 1.0))
    assert spec.torso_size == (1.0, 1.0, 1.0)


@pytest.mark.parametrize(
    "kwargs",
    [{"limb_count_range": (1, 5)}, {"chain_length_choices": (2, 4)}],
)
def test_bounds_beyond_capacity_are_rejected(kwargs) -> None:
    with pytest.raises(JointCapacityError):
        FreeRangingPlan(**kwargs)


def test_bipedal_chain_beyond_slot_block_rejected() -> None:
    with pytest.raises(JointCapacityError):
        BipedalPlan(chain_length=4)


def test_unknown_plan_name() -> None:
    with pytest.raises(KeyError):
        make_plan("octopus")
