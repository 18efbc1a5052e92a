from __future__ import annotations

import numpy as np
import pytest

from creaturerl.envs.body_plan import BodyPlanGenerator, CreatureSpec, LimbSpec


class FixedGenerator:
    """Always returns the same body plan."""

    def __init__(self, spec: CreatureSpec):
        self.spec = spec

    def generate(self, rng, torso_size=None) -> CreatureSpec:
        return self.spec


class RecordingGenerator(BodyPlanGenerator):
    """Real generator that remembers every spec it produced."""

    def __init__(self, plan=None):
        super().__init__(plan)
        self.specs = []

    def generate(self, rng, torso_size=None) -> CreatureSpec:
        spec = super().generate(rng, torso_size=torso_size)
        self.specs.append(spec)
        return spec


def make_limb(joint_base: int, chain_length: int = 2, attachment=(0.0, 0.0, -0.5),
              direction=(0.0, 0.0, -1.0)) -> LimbSpec:
    return LimbSpec(attachment=attachment, direction=direction, chain_length=chain_length,
                    color=(1.0, 0.0, 0.0, 1.0), joint_base=joint_base)


@pytest.fixture()
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture()
def single_limb_spec() -> CreatureSpec:
    return CreatureSpec(torso_size=(1.0, 1.0, 1.0), limbs=(make_limb(0, 2),))


@pytest.fixture()
def four_limb_spec() -> CreatureSpec:
    limbs = (
        make_limb(0, 3, attachment=(-0.5, 0.0, -0.5), direction=(-0.707, 0.0, -0.707)),
        make_limb(3, 3, attachment=(0.5, 0.0, -0.5), direction=(0.707, 0.0, -0.707)),
        make_limb(6, 3, attachment=(0.0, -0.5, -0.5), direction=(0.0, -0.707, -0.707)),
        make_limb(9, 3, attachment=(0.0, 0.5, -0.5), direction=(0.0, 0.707, -0.707)),
    )
    return CreatureSpec(torso_size=(1.0, 1.0, 1.0), limbs=limbs)
