"""
Procedural body-plan generation.

A body plan is pure data: torso extents plus one LimbSpec per limb. Two
generation policies share the same interface:
- FreeRangingPlan: 1-4 limbs drawn from a 12-point attachment catalog on the
  torso surface, chains of 2-3 segments, random hinge axes.
- BipedalPlan: 2 legs + 2 arms laid out symmetrically, 3 segments each, hinge
  axes fixed to x, torso extents floored to stay structurally plausible.

All draws go through the numpy Generator passed in, so a seed reproduces the
whole creature.
"""
from __future__ import annotations

import colorsys
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

MAX_JOINTS = 12
SLOTS_PER_LIMB = 3

Vec3 = Tuple[float, float, float]
RGBA = Tuple[float, float, float, float]


class JointCapacityError(RuntimeError):
    """Generated limbs would not fit the fixed joint-slot array."""


@dataclass(frozen=True)
class LimbSpec:
    attachment: Vec3        # torso-local, already scaled by torso extents
    direction: Vec3         # unit vector the chain grows along
    chain_length: int
    color: RGBA
    joint_base: int

    @property
    def joint_indices(self) -> range:
        return range(self.joint_base, self.joint_base + self.chain_length)


@dataclass(frozen=True)
class CreatureSpec:
    torso_size: Vec3        # width (x), depth (y), height (z)
    limbs: Tuple[LimbSpec, ...]
    head_size: Optional[float] = None

    @property
    def width(self) -> float:
        return self.torso_size[0]

    @property
    def depth(self) -> float:
        return self.torso_size[1]

    @property
    def height(self) -> float:
        return self.torso_size[2]

    @property
    def joint_count(self) -> int:
        return sum(limb.chain_length for limb in self.limbs)


@dataclass(frozen=True)
class SegmentDraw:
    width: float
    length: float
    depth: float
    mass: float


@dataclass(frozen=True)
class MotorDraw:
    target_velocity: float
    force: float


def _unit(v) -> Vec3:
    v = np.asarray(v, dtype=np.float64)
    n = np.linalg.norm(v)
    if n < 1e-9:
        return (0.0, 0.0, -1.0)
    return tuple(float(x) for x in v / n)


def random_color(rng: np.random.Generator) -> RGBA:
    r, g, b = colorsys.hsv_to_rgb(rng.uniform(0.0, 1.0), rng.uniform(0.0, 1.0), rng.uniform(0.0, 1.0))
    return (float(r), float(g), float(b), 1.0)


def random_unit_vector(rng: np.random.Generator) -> Vec3:
    return _unit(rng.normal(size=3))


def check_capacity(max_limbs: int, max_chain_length: int, capacity: int = MAX_JOINTS) -> None:
    if max_chain_length > SLOTS_PER_LIMB:
        raise JointCapacityError(
            f"chain length {max_chain_length} exceeds {SLOTS_PER_LIMB} slots reserved per limb")
    if max_limbs * SLOTS_PER_LIMB > capacity:
        raise JointCapacityError(
            f"{max_limbs} limbs x {SLOTS_PER_LIMB} slots exceeds joint capacity {capacity}")


class FreeRangingPlan:
    """Random limb count, catalog attachment points, random hinge axes."""

    name = "free"
    freeze_torso_rotation = True

    # Candidate points on the unit torso surface (x=width, y=depth, z=height).
    ATTACHMENT_CATALOG: Tuple[Vec3, ...] = (
        (-0.5, 0.0, 0.5), (0.5, 0.0, 0.5),
        (0.0, -0.5, 0.5), (0.0, 0.5, 0.5),
        (-0.5, -0.5, 0.0), (0.5, -0.5, 0.0),
        (-0.5, 0.5, 0.0), (0.5, 0.5, 0.0),
        (-0.5, 0.0, -0.5), (0.5, 0.0, -0.5),
        (0.0, -0.5, -0.5), (0.0, 0.5, -0.5),
    )

    def __init__(self,
                 width_range=(1.0, 1.5), height_range=(1.5, 2.0), depth_range=(1.0, 1.5),
                 limb_count_range=(1, 4), chain_length_choices: Sequence[int] = (2, 3),
                 segment_width_range=(0.3, 0.7), segment_length_range=(0.5, 1.0),
                 segment_depth_range=(0.3, 0.7), segment_mass_range=(0.5, 2.0),
                 velocity_scale: float = 50.0, drive_force: float = 1000.0):
        self.width_range = tuple(width_range)
        self.height_range = tuple(height_range)
        self.depth_range = tuple(depth_range)
        self.limb_count_range = tuple(limb_count_range)
        self.chain_length_choices = tuple(chain_length_choices)
        self.segment_width_range = tuple(segment_width_range)
        self.segment_length_range = tuple(segment_length_range)
        self.segment_depth_range = tuple(segment_depth_range)
        self.segment_mass_range = tuple(segment_mass_range)
        self.velocity_scale = float(velocity_scale)
        self.drive_force = float(drive_force)
        check_capacity(self.limb_count_range[1], max(self.chain_length_choices))

    def sample_torso(self, rng: np.random.Generator) -> Vec3:
        w = rng.uniform(*self.width_range)
        h = rng.uniform(*self.height_range)
        d = rng.uniform(*self.depth_range)
        return (float(w), float(d), float(h))

    def sample_limbs(self, rng: np.random.Generator, torso_size: Vec3) -> Tuple[LimbSpec, ...]:
        lo, hi = self.limb_count_range
        count = int(rng.integers(lo, hi + 1))
        scale = np.asarray(torso_size)
        limbs = []
        for i in range(count):
            point = np.asarray(self.ATTACHMENT_CATALOG[int(rng.integers(len(self.ATTACHMENT_CATALOG)))])
            limbs.append(LimbSpec(
                attachment=tuple(float(x) for x in point * scale),
                direction=_unit(point),
                chain_length=int(rng.choice(self.chain_length_choices)),
                color=random_color(rng),
                joint_base=i * SLOTS_PER_LIMB,
            ))
        return tuple(limbs)

    def sample_head(self, rng: np.random.Generator, torso_size: Vec3) -> Optional[float]:
        return None

    def sample_segment(self, rng: np.random.Generator, limb: LimbSpec, position: int) -> SegmentDraw:
        return SegmentDraw(
            width=float(rng.uniform(*self.segment_width_range)),
            length=float(rng.uniform(*self.segment_length_range)),
            depth=float(rng.uniform(*self.segment_depth_range)),
            mass=float(rng.uniform(*self.segment_mass_range)),
        )

    def joint_axis(self, rng: np.random.Generator) -> Vec3:
        return random_unit_vector(rng)

    def sample_motor(self, rng: np.random.Generator) -> MotorDraw:
        # pre-generated normalized input, scaled the same way as a policy action
        return MotorDraw(float(rng.uniform(-1.0, 1.0)) * self.velocity_scale, self.drive_force)


class BipedalPlan:
    """Two legs and two arms, symmetric, fixed hinge axis, floored torso."""

    name = "bipedal"
    freeze_torso_rotation = False
    LIMB_COLORS: Tuple[RGBA, ...] = (
        (1.0, 0.0, 0.0, 1.0), (0.0, 1.0, 0.0, 1.0),
        (0.0, 0.0, 1.0, 1.0), (1.0, 0.92, 0.016, 1.0),
    )

    def __init__(self,
                 width_range=(0.5, 2.0), height_range=(1.0, 3.0), depth_range=(0.5, 2.0),
                 width_floor: float = 1.0, height_floor: float = 1.2, depth_floor: float = 1.0,
                 chain_length: int = 3,
                 segment_width_range=(0.3, 0.6), segment_length_range=(1.0, 2.0),
                 segment_depth_range=(0.3, 0.6), segment_mass: float = 1.0,
                 velocity_range=(-100.0, 100.0), force_range=(200.0, 400.0),
                 include_head: bool = False):
        self.width_range = tuple(width_range)
        self.height_range = tuple(height_range)
        self.depth_range = tuple(depth_range)
        self.width_floor = float(width_floor)
        self.height_floor = float(height_floor)
        self.depth_floor = float(depth_floor)
        self.chain_length = int(chain_length)
        self.segment_width_range = tuple(segment_width_range)
        self.segment_length_range = tuple(segment_length_range)
        self.segment_depth_range = tuple(segment_depth_range)
        self.segment_mass = float(segment_mass)
        self.velocity_range = tuple(velocity_range)
        self.force_range = tuple(force_range)
        self.include_head = bool(include_head)
        check_capacity(4, self.chain_length)

    def sample_torso(self, rng: np.random.Generator) -> Vec3:
        w = max(rng.uniform(*self.width_range), self.width_floor)
        h = max(rng.uniform(*self.height_range), self.height_floor)
        d = max(rng.uniform(*self.depth_range), self.depth_floor)
        return (float(w), float(d), float(h))

    def sample_limbs(self, rng: np.random.Generator, torso_size: Vec3) -> Tuple[LimbSpec, ...]:
        w, d, h = torso_size
        down = (0.0, 0.0, -1.0)
        limbs = []
        # legs first, then arms; left (-x) before right (+x)
        for k, is_leg in enumerate((True, True, False, False)):
            side = -1.0 if k % 2 == 0 else 1.0
            if is_leg:
                attachment = (side * w / 2, 0.0, -h / 2)
            else:
                attachment = (side * w / 2, side * d / 2, 0.0)
            limbs.append(LimbSpec(
                attachment=attachment,
                direction=down,
                chain_length=self.chain_length,
                color=self.LIMB_COLORS[k],
                joint_base=k * SLOTS_PER_LIMB,
            ))
        return tuple(limbs)

    def sample_head(self, rng: np.random.Generator, torso_size: Vec3) -> Optional[float]:
        return 0.5 * torso_size[0] if self.include_head else None

    def sample_segment(self, rng: np.random.Generator, limb: LimbSpec, position: int) -> SegmentDraw:
        return SegmentDraw(
            width=float(rng.uniform(*self.segment_width_range)),
            length=float(rng.uniform(*self.segment_length_range)),
            depth=float(rng.uniform(*self.segment_depth_range)),
            mass=self.segment_mass,
        )

    def joint_axis(self, rng: np.random.Generator) -> Vec3:
        return (1.0, 0.0, 0.0)

    def sample_motor(self, rng: np.random.Generator) -> MotorDraw:
        return MotorDraw(float(rng.uniform(*self.velocity_range)), float(rng.uniform(*self.force_range)))


PLANS = {FreeRangingPlan.name: FreeRangingPlan, BipedalPlan.name: BipedalPlan}


def make_plan(name: str, **kwargs):
    try:
        return PLANS[name](**kwargs)
    except KeyError:
        raise KeyError(f"Unknown body plan '{name}'. Choose from {sorted(PLANS)}") from None


class BodyPlanGenerator:
    """Turns a generation policy and a random source into CreatureSpecs."""

    def __init__(self, plan=None):
        self.plan = plan if plan is not None else FreeRangingPlan()

    def generate(self, rng: np.random.Generator, torso_size: Optional[Vec3] = None) -> CreatureSpec:
        if torso_size is None:
            torso_size = self.plan.sample_torso(rng)
        limbs = self.plan.sample_limbs(rng, torso_size)
        spec = CreatureSpec(torso_size=tuple(torso_size), limbs=limbs,
                            head_size=self.plan.sample_head(rng, torso_size))
        if spec.joint_count > MAX_JOINTS:
            raise JointCapacityError(f"plan produced {spec.joint_count} joints (> {MAX_JOINTS})")
        return spec
