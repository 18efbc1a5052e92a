"""Environment configuration: dataclasses, optionally loaded from configs/*.json."""
from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Tuple

from .body_plan import PLANS, make_plan
from .controller import CONTROLLERS
from .reward import RewardConfig


@dataclass
class CreatureEnvConfig:
    variant: str = "free"
    """body plan: 'free' (1-4 random limbs) or 'bipedal' (2 legs + 2 arms)"""
    control_mode: str = "policy"
    """'policy' drives motors from actions and scores reward; 'static' keeps build-time motors"""
    spawn_target: bool = True
    regenerate_torso: bool = True
    """if False, the torso drawn in the first episode is kept for all later episodes"""
    include_head: bool = False

    # Physics
    spawn_height: float = 5.0
    torso_mass: float = 1.0
    friction: Tuple[float, float, float] = (1.0, 0.005, 0.0001)
    timestep: float = 0.002
    frame_skip: int = 10
    joint_damping: float = 0.5
    joint_armature: float = 0.01
    self_collision: bool = False

    # Motors
    motor_gain: float = 10.0
    velocity_scale: float = 50.0
    drive_force: float = 1000.0
    free_spin: bool = False

    # Sensing / target
    ground_ray_max: float = 10.0
    target_radius: float = 5.0
    target_height: float = 3.0

    reward: RewardConfig = field(default_factory=RewardConfig)

    def __post_init__(self):
        if self.control_mode not in CONTROLLERS:
            raise ValueError(f"control_mode must be one of {sorted(CONTROLLERS)}, got '{self.control_mode}'")
        if self.variant not in PLANS:
            raise ValueError(f"variant must be one of {sorted(PLANS)}, got '{self.variant}'")
        if self.frame_skip < 1:
            raise ValueError(f"frame_skip must be >= 1, got {self.frame_skip}")
        if self.timestep <= 0.0:
            raise ValueError(f"timestep must be positive, got {self.timestep}")
        if self.ground_ray_max <= 0.0:
            raise ValueError(f"ground_ray_max must be positive, got {self.ground_ray_max}")
        if self.target_radius < 0.0:
            raise ValueError(f"target_radius must be >= 0, got {self.target_radius}")
        self.friction = tuple(float(x) for x in self.friction)
        if isinstance(self.reward, dict):
            self.reward = RewardConfig(**self.reward)

    def make_plan(self):
        if self.variant == "free":
            return make_plan("free", velocity_scale=self.velocity_scale, drive_force=self.drive_force)
        if self.variant == "bipedal":
            return make_plan("bipedal", include_head=self.include_head)
        return make_plan(self.variant)

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> "CreatureEnvConfig":
        envp = dict(params.get("environment_params", {}))
        rew = dict(params.get("reward_params", {}))
        known = {f.name for f in fields(cls)} - {"reward"}
        unknown = set(envp) - known
        if unknown:
            raise KeyError(f"Unknown environment_params keys: {sorted(unknown)}")
        reward_known = {f.name for f in fields(RewardConfig)}
        unknown = set(rew) - reward_known
        if unknown:
            raise KeyError(f"Unknown reward_params keys: {sorted(unknown)}")
        return cls(reward=RewardConfig(**rew), **envp)

    @classmethod
    def from_json(cls, path: str) -> "CreatureEnvConfig":
        with open(path, "r") as f:
            return cls.from_dict(json.load(f))
