"""
Episode lifecycle:

    IDLE ──begin_episode──> GENERATING ──(rig + target ready)──> ACTIVE
    ACTIVE ──done / end_episode──> TERMINATING ──begin_episode──> GENERATING ...

The lifecycle exclusively owns the rig: begin_episode tears the previous one
down completely before a new body plan is generated and built.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import numpy as np

from .body_plan import BodyPlanGenerator
from .config import CreatureEnvConfig
from .controller import CONTROLLERS
from .motors import MotorParameterSource
from .observation import GroundQuery, ObservationAssembler
from .rig import Rig, RigBuilder

log = logging.getLogger(__name__)


class EpisodePhase(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    ACTIVE = "active"
    TERMINATING = "terminating"


class LifecycleError(RuntimeError):
    """Operation not allowed in the current episode phase."""


@dataclass(frozen=True)
class StepOutcome:
    observation: np.ndarray
    reward: float
    done: bool
    info: Dict[str, Any] = field(default_factory=dict)


def sample_target_offset(rng: np.random.Generator, radius: float, height: float) -> np.ndarray:
    """Uniform point in a horizontal disc of `radius`, lifted by `height`."""
    r = radius * np.sqrt(rng.uniform(0.0, 1.0))
    theta = rng.uniform(0.0, 2.0 * np.pi)
    return np.array([r * np.cos(theta), r * np.sin(theta), height], dtype=np.float64)


class EpisodeLifecycle:
    def __init__(self, config: Optional[CreatureEnvConfig] = None,
                 generator: Optional[BodyPlanGenerator] = None,
                 builder: Optional[RigBuilder] = None,
                 ground_query: Optional[GroundQuery] = None):
        self.config = config or CreatureEnvConfig()
        cfg = self.config
        self.plan = cfg.make_plan()
        self.generator = generator or BodyPlanGenerator(self.plan)
        self.builder = builder or RigBuilder(
            plan=self.plan,
            spawn_height=cfg.spawn_height,
            torso_mass=cfg.torso_mass,
            friction=cfg.friction,
            timestep=cfg.timestep,
            frame_skip=cfg.frame_skip,
            motor_gain=cfg.motor_gain,
            joint_damping=cfg.joint_damping,
            joint_armature=cfg.joint_armature,
            self_collision=cfg.self_collision,
            with_target=cfg.spawn_target,
        )
        self.motors = MotorParameterSource(velocity_scale=cfg.velocity_scale,
                                           drive_force=cfg.drive_force, free_spin=cfg.free_spin)
        self.assembler = ObservationAssembler(cfg.ground_ray_max)
        self.ground_query = ground_query
        self.controller_cls = CONTROLLERS[cfg.control_mode]

        self.phase = EpisodePhase.IDLE
        self.rig: Optional[Rig] = None
        self.controller = None
        self.episode = 0
        self.steps = 0
        self.episode_return = 0.0
        self.captures = 0
        self._rng: Optional[np.random.Generator] = None
        self._torso_size = None

    # --------- Transitions ---------
    def begin_episode(self, rng: np.random.Generator) -> np.ndarray:
        """Any phase -> GENERATING -> ACTIVE. Returns the first observation."""
        if self.phase == EpisodePhase.ACTIVE:
            self.end_episode()
        self.phase = EpisodePhase.GENERATING
        self._teardown()
        self._rng = rng

        self.motors.regenerate(rng, self.plan)
        keep = None if self.config.regenerate_torso else self._torso_size
        spec = self.generator.generate(rng, torso_size=keep)
        self._torso_size = spec.torso_size
        self.rig = self.builder.build(spec, rng, self.motors)
        self.spawn_target()
        self.controller = self.controller_cls(self.rig, self.motors, self.config.reward)

        self.episode += 1
        self.steps = 0
        self.episode_return = 0.0
        self.captures = 0
        self.phase = EpisodePhase.ACTIVE
        log.debug("episode %d: %d limbs, %d joints", self.episode, self.rig.limb_count, self.rig.joint_count)
        return self.observe()

    def end_episode(self) -> Dict[str, Any]:
        """External episode end (step budget, harness request). ACTIVE -> TERMINATING."""
        if self.phase == EpisodePhase.IDLE:
            raise LifecycleError("No episode has been started")
        if self.phase == EpisodePhase.ACTIVE:
            self.phase = EpisodePhase.TERMINATING
        return self.summary()

    def step(self, action) -> StepOutcome:
        if self.phase != EpisodePhase.ACTIVE:
            raise LifecycleError(f"step() requires an active episode (phase is '{self.phase.value}')")
        result = self.controller.step(action)
        if result.respawn_target:
            self.captures += 1
            self.spawn_target()
        self.steps += 1
        self.episode_return += result.reward
        obs = self.observe()

        info = {
            "distance_to_target": result.distance,
            "captured": result.respawn_target,
            "limb_count": self.rig.limb_count,
            "joint_count": self.rig.joint_count,
        }
        if result.done:
            self.phase = EpisodePhase.TERMINATING
            info.update(self.summary())
        info["phase"] = self.phase.value
        return StepOutcome(obs, result.reward, result.done, info)

    # --------- Helpers ---------
    def spawn_target(self) -> None:
        if self.rig is None or not self.rig.has_target:
            return
        offset = sample_target_offset(self._rng, self.config.target_radius, self.config.target_height)
        self.rig.place_target(self.rig.torso_position() + offset)
        log.debug("target placed at %s", np.round(self.rig.target_position(), 3))

    def observe(self) -> np.ndarray:
        if self.rig is None:
            raise LifecycleError("No rig to observe; call begin_episode first")
        return self.assembler.assemble(self.rig, self.ground_query)

    def summary(self) -> Dict[str, Any]:
        return {
            "episode": self.episode,
            "episode_steps": self.steps,
            "episode_return": self.episode_return,
            "captures": self.captures,
        }

    def _teardown(self) -> None:
        if self.rig is not None:
            self.rig.destroy()
        self.rig = None
        self.controller = None

    def close(self) -> None:
        self._teardown()
        self.phase = EpisodePhase.IDLE
