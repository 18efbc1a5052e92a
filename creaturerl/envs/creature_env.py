"""
Gymnasium environment around the episode lifecycle.

- reset(): tear down the previous creature, generate a new body plan, build
  the rig, drop a target near it.
- step(a): a in [-1, 1]^12, one entry per joint slot (empty slots ignored),
  scaled to motor target velocities.
- observation: fixed 41-dim vector, see observation.py.
"""
import dataclasses
from typing import Any, Dict, Optional

import numpy as np
import gymnasium as gym
import mujoco

from .body_plan import MAX_JOINTS
from .config import CreatureEnvConfig
from .lifecycle import EpisodeLifecycle
from .observation import OBS_DIM


class CreatureEnv(gym.Env):
    metadata = {"render_modes": ["human"], "render_fps": 50}

    def __init__(self, config: Optional[CreatureEnvConfig] = None, render_mode: Optional[str] = None,
                 generator=None, ground_query=None, **overrides):
        super().__init__()
        if config is None:
            config = CreatureEnvConfig(**overrides)
        elif overrides:
            config = dataclasses.replace(config, **overrides)
        self.config = config
        self.render_mode = render_mode
        self.lifecycle = EpisodeLifecycle(config, generator=generator, ground_query=ground_query)

        self.action_space = gym.spaces.Box(low=-1.0, high=1.0, shape=(MAX_JOINTS,), dtype=np.float32)
        self.observation_space = gym.spaces.Box(low=-np.inf, high=np.inf, shape=(OBS_DIM,), dtype=np.float32)
        self.metadata = dict(self.metadata, render_fps=int(round(1.0 / (config.timestep * config.frame_skip))))
        self._viewer = None

    @property
    def rig(self):
        return self.lifecycle.rig

    @property
    def dt(self) -> float:
        return self.config.timestep * self.config.frame_skip

    # --------- Gym API ---------
    def reset(self, seed: Optional[int] = None, options: Optional[Dict[str, Any]] = None):
        super().reset(seed=seed)
        self._close_viewer()
        obs = self.lifecycle.begin_episode(self.np_random)
        info = {
            "limb_count": self.rig.limb_count,
            "joint_count": self.rig.joint_count,
            "phase": self.lifecycle.phase.value,
        }
        if self.render_mode == "human":
            self.render()
        return obs, info

    def step(self, action):
        action = np.asarray(action, dtype=np.float32)
        out = self.lifecycle.step(action)
        if self.render_mode == "human":
            self.render()
        return out.observation, float(out.reward), bool(out.done), False, out.info

    def render(self):
        """Passive MuJoCo viewer; a new creature means a new model, so reset reopens it."""
        if self.render_mode != "human" or self.rig is None:
            return
        if self._viewer is None:
            from mujoco import viewer
            self._viewer = viewer.launch_passive(self.rig.sim.model, self.rig.sim.data)
            self._viewer.cam.type = mujoco.mjtCamera.mjCAMERA_TRACKING
            self._viewer.cam.trackbodyid = self.rig.torso_id
            self._viewer.cam.distance = 12.0
        self._viewer.sync()

    def _close_viewer(self):
        if self._viewer is not None:
            self._viewer.close()
            self._viewer = None

    def close(self):
        self._close_viewer()
        self.lifecycle.close()
