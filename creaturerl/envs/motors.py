"""Per-slot motor targets: drawn once per episode, or overwritten from actions."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List

import numpy as np

from .body_plan import MAX_JOINTS


@dataclass
class MotorConfig:
    target_velocity: float = 0.0
    force: float = 0.0
    free_spin: bool = False

    def force_range(self):
        """(lo, hi) actuator force limits; a free-spinning motor never brakes."""
        f = abs(float(self.force))
        if not self.free_spin:
            return -f, f
        return (0.0, f) if self.target_velocity >= 0.0 else (-f, 0.0)


class MotorParameterSource:
    def __init__(self, num_slots: int = MAX_JOINTS, velocity_scale: float = 50.0,
                 drive_force: float = 1000.0, free_spin: bool = False):
        self.num_slots = int(num_slots)
        self.velocity_scale = float(velocity_scale)
        self.drive_force = float(drive_force)
        self.free_spin = bool(free_spin)
        self._configs: List[MotorConfig] = [MotorConfig(free_spin=self.free_spin) for _ in range(self.num_slots)]

    def regenerate(self, rng: np.random.Generator, plan) -> None:
        """Fresh random draw for every slot, whether or not a joint will use it."""
        for i in range(self.num_slots):
            draw = plan.sample_motor(rng)
            self._configs[i] = MotorConfig(draw.target_velocity, draw.force, self.free_spin)

    def apply_action(self, action) -> None:
        action = np.asarray(action, dtype=np.float64).reshape(-1)
        if action.shape[0] != self.num_slots:
            raise ValueError(f"Expected action of length {self.num_slots}, got {action.shape[0]}")
        for i, a in enumerate(action):
            self._configs[i] = MotorConfig(float(a) * self.velocity_scale, self.drive_force, self.free_spin)

    def __getitem__(self, index: int) -> MotorConfig:
        return self._configs[index]

    def __len__(self) -> int:
        return self.num_slots

    def __iter__(self) -> Iterator[MotorConfig]:
        return iter(self._configs)
