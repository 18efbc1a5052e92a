"""
Thin layer over a MuJoCo model/data pair: stepping, pose and velocity queries,
and the downward ground ray.
"""
from typing import Optional, Tuple

import numpy as np
import mujoco


class Simulation:
    def __init__(self, model: mujoco.MjModel, frame_skip: int = 1):
        self.model = model
        self.data = mujoco.MjData(model)
        self.frame_skip = int(frame_skip)
        mujoco.mj_forward(self.model, self.data)

    @classmethod
    def from_xml_string(cls, xml: str, frame_skip: int = 1) -> "Simulation":
        return cls(mujoco.MjModel.from_xml_string(xml), frame_skip=frame_skip)

    @property
    def dt(self) -> float:
        return float(self.model.opt.timestep) * self.frame_skip

    @property
    def time(self) -> float:
        return float(self.data.time)

    def advance(self) -> None:
        for _ in range(max(1, self.frame_skip)):
            mujoco.mj_step(self.model, self.data)
        mujoco.mj_forward(self.model, self.data)

    def forward(self) -> None:
        mujoco.mj_forward(self.model, self.data)

    def name2id(self, obj: mujoco.mjtObj, name: str) -> int:
        oid = mujoco.mj_name2id(self.model, obj, name)
        if oid < 0:
            raise KeyError(f"No {obj.name} named '{name}' in model")
        return oid

    # --------- Queries ---------
    def body_position(self, bid: int) -> np.ndarray:
        return self.data.xpos[bid].copy()

    def body_quat(self, bid: int) -> np.ndarray:
        return self.data.xquat[bid].copy()   # (w, x, y, z)

    def body_rotation(self, bid: int) -> np.ndarray:
        return self.data.xmat[bid].reshape(3, 3).copy()   # body->world

    def body_velocity(self, bid: int) -> Tuple[np.ndarray, np.ndarray]:
        """(linear, angular) velocity of the body frame, world coordinates."""
        res = np.zeros(6, dtype=np.float64)
        mujoco.mj_objectVelocity(self.model, self.data, mujoco.mjtObj.mjOBJ_BODY, bid, res, 0)
        return res[3:].copy(), res[:3].copy()

    def cast_ray(self, origin, direction, max_distance: float,
                 geom_group: Optional[int] = None, exclude_body: int = -1) -> Optional[float]:
        """Distance to the first geom hit along `direction`, or None past `max_distance`."""
        pnt = np.asarray(origin, dtype=np.float64).reshape(3)
        vec = np.asarray(direction, dtype=np.float64).reshape(3)
        vec = vec / np.linalg.norm(vec)
        groups = None
        if geom_group is not None:
            groups = np.zeros(mujoco.mjNGROUP, dtype=np.uint8)
            groups[geom_group] = 1
        geomid = np.full(1, -1, dtype=np.int32)
        dist = mujoco.mj_ray(self.model, self.data, pnt, vec, groups, 1, exclude_body, geomid)
        if dist < 0.0 or dist > max_distance:
            return None
        return float(dist)
