"""
Fixed-layout observation vector.

    [0:3]    torso position (world / training-area frame)
    [3:7]    torso orientation quaternion (w, x, y, z)
    [7:10]   torso linear velocity
    [10:13]  torso angular velocity
    [13]     ground clearance along -z, GROUND_RAY_MAX when nothing is hit
    [14:38]  (angle, angular velocity) for joint slots 0..11, zeros for empty slots
    [38:41]  target position in the torso frame, zeros without a target

The length never depends on how many limbs were generated.
"""
from typing import Callable, Optional

import numpy as np

from .body_plan import MAX_JOINTS
from .rig import GROUND_GROUP, Rig

GROUND_RAY_MAX = 10.0

TORSO_POS = slice(0, 3)
TORSO_QUAT = slice(3, 7)
TORSO_LINVEL = slice(7, 10)
TORSO_ANGVEL = slice(10, 13)
GROUND_CLEARANCE = 13
JOINTS = slice(14, 14 + 2 * MAX_JOINTS)
TARGET_LOCAL = slice(JOINTS.stop, JOINTS.stop + 3)
OBS_DIM = TARGET_LOCAL.stop

# (origin, direction, max_distance) -> distance or None
GroundQuery = Callable[[np.ndarray, np.ndarray, float], Optional[float]]


def mujoco_ground_query(rig: Rig) -> GroundQuery:
    """Ray query against the ground geom group only, ignoring the torso itself."""
    def query(origin, direction, max_distance):
        return rig.sim.cast_ray(origin, direction, max_distance,
                                geom_group=GROUND_GROUP, exclude_body=rig.torso_id)
    return query


class ObservationAssembler:
    def __init__(self, ground_ray_max: float = GROUND_RAY_MAX):
        self.ground_ray_max = float(ground_ray_max)

    def ground_clearance(self, rig: Rig, ground_query: Optional[GroundQuery] = None) -> float:
        query = ground_query if ground_query is not None else mujoco_ground_query(rig)
        hit = query(rig.torso_position(), np.array([0.0, 0.0, -1.0]), self.ground_ray_max)
        if hit is None:
            return self.ground_ray_max
        return float(hit)

    def assemble(self, rig: Rig, ground_query: Optional[GroundQuery] = None) -> np.ndarray:
        sim = rig.sim
        obs = np.zeros(OBS_DIM, dtype=np.float32)

        pos = rig.torso_position()
        linvel, angvel = sim.body_velocity(rig.torso_id)
        obs[TORSO_POS] = pos
        obs[TORSO_QUAT] = sim.body_quat(rig.torso_id)
        obs[TORSO_LINVEL] = linvel
        obs[TORSO_ANGVEL] = angvel
        obs[GROUND_CLEARANCE] = self.ground_clearance(rig, ground_query)

        joints = np.zeros(2 * MAX_JOINTS, dtype=np.float32)
        for i in rig.populated_slots:
            joints[2 * i:2 * i + 2] = rig.joint_state(i)
        obs[JOINTS] = joints

        target = rig.target_position()
        if target is not None:
            obs[TARGET_LOCAL] = rig.torso_rotation().T @ (target - pos)
        return obs
