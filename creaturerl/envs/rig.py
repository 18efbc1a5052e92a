"""
Rig construction: CreatureSpec -> MJCF -> compiled MuJoCo model.

Body tree (every segment is its own body, nested under its parent):

    world
    ├── ground (plane, GROUND_GROUP)
    ├── torso  (3 slide joints when rotation is frozen, else a free joint)
    │   ├── head (welded, optional)
    │   └── limb{i}_seg0 ── hinge joint_{base+0}
    │       └── limb{i}_seg1 ── hinge joint_{base+1}
    │           └── ...
    └── target (free joint, TARGET_GROUP, optional)

Each hinge sits at the proximal end of its segment and is driven by a velocity
actuator: ctrl is the target velocity, actuator_forcerange the driving force.
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
import mujoco

from .body_plan import MAX_JOINTS, SLOTS_PER_LIMB, CreatureSpec, FreeRangingPlan, JointCapacityError
from .motors import MotorConfig, MotorParameterSource
from .physics import Simulation

log = logging.getLogger(__name__)

CREATURE_GROUP = 0
TARGET_GROUP = 1
GROUND_GROUP = 3

TORSO_RGBA = (0.8, 0.8, 0.8, 1.0)
HEAD_RGBA = (0.9, 0.75, 0.6, 1.0)
TARGET_RGBA = (1.0, 0.5, 0.0, 1.0)


def _fmt(values) -> str:
    return " ".join(f"{float(v):.6g}" for v in values)


@dataclass(frozen=True)
class JointSlot:
    index: int
    name: str
    joint_id: int
    body_id: int
    parent_body_id: int
    qpos_adr: int
    dof_adr: int
    actuator_id: int


class Rig:
    """One instantiated creature: the compiled world plus its joint-slot array."""

    def __init__(self, sim: Simulation, joints: Sequence[Optional[JointSlot]], torso_id: int,
                 segment_ids: Sequence[int], limb_count: int,
                 target_id: Optional[int] = None, head_id: Optional[int] = None):
        if len(joints) != MAX_JOINTS:
            raise JointCapacityError(f"joint array must have {MAX_JOINTS} slots, got {len(joints)}")
        self.sim = sim
        self.joints: List[Optional[JointSlot]] = list(joints)
        self.torso_id = torso_id
        self.segment_ids = list(segment_ids)
        self.limb_count = limb_count
        self.target_id = target_id
        self.head_id = head_id
        self.destroyed = False

    # --------- Structure ---------
    @property
    def populated_slots(self) -> List[int]:
        return [i for i, slot in enumerate(self.joints) if slot is not None]

    @property
    def joint_count(self) -> int:
        return len(self.populated_slots)

    @property
    def has_target(self) -> bool:
        return self.target_id is not None

    # --------- State ---------
    def torso_position(self) -> np.ndarray:
        return self.sim.body_position(self.torso_id)

    def torso_rotation(self) -> np.ndarray:
        return self.sim.body_rotation(self.torso_id)

    def target_position(self) -> Optional[np.ndarray]:
        if self.target_id is None:
            return None
        return self.sim.body_position(self.target_id)

    def joint_state(self, index: int) -> Tuple[float, float]:
        slot = self.joints[index]
        if slot is None:
            return 0.0, 0.0
        d = self.sim.data
        return float(d.qpos[slot.qpos_adr]), float(d.qvel[slot.dof_adr])

    # --------- Mutation ---------
    def set_motor(self, index: int, motor: MotorConfig) -> None:
        slot = self.joints[index]
        if slot is None:
            return
        self.sim.data.ctrl[slot.actuator_id] = motor.target_velocity
        self.sim.model.actuator_forcerange[slot.actuator_id] = motor.force_range()

    def apply_motors(self, motors: MotorParameterSource) -> None:
        for i in self.populated_slots:
            self.set_motor(i, motors[i])

    def place_target(self, position) -> None:
        if self.target_id is None:
            return
        m, d = self.sim.model, self.sim.data
        jid = m.body_jntadr[self.target_id]
        qadr, vadr = m.jnt_qposadr[jid], m.jnt_dofadr[jid]
        d.qpos[qadr:qadr + 3] = np.asarray(position, dtype=np.float64)
        d.qpos[qadr + 3:qadr + 7] = (1.0, 0.0, 0.0, 0.0)
        d.qvel[vadr:vadr + 6] = 0.0
        self.sim.forward()

    def destroy(self) -> None:
        """Drop the compiled world; the rig is unusable afterwards."""
        self.joints = [None] * MAX_JOINTS
        self.segment_ids = []
        self.target_id = None
        self.head_id = None
        self.sim = None
        self.destroyed = True


class RigBuilder:
    def __init__(self, plan=None, spawn_height: float = 5.0, torso_mass: float = 1.0,
                 friction=(1.0, 0.005, 0.0001), timestep: float = 0.002, frame_skip: int = 10,
                 motor_gain: float = 10.0, joint_damping: float = 0.5, joint_armature: float = 0.01,
                 self_collision: bool = False, with_target: bool = True,
                 target_size: float = 1.0, target_mass: float = 1.0, ground_size: float = 50.0):
        self.plan = plan if plan is not None else FreeRangingPlan()
        self.spawn_height = float(spawn_height)
        self.torso_mass = float(torso_mass)
        self.friction = tuple(friction)
        self.timestep = float(timestep)
        self.frame_skip = int(frame_skip)
        self.motor_gain = float(motor_gain)
        self.joint_damping = float(joint_damping)
        self.joint_armature = float(joint_armature)
        self.self_collision = bool(self_collision)
        self.with_target = bool(with_target)
        self.target_size = float(target_size)
        self.target_mass = float(target_mass)
        self.ground_size = float(ground_size)

    # --------- MJCF ---------
    def to_mjcf(self, spec: CreatureSpec, rng: np.random.Generator,
                motors: Optional[MotorParameterSource] = None) -> Tuple[str, List[int]]:
        """Returns the MJCF text and the joint-slot indices it populates."""
        w, d, h = spec.torso_size

        root = ET.Element("mujoco", model="creature")
        ET.SubElement(root, "compiler", angle="radian")
        ET.SubElement(root, "option", timestep=f"{self.timestep:.6g}", gravity="0 0 -9.81",
                      integrator="implicitfast")

        default = ET.SubElement(root, "default")
        ET.SubElement(default, "joint", damping=f"{self.joint_damping:.6g}",
                      armature=f"{self.joint_armature:.6g}")
        creature_cls = ET.SubElement(default, "default", {"class": "creature"})
        # bit 1 = world objects, bit 2 = creature; creature only sees itself with self_collision
        ET.SubElement(creature_cls, "geom", type="box", friction=_fmt(self.friction),
                      contype="2", conaffinity="3" if self.self_collision else "1",
                      group=str(CREATURE_GROUP))

        worldbody = ET.SubElement(root, "worldbody")
        ET.SubElement(worldbody, "light", pos="0 0 20", dir="0 0 -1", directional="true")
        ET.SubElement(worldbody, "geom", name="ground", type="plane",
                      size=_fmt((self.ground_size, self.ground_size, 0.1)),
                      friction=_fmt(self.friction), contype="1", conaffinity="2",
                      group=str(GROUND_GROUP), rgba="0.3 0.35 0.3 1")

        torso = ET.SubElement(worldbody, "body", name="torso",
                              pos=_fmt((0.0, 0.0, self.spawn_height + h / 2)))
        if self.plan.freeze_torso_rotation:
            for name, axis in (("x", "1 0 0"), ("y", "0 1 0"), ("z", "0 0 1")):
                ET.SubElement(torso, "joint", name=f"torso_slide_{name}", type="slide", axis=axis,
                              damping="0", armature="0")
        else:
            ET.SubElement(torso, "freejoint", name="torso_free")
        ET.SubElement(torso, "geom", {"class": "creature"}, name="torso_geom",
                      size=_fmt((w / 2, d / 2, h / 2)), mass=f"{self.torso_mass:.6g}",
                      rgba=_fmt(TORSO_RGBA))

        if spec.head_size is not None:
            s = spec.head_size
            head = ET.SubElement(torso, "body", name="head", pos=_fmt((0.0, 0.0, h / 2 + s / 2)))
            ET.SubElement(head, "geom", {"class": "creature"}, name="head_geom",
                          size=_fmt((s / 2, s / 2, s / 2)), mass="1", rgba=_fmt(HEAD_RGBA))

        actuator = ET.SubElement(root, "actuator")
        used: List[int] = []
        for li, limb in enumerate(spec.limbs):
            parent = torso
            offset = np.asarray(limb.attachment, dtype=np.float64)
            direction = np.asarray(limb.direction, dtype=np.float64)
            for j in range(limb.chain_length):
                index = limb.joint_base + j
                if j >= SLOTS_PER_LIMB or index >= MAX_JOINTS or index in used:
                    raise JointCapacityError(
                        f"limb {li} segment {j} maps to joint slot {index}, outside its "
                        f"{SLOTS_PER_LIMB}-slot block of the {MAX_JOINTS}-slot array")
                seg = self.plan.sample_segment(rng, limb, j)
                axis = self.plan.joint_axis(rng)
                body = ET.SubElement(parent, "body", name=f"limb{li}_seg{j}", pos=_fmt(offset))
                ET.SubElement(body, "joint", name=f"joint_{index}", type="hinge",
                              pos="0 0 0", axis=_fmt(axis))
                ET.SubElement(body, "geom", {"class": "creature"}, name=f"limb{li}_seg{j}_geom",
                              pos=_fmt(direction * seg.length / 2), zaxis=_fmt(direction),
                              size=_fmt((seg.width / 2, seg.depth / 2, seg.length / 2)),
                              mass=f"{seg.mass:.6g}", rgba=_fmt(limb.color))
                motor = motors[index] if motors is not None else MotorConfig()
                lo, hi = motor.force_range()
                ET.SubElement(actuator, "velocity", name=f"motor_{index}", joint=f"joint_{index}",
                              kv=f"{self.motor_gain:.6g}", forcelimited="true",
                              forcerange=_fmt((lo, hi) if hi > lo else (-1.0, 1.0)))
                used.append(index)
                parent = body
                offset = direction * seg.length

        if self.with_target:
            half = self.target_size / 2
            target = ET.SubElement(worldbody, "body", name="target",
                                   pos=_fmt((0.0, 0.0, self.spawn_height + h + half)))
            ET.SubElement(target, "freejoint", name="target_free")
            ET.SubElement(target, "geom", name="target_geom", type="box", size=_fmt((half, half, half)),
                          mass=f"{self.target_mass:.6g}", friction=_fmt(self.friction),
                          contype="1", conaffinity="3", group=str(TARGET_GROUP), rgba=_fmt(TARGET_RGBA))

        if not used:
            # MJCF rejects an empty <actuator> block in some versions
            root.remove(actuator)
        return ET.tostring(root, encoding="unicode"), used

    # --------- Build ---------
    def build(self, spec: CreatureSpec, rng: np.random.Generator,
              motors: Optional[MotorParameterSource] = None) -> Rig:
        xml, used = self.to_mjcf(spec, rng, motors)
        sim = Simulation.from_xml_string(xml, frame_skip=self.frame_skip)
        m = sim.model

        joints: List[Optional[JointSlot]] = [None] * MAX_JOINTS
        for index in used:
            jid = sim.name2id(mujoco.mjtObj.mjOBJ_JOINT, f"joint_{index}")
            bid = int(m.jnt_bodyid[jid])
            joints[index] = JointSlot(
                index=index,
                name=f"joint_{index}",
                joint_id=jid,
                body_id=bid,
                parent_body_id=int(m.body_parentid[bid]),
                qpos_adr=int(m.jnt_qposadr[jid]),
                dof_adr=int(m.jnt_dofadr[jid]),
                actuator_id=sim.name2id(mujoco.mjtObj.mjOBJ_ACTUATOR, f"motor_{index}"),
            )

        segment_ids = [sim.name2id(mujoco.mjtObj.mjOBJ_BODY, f"limb{li}_seg{j}")
                       for li, limb in enumerate(spec.limbs) for j in range(limb.chain_length)]
        rig = Rig(
            sim,
            joints,
            torso_id=sim.name2id(mujoco.mjtObj.mjOBJ_BODY, "torso"),
            segment_ids=segment_ids,
            limb_count=len(spec.limbs),
            target_id=sim.name2id(mujoco.mjtObj.mjOBJ_BODY, "target") if self.with_target else None,
            head_id=sim.name2id(mujoco.mjtObj.mjOBJ_BODY, "head") if spec.head_size is not None else None,
        )
        if motors is not None:
            rig.apply_motors(motors)
            sim.forward()
        log.debug("built rig: %d limbs, %d joints, torso %s", rig.limb_count, rig.joint_count,
                  tuple(round(x, 3) for x in spec.torso_size))
        return rig
