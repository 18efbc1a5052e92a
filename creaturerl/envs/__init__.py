from gymnasium.envs.registration import register

from .body_plan import BipedalPlan, BodyPlanGenerator, CreatureSpec, FreeRangingPlan, JointCapacityError, LimbSpec
from .config import CreatureEnvConfig
from .creature_env import CreatureEnv
from .lifecycle import EpisodeLifecycle, EpisodePhase, LifecycleError
from .observation import OBS_DIM, ObservationAssembler
from .reward import RewardConfig
from .rig import Rig, RigBuilder

# gym.make(id, config=...) replaces the registered config; keyword overrides
# (e.g. gym.make(id, spawn_height=3.0)) are applied on top of it.
register(
    id="CreatureReach-v0",
    entry_point="creaturerl.envs.creature_env:CreatureEnv",
    max_episode_steps=1000,
    kwargs={"config": CreatureEnvConfig(variant="free", control_mode="policy", spawn_target=True)},
)

register(
    id="CreatureBiped-v0",
    entry_point="creaturerl.envs.creature_env:CreatureEnv",
    max_episode_steps=500,
    kwargs={"config": CreatureEnvConfig(variant="bipedal", control_mode="static",
                                        spawn_target=False, include_head=True, spawn_height=8.0)},
)
