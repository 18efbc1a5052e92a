"""
Roll out a creature environment with the random heuristic or a GRU checkpoint.

    python scripts/rollout_creature.py --episodes 5
    python scripts/rollout_creature.py --policy gru --ckpt checkpoints/creature/policy.pt --render
    python scripts/rollout_creature.py --config configs/creature_biped.json --env-id CreatureBiped-v0
"""
import time
from dataclasses import dataclass
from typing import Optional

import gymnasium as gym
import numpy as np
import torch
import tyro
import wandb

import creaturerl.envs  # registers CreatureReach-v0 / CreatureBiped-v0
from creaturerl.envs import CreatureEnvConfig
from creaturerl.policies.action_sources import GRUActionSource, RandomActionSource, pick_device


@dataclass
class Args:
    env_id: str = "CreatureReach-v0"
    """registered environment id"""
    config: Optional[str] = None
    """optional JSON config (environment_params / reward_params)"""
    seed: int = 0
    """seed for body generation, targets and random actions"""
    episodes: int = 5
    """number of episodes to roll out"""
    max_steps: Optional[int] = None
    """override the registered step budget per episode"""
    policy: str = "random"
    """'random' (heuristic) or 'gru' (checkpoint)"""
    ckpt: Optional[str] = None
    """GRUPolicy state dict for --policy gru"""
    hidden_state_size: int = 16
    deterministic: bool = True
    """use the policy mean instead of sampling"""
    device: Optional[str] = None
    render: bool = False
    """open the MuJoCo passive viewer"""
    track: bool = False
    """if toggled, stream episode metrics to Weights and Biases"""
    wandb_project_name: str = "creaturerl"
    wandb_entity: Optional[str] = None


def make_action_source(args: Args, env: gym.Env):
    obs_dim = env.observation_space.shape[0]
    act_dim = env.action_space.shape[0]
    if args.policy == "random":
        return RandomActionSource(act_dim, rng=np.random.default_rng(args.seed))
    if args.policy == "gru":
        if args.ckpt is None:
            raise ValueError("--policy gru needs --ckpt")
        return GRUActionSource.from_checkpoint(args.ckpt, obs_dim, act_dim,
                                               hidden_state_size=args.hidden_state_size,
                                               device=pick_device(args.device),
                                               deterministic=args.deterministic)
    raise ValueError(f"Unknown policy '{args.policy}'")


def main(args: Args):
    run_name = f"{args.env_id}__{args.policy}__{args.seed}__{int(time.time())}"
    if args.track:
        wandb.init(project=args.wandb_project_name, entity=args.wandb_entity,
                   config=vars(args), name=run_name)

    make_kwargs = {"render_mode": "human" if args.render else None}
    if args.config is not None:
        make_kwargs["config"] = CreatureEnvConfig.from_json(args.config)
    if args.max_steps is not None:
        make_kwargs["max_episode_steps"] = args.max_steps
    env = gym.make(args.env_id, **make_kwargs)
    torch.manual_seed(args.seed)
    act = make_action_source(args, env)
    print(f"obs_dim={env.observation_space.shape[0]}, act_dim={env.action_space.shape[0]}")

    returns = []
    for ep in range(args.episodes):
        obs, info = env.reset(seed=args.seed + ep)
        act.reset()
        ep_return, steps, captures = 0.0, 0, 0
        while True:
            obs, r, term, trunc, info = env.step(act(obs))
            ep_return += r
            steps += 1
            captures += int(info.get("captured", False))
            if term or trunc:
                break
        returns.append(ep_return)
        print(f"episode {ep}: limbs={info['limb_count']} joints={info['joint_count']} "
              f"steps={steps} return={ep_return:.3f} captures={captures}")
        if args.track:
            wandb.log({"episode": ep, "episode/return": ep_return, "episode/steps": steps,
                       "episode/captures": captures, "episode/joint_count": info["joint_count"]})

    print(f"mean return over {args.episodes} episodes: {np.mean(returns):.3f}")
    env.close()
    if args.track:
        wandb.finish()


if __name__ == "__main__":
    main(tyro.cli(Args))
