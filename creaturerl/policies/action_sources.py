"""
Action sources: obs -> action in [-1, 1]^12, one call per control step.

RandomActionSource is the stateless heuristic; GRUActionSource runs a trained
GRUPolicy checkpoint and carries its hidden state across steps of an episode.
"""
from typing import Optional

import numpy as np
import torch

from .gru_policy import GRUPolicy


def pick_device(prefer=None):
    prefer = (prefer or "").lower()
    if prefer == "cuda" and torch.cuda.is_available(): return torch.device("cuda")
    if prefer == "mps" and hasattr(torch.backends, "mps") and torch.backends.mps.is_available(): return torch.device("mps")
    if prefer == "cpu": return torch.device("cpu")
    if torch.cuda.is_available(): return torch.device("cuda")
    return torch.device("cpu")


class RandomActionSource:
    def __init__(self, act_dim: int = 12, rng: Optional[np.random.Generator] = None):
        self.act_dim = act_dim
        self.rng = rng if rng is not None else np.random.default_rng()

    def reset(self) -> None:
        pass

    def __call__(self, obs) -> np.ndarray:
        return self.rng.uniform(-1.0, 1.0, size=self.act_dim).astype(np.float32)


class GRUActionSource:
    def __init__(self, policy: GRUPolicy, device=None, deterministic: bool = True,
                 generator: Optional[torch.Generator] = None):
        self.device = torch.device(device) if device is not None else next(policy.parameters()).device
        self.policy = policy.to(self.device)
        self.policy.eval()
        self.deterministic = deterministic
        self.generator = generator
        self.h = self.policy.initial_state(device=self.device)

    @classmethod
    def from_checkpoint(cls, path: str, obs_dim: int, act_dim: int, hidden_state_size: int = 16,
                        device=None, deterministic: bool = True) -> "GRUActionSource":
        device = device or pick_device()
        policy = GRUPolicy(obs_dim, act_dim, hidden_state_size=hidden_state_size)
        state = torch.load(path, map_location=device)
        # accept bare state dicts and {"state_dict": ...} checkpoint payloads
        policy.load_state_dict(state.get("state_dict", state))
        return cls(policy, device=device, deterministic=deterministic)

    def reset(self) -> None:
        self.h = self.policy.initial_state(device=self.device)

    def _noise(self, shape) -> torch.Tensor:
        # a seeded generator samples on its own device
        gen_device = self.generator.device if self.generator is not None else self.device
        return torch.randn(shape, generator=self.generator, device=gen_device).to(self.device)

    @torch.no_grad()
    def __call__(self, obs) -> np.ndarray:
        x = torch.as_tensor(np.asarray(obs), dtype=torch.float32, device=self.device).view(1, 1, -1)
        dist, self.h = self.policy.distribution(x, self.h)
        if self.deterministic:
            a = dist.mean
        else:
            a = dist.mean + dist.stddev * self._noise(dist.mean.shape)
        return a.squeeze(0).squeeze(0).clamp(-1.0, 1.0).cpu().numpy().astype(np.float32)
