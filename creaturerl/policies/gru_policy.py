"""
GRU(16) + MLP actor-critic head. Produces mean joint-velocity commands for the
12 joint slots and a value estimate from the 41-dim creature observation.

Rollouts only need the action head; the value head stays so checkpoints written
by an actor-critic trainer load with `load_state_dict` unchanged.
"""
import torch
import torch.nn as nn


class GRUPolicy(nn.Module):
    def __init__(self, obs_dim: int, act_dim: int, hidden_state_size: int = 16, net_arch=(128, 128)):
        super().__init__()
        self.obs_dim = obs_dim
        self.act_dim = act_dim
        self.hidden_state_size = hidden_state_size

        self.gru = nn.GRU(input_size=obs_dim, hidden_size=hidden_state_size, batch_first=True)
        layers = []
        last = hidden_state_size + obs_dim  # h_t concatenated with x_t
        for h in net_arch:
            layers += [nn.Linear(last, h), nn.Tanh()]
            last = h
        self.mlp = nn.Sequential(*layers)
        self.mu = nn.Linear(last, act_dim)
        self.log_std = nn.Parameter(torch.ones(1, act_dim) * -1.0)
        self.v = nn.Linear(last, 1)

    def initial_state(self, batch_size: int = 1, device=None) -> torch.Tensor:
        return torch.zeros(1, batch_size, self.hidden_state_size, device=device)

    def _features(self, x, h0):
        # x: [B, T, obs_dim]
        h_seq, hT = self.gru(x, h0)
        return self.mlp(torch.cat([h_seq, x], dim=-1)), hT

    def forward(self, x, h0):
        z, hT = self._features(x, h0)
        return self.mu(z), self.v(z).squeeze(-1), hT

    def distribution(self, x, h0):
        """Action distribution and next hidden state; skips the value head."""
        z, hT = self._features(x, h0)
        return torch.distributions.Normal(self.mu(z), self.log_std.exp()), hT
