from __future__ import annotations

import numpy as np
import pytest
import torch

from creaturerl.envs import CreatureEnv
from creaturerl.envs.observation import OBS_DIM
from creaturerl.policies.action_sources import GRUActionSource, RandomActionSource
from creaturerl.policies.gru_policy import GRUPolicy


def test_random_source_in_unit_range() -> None:
    src = RandomActionSource(12, rng=np.random.default_rng(0))
    for _ in range(50):
        a = src(np.zeros(OBS_DIM))
        assert a.shape == (12,)
        assert np.all(a >= -1.0) and np.all(a <= 1.0)


def test_random_source_reproducible() -> None:
    a = RandomActionSource(12, rng=np.random.default_rng(3))(None)
    b = RandomActionSource(12, rng=np.random.default_rng(3))(None)
    np.testing.assert_array_equal(a, b)


def test_gru_source_carries_and_resets_hidden_state() -> None:
    torch.manual_seed(0)
    src = GRUActionSource(GRUPolicy(OBS_DIM, 12), device="cpu")
    a = src(np.ones(OBS_DIM, dtype=np.float32))
    assert a.shape == (12,)
    assert np.all(np.abs(a) <= 1.0)
    assert torch.count_nonzero(src.h) > 0
    src.reset()
    assert torch.count_nonzero(src.h) == 0


def test_gru_checkpoint_round_trip(tmp_path) -> None:
    torch.manual_seed(1)
    policy = GRUPolicy(OBS_DIM, 12)
    path = tmp_path / "policy.pt"
    torch.save(policy.state_dict(), path)

    original = GRUActionSource(policy, device="cpu")
    loaded = GRUActionSource.from_checkpoint(str(path), OBS_DIM, 12, device="cpu")
    obs = np.linspace(-1.0, 1.0, OBS_DIM).astype(np.float32)
    np.testing.assert_allclose(original(obs), loaded(obs), atol=1e-6)


def test_gru_drives_env() -> None:
    torch.manual_seed(2)
    env = CreatureEnv()
    src = GRUActionSource(GRUPolicy(OBS_DIM, 12), device="cpu")
    obs, _ = env.reset(seed=0)
    for _ in range(3):
        obs, reward, *_ = env.step(src(obs))
    assert obs.shape == (OBS_DIM,)
    env.close()


def test_gru_stochastic_actions_follow_generator() -> None:
    torch.manual_seed(4)
    policy = GRUPolicy(OBS_DIM, 12)
    obs = np.ones(OBS_DIM, dtype=np.float32)
    a = GRUActionSource(policy, device="cpu", deterministic=False,
                        generator=torch.Generator().manual_seed(7))(obs)
    b = GRUActionSource(policy, device="cpu", deterministic=False,
                        generator=torch.Generator().manual_seed(7))(obs)
    mean = GRUActionSource(policy, device="cpu")(obs)
    np.testing.assert_array_equal(a, b)
    assert not np.allclose(a, mean)


@pytest.mark.skipif(not torch.cuda.is_available(), reason="needs CUDA")
def test_gru_cpu_generator_with_cuda_device() -> None:
    src = GRUActionSource(GRUPolicy(OBS_DIM, 12), device="cuda", deterministic=False,
                          generator=torch.Generator().manual_seed(0))
    a = src(np.zeros(OBS_DIM, dtype=np.float32))
    assert a.shape == (12,)


def test_distribution_matches_forward_mean() -> None:
    torch.manual_seed(5)
    policy = GRUPolicy(OBS_DIM, 12)
    x = torch.randn(1, 1, OBS_DIM)
    h0 = policy.initial_state()
    mu, v, h_fwd = policy(x, h0)
    dist, h_dist = policy.distribution(x, h0)
    assert v.shape == (1, 1)
    torch.testing.assert_close(dist.mean, mu)
    torch.testing.assert_close(h_dist, h_fwd)
