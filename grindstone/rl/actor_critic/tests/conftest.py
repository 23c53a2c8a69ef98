"""
Pytest configuration and shared fixtures for actor-critic tests.
"""
import pytest
import torch

from grindstone.rl.actor_critic.constants import DTYPE
from grindstone.rl.actor_critic.network import TinyActorCritic

TEST_SEED = 42


@pytest.fixture
def network_seed():
    """Seed for TinyActorCritic (deterministic weights and sampling)."""
    return TEST_SEED


@pytest.fixture
def small_network(network_seed):
    """4 inputs, 6 hidden units, 3 actions."""
    return TinyActorCritic(4, 6, 3, seed=network_seed)


@pytest.fixture
def state_vector():
    return torch.tensor([0.25, -0.5, 0.75, -1.0], dtype=DTYPE)


@pytest.fixture
def twin_network(network_seed):
    """Independent network with the same weights and sampling stream as small_network."""
    return TinyActorCritic(4, 6, 3, seed=network_seed)
