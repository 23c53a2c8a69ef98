"""
Tiny actor-critic trained with a hand-written PPO update.

A shared tanh trunk feeds a softmax policy head and a scalar value head. Each
episode is collected in full, advantages come from one frozen critic pass, and
the trajectory is replayed for several epochs of clipped updates.
"""

from grindstone.rl.actor_critic.network import TinyActorCritic, UpdateStats
from grindstone.rl.actor_critic.trajectory import TrajectoryRunner, compute_advantages
from grindstone.rl.actor_critic.constants import (
    ACTION_SPACE,
    ACTOR_ALPHA,
    CRITIC_ALPHA,
    EPOCHS,
    GAMMA,
    HIDDEN_UNITS,
    INPUT_DIM,
    TRUNK_ALPHA,
)

__all__ = [
    'TinyActorCritic',
    'UpdateStats',
    'TrajectoryRunner',
    'compute_advantages',
    'ACTION_SPACE',
    'ACTOR_ALPHA',
    'CRITIC_ALPHA',
    'EPOCHS',
    'GAMMA',
    'HIDDEN_UNITS',
    'INPUT_DIM',
    'TRUNK_ALPHA',
]
