"""
Episode rollout and PPO replay for the tiny actor-critic.

PPO collects an entire episode before any learning happens. Each transition
keeps the probability its action had when it was sampled; that probability
stays fixed while the parameters move during the update epochs, so the
importance ratio drifts and later epochs clip more and more transitions.
"""
from collections import Counter
from typing import Any, List, Protocol, Tuple

from grindstone.errors import InvalidConfiguration
from grindstone.models.transition import EpisodeResult, Transition
from grindstone.rl.actor_critic.constants import (
    ACTOR_ALPHA,
    CRITIC_ALPHA,
    EPOCHS,
    GAMMA,
    MAX_EPISODE_STEPS,
    TRUNK_ALPHA,
)
from grindstone.rl.actor_critic.network import TinyActorCritic


class Environment(Protocol):
    def reset(self) -> Any: ...

    def step(self, state: Any, action: Any) -> Tuple[Any, float, bool]: ...


class Encoder(Protocol):
    def encode_state(self, state: Any): ...

    def decode_action(self, action_idx: int) -> Any: ...


def compute_advantages(network: TinyActorCritic, trajectory: List[Transition], gamma: float = GAMMA) -> None:
    """
    Computes the TD(0) advantage and return target of every transition.

    All values come from the same critic parameters, before any update of the
    episode is applied, so every epoch trains against one frozen baseline.
    The bootstrap value of a terminal transition is zero.

    Args:
        network: Network whose current critic is evaluated
        trajectory: Transitions, replaced in place by their advantage-filled copies
        gamma: Discount factor
    """
    for i, t in enumerate(trajectory):
        v_s = network.value(t.state)
        v_next = 0.0 if t.done else network.value(t.next_state)

        target = t.reward + gamma * v_next
        trajectory[i] = t.with_advantage(target - v_s, target)


class TrajectoryRunner:
    def __init__(
        self,
        network: TinyActorCritic,
        encoder: Encoder,
        gamma: float = GAMMA,
        epochs: int = EPOCHS,
        alpha_critic: float = CRITIC_ALPHA,
        alpha_actor: float = ACTOR_ALPHA,
        alpha_trunk: float = TRUNK_ALPHA,
        max_steps: int = MAX_EPISODE_STEPS,
    ):
        if epochs < 0 or max_steps <= 0:
            raise InvalidConfiguration(
                f"epochs>=0 and max_steps>0 required (got {epochs}, {max_steps})"
            )
        self.network = network
        self.encoder = encoder
        self.gamma = gamma
        self.epochs = epochs
        self.alpha_critic = alpha_critic
        self.alpha_actor = alpha_actor
        self.alpha_trunk = alpha_trunk
        self.max_steps = max_steps

    def collect(self, env: Environment) -> Tuple[List[Transition], Any]:
        """
        Play one episode with the current policy, without learning.

        Stops when the environment reports done or after max_steps steps.

        Returns:
            (trajectory, terminal_state)
        """
        trajectory: List[Transition] = []
        state = env.reset()

        while True:
            x = self.encoder.encode_state(state)
            sample = self.network.act(x)

            next_state, reward, done = env.step(state, self.encoder.decode_action(sample.action))

            trajectory.append(Transition(
                state=x,
                action=sample.action,
                old_prob=sample.prob,
                reward=reward,
                next_state=self.encoder.encode_state(next_state),
                done=done,
            ))

            state = next_state
            if done or len(trajectory) >= self.max_steps:
                break

        return trajectory, state

    def replay(self, trajectory: List[Transition]) -> List[int]:
        """
        Run the update epochs over an advantage-filled trajectory, in recorded order.

        Returns:
            Number of clipped policy updates in each epoch
        """
        clipped_per_epoch = []
        for _ in range(self.epochs):
            clipped = 0
            for t in trajectory:
                stats = self.network.update_with_stats(
                    t.state,
                    t.action,
                    t.old_prob,
                    t.advantage,
                    self.alpha_critic,
                    self.alpha_actor,
                    self.alpha_trunk,
                )
                clipped += stats.clipped
            clipped_per_epoch.append(clipped)
        return clipped_per_epoch

    def run_episode(self, env: Environment) -> EpisodeResult:
        """
        Collect one episode, compute advantages once, then replay it for
        `epochs` passes of PPO updates.
        """
        trajectory, terminal_state = self.collect(env)

        compute_advantages(self.network, trajectory, self.gamma)
        clipped_per_epoch = self.replay(trajectory)

        return EpisodeResult(
            steps=len(trajectory),
            total_reward=sum(t.reward for t in trajectory),
            terminal_state=terminal_state,
            action_counts=dict(Counter(t.action for t in trajectory)),
            clipped_per_epoch=clipped_per_epoch,
        )
