import math
from typing import Dict, NamedTuple, Optional, Sequence

import torch

from grindstone.errors import InvalidConfiguration
from grindstone.models.transition import ActionSample
from grindstone.rl.actor_critic.constants import (
    ADVANTAGE_CLIP,
    DTYPE,
    ENTROPY_BETA,
    ENTROPY_EPS,
    PPO_EPSILON,
)


class ForwardPass(NamedTuple):
    hidden: torch.Tensor   # [H]
    logits: torch.Tensor   # [A]
    probs: torch.Tensor    # [A]


class UpdateStats(NamedTuple):
    advantage: float   # as passed in, unclipped
    ratio: float
    clipped: bool      # policy-gradient term suppressed


def stable_softmax(logits: torch.Tensor) -> torch.Tensor:
    """
    Softmax with the max logit subtracted before exponentiating.

    Exponentials and the normalizer are taken one element at a time in index
    order, and every probability is scaled by the reciprocal of the sum, so
    results are bit-identical to a scalar loop.
    """
    values = logits.tolist()
    m = max(values)
    exps = [math.exp(v - m) for v in values]
    total = 0.0
    for e in exps:
        total += e
    inv = 1.0 / total
    return torch.tensor([e * inv for e in exps], dtype=DTYPE)


def elementwise(fn, t: torch.Tensor) -> torch.Tensor:
    """Apply a scalar math function to every element of a 1-D tensor."""
    return torch.tensor([fn(v) for v in t.tolist()], dtype=DTYPE)


def categorical_index(probs: Sequence[float], r: float) -> int:
    """
    Walk the cumulative distribution and return the first index whose running
    sum reaches r. If rounding leaves every partial sum below r, the last index
    is returned.
    """
    cdf = 0.0
    for a, p in enumerate(probs):
        cdf += p
        if r <= cdf:
            return a
    return len(probs) - 1


def is_clipped(ratio: float, adv_clipped: float, epsilon: float = PPO_EPSILON) -> bool:
    """
    Direction-aware PPO gate.

    A non-negative advantage is suppressed once the ratio is strictly above
    1 + epsilon; a negative one once it is strictly below 1 - epsilon.
    """
    if adv_clipped >= 0:
        return ratio > 1.0 + epsilon
    return ratio < 1.0 - epsilon


class TinyActorCritic:
    """
    Shallow actor-critic network trained with a hand-written PPO step.

    Architecture:
    - Trunk: hidden = tanh(W_ih x + b_h)
    - Actor head: logits = W_ha hidden + b_a, probs = softmax(logits)
    - Critic head: value = w_hv . hidden + b_v

    Parameters are float64 tensors updated in place without autograd. All
    activations are computed per call and never cached on the instance.
    """

    def __init__(
        self,
        input_dim: int,
        hidden_units: int,
        action_count: int,
        seed: Optional[int] = None,
        generator: Optional[torch.Generator] = None,
    ):
        """
        Args:
            input_dim: Length of the state feature vector (> 0)
            hidden_units: Width of the shared tanh layer (> 0)
            action_count: Number of discrete actions (> 1)
            seed: Seed for weight init and sampling. Ignored if generator is given.
            generator: Explicit random source owned by this network

        Raises:
            InvalidConfiguration: on any invalid dimension
        """
        if input_dim <= 0 or hidden_units <= 0 or action_count <= 1:
            raise InvalidConfiguration(
                "input_dim>0, hidden_units>0, action_count>1 required "
                f"(got {input_dim}, {hidden_units}, {action_count})"
            )
        self.input_dim = input_dim
        self.hidden_units = hidden_units
        self.action_count = action_count

        if generator is None:
            generator = torch.Generator()
            if seed is None:
                generator.seed()
            else:
                generator.manual_seed(seed)
        self.rng = generator

        self.w_input_hidden = torch.zeros((hidden_units, input_dim), dtype=DTYPE)
        self.b_hidden = torch.zeros(hidden_units, dtype=DTYPE)

        self.w_hidden_actor = torch.zeros((action_count, hidden_units), dtype=DTYPE)
        self.b_actor = torch.zeros(action_count, dtype=DTYPE)

        self.w_hidden_value = torch.zeros(hidden_units, dtype=DTYPE)
        self.b_value = torch.zeros((), dtype=DTYPE)

        self._init_weights_xavier()

    def _init_weights_xavier(self) -> None:
        # Xavier-style uniform bound, suited to the tanh trunk. Draw order is
        # trunk, actor, critic so a seed fixes every weight.
        limit_ih = math.sqrt(6.0 / (self.input_dim + self.hidden_units))
        self.w_input_hidden.copy_(self._uniform(limit_ih, self.w_input_hidden.shape))

        limit_ha = math.sqrt(6.0 / (self.hidden_units + self.action_count))
        self.w_hidden_actor.copy_(self._uniform(limit_ha, self.w_hidden_actor.shape))

        limit_hv = math.sqrt(6.0 / (self.hidden_units + 1.0))
        self.w_hidden_value.copy_(self._uniform(limit_hv, self.w_hidden_value.shape))

        self.b_hidden.zero_()
        self.b_actor.zero_()
        self.b_value.zero_()

    def _uniform(self, limit: float, shape) -> torch.Tensor:
        u = torch.rand(shape, generator=self.rng, dtype=DTYPE)
        return -limit + (2.0 * limit) * u

    def _draw_uniform(self) -> float:
        return torch.rand((), generator=self.rng, dtype=DTYPE).item()

    def _as_input(self, x) -> torch.Tensor:
        x = torch.as_tensor(x, dtype=DTYPE)
        if x.shape != (self.input_dim,):
            raise InvalidConfiguration(
                f"Expected a state vector of length {self.input_dim}, got shape {tuple(x.shape)}"
            )
        return x

    # ------------- forward -------------
    # Affine maps start from the bias and add one column at a time in index
    # order, never through a matmul whose reduction order is up to the kernel.
    def hidden_activations(self, x: torch.Tensor) -> torch.Tensor:
        """Trunk only (used for V(s) bootstraps)."""
        z = self.b_hidden.clone()
        for d in range(self.input_dim):
            z += self.w_input_hidden[:, d] * x[d]
        return elementwise(math.tanh, z)

    def forward(self, x) -> ForwardPass:
        """Full forward pass: hidden -> logits -> probs."""
        x = self._as_input(x)
        hidden = self.hidden_activations(x)
        logits = self.b_actor.clone()
        for h in range(self.hidden_units):
            logits += self.w_hidden_actor[:, h] * hidden[h]
        return ForwardPass(hidden, logits, stable_softmax(logits))

    def value_from_hidden(self, hidden: torch.Tensor) -> float:
        v = self.b_value.item()
        for w, h in zip(self.w_hidden_value.tolist(), hidden.tolist()):
            v += w * h
        return v

    # ------------- inference -------------
    def policy_probs(self, x) -> torch.Tensor:
        """Full action distribution. The returned tensor belongs to the caller."""
        return self.forward(x).probs.clone()

    def policy_prob(self, x, action: int) -> float:
        return self.forward(x).probs[action].item()

    def act(self, x) -> ActionSample:
        """
        Sample an action from the current policy.

        Returns:
            ActionSample(action, prob) where prob is the probability the
            policy assigned to the sampled action.
        """
        probs = self.forward(x).probs.tolist()
        action = categorical_index(probs, self._draw_uniform())
        return ActionSample(action, probs[action])

    def sample_action(self, x) -> int:
        return self.act(x).action

    def value(self, x) -> float:
        """State value estimate. Skips the actor head entirely."""
        x = self._as_input(x)
        return self.value_from_hidden(self.hidden_activations(x))

    def parameters(self) -> Dict[str, torch.Tensor]:
        """Value copies of every learnable tensor, keyed by name."""
        return {
            "w_input_hidden": self.w_input_hidden.clone(),
            "b_hidden": self.b_hidden.clone(),
            "w_hidden_actor": self.w_hidden_actor.clone(),
            "b_actor": self.b_actor.clone(),
            "w_hidden_value": self.w_hidden_value.clone(),
            "b_value": self.b_value.clone(),
        }

    # ------------- PPO update -------------
    def update(
        self,
        s,
        action: int,
        old_prob: float,
        advantage: float,
        alpha_critic: float,
        alpha_actor: float,
        alpha_trunk: float,
    ) -> float:
        """
        PPO update step. Takes a precomputed advantage from the trajectory and
        updates critic, actor and trunk weights in place.

        Returns:
            The advantage as passed in (unclipped), for diagnostics
        """
        return self.update_with_stats(
            s, action, old_prob, advantage, alpha_critic, alpha_actor, alpha_trunk
        ).advantage

    def update_with_stats(
        self,
        s,
        action: int,
        old_prob: float,
        advantage: float,
        alpha_critic: float,
        alpha_actor: float,
        alpha_trunk: float,
    ) -> UpdateStats:
        """
        Same update as update(), also reporting the importance ratio and
        whether the policy-gradient term was suppressed.

        When the policy has drifted too far from the one that sampled the
        action, the policy gradient for this transition is zeroed. The entropy
        gradient, the critic step and the trunk step are applied regardless.
        """
        s = self._as_input(s)
        hidden, _, probs = self.forward(s)

        # Current vs behavior probability of the taken action
        ratio = probs[action].item() / (old_prob + ENTROPY_EPS)

        # The trunk gradient below must see the head weights that produced
        # `hidden`, not the ones after this step
        w_value_snap = self.w_hidden_value.clone()
        w_actor_snap = self.w_hidden_actor.clone()

        adv_clipped = max(-ADVANTAGE_CLIP, min(ADVANTAGE_CLIP, advantage))

        # ---- Critic ----
        self.w_hidden_value += alpha_critic * adv_clipped * hidden
        self.b_value += alpha_critic * adv_clipped

        clipped = is_clipped(ratio, adv_clipped)

        # ---- Actor ----
        w_ent = probs * (elementwise(math.log, probs + ENTROPY_EPS) + 1.0)
        sum_w = 0.0
        for w in w_ent.tolist():
            sum_w += w
        d_entropy = -w_ent + probs * sum_w

        # Softmax policy gradient with respect to each logit
        pg = -probs
        pg[action] += 1.0

        if clipped:
            policy_grad = torch.zeros_like(pg)
        else:
            policy_grad = ratio * adv_clipped * pg

        step = alpha_actor * (policy_grad + ENTROPY_BETA * d_entropy)
        self.w_hidden_actor += torch.outer(step, hidden)
        self.b_actor += step

        # ---- Trunk ----
        dh_dz = 1.0 - hidden * hidden
        critic_part = adv_clipped * w_value_snap
        actor_sum = torch.zeros(self.hidden_units, dtype=DTYPE)
        for k in range(self.action_count):
            actor_sum += pg[k] * w_actor_snap[k]
        actor_part = adv_clipped * actor_sum
        chain = alpha_trunk * (critic_part + actor_part) * dh_dz

        self.w_input_hidden += torch.outer(chain, s)
        self.b_hidden += chain

        return UpdateStats(advantage, ratio, clipped)
