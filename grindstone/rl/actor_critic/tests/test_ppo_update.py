"""
Pytest tests for the PPO update rule of TinyActorCritic.
"""
import math

import pytest
import torch

from grindstone.rl.actor_critic.constants import (
    DTYPE,
    ENTROPY_BETA,
    ENTROPY_EPS,
    PPO_EPSILON,
)
from grindstone.rl.actor_critic.network import TinyActorCritic, is_clipped

ALPHAS = dict(alpha_critic=0.06, alpha_actor=0.04, alpha_trunk=0.02)


def assert_same_parameters(a: TinyActorCritic, b: TinyActorCritic):
    pa, pb = a.parameters(), b.parameters()
    for name in pa:
        assert torch.equal(pa[name], pb[name]), name


def test_update_returns_unclipped_advantage(small_network, state_vector):
    assert small_network.update(state_vector, 1, 0.3, 12.5, **ALPHAS) == 12.5
    assert small_network.update(state_vector, 1, 0.3, -0.25, **ALPHAS) == -0.25


def test_update_touches_every_parameter_group(small_network, state_vector):
    before = small_network.parameters()
    old_prob = small_network.policy_prob(state_vector, 0)

    small_network.update(state_vector, 0, old_prob, 1.0, **ALPHAS)

    after = small_network.parameters()
    for name in before:
        assert not torch.equal(before[name], after[name]), name


@pytest.mark.parametrize("raw,boundary", [
    (12.0, 5.0),
    (5.0000001, 5.0),
    (-40.0, -5.0),
    (float("inf"), 5.0),
])
def test_advantage_clipping_matches_boundary_value(small_network, twin_network, state_vector, raw, boundary):
    clamped = twin_network
    old_prob = small_network.policy_prob(state_vector, 2)

    small_network.update(state_vector, 2, old_prob, raw, **ALPHAS)
    clamped.update(state_vector, 2, old_prob, boundary, **ALPHAS)

    assert_same_parameters(small_network, clamped)


def test_clip_gate_boundary_is_strict():
    ratio_at_boundary = 1.0 + PPO_EPSILON
    assert not is_clipped(ratio_at_boundary, 1.0)
    assert not is_clipped(ratio_at_boundary, 0.0)
    assert is_clipped(ratio_at_boundary + 1e-9, 1.0)
    assert is_clipped(ratio_at_boundary + 1e-9, 0.0)

    lower = 1.0 - PPO_EPSILON
    assert not is_clipped(lower, -1.0)
    assert is_clipped(lower - 1e-9, -1.0)


def test_clip_gate_is_direction_aware():
    # A large ratio never gates a negative advantage and vice versa
    assert not is_clipped(10.0, -1.0)
    assert not is_clipped(0.01, 1.0)


BOUNDARY_CASES = [
    # action_count, ratio the update must see, advantage, gated
    (2, 1.0 + PPO_EPSILON, 7.0, False),
    (2, math.nextafter(1.0 + PPO_EPSILON, 2.0), 7.0, True),
    (3, 1.0 - PPO_EPSILON, -7.0, False),
    (3, math.nextafter(1.0 - PPO_EPSILON, 0.0), -7.0, True),
]


def zeroed_network(action_count):
    net = TinyActorCritic(2, 1, action_count, seed=0)
    for name in net.parameters():
        getattr(net, name).zero_()
    return net


def old_prob_for_ratio(p, target):
    """Behavior probability o with p / (o + ENTROPY_EPS) == target in floating point."""
    lo = hi = p / target - ENTROPY_EPS
    for _ in range(200):
        for o in (lo, hi):
            if p / (o + ENTROPY_EPS) == target:
                return o
        lo, hi = math.nextafter(lo, 0.0), math.nextafter(hi, 1.0)
    raise AssertionError(f"no behavior probability gives ratio {target!r}")


@pytest.mark.parametrize("action_count,target,advantage,gated", BOUNDARY_CASES)
def test_update_gate_at_ratio_boundary(action_count, target, advantage, gated):
    """
    Hidden activations are zero and the policy is uniform, so the actor bias
    moves by alpha_actor * (ratio * clamp(adv) * pg + beta * dH) when the
    policy term is applied and by alpha_actor * beta * dH when it is gated.
    """
    net = zeroed_network(action_count)
    x = torch.tensor([0.3, -0.7], dtype=DTYPE)
    action = 0
    p = net.policy_prob(x, action)
    old_prob = old_prob_for_ratio(p, target)

    stats = net.update_with_stats(x, action, old_prob, advantage, **ALPHAS)

    assert stats.ratio == target
    assert stats.clipped is gated

    adv = max(-5.0, min(5.0, advantage))
    w = p * (math.log(p + ENTROPY_EPS) + 1.0)
    sum_w = 0.0
    for _ in range(action_count):
        sum_w += w
    d_entropy = -w + p * sum_w
    expected = []
    for k in range(action_count):
        pg = (1.0 if k == action else 0.0) - p
        policy_grad = 0.0 if gated else target * adv * pg
        expected.append(ALPHAS["alpha_actor"] * (policy_grad + ENTROPY_BETA * d_entropy))

    assert net.b_actor.tolist() == pytest.approx(expected, abs=1e-15)
    if not gated:
        assert abs(net.b_actor[action].item()) > 0.1


def test_update_reports_ratio_and_clip(small_network, state_vector):
    p = small_network.policy_prob(state_vector, 1)

    stats = small_network.update_with_stats(state_vector, 1, p, 0.5, **ALPHAS)

    assert stats.ratio == pytest.approx(1.0, abs=1e-9)
    assert not stats.clipped
    assert stats.advantage == 0.5


def test_entropy_gradient_flows_when_policy_term_is_suppressed(small_network, state_vector):
    hidden, _, probs = small_network.forward(state_vector)
    before = small_network.parameters()

    # Behavior probability far below the current one: ratio >> 1 + eps
    stats = small_network.update_with_stats(state_vector, 0, 1e-6, 2.0, **ALPHAS)
    assert stats.clipped

    w_ent = probs * (torch.log(probs + ENTROPY_EPS) + 1.0)
    d_entropy = -w_ent + probs * w_ent.sum()
    expected_step = ALPHAS["alpha_actor"] * ENTROPY_BETA * d_entropy

    assert not torch.equal(small_network.b_actor, before["b_actor"])
    assert not torch.equal(small_network.w_hidden_actor, before["w_hidden_actor"])
    assert torch.allclose(small_network.b_actor - before["b_actor"], expected_step, atol=1e-15)
    assert torch.allclose(
        small_network.w_hidden_actor - before["w_hidden_actor"],
        torch.outer(expected_step, hidden),
        atol=1e-15,
    )


def test_suppressed_update_differs_from_unsuppressed(small_network, twin_network, state_vector):
    unclipped = twin_network
    p = small_network.policy_prob(state_vector, 0)

    assert small_network.update_with_stats(state_vector, 0, 1e-6, 2.0, **ALPHAS).clipped
    assert not unclipped.update_with_stats(state_vector, 0, p, 2.0, **ALPHAS).clipped

    # Critic step does not depend on the gate
    assert torch.equal(small_network.w_hidden_value, unclipped.w_hidden_value)
    assert torch.equal(small_network.b_value, unclipped.b_value)
    assert not torch.equal(small_network.b_actor, unclipped.b_actor)


def test_trunk_gradient_uses_pre_update_head_weights(small_network, state_vector):
    """Recompute the trunk step by hand from the weights before the update."""
    before = small_network.parameters()
    hidden, _, probs = small_network.forward(state_vector)
    action, adv = 1, 0.8
    old_prob = probs[action].item()

    small_network.update(state_vector, action, old_prob, adv, **ALPHAS)

    pg = -probs
    pg[action] += 1.0
    critic_part = adv * before["w_hidden_value"]
    actor_part = adv * (pg @ before["w_hidden_actor"])
    chain = ALPHAS["alpha_trunk"] * (critic_part + actor_part) * (1.0 - hidden * hidden)

    assert torch.allclose(small_network.b_hidden - before["b_hidden"], chain, atol=1e-15)
    assert torch.allclose(
        small_network.w_input_hidden - before["w_input_hidden"],
        torch.outer(chain, state_vector),
        atol=1e-15,
    )


def test_uniform_policy_single_step_by_hand():
    """
    All-zero parameters: hidden = 0, probs = [0.5, 0.5], entropy gradient = 0.
    Only the biases of the heads can move.
    """
    net = TinyActorCritic(2, 1, 2, seed=0)
    for t in net.parameters():
        getattr(net, t).zero_()
    x = torch.tensor([1.0, -1.0], dtype=DTYPE)

    net.update(x, 0, 0.5, 1.0, alpha_critic=0.1, alpha_actor=0.1, alpha_trunk=0.1)

    ratio = 0.5 / (0.5 + ENTROPY_EPS)
    assert net.b_value.item() == pytest.approx(0.1, abs=1e-15)
    assert net.b_actor.tolist() == pytest.approx([0.05 * ratio, -0.05 * ratio], abs=1e-15)
    assert torch.count_nonzero(net.w_hidden_value) == 0
    assert torch.count_nonzero(net.w_hidden_actor) == 0
    assert torch.count_nonzero(net.w_input_hidden) == 0
    assert torch.count_nonzero(net.b_hidden) == 0


def test_update_keeps_no_state_between_calls(small_network, twin_network, state_vector):
    twin = twin_network
    p = small_network.policy_prob(state_vector, 1)

    # An unrelated forward pass in between must not change the next update
    small_network.policy_probs(-state_vector)
    small_network.update(state_vector, 1, p, 0.3, **ALPHAS)
    twin.update(state_vector, 1, p, 0.3, **ALPHAS)

    assert_same_parameters(small_network, twin)
