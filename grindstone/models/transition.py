from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, NamedTuple, Optional

import torch


class StepResult(NamedTuple):
    """Outcome of one environment step: (next_state, reward, done)."""
    state: Any
    reward: float
    done: bool


class ActionSample(NamedTuple):
    """Sampled action together with its behavior-policy probability."""
    action: int
    prob: float


@dataclass(frozen=True)
class Transition:
    """
    One buffered step of a trajectory.

    advantage and return_target stay None until the advantage pass at the end
    of the episode fills them in, once, through with_advantage().
    """
    state: torch.Tensor
    action: int
    old_prob: float
    reward: float
    next_state: torch.Tensor
    done: bool
    advantage: Optional[float] = None
    return_target: Optional[float] = None

    def with_advantage(self, advantage: float, return_target: float) -> 'Transition':
        if self.advantage is not None:
            raise ValueError("Transition advantage is already set")
        return replace(self, advantage=advantage, return_target=return_target)


@dataclass
class EpisodeResult:
    """What the trajectory runner hands back after one episode."""
    steps: int
    total_reward: float
    terminal_state: Any
    action_counts: Dict[int, int] = field(default_factory=dict)
    clipped_per_epoch: List[int] = field(default_factory=list)

    @property
    def clip_fractions(self) -> List[float]:
        if self.steps == 0:
            return [0.0 for _ in self.clipped_per_epoch]
        return [clipped / self.steps for clipped in self.clipped_per_epoch]


@dataclass
class EpisodeStats:
    steps: int = 0
    total_reward: float = 0.0
    end_kills: int = 0
    end_deaths: int = 0
    stand_count: int = 0
    attack_count: int = 0
    failed_stands: int = 0
    hp_regenerated_from_stand: int = 0
    xp_left: int = 0
    levels_gained: int = 0
    stand_out_of_combat_while_injured: int = 0
    stand_out_of_combat_at_full_hp: int = 0
    clip_fractions: List[float] = field(default_factory=list)
