"""
Episode statistics and the rolling window reported during training.
"""
from dataclasses import dataclass, field
from typing import List

from grindstone.game.combat_engine import EpisodeCounters
from grindstone.models.combat_state import Action
from grindstone.models.transition import EpisodeResult, EpisodeStats
from grindstone.rl.utils import safe_ratio


def build_episode_stats(result: EpisodeResult, counters: EpisodeCounters) -> EpisodeStats:
    """Combine the runner's result with the engine's counters for one episode."""
    end = result.terminal_state
    return EpisodeStats(
        steps=result.steps,
        total_reward=result.total_reward,
        end_kills=end.kills,
        end_deaths=end.deaths,
        stand_count=result.action_counts.get(Action.STAND.value, 0),
        attack_count=result.action_counts.get(Action.ATTACK.value, 0),
        failed_stands=counters.failed_stands,
        hp_regenerated_from_stand=counters.hp_regenerated_from_stand,
        xp_left=end.xp_collected,
        levels_gained=end.levels_increased,
        stand_out_of_combat_while_injured=counters.stand_out_of_combat_while_injured,
        stand_out_of_combat_at_full_hp=counters.stand_out_of_combat_at_full_hp,
        clip_fractions=result.clip_fractions,
    )


@dataclass
class WindowSummary:
    episode: int
    avg_reward: float
    avg_steps: float
    kd: float
    avg_kills: float
    avg_deaths: float
    avg_attack: float
    avg_stand: float
    avg_failed_stands: float
    avg_regen_hp: float
    avg_stand_injured: float
    avg_stand_full: float
    avg_levels: float
    avg_xp_left: float
    clip_fractions: List[float] = field(default_factory=list)


class StatsWindow:
    """Sums episode statistics until summarize() averages and clears them."""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.episodes = 0
        self.totals = EpisodeStats()
        self.clip_totals: List[float] = []

    def add(self, es: EpisodeStats) -> None:
        self.episodes += 1
        t = self.totals
        t.steps += es.steps
        t.total_reward += es.total_reward
        t.end_kills += es.end_kills
        t.end_deaths += es.end_deaths
        t.stand_count += es.stand_count
        t.attack_count += es.attack_count
        t.failed_stands += es.failed_stands
        t.hp_regenerated_from_stand += es.hp_regenerated_from_stand
        t.xp_left += es.xp_left
        t.levels_gained += es.levels_gained
        t.stand_out_of_combat_while_injured += es.stand_out_of_combat_while_injured
        t.stand_out_of_combat_at_full_hp += es.stand_out_of_combat_at_full_hp

        if len(self.clip_totals) < len(es.clip_fractions):
            self.clip_totals.extend([0.0] * (len(es.clip_fractions) - len(self.clip_totals)))
        for i, frac in enumerate(es.clip_fractions):
            self.clip_totals[i] += frac

    def summarize(self, episode: int) -> WindowSummary:
        """Average the window, then reset it. K/D uses window totals."""
        n = float(max(1, self.episodes))
        t = self.totals
        summary = WindowSummary(
            episode=episode,
            avg_reward=t.total_reward / n,
            avg_steps=t.steps / n,
            kd=safe_ratio(t.end_kills, t.end_deaths),
            avg_kills=t.end_kills / n,
            avg_deaths=t.end_deaths / n,
            avg_attack=t.attack_count / n,
            avg_stand=t.stand_count / n,
            avg_failed_stands=t.failed_stands / n,
            avg_regen_hp=t.hp_regenerated_from_stand / n,
            avg_stand_injured=t.stand_out_of_combat_while_injured / n,
            avg_stand_full=t.stand_out_of_combat_at_full_hp / n,
            avg_levels=t.levels_gained / n,
            avg_xp_left=t.xp_left / n,
            clip_fractions=[c / n for c in self.clip_totals],
        )
        self.reset()
        return summary
