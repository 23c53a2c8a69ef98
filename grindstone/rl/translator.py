import math
from dataclasses import dataclass

import torch

from grindstone.errors import FeatureCountMismatch
from grindstone.models.combat_state import Action, CombatState


FEATURE_DTYPE = torch.float64


@dataclass(frozen=True)
class Bounds:
    hp_max_max: int = 99         # largest player max HP the sim can produce
    npc_hp_max_max: int = 999
    lvl_max: int = 99            # player skill level cap
    npc_stat_max: int = 999
    xp_pivot: int = 10_000       # soft-saturation pivots
    lvl_inc_pivot: int = 10
    fight_style_max: int = 2     # styles are 0..2
    kills_pivot: int = 30
    deaths_pivot: int = 30
    stands_max: int = 3


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def mm11(v: float, lo: float, hi: float) -> float:
    """Min-max scale a bounded quantity into [-1, 1]. Degenerate ranges map to 0."""
    if hi <= lo:
        return 0.0
    r01 = (clamp(v, lo, hi) - lo) / (hi - lo)
    return 2.0 * r01 - 1.0


def soft11(v: float, pivot: float) -> float:
    """
    Squash an unbounded, growing counter into [-1, 1).

    z = max(0, v) / pivot goes through z / sqrt(1 + z^2), so 0 maps to -1,
    the pivot to about 0.41, and large counts approach +1 without reaching it.
    """
    p = max(1e-9, pivot)
    z = max(0.0, v) / p
    y01 = z / math.sqrt(1.0 + z * z)
    return 2.0 * y01 - 1.0


class StateVectorizer:
    """
    Bridges the combat engine and the actor-critic network.
    Converts a CombatState into a fixed-width feature tensor and maps action
    indices back to engine actions.
    """
    FEATURE_COUNT = 17

    def __init__(self, bounds: Bounds = None):
        self.bounds = bounds if bounds is not None else Bounds()

    @property
    def feature_count(self) -> int:
        return self.FEATURE_COUNT

    def encode_features(self, s: CombatState) -> list:
        b = self.bounds
        return [
            # ---- Player ----
            mm11(s.max_hp, 1, b.hp_max_max),
            mm11(s.current_hp, 0, max(1, s.max_hp)),
            mm11(s.str_lvl, 1, b.lvl_max),
            mm11(s.attack_lvl, 1, b.lvl_max),
            mm11(s.defence_lvl, 1, b.lvl_max),
            # ---- NPC ----
            mm11(s.npc_max_hp, 1, b.npc_hp_max_max),
            mm11(s.npc_current_hp, 0, max(1, s.npc_max_hp)),
            mm11(s.npc_attack, 1, b.npc_stat_max),
            mm11(s.npc_def, 1, b.npc_stat_max),
            mm11(s.npc_str, 1, b.npc_stat_max),
            # ---- Context ----
            1.0 if s.in_combat else -1.0,
            # ---- Progression ----
            soft11(s.xp_collected, b.xp_pivot),
            soft11(s.levels_increased, b.lvl_inc_pivot),
            mm11(s.fight_style, 0, b.fight_style_max),
            soft11(s.kills, b.kills_pivot),
            soft11(s.deaths, b.deaths_pivot),
            mm11(s.stands, 0, b.stands_max),
        ]

    def encode_state(self, game_state: CombatState) -> torch.Tensor:
        """
        Converts a combat state into a 1-D float64 tensor of length feature_count.

        Raises:
            FeatureCountMismatch: if the filled features disagree with feature_count
        """
        features = self.encode_features(game_state)
        if len(features) != self.feature_count:
            raise FeatureCountMismatch(
                f"Feature count mismatch: filled={len(features)} declared={self.feature_count}"
            )
        return torch.tensor(features, dtype=FEATURE_DTYPE)

    def decode_action(self, action_idx: int) -> Action:
        """Maps an action index back to the engine action."""
        return Action(action_idx)
