from dataclasses import dataclass, replace
from enum import Enum


class Action(Enum):
    STAND = 0
    ATTACK = 1


class FightStyle(Enum):
    STAB = 0    # levels Attack
    SLASH = 1   # levels Strength
    DEFENSIVE = 2  # levels Defence


KILLS_TO_WIN = 30
DEATHS_TO_LOSE = 30


@dataclass
class CombatState:
    # ---- Player ----
    max_hp: int = 10
    current_hp: int = 10
    str_lvl: int = 10
    attack_lvl: int = 10
    defence_lvl: int = 10

    # ---- NPC ----
    npc_max_hp: int = 30
    npc_current_hp: int = 30
    npc_attack: int = 5
    npc_def: int = 4
    npc_str: int = 5

    # ---- Context ----
    in_combat: bool = False
    xp_collected: int = 0       # XP toward the next level, resets on level-up
    levels_increased: int = 0
    fight_style: int = FightStyle.STAB.value

    kills: int = 0
    deaths: int = 0
    stands: int = 0             # consecutive stands out of combat

    @property
    def won(self) -> bool:
        return self.kills >= KILLS_TO_WIN

    @property
    def lost(self) -> bool:
        return self.deaths >= DEATHS_TO_LOSE

    @property
    def game_over(self) -> bool:
        return self.won or self.lost

    def copy(self) -> 'CombatState':
        """
        Create a copy of the CombatState.

        Every field is an immutable scalar, so a shallow replace is a full copy.
        """
        return replace(self)
