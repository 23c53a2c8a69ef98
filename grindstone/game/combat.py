import random

from grindstone.models.combat_state import CombatState, FightStyle


XP_PER_DAMAGE = 4
XP_PER_LEVEL_STEP = 50


class Combat:
    @staticmethod
    def player_hit_chance(state: CombatState) -> float:
        return state.attack_lvl / (state.attack_lvl + state.npc_def + 1)

    @staticmethod
    def npc_hit_chance(state: CombatState) -> float:
        return state.npc_attack / (state.npc_attack + state.defence_lvl + 1)

    @staticmethod
    def roll_damage(hit_chance: float, strength: int, rng: random.Random) -> int:
        """Roll a single swing: 0 on a miss, otherwise 1..max(1, strength // 2)."""
        if rng.random() < hit_chance:
            max_hit = max(1, strength // 2)
            return 1 + rng.randrange(max_hit)
        return 0

    @staticmethod
    def roll_player_hit(state: CombatState, rng: random.Random) -> int:
        return Combat.roll_damage(Combat.player_hit_chance(state), state.str_lvl, rng)

    @staticmethod
    def roll_npc_hit(state: CombatState, rng: random.Random) -> int:
        return Combat.roll_damage(Combat.npc_hit_chance(state), state.npc_str, rng)

    @staticmethod
    def xp_to_next(state: CombatState) -> int:
        return XP_PER_LEVEL_STEP * (state.levels_increased + 1)

    @staticmethod
    def apply_experience(state: CombatState, hit: int) -> CombatState:
        """
        Award XP for damage dealt and apply every level-up it pays for.

        A single big hit can level several times. The levelled skill follows
        the fight style; an unknown style levels Attack.
        """
        if hit <= 0:
            return state

        state.xp_collected += hit * XP_PER_DAMAGE

        while state.xp_collected >= Combat.xp_to_next(state):
            state.xp_collected -= Combat.xp_to_next(state)
            state.levels_increased += 1

            if state.fight_style == FightStyle.SLASH.value:
                state.str_lvl += 1
            elif state.fight_style == FightStyle.DEFENSIVE.value:
                state.defence_lvl += 1
            else:
                state.attack_lvl += 1

        return state
