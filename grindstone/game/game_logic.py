"""
Pure combat rules for the grinding simulation.

resolve_turn never mutates the state it is given: it copies, applies one
player action plus the NPC's answer, and reports what happened. The
CombatEngine wraps it with a random source and per-episode counters.
"""
import random
from dataclasses import dataclass

from grindstone.models.combat_state import Action, CombatState
from grindstone.game.combat import Combat


KILL_REWARD = 1.0
DEATH_PENALTY = -1.0
STAND_IN_COMBAT_PENALTY = -0.01


@dataclass
class TurnEvents:
    """Bookkeeping flags for a single turn (statistics only)."""
    failed_stand: bool = False
    hp_regenerated: int = 0
    stand_while_injured: bool = False
    stand_at_full_hp: bool = False


@dataclass
class TurnOutcome:
    state: CombatState
    reward: float
    events: TurnEvents


def _respawn_after_death(state: CombatState) -> None:
    state.in_combat = False
    state.deaths += 1
    state.current_hp = state.max_hp
    state.stands = 0
    # The NPC heals back up when the player dies
    state.npc_current_hp = state.npc_max_hp


def _npc_turn(state: CombatState, rng: random.Random) -> bool:
    """NPC swings at the player. Returns True when the swing was lethal."""
    npc_dmg = Combat.roll_npc_hit(state, rng)
    if npc_dmg >= state.current_hp:
        _respawn_after_death(state)
        return True
    state.current_hp -= npc_dmg
    return False


def _attack(state: CombatState, rng: random.Random) -> float:
    reward = 0.0
    state.in_combat = True

    player_dmg = Combat.roll_player_hit(state, rng)
    if player_dmg >= state.npc_current_hp:
        reward += KILL_REWARD
        state.kills += 1
        state.in_combat = False
        Combat.apply_experience(state, state.npc_current_hp)
        state.npc_current_hp = state.npc_max_hp
        state.stands = 0
    else:
        state.npc_current_hp -= player_dmg
        Combat.apply_experience(state, player_dmg)

    # A dead NPC does not get to swing back
    if state.in_combat and _npc_turn(state, rng):
        reward += DEATH_PENALTY
    return reward


def _stand(state: CombatState, rng: random.Random, events: TurnEvents) -> float:
    reward = 0.0
    if state.in_combat:
        reward += STAND_IN_COMBAT_PENALTY
        if _npc_turn(state, rng):
            reward += DEATH_PENALTY
            events.failed_stand = True
        return reward

    state.stands += 1
    if state.current_hp < state.max_hp:
        state.current_hp += 1
        events.stand_while_injured = True
        events.hp_regenerated = 1
    else:
        events.stand_at_full_hp = True
    return reward


def resolve_turn(game_state: CombatState, action: Action, rng: random.Random) -> TurnOutcome:
    """
    Apply one player action to a copy of the state.

    Args:
        game_state: Current state (copied, not mutated)
        action: Action to apply
        rng: Random source for hit and damage rolls

    Returns:
        TurnOutcome with the new state, the reward and the turn's events
    """
    new_state = game_state.copy()
    events = TurnEvents()

    match action:
        case Action.ATTACK:
            reward = _attack(new_state, rng)
        case Action.STAND:
            reward = _stand(new_state, rng, events)
        case _:
            raise ValueError(f"Unknown action: {action!r}")

    return TurnOutcome(state=new_state, reward=reward, events=events)
