import random
from dataclasses import dataclass
from typing import Optional, Union

from grindstone.models.combat_state import Action, CombatState
from grindstone.models.transition import StepResult
from grindstone.game.game_logic import resolve_turn


@dataclass
class EpisodeCounters:
    failed_stands: int = 0
    hp_regenerated_from_stand: int = 0
    stand_out_of_combat_while_injured: int = 0
    stand_out_of_combat_at_full_hp: int = 0


class CombatEngine:
    def __init__(self, seed: Optional[int] = None):
        """
        Initialize the combat engine.

        Args:
            seed: Optional seed for the hit/damage rolls.
                  If None, a random seed is generated and kept for reproducibility.
        """
        if seed is None:
            seed = random.randint(0, 2**31 - 1)

        self.seed = seed
        self.rng = random.Random(seed)
        self.counters = EpisodeCounters()

    def reset(self) -> CombatState:
        """Start a new episode: fresh player and NPC, cleared counters."""
        self.counters = EpisodeCounters()
        return CombatState()

    def step(self, state: CombatState, action: Union[Action, int]) -> StepResult:
        """
        Resolve one turn. The given state is left untouched.

        Args:
            state: Current combat state
            action: Action enum or its integer index (0 = stand, 1 = attack)

        Returns:
            StepResult(state, reward, done)
        """
        if not isinstance(action, Action):
            try:
                action = Action(int(action))
            except ValueError:
                raise ValueError(f"Unknown action index: {action!r}") from None

        outcome = resolve_turn(state, action, self.rng)

        events = outcome.events
        if events.failed_stand:
            self.counters.failed_stands += 1
        if events.stand_while_injured:
            self.counters.stand_out_of_combat_while_injured += 1
        if events.stand_at_full_hp:
            self.counters.stand_out_of_combat_at_full_hp += 1
        self.counters.hp_regenerated_from_stand += events.hp_regenerated

        return StepResult(outcome.state, outcome.reward, outcome.state.game_over)
