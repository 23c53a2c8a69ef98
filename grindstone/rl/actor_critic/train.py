import argparse
from pathlib import Path
from typing import List, Optional

from torch.utils.tensorboard import SummaryWriter

from grindstone.errors import InvalidConfiguration
from grindstone.game.combat_engine import CombatEngine
from grindstone.rl.actor_critic.constants import (
    ACTION_SPACE,
    ACTOR_ALPHA,
    CRITIC_ALPHA,
    EPOCHS,
    GAMMA,
    HIDDEN_UNITS,
    MAX_EPISODE_STEPS,
    TRAIN_EPISODES,
    TRAIN_LOG_EVERY,
    TRAIN_SEED,
    TRUNK_ALPHA,
)
from grindstone.rl.actor_critic.network import TinyActorCritic
from grindstone.rl.actor_critic.stats import StatsWindow, WindowSummary, build_episode_stats
from grindstone.rl.actor_critic.trajectory import TrajectoryRunner
from grindstone.rl.translator import StateVectorizer
from grindstone.rl.utils import default_paths
from grindstone.ui.terminal_ui import TrainingReportUI


def log_window(writer: SummaryWriter, s: WindowSummary) -> None:
    writer.add_scalar("episode/avg_reward", s.avg_reward, s.episode)
    writer.add_scalar("episode/avg_steps", s.avg_steps, s.episode)
    writer.add_scalar("combat/kd", s.kd, s.episode)
    writer.add_scalar("combat/avg_kills", s.avg_kills, s.episode)
    writer.add_scalar("combat/avg_deaths", s.avg_deaths, s.episode)
    writer.add_scalar("actions/attack", s.avg_attack, s.episode)
    writer.add_scalar("actions/stand", s.avg_stand, s.episode)
    writer.add_scalar("actions/failed_stands", s.avg_failed_stands, s.episode)
    writer.add_scalar("actions/regen_hp", s.avg_regen_hp, s.episode)
    writer.add_scalar("actions/stand_injured", s.avg_stand_injured, s.episode)
    writer.add_scalar("actions/stand_full_hp", s.avg_stand_full, s.episode)
    writer.add_scalar("progress/levels", s.avg_levels, s.episode)
    writer.add_scalar("progress/xp_left", s.avg_xp_left, s.episode)
    for epoch, frac in enumerate(s.clip_fractions):
        writer.add_scalar(f"ppo/clip_fraction_epoch_{epoch}", frac, s.episode)


def train(
    episodes: int = TRAIN_EPISODES,
    log_every: int = TRAIN_LOG_EVERY,
    seed: int = TRAIN_SEED,
    hidden_units: int = HIDDEN_UNITS,
    epochs: int = EPOCHS,
    gamma: float = GAMMA,
    alpha_critic: float = CRITIC_ALPHA,
    alpha_actor: float = ACTOR_ALPHA,
    alpha_trunk: float = TRUNK_ALPHA,
    max_steps: int = MAX_EPISODE_STEPS,
    log_dir: Optional[Path] = None,
    tensorboard: bool = True,
    ui: Optional[TrainingReportUI] = None,
) -> List[WindowSummary]:
    """
    Main entrypoint to train the tiny actor-critic against the combat engine.

    Args:
        episodes: Number of episodes to play (each one is also a PPO update)
        log_every: Episodes per reporting window
        seed: Seed for the combat engine and the network
        hidden_units: Width of the trunk
        epochs: PPO epochs per episode
        gamma: Discount factor
        alpha_critic: Critic learning rate
        alpha_actor: Actor learning rate
        alpha_trunk: Trunk learning rate
        max_steps: Step ceiling per episode
        log_dir: Directory for TensorBoard runs (default: runs/ next to this file)
        tensorboard: Whether to enable TensorBoard logging
        ui: Report renderer (default: a fresh TrainingReportUI)

    Returns:
        One WindowSummary per completed reporting window
    """
    if log_every <= 0:
        raise InvalidConfiguration(f"log_every must be positive (got {log_every})")

    encoder = StateVectorizer()
    engine = CombatEngine(seed=seed)
    network = TinyActorCritic(encoder.feature_count, hidden_units, ACTION_SPACE, seed=seed)
    runner = TrajectoryRunner(
        network,
        encoder,
        gamma=gamma,
        epochs=epochs,
        alpha_critic=alpha_critic,
        alpha_actor=alpha_actor,
        alpha_trunk=alpha_trunk,
        max_steps=max_steps,
    )
    ui = ui if ui is not None else TrainingReportUI()

    writer = None
    if tensorboard:
        log_dir = Path(log_dir) if log_dir else default_paths(Path(__file__).parent)
        log_dir.mkdir(parents=True, exist_ok=True)
        writer = SummaryWriter(log_dir=str(log_dir))

    print("--- Starting Grindstone Training (PPO) ---")
    ui.print_header_panel({
        "episodes": f"{episodes:,}",
        "seed": seed,
        "hidden": hidden_units,
        "epochs": epochs,
        "gamma": gamma,
        "alphas": f"{alpha_critic}/{alpha_actor}/{alpha_trunk}",
    })

    window = StatsWindow()
    summaries: List[WindowSummary] = []

    try:
        for ep in range(1, episodes + 1):
            result = runner.run_episode(engine)
            window.add(build_episode_stats(result, engine.counters))

            if ep % log_every == 0:
                summary = window.summarize(ep)
                summaries.append(summary)
                ui.print_window(summary)
                if writer:
                    log_window(writer, summary)
    except KeyboardInterrupt:
        print("\nTraining interrupted by user.")

    print("--- Training Complete ---")
    ui.print_summary_table(summaries)

    if writer:
        writer.flush()
        writer.close()
    return summaries


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Train the tiny PPO actor-critic on the combat grind.")
    parser.add_argument("--episodes", type=int, default=TRAIN_EPISODES, help="Number of episodes to train.")
    parser.add_argument("--log-every", type=int, default=TRAIN_LOG_EVERY, help="Episodes per report window.")
    parser.add_argument("--seed", type=int, default=TRAIN_SEED, help="Seed for engine and network.")
    parser.add_argument("--hidden", type=int, default=HIDDEN_UNITS, help="Hidden units in the trunk.")
    parser.add_argument("--epochs", type=int, default=EPOCHS, help="PPO epochs per episode.")
    parser.add_argument("--gamma", type=float, default=GAMMA, help="Discount factor.")
    parser.add_argument("--alpha-critic", type=float, default=CRITIC_ALPHA, help="Critic learning rate.")
    parser.add_argument("--alpha-actor", type=float, default=ACTOR_ALPHA, help="Actor learning rate.")
    parser.add_argument("--alpha-trunk", type=float, default=TRUNK_ALPHA, help="Trunk learning rate.")
    parser.add_argument("--logdir", type=str, default=None, help="Directory for TensorBoard runs.")
    parser.add_argument("--no-tensorboard", action="store_true", help="Disable TensorBoard logging.")
    return parser.parse_args(argv)


def main(argv=None):
    """Command-line interface."""
    args = parse_args(argv)
    train(
        episodes=args.episodes,
        log_every=args.log_every,
        seed=args.seed,
        hidden_units=args.hidden,
        epochs=args.epochs,
        gamma=args.gamma,
        alpha_critic=args.alpha_critic,
        alpha_actor=args.alpha_actor,
        alpha_trunk=args.alpha_trunk,
        log_dir=Path(args.logdir) if args.logdir else None,
        tensorboard=not args.no_tensorboard,
    )


if __name__ == "__main__":
    main()
