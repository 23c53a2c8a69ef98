from typing import Dict, List, Optional

from rich import box
from rich.align import Align
from rich.box import ROUNDED
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from grindstone.rl.actor_critic.stats import WindowSummary


class TrainingReportUI:
    def __init__(self, console: Optional[Console] = None):
        self.console = console if console is not None else Console()
        self.total_width = 88

    @staticmethod
    def reward_color(avg_reward: float) -> str:
        return "green" if avg_reward > 0 else "yellow" if avg_reward > -5 else "red"

    def print_header_panel(self, settings: Dict[str, object]):
        content = "  ".join(f"[blue]{k}[/blue]={v}" for k, v in settings.items())
        header = Panel(
            Align.center(content, vertical="middle"),
            title="[bold]Grindstone PPO[/bold]",
            box=ROUNDED,
            padding=(0, 1),
            width=self.total_width,
        )
        self.console.print(header)

    def format_window_line(self, s: WindowSummary) -> str:
        color = self.reward_color(s.avg_reward)
        clip = "/".join(f"{c:.2f}" for c in s.clip_fractions) or "-"
        return (
            f"[bold][Ep {s.episode:,}][/bold] "
            f"[{color}]avgR={s.avg_reward:.3f}[/{color}] avgSteps={s.avg_steps:.1f} | "
            f"K/D={s.kd:.2f} (K={s.avg_kills:.2f} D={s.avg_deaths:.2f}) | "
            f"act: atk={s.avg_attack:.1f} stand={s.avg_stand:.1f} | "
            f"standFail={s.avg_failed_stands:.2f} regenHp={s.avg_regen_hp:.2f} | "
            f"standInjured={s.avg_stand_injured:.2f} standFull={s.avg_stand_full:.2f} | "
            f"lvl+={s.avg_levels:.2f} xpLeft={s.avg_xp_left:.1f} | clip={clip}"
        )

    def print_window(self, s: WindowSummary):
        self.console.print(self.format_window_line(s), highlight=False)

    def print_summary_table(self, summaries: List[WindowSummary]):
        """Final table with one row per reporting window."""
        if not summaries:
            self.console.print("[yellow]No complete reporting window[/yellow]")
            return

        table = Table(title="[bold]Training summary[/bold]", box=box.ROUNDED)
        table.add_column("Episode", justify="right")
        table.add_column("avgR", justify="right")
        table.add_column("avgSteps", justify="right")
        table.add_column("K/D", justify="right")
        table.add_column("Attack", justify="right")
        table.add_column("Stand", justify="right")
        table.add_column("Levels", justify="right")
        table.add_column("Clip (last epoch)", justify="right")

        for s in summaries:
            color = self.reward_color(s.avg_reward)
            last_clip = f"{s.clip_fractions[-1]:.2f}" if s.clip_fractions else "-"
            table.add_row(
                f"{s.episode:,}",
                f"[{color}]{s.avg_reward:.3f}[/{color}]",
                f"{s.avg_steps:.1f}",
                f"{s.kd:.2f}",
                f"{s.avg_attack:.1f}",
                f"{s.avg_stand:.1f}",
                f"{s.avg_levels:.2f}",
                last_clip,
            )

        total_avg = sum(s.avg_reward for s in summaries) / len(summaries)
        self.console.print(table)
        self.console.print(f"Mean of window avgR: [bold]{total_avg:.3f}[/bold]")
