"""
Shared utility functions for RL training and reporting.
"""
from pathlib import Path


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / max(1, denominator); used for K/D style ratios."""
    return numerator / max(1, denominator)


def default_paths(base_dir: Path) -> Path:
    """
    Get the default TensorBoard runs directory, creating it if needed.

    Args:
        base_dir: Base directory (typically __file__.parent)

    Returns:
        Path to the runs directory
    """
    runs = base_dir / "runs"
    runs.mkdir(parents=True, exist_ok=True)
    return runs
