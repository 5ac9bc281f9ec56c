"""Progress display for power balance solves.

Provides a rich terminal UI for the frequency loop:
- Progress bar with percentage
- Elapsed time and ETA
- Frequencies per second and memory usage
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import numpy as np
import psutil
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)
from rich.table import Table

if TYPE_CHECKING:
    from powerbalance.core.model import PowerBalanceModel
    from powerbalance.core.results import PowerBalanceResult


def format_time(seconds: float) -> str:
    """Format time duration for display.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string like "0.42s", "1m 23s" or "2h 15m"
    """
    if seconds < 10:
        return f"{seconds:.2f}s"
    elif seconds < 60:
        return f"{seconds:.0f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = int(seconds % 60)
        return f"{minutes}m {secs:02d}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        return f"{hours}h {minutes:02d}m"


def format_frequency(hz: float) -> str:
    """Format a frequency with an SI prefix, e.g. "2.45 GHz"."""
    for scale, unit in ((1e12, "THz"), (1e9, "GHz"), (1e6, "MHz"), (1e3, "kHz")):
        if abs(hz) >= scale:
            return f"{hz / scale:.3g} {unit}"
    return f"{hz:.3g} Hz"


class SolveProgress:
    """Real-time progress display for the frequency loop.

    Example:
        >>> progress = SolveProgress(console, model.num_frequencies)
        >>> model.solve(callback=progress.update)
        >>> progress.finish()
    """

    def __init__(self, console: Console, num_frequencies: int, update_interval: float = 0.1):
        """Initialize progress display.

        Args:
            console: Rich console instance
            num_frequencies: Number of frequencies to solve
            update_interval: Minimum time between updates (seconds)
        """
        self.console = console
        self.num_frequencies = num_frequencies
        self.update_interval = update_interval

        self.start_time = time.time()
        self.last_update = 0.0
        self.peak_memory = 0.0
        self._finished = False

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            TextColumn("•"),
            TimeRemainingColumn(),
            console=console,
        )
        self.task = self.progress.add_task("Solving", total=num_frequencies)
        self.progress.start()

    def update(self, freq_index: int):
        """Update progress after a frequency has been solved.

        Updates are rate limited except for the last frequency.

        Args:
            freq_index: Index of the frequency just solved (0-indexed)
        """
        current_time = time.time()
        last = freq_index + 1 == self.num_frequencies
        if not last and current_time - self.last_update < self.update_interval:
            return

        self.progress.update(self.task, completed=freq_index + 1)

        elapsed = current_time - self.start_time
        rate = (freq_index + 1) / elapsed if elapsed > 0 else 0.0

        current_memory = psutil.Process().memory_info().rss / (1024**3)  # GB
        self.peak_memory = max(self.peak_memory, current_memory)
        self.progress.update(
            self.task,
            description=f"Solving ({rate:.0f} freq/s, {current_memory:.2f} GB)",
        )
        self.last_update = current_time

    def finish(self):
        """Stop the progress display; safe to call more than once."""
        if self._finished:
            return
        self._finished = True
        self.progress.stop()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.finish()


def print_model_info(console: Console, model: PowerBalanceModel, output_path):
    """Print model parameters before solving.

    Args:
        console: Rich console instance
        model: Model to be solved
        output_path: Path to output file
    """
    f = model.frequencies

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Parameter", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Model", model.name)
    table.add_row(
        "Frequencies",
        f"{len(f)} ({format_frequency(f.min())} to {format_frequency(f.max())})",
    )
    table.add_row("Cavities", f"{model.num_cavities} ({', '.join(model.cavity_tags)})")
    table.add_row("Absorbers", str(model.num_absorbers))
    table.add_row("Apertures", str(model.num_apertures))
    table.add_row("Sources", str(model.num_sources))
    table.add_row("Output", str(output_path))

    console.print(table)
    console.print()


def print_result_summary(console: Console, result: PowerBalanceResult):
    """Print per-cavity power density ranges and the energy balance."""
    table = Table(title="Cavity power density", padding=(0, 2))
    table.add_column("Cavity", style="cyan")
    table.add_column("Min [W/m^2]", justify="right")
    table.add_column("Max [W/m^2]", justify="right")
    table.add_column("Mean total Q", justify="right")

    for tag in result.cavity_tags:
        values, _ = result.get_output("Cavity", tag, ["powerDensity", "totalQ"])
        density, q = values[:, 0], values[:, 1]
        finite_q = q[np.isfinite(q)]
        mean_q = f"{finite_q.mean():.3g}" if finite_q.size else "inf"
        table.add_row(tag, f"{density.min():.3e}", f"{density.max():.3e}", mean_q)

    console.print(table)
    report = result.energy_balance_report()
    console.print(
        f"  Energy balance: {report['conservation_status']} "
        f"(max relative residual {report['max_relative_residual']:.2e})"
    )
