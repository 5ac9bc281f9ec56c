"""Command-line tool for solving power balance model scripts.

The pwb-solve CLI tool executes a model script, solves the model with
progress tracking and writes the results to an HDF5 file.
"""

from __future__ import annotations

import hashlib
import logging
import sys
import time
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from .._version import __version__
from ..config import Settings
from ..errors import ConfigurationError, PowerBalanceError
from ..io.hdf5 import save_result
from .executor import ALLOWED_MODULES, RestrictedImportError, execute_model_script, validate_model_object
from .progress import SolveProgress, format_time, print_model_info, print_result_summary

console = Console()


def run_script(script: Path, output: Path | None, verbose: bool, dry_run: bool) -> int:
    """Execute, solve and save one model script; returns the exit status."""
    console.print(f"\n[bold]Power balance model:[/bold] {script.name}", style="blue")
    console.print("─" * 60)

    script_content = script.read_text()
    script_hash = hashlib.sha256(script_content.encode()).hexdigest()
    if verbose:
        console.print(f"Script hash: {script_hash}")

    if output is None:
        output = Path(f"results_{script_hash[:8]}.h5")

    # Models built without explicit settings pick up the same overrides
    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        console.print(f"\n[bold red]Configuration Error:[/bold red] {e}")
        return 1
    if verbose:
        console.print(f"Settings: {settings}")

    console.print("Loading model...", style="dim")
    try:
        namespace = execute_model_script(script, script_content, verbose=verbose)
    except RestrictedImportError as e:
        console.print(f"\n[bold red]Security Error:[/bold red] {e}")
        console.print(
            f"\n[yellow]Model scripts can only import:[/yellow] {', '.join(sorted(ALLOWED_MODULES))}"
        )
        return 1
    except SyntaxError as e:
        console.print("\n[bold red]Syntax Error in script:[/bold red]")
        console.print(f"  {e}")
        return 1
    except PowerBalanceError as e:
        console.print(f"\n[bold red]Model Error:[/bold red] {e}")
        return 1

    try:
        model = validate_model_object(namespace)
    except ValueError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        return 1

    print_model_info(console, model, output)

    if dry_run:
        console.print("[yellow]Dry run - model not solved[/yellow]")
        return 0

    start_time = time.time()
    progress = SolveProgress(console, model.num_frequencies)
    try:
        result = model.solve(callback=progress.update)
    except KeyboardInterrupt:
        progress.finish()
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return 130  # Standard exit code for SIGINT
    except PowerBalanceError as e:
        progress.finish()
        console.print(f"\n[bold red]Solver Error:[/bold red] {e}")
        if verbose:
            console.print_exception()
        return 1
    finally:
        progress.finish()
    runtime = time.time() - start_time

    print_result_summary(console, result)
    save_result(result, output, script_content, total_runtime_seconds=runtime)

    console.print("─" * 60)
    console.print("✓ [bold green]Solve complete![/bold green]")
    console.print(f"  Output: {output} ({output.stat().st_size / 1e3:.1f} kB)")
    console.print(f"  Runtime: {format_time(runtime)}")
    if verbose:
        console.print("\n[dim]Results can be analyzed with HDF5 tools (h5py, HDFView)[/dim]")
    return 0


@click.command()
@click.argument("script", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Output file path (default: results_{hash}.h5)",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output with debug info")
@click.option("--dry-run", is_flag=True, help="Validate script without solving the model")
@click.version_option(version=__version__, prog_name="pwb-solve")
def main(script: Path, output: Path | None, verbose: bool, dry_run: bool):
    """Solve a power balance model defined in a Python script.

    SCRIPT is the path to a Python file that defines a 'model' variable
    containing a PowerBalanceModel instance. The model is solved and the
    results saved to an HDF5 file.

    Example script:

    \b
        import numpy as np
        from powerbalance import PowerBalanceModel
        model = PowerBalanceModel(np.linspace(1e9, 10e9, 91), "Box")
        model.add_cavity("C1", "Generic", [6.0, 1.0, 5.8e7, 1.0])
        model.add_source("S1", "Direct", "C1", [1.0])
        # model.solve() will be called by pwb-solve
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    try:
        status = run_script(script, output, verbose, dry_run)
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            console.print_exception()
        status = 1
    sys.exit(status)


if __name__ == "__main__":
    main()
