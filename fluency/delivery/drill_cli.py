"""
Fluency Drill: command line tools for the adaptive learner model.

Commands:
- fluency simulate   - Forgetting-model tables for tuning the config
- fluency stats      - Per-item learner state of a namespace
- fluency calibrate  - Measure the motor baseline from the terminal
- fluency reset      - Clear a namespace
"""
from __future__ import annotations

import sys
from dataclasses import fields, replace
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from fluency.config import get_settings
from fluency.adaptive import simulation
from fluency.adaptive.calibration import CalibrationRunner, MotorBaseline, get_calibration_thresholds
from fluency.adaptive.config import DEFAULT_CONFIG, AdaptiveConfig
from fluency.adaptive.selector import AdaptiveSelector
from fluency.core.mastery import MasteryLevel, SpeedLevel

from .state_store import StateStore

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="fluency",
    help="Fluency Drill: adaptive speed-and-recall practice",
    no_args_is_help=True,
)
console = Console()

CALIBRATION_KEYS = ["F", "J", "D", "K"]


# =============================================================================
# Display Helpers
# =============================================================================


def _open_store(namespace: Optional[str], db_path: Optional[Path]) -> StateStore:
    settings = get_settings()
    return StateStore(
        namespace=namespace or settings.namespace,
        db_path=db_path or settings.state_db_path,
    )


def _simple_table(title: str, headers: list[str], rows: list[list[str]]) -> Table:
    table = Table(title=title, title_justify="left")
    for i, header in enumerate(headers):
        table.add_column(header, justify="left" if i == 0 else "right")
    for row in rows:
        table.add_row(*row)
    return table


def _config_table(cfg: AdaptiveConfig) -> Table:
    """Active config; values that differ from the defaults are starred."""
    table = Table(show_header=False, box=None)
    table.add_column("Key", style="dim")
    table.add_column("Value", style="bold")
    for f in fields(AdaptiveConfig):
        value = getattr(cfg, f.name)
        mark = " [yellow]*[/yellow]" if value != getattr(DEFAULT_CONFIG, f.name) else ""
        table.add_row(f.name, f"{value}{mark}")
    return table


# =============================================================================
# Commands
# =============================================================================


@app.command()
def simulate(
    initial_stability: Optional[float] = typer.Option(None, help="Half-life after first correct answer (h)"),
    max_stability: Optional[float] = typer.Option(None, help="Half-life cap (h)"),
    stability_growth_base: Optional[float] = typer.Option(None, help="Growth multiplier per correct answer"),
    stability_decay_on_wrong: Optional[float] = typer.Option(None, help="Multiplier on a wrong answer"),
    min_time: Optional[float] = typer.Option(None, help="Fastest plausible response (ms)"),
    automaticity_target: Optional[float] = typer.Option(None, help="EWMA with speed score 0.5 (ms)"),
    sessions: int = typer.Option(10, "--sessions", "-n", help="Sessions per trajectory"),
) -> None:
    """Print forgetting-model tables for tuning parameters."""
    overrides = {
        name: value
        for name, value in {
            "initial_stability": initial_stability,
            "max_stability": max_stability,
            "stability_growth_base": stability_growth_base,
            "stability_decay_on_wrong": stability_decay_on_wrong,
            "min_time": min_time,
            "automaticity_target": automaticity_target,
        }.items()
        if value is not None
    }
    cfg = replace(get_settings().adaptive_config(), **overrides)
    logger.debug(f"Simulating with overrides {overrides}")

    console.print(Panel(_config_table(cfg), title="Config", border_style="cyan"))

    console.print(
        _simple_table(
            "Recall decay: P = 2^(-elapsed/stability)",
            ["", *(label for label, _ in simulation.RECALL_TIME_POINTS)],
            simulation.recall_decay_rows(),
        )
    )
    console.print(
        _simple_table(
            "Stability updates",
            ["Scenario", "oldS", "resp", "elapsed", "newS", "newS(days)", "growth"],
            simulation.stability_update_rows(cfg),
        )
    )
    console.print(
        _simple_table(
            "Within-session weights",
            ["Item state", "speedW", "recall", "recallW", "total", "vs unseen"],
            simulation.weight_rows(cfg),
        )
    )

    trajectory = Table(title="Stability trajectory over repeated sessions", title_justify="left")
    trajectory.add_column("Schedule")
    for n in range(1, sessions + 1):
        trajectory.add_column(f"#{n}", justify="right")
    for label, interval, response_time in simulation.TRAJECTORIES:
        values = simulation.stability_trajectory(cfg, interval, response_time, sessions)
        trajectory.add_row(label, *(simulation.fmt_hours(v) for v in values))
    console.print(trajectory)

    console.print(_simple_table("Speed score by EWMA", ["EWMA", "score"], simulation.speed_score_rows(cfg)))
    console.print(
        _simple_table(
            "Automaticity (recall x speed score)",
            ["", *(f"{e}ms" for e in simulation.EWMA_VALUES)],
            simulation.automaticity_rows(cfg),
        )
    )


@app.command()
def stats(
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Quiz mode namespace"),
    db_path: Optional[Path] = typer.Option(None, "--db", help="State database path"),
    provider: str = typer.Option("button", "--provider", "-p", help="Calibration provider"),
) -> None:
    """Show per-item learner state."""
    store = _open_store(namespace, db_path)
    base_config = get_settings().adaptive_config()
    baseline = MotorBaseline(store, provider, base_config)
    selector = AdaptiveSelector(store, base_config)
    baseline.restore(selector)

    item_ids = store.get_item_ids()
    console.print(f"\n[bold cyan]Learner State[/bold cyan] ({store.namespace})")
    if baseline.value is None:
        console.print("[dim]Motor baseline: not calibrated[/dim]")
    else:
        console.print(f"Motor baseline: [bold]{baseline.value:.0f}ms[/bold]")

    if not item_ids:
        console.print("[yellow]No items recorded yet.[/yellow]")
        store.close()
        return

    table = Table()
    table.add_column("Item")
    table.add_column("Samples", justify="right")
    table.add_column("EWMA", justify="right")
    table.add_column("Speed", justify="left")
    table.add_column("Half-life", justify="right")
    table.add_column("Recall", justify="right")
    table.add_column("Automaticity", justify="left")
    table.add_column("Deadline", justify="right")

    for item_id in item_ids:
        item = selector.get_stats(item_id)
        recall = selector.get_recall(item_id)
        automaticity = selector.get_automaticity(item_id)
        level = MasteryLevel.from_automaticity(automaticity)
        speed = SpeedLevel.from_ms(item.ewma if item else None, baseline.value)
        deadline = store.get_deadline(item_id)
        table.add_row(
            item_id,
            str(item.sample_count) if item else "-",
            f"{item.ewma:.0f}ms" if item else "-",
            f"[{speed.color}]{speed.display_name}[/{speed.color}]",
            simulation.fmt_hours(item.stability) if item and item.stability is not None else "-",
            simulation.fmt_recall(recall),
            f"[{level.color}]{level.emoji} {level.display_name}"
            f"{'' if automaticity is None else f' {automaticity * 100:.0f}%'}[/{level.color}]",
            f"{deadline:.0f}ms" if deadline is not None else "-",
        )

    console.print(table)
    mastered = sum(1 for item_id in item_ids if selector.is_mastered(item_id))
    console.print(f"\nAutomatic: [bold]{mastered}[/bold] / {len(item_ids)}")
    if selector.check_all_mastered(item_ids):
        console.print("[green]All items retained[/green]")
    if selector.check_needs_review(item_ids):
        console.print("[yellow]Time to review?[/yellow]")
    store.close()


@app.command()
def calibrate(
    provider: str = typer.Option("button", "--provider", "-p", help="Calibration provider"),
    db_path: Optional[Path] = typer.Option(None, "--db", help="State database path"),
) -> None:
    """Measure tap speed: type the shown key and press Enter, as fast as you can."""
    settings = get_settings()
    store = _open_store(None, db_path)
    selector = AdaptiveSelector(store, settings.adaptive_config())
    baseline = MotorBaseline(store, provider, settings.adaptive_config())
    result: dict[str, float | None] = {}

    runner = CalibrationRunner(
        CALIBRATION_KEYS,
        on_complete=lambda median: result.update(median=median),
        trial_count=settings.calibration_trials,
        warmup_trials=settings.calibration_warmup_trials,
    )

    console.print(
        Panel(
            "We'll measure your typing speed to set personalized targets.\n"
            f"Type each key shown and press Enter - {settings.calibration_trials} trials.",
            title="Quick Speed Check",
            border_style="cyan",
        )
    )
    target = runner.start()
    try:
        while target is not None:
            done, total = runner.progress
            answer = console.input(f"[dim]{done + 1}/{total}[/dim] Press [bold cyan]{target}[/bold cyan]: ")
            if runner.press(answer.strip().upper()):
                target = runner.current_target
            else:
                console.print("[red]Wrong key, try again[/red]")
    except (KeyboardInterrupt, EOFError):
        runner.cancel()
        store.close()
        console.print("\n[yellow]Calibration abandoned; previous baseline kept.[/yellow]")
        raise typer.Exit(1)

    median = result.get("median")
    try:
        baseline.apply(median, selector)
    except ValueError as e:
        store.close()
        console.print(f"[red]Calibration failed: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Your baseline: {baseline.value:.0f}ms", title_justify="left")
    table.add_column("Speed")
    table.add_column("Under", justify="right")
    table.add_column("Meaning")
    for threshold in get_calibration_thresholds(baseline.value):
        table.add_row(
            threshold.label,
            "-" if threshold.max_ms is None else f"{threshold.max_ms}ms",
            threshold.meaning,
        )
    console.print(table)
    store.close()


@app.command()
def reset(
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Quiz mode namespace"),
    db_path: Optional[Path] = typer.Option(None, "--db", help="State database path"),
    confirm: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Clear learner state for a fresh start."""
    store = _open_store(namespace, db_path)
    if not confirm and not Confirm.ask(
        f"Reset ALL learner state in '{store.namespace}'? This cannot be undone!", default=False
    ):
        store.close()
        raise typer.Exit(0)

    store.clear()
    store.close()
    console.print(f"[green]Learner state for '{store.namespace}' has been reset.[/green]")


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        level=get_settings().log_level,
        format="<level>{message}</level>",
    )

    app()


if __name__ == "__main__":
    main()
