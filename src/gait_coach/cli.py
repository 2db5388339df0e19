"""CLI application using Typer."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

app = typer.Typer(
    name="gait-coach",
    help="Walking metrics from phone motion traces",
    no_args_is_help=True,
)
console = Console()

config_app = typer.Typer(help="Configuration management")
app.add_typer(config_app, name="config")


def _settings(ctx: typer.Context):
    return ctx.obj["settings"]


def _fail(message: str) -> NoReturn:
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(1)


# ============================================================================
# Config commands
# ============================================================================


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Show current configuration."""
    data = _settings(ctx).to_dict()

    console.print("[bold]Current Configuration[/bold]\n")
    for section, values in data.items():
        console.print(f"[cyan]{section}:[/cyan]")
        for key, value in values.items():
            console.print(f"  {key}: {value}")
        console.print()


@config_app.command("init")
def config_init(
    path: Annotated[Path, typer.Option("--path", "-p", help="Config file path")] = Path(
        "config/settings.yaml"
    ),
):
    """Initialize configuration file with defaults."""
    from gait_coach.core.config import Settings

    if path.exists():
        console.print(f"[yellow]Config already exists at {path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Abort()

    Settings().to_yaml(path)
    console.print(f"[green]Created config at {path}[/green]")


# ============================================================================
# Calibration
# ============================================================================


@app.command("calibrate")
def calibrate(
    ctx: typer.Context,
    trace: Annotated[Path, typer.Argument(help="CSV trace: t,gx,gy,gz,ax,ay,az")],
    side: Annotated[Optional[str], typer.Option("--side", "-s", help="Pocket side: left or right")] = None,
    hz: Annotated[Optional[float], typer.Option("--hz", help="Sampling rate of the trace")] = None,
    save: Annotated[Optional[Path], typer.Option("--save", help="Write transform + quality JSON")] = None,
):
    """Estimate body axes from a calibration walk."""
    from gait_coach.core.errors import ReplayFormatError
    from gait_coach.core.records import QualityRecord, TransformRecord
    from gait_coach.motion import OrientationCalibrator, PocketSide, ReplaySource

    cfg = _settings(ctx).calibration
    hz = hz or cfg.hz
    try:
        pocket = PocketSide(side or cfg.pocket_side)
    except ValueError:
        _fail(f"Unknown pocket side: {side}")

    try:
        source = ReplaySource.from_csv(trace)
    except (FileNotFoundError, ReplayFormatError) as e:
        _fail(f"Cannot read trace: {e}")

    calibrator = OrientationCalibrator(pocket, hz=hz, seconds=cfg.seconds, min_samples=cfg.min_samples)
    result = calibrator.calibrate(source)
    q = result.quality

    table = Table(title="Orientation Calibration")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Samples", str(q.sample_count))
    table.add_row("Duration (s)", f"{q.duration_seconds:.1f}")
    table.add_row("Up stability", f"{q.up_stability:.3f}")
    table.add_row("Forward dominance", f"{q.forward_dominance:.3f}")
    table.add_row("Quality", "[green]Good[/green]" if q.is_good else "[yellow]Low[/yellow]")
    console.print(table)

    if not result.ok:
        _fail("Calibration failed: not enough samples. Walk for the full capture and retry.")

    if save:
        payload = {
            "transform": TransformRecord.from_transform(result.transform).to_dict(),
            "quality": QualityRecord.from_quality(q, hz).to_dict(),
            "orientation": q.to_dict(),
        }
        save.parent.mkdir(parents=True, exist_ok=True)
        save.write_text(json.dumps(payload, indent=2))
        console.print(f"[green]Calibration saved to {save}[/green]")


# ============================================================================
# Session analysis
# ============================================================================


def _load_calibration(path: Path):
    from gait_coach.core.records import QualityRecord, TransformRecord
    from gait_coach.motion import OrientationQuality

    data = json.loads(path.read_text())
    transform = TransformRecord.from_dict(data["transform"]).to_transform()
    if "orientation" not in data:
        return transform, QualityRecord.from_dict(data["quality"])

    o = data["orientation"]
    quality = OrientationQuality(
        duration_seconds=float(o.get("duration_seconds", 0.0)),
        sample_count=int(o.get("sample_count", 0)),
        up_stability=float(o.get("up_stability", 0.0)),
        forward_dominance=float(o.get("forward_dominance", 0.0)),
    )
    return transform, quality


def _print_result(result) -> None:
    m = result.metrics
    s = result.summary

    table = Table(title="Session")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Steps", str(s.steps))
    table.add_row("Cadence (spm)", f"{m.cadence_spm:.1f}")
    table.add_row("M/L sway RMS (g)", f"{m.ml_sway_rms:.3f}")
    table.add_row("Avg step time (s)", f"{s.avg_step_time:.3f}")
    table.add_row("Step time CV", f"{s.cv_step_time * 100:.1f}%")
    table.add_row("Asymmetry", f"{s.asym_step_time_pct:.1f}%")
    table.add_row("Score", f"{result.score.total} ({result.score.band.label})")
    console.print(table)

    for note in result.score.notes:
        console.print(f"  [yellow]-[/yellow] {note}")
    if result.tags:
        console.print("\n[bold]Patterns[/bold]")
        for tag in result.tags:
            console.print(f"  [magenta]{tag.value}[/magenta]: {tag.title}")


def _build_session(ctx: typer.Context, calibration: Optional[Path], baseline: Optional[Path]):
    from gait_coach.analysis import TargetResolver
    from gait_coach.core.records import baseline_from_dict
    from gait_coach.motion import MotionStreamProcessor
    from gait_coach.session import GaitSession

    settings = _settings(ctx)
    transform = quality = None
    if calibration:
        try:
            transform, quality = _load_calibration(calibration)
        except (OSError, KeyError, ValueError) as e:
            _fail(f"Cannot read calibration: {e}")

    saved = None
    if baseline:
        try:
            saved = baseline_from_dict(json.loads(baseline.read_text()))
        except (OSError, ValueError) as e:
            _fail(f"Cannot read baseline: {e}")

    processor = MotionStreamProcessor.from_settings(settings.stream, transform, quality)
    resolver = TargetResolver.from_settings(settings.target, baseline=saved)
    return GaitSession.from_settings(settings, processor, resolver)


@app.command("analyze")
def analyze(
    ctx: typer.Context,
    trace: Annotated[Path, typer.Argument(help="CSV trace: t,gx,gy,gz,ax,ay,az")],
    calibration: Annotated[
        Optional[Path], typer.Option("--calibration", "-c", help="Calibration JSON from 'calibrate --save'")
    ] = None,
    baseline: Annotated[Optional[Path], typer.Option("--baseline", "-b", help="Baseline record JSON")] = None,
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Write session JSON")] = None,
):
    """Replay a recorded walk and report metrics, score and patterns."""
    from gait_coach.core.errors import ReplayFormatError
    from gait_coach.motion import ReplaySource

    try:
        source = ReplaySource.from_csv(trace)
    except (FileNotFoundError, ReplayFormatError) as e:
        _fail(f"Cannot read trace: {e}")

    session = _build_session(ctx, calibration, baseline)
    if not session.processor.calibration_ok:
        console.print("[yellow]No good calibration: using device axes[/yellow]")

    result = session.run(source)
    _print_result(result)

    if output:
        output.write_text(json.dumps(result.summary.to_dict(), indent=2))
        console.print(f"[green]Session saved to {output}[/green]")


@app.command("simulate")
def simulate(
    ctx: typer.Context,
    seconds: Annotated[float, typer.Option("--seconds", help="Walk duration")] = 30.0,
    cadence: Annotated[float, typer.Option("--cadence", help="Steps per minute")] = 100.0,
    asymmetry: Annotated[float, typer.Option("--asymmetry", help="Left/right step time ratio")] = 1.0,
    sway: Annotated[float, typer.Option("--sway", help="M/L swing amplitude (g)")] = 0.08,
    seed: Annotated[int, typer.Option("--seed", help="Random seed")] = 0,
    export: Annotated[Optional[Path], typer.Option("--export", help="Also write the trace as CSV")] = None,
):
    """Calibrate on and analyze a synthetic walk."""
    from gait_coach.motion import (
        MotionStreamProcessor,
        OrientationCalibrator,
        PocketSide,
        ReplaySource,
        SimulatedWalkSource,
    )
    from gait_coach.session import GaitSession

    settings = _settings(ctx)
    cfg = settings.calibration
    walker = SimulatedWalkSource(
        seconds=seconds,
        hz=cfg.hz,
        cadence_spm=cadence,
        left_right_ratio=asymmetry,
        ml_amplitude_g=sway,
        seed=seed,
    )
    if export:
        ReplaySource(walker.to_array()).to_csv(export)
        console.print(f"[green]Trace written to {export}[/green]")

    calibrator = OrientationCalibrator(PocketSide(cfg.pocket_side), hz=cfg.hz, seconds=cfg.seconds)
    cal = calibrator.calibrate(walker)
    console.print(
        f"Calibration: {'[green]good[/green]' if cal.is_good else '[yellow]low[/yellow]'} "
        f"(up {cal.quality.up_stability:.2f}, forward {cal.quality.forward_dominance:.2f})"
    )

    processor = MotionStreamProcessor.from_settings(settings.stream, cal.transform, cal.quality)
    result = GaitSession.from_settings(settings, processor).run(walker)
    _print_result(result)


@app.command("score")
def score(
    asym: Annotated[float, typer.Option("--asym", help="Step-time asymmetry (%)")],
    ml: Annotated[float, typer.Option("--ml", help="M/L sway RMS (g)")],
    cadence: Annotated[float, typer.Option("--cadence", help="Cadence (spm)")],
    baseline_ml: Annotated[Optional[float], typer.Option("--baseline-ml", help="Baseline M/L sway (g)")] = None,
    cv: Annotated[Optional[float], typer.Option("--cv", help="Step time CV (0-1)")] = None,
):
    """Score a set of metrics and list coaching patterns."""
    from gait_coach.analysis import GaitPatternDetector, compute_gait_score

    result = compute_gait_score(asym, ml, cadence, baseline_ml_sway=baseline_ml)

    table = Table(title=f"Gait Score: {result.total} ({result.band.label})")
    table.add_column("Component", style="cyan")
    table.add_column("Penalty", justify="right")
    for name, penalty in result.component_penalties.items():
        table.add_row(name, str(penalty))
    console.print(table)
    for note in result.notes:
        console.print(f"  [yellow]-[/yellow] {note}")

    if cv is not None:
        tags = GaitPatternDetector().detect(asym, ml, cadence, cv)
        for tag in tags:
            console.print(f"  [magenta]{tag.value}[/magenta]: {tag.title}")


# ============================================================================
# Main entry point
# ============================================================================


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[Optional[Path], typer.Option("--config", help="Settings YAML")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
):
    """Walking metrics from phone motion traces."""
    from gait_coach.core.config import load_settings
    from gait_coach.core.errors import ConfigError

    try:
        settings = load_settings(config)
    except ConfigError as e:
        _fail(str(e))

    level = logging.DEBUG if verbose else getattr(logging, settings.logging.level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    ctx.obj = {"settings": settings}


if __name__ == "__main__":
    app()
