"""Terminal Phase Correction Designer (Rich CLI)

App Flow
--------
1) Initialization: show welcome menu.
2) Select a JSON design request from `chains/`.
3) Show the filter chain and design settings in Rich tables.
4) Confirm, then design the correction FIR (with progress spinner).
5) Show the result: taps, latency, FFT size, warnings and quality metrics.
6) Save taps to `output_taps/` as WAV and text, plus a response report.
7) Return to main menu.

This file orchestrates the UX; the design work resides in `filter_engine/`.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

# Dependency preflight: fail fast with clear guidance if a package is missing.
try:
    import numpy as np  # noqa: F401
except ImportError:
    print("Missing required dependency: numpy. Install dependencies with:")
    print("  pip install -e .")
    sys.exit(1)
try:
    import scipy  # noqa: F401
except ImportError:
    print("Missing required dependency: scipy. Install dependencies with:")
    print("  pip install -e .")
    sys.exit(1)
try:
    from rich.console import Console
    from rich.logging import RichHandler
    from rich.table import Table
    from rich.panel import Panel
    from rich.prompt import Prompt, Confirm
    from rich.progress import Progress, SpinnerColumn, TextColumn
except ImportError:
    print("Missing required dependency: rich. Install dependencies with:")
    print("  pip install -e .")
    sys.exit(1)
try:
    import soundfile as sf  # noqa: F401
except ImportError:
    print("Missing required dependency: soundfile. Install dependencies with:")
    print("  pip install -e .")
    sys.exit(1)

from filter_engine.config import phase_correction_options_from_dict
from filter_engine.errors import FilterDesignError
from filter_engine.io_utils import (
    build_output_path,
    ensure_directories,
    list_chain_configs,
    load_design_config,
    save_taps_text,
    save_taps_wav,
)
from filter_engine.phase_correction import design_phase_correction
from filter_engine.report import create_correction_report
from filter_engine.response import format_frequency, format_gain
from filter_engine.types import (
    BiquadStage,
    DelayStage,
    DiffEqStage,
    GainStage,
    PhaseCorrectionOptions,
    PhaseCorrectionResult,
)

console = Console()


# ====================================
# UI helpers
# ====================================

def setup_logging(level: int = logging.WARNING) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def clear_screen() -> None:
    console.clear()


def welcome_screen() -> None:
    clear_screen()
    panel = Panel.fit(
        "Place JSON design requests into [bold]chains/[/bold]\n\n"
        "Choose a filter chain, design a phase-correction FIR,\n"
        "and save the taps to [bold]output_taps/[/bold].",
        title="Phase Correction Designer",
        border_style="cyan",
    )
    console.print(panel)


def main_menu() -> str:
    console.print("\n[bold]Main Menu[/bold]")
    choices = {
        "1": "Design a Phase Correction",
        "2": "Exit",
    }
    for k, v in choices.items():
        console.print(f"  [cyan]{k}[/cyan]) {v}")
    return Prompt.ask("Select an option", choices=list(choices.keys()), default="1")


# ====================================
# Chain selection and loading
# ====================================

def pick_chain_config() -> Optional[Path]:
    files = list_chain_configs()
    if not files:
        console.print(Panel("No design requests found in [bold]chains/[/bold].\n\n"
                            "- Supported: .json\n"
                            "- See examples/configs/ for a sample request.",
                            title="No Files", border_style="red"))
        return None
    table = Table(title="Available Design Requests", show_lines=True)
    table.add_column("#", justify="right", style="cyan", no_wrap=True)
    table.add_column("Filename", style="white")
    for idx, p in enumerate(files, 1):
        table.add_row(str(idx), p.name)
    console.print(table)

    valid_choices = [str(i) for i in range(1, len(files) + 1)]
    sel = Prompt.ask("Pick a file number", choices=valid_choices)
    return files[int(sel) - 1]


def load_options_with_feedback(path: Path) -> Optional[PhaseCorrectionOptions]:
    try:
        config: Dict[str, Any] = load_design_config(path)
        return phase_correction_options_from_dict(config)
    except (OSError, FilterDesignError) as e:
        console.print(Panel(f"Failed to load design request: {e}", title="Error", border_style="red"))
        return None


# ====================================
# Reporting
# ====================================

def _describe_stage(stage) -> str:
    if isinstance(stage, BiquadStage):
        p = stage.parameters
        parts = [p.type]
        freq = getattr(p, "freq", None)
        if freq is not None:
            parts.append(f"{format_frequency(freq)} Hz")
        gain = getattr(p, "gain", None)
        if gain is not None:
            parts.append(f"{format_gain(gain)} dB")
        for name in ("q", "slope", "order"):
            value = getattr(p, name, None)
            if value is not None:
                parts.append(f"{name} {value:g}")
        return " ".join(parts)
    if isinstance(stage, GainStage):
        suffix = " dB" if stage.scale == "dB" else "x"
        inv = " (inverted)" if stage.inverted else ""
        return f"Gain {stage.gain:g}{suffix}{inv}"
    if isinstance(stage, DelayStage):
        return f"Delay {stage.delay:g} {stage.unit}" + (" (subsample)" if stage.subsample else "")
    if isinstance(stage, DiffEqStage):
        return f"DiffEq a={len(stage.a)} b={len(stage.b)} coefficients"
    return f"{stage.type} (not modeled)"


def show_chain(path: Path, options: PhaseCorrectionOptions) -> None:
    console.print(Panel(f"Design request [bold]{path.name}[/bold]", border_style="green"))

    t = Table(title="Filter Chain", show_lines=True)
    t.add_column("#", justify="right", style="cyan")
    t.add_column("Stage", style="white")
    for idx, stage in enumerate(options.filters, 1):
        t.add_row(str(idx), _describe_stage(stage))
    console.print(t)

    s = Table(title="Design Settings")
    s.add_column("Setting", style="magenta")
    s.add_column("Value", style="white")
    s.add_row("Sample rate", f"{options.sample_rate:g} Hz")
    if options.taps is not None:
        s.add_row("Taps", str(options.taps))
    else:
        s.add_row("Max latency", f"{options.max_latency_ms:g} ms")
    s.add_row("Window", options.window)
    s.add_row("Band", f"{format_frequency(options.band.low_hz)} - {format_frequency(options.band.high_hz)} Hz")
    s.add_row("Magnitude gate", f"{options.magnitude_gate.threshold_db:g} dB")
    s.add_row("Normalize", "yes" if options.normalize else "no")
    console.print(s)


def design_with_progress(options: PhaseCorrectionOptions) -> PhaseCorrectionResult:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
    ) as progress:
        task_id = progress.add_task("Designing correction FIR...", total=None)
        result = design_phase_correction(options)
        progress.update(task_id, description="Design complete.")
    return result


def show_result(result: PhaseCorrectionResult, sample_rate: float) -> None:
    t = Table(title="Correction FIR")
    t.add_column("Property", style="cyan")
    t.add_column("Value", justify="right")
    t.add_row("Taps", str(result.taps_used))
    t.add_row("Delay (samples)", str(result.delay_samples))
    t.add_row("Latency (ms)", f"{result.delay_samples / sample_rate * 1000.0:.2f}")
    t.add_row("FFT size", str(result.fft_size))
    console.print(t)

    if result.warnings:
        console.print(Panel("\n".join(f"- {w}" for w in result.warnings),
                            title="Warnings", border_style="yellow"))


# ====================================
# Main loop
# ====================================

def run_once() -> None:
    ensure_directories()
    path = pick_chain_config()
    if path is None:
        return

    options = load_options_with_feedback(path)
    if options is None:
        return

    show_chain(path, options)
    if not Confirm.ask("Design correction?", default=True):
        console.print("Cancelled. Returning to main menu.")
        return

    try:
        result = design_with_progress(options)
    except FilterDesignError as e:
        console.print(Panel(f"Design failed: {e}", title="Error", border_style="red"))
        return
    show_result(result, options.sample_rate)

    out_path = build_output_path(path)
    save_taps_wav(out_path, result.taps, options.sample_rate)
    txt_path = out_path.with_suffix(".txt")
    save_taps_text(txt_path, result.taps)

    report, png_path, json_path = create_correction_report(
        options.filters, result, options.sample_rate, out_path
    )
    summ = report.get("summary", {})
    png_line = f"Response plot: [cyan]{png_path}[/cyan]" if png_path.exists() else (
        "Response plot: not created (install matplotlib to enable plotting)."
    )
    msg = (
        f"Saved taps to\n[bold green]{out_path}[/bold green]\n[bold green]{txt_path}[/bold green]\n\n"
        f"{png_line}\n"
        f"Report: [cyan]{json_path}[/cyan]\n\n"
        f"Excess phase at {format_frequency(summ.get('probe_hz', 0.0))} Hz: "
        f"[bold]{summ.get('baseline_excess_rad', 0.0):.3f}[/bold] -> "
        f"[bold]{summ.get('corrected_excess_rad', 0.0):.3f}[/bold] rad\n"
        f"Worst magnitude error: [bold]{summ.get('worst_magnitude_error_db', 0.0):.2f}[/bold] dB"
    )
    console.print(Panel(msg, title="Done", border_style="green"))


def main() -> None:
    setup_logging()
    while True:
        welcome_screen()
        sel = main_menu()
        if sel == "1":
            run_once()
            if not Confirm.ask("Return to main menu?", default=True):
                break
        else:
            break
    console.print("Goodbye!")


if __name__ == "__main__":
    main()
