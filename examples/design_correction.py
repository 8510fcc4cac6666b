#!/usr/bin/env python3
"""Example: design a phase-correction FIR for a filter chain.

Usage:
  python examples/design_correction.py --config examples/configs/crossover_chain.json \
      [--output output_taps/crossover.wav] [--taps 4095 | --latency-ms 20] [--verbose]

If --output is omitted, it writes to output_taps/<config name>_phase_correction.wav.
Taps are also written as text next to the WAV, together with a JSON report
(and a PNG plot when matplotlib is installed).
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path

from rich.logging import RichHandler

from filter_engine import io_utils
from filter_engine.config import phase_correction_options_from_dict
from filter_engine.errors import FilterDesignError
from filter_engine.phase_correction import design_phase_correction
from filter_engine.report import create_correction_report


def main() -> None:
    p = argparse.ArgumentParser(description="Phase-correction FIR design example")
    p.add_argument("--config", type=str, required=True, help="JSON design request")
    p.add_argument("--output", type=str, default=None, help="Path to output WAV")
    p.add_argument("--taps", type=int, default=None, help="Override the tap count")
    p.add_argument("--latency-ms", type=float, default=None, help="Override the latency budget")
    p.add_argument("--verbose", action="store_true", help="Log design details")
    args = p.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
    )

    cfg_path = Path(args.config)
    if not cfg_path.exists():
        raise SystemExit(f"Config not found: {cfg_path}")

    try:
        cfg = io_utils.load_design_config(cfg_path)
        # Command-line sizing replaces whatever the config asked for.
        if args.taps is not None:
            cfg["taps"] = args.taps
        elif args.latency_ms is not None:
            cfg.pop("taps", None)
            cfg["max_latency_ms"] = args.latency_ms
        options = phase_correction_options_from_dict(cfg)
        result = design_phase_correction(options)
    except FilterDesignError as e:
        raise SystemExit(f"Design failed: {e}")

    out_path = Path(args.output) if args.output else io_utils.build_output_path(cfg_path)
    io_utils.save_taps_wav(out_path, result.taps, options.sample_rate)
    io_utils.save_taps_text(out_path.with_suffix(".txt"), result.taps)
    report, png_path, json_path = create_correction_report(
        options.filters, result, options.sample_rate, out_path
    )

    summ = report["summary"]
    print(f"Designed {result.taps_used} taps (delay {result.delay_samples} samples, FFT {result.fft_size})")
    for w in result.warnings:
        print(f"Warning: {w}")
    print(
        f"Excess phase at {summ['probe_hz']:.1f} Hz: "
        f"{summ['baseline_excess_rad']:.3f} -> {summ['corrected_excess_rad']:.3f} rad"
    )
    print(f"Wrote: {out_path}")
    print(f"Report: {json_path}" + (f", {png_path}" if png_path.exists() else ""))


if __name__ == "__main__":
    main()
