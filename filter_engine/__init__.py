"""Filter response and phase-correction design engine.

This package groups together modular components for:
- Filter coefficient synthesis (RBJ-style biquads, first-order sections, crossovers)
- Frequency response evaluation for single filters and full filter chains
- FFT and windowed-sinc FIR design utilities
- FIR phase correction design (frequency-sampling method)

Everything here designs coefficients or taps; nothing processes audio streams.
"""

__all__ = [
    "analysis",
    "biquad",
    "complex_math",
    "config",
    "errors",
    "fft",
    "filter_chain",
    "fir",
    "fir_ops",
    "io_utils",
    "phase",
    "phase_correction",
    "report",
    "response",
    "types",
]

__version__ = "0.1.0"
