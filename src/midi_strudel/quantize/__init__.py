"""Quantization package: grid parameters and pattern generation."""

from midi_strudel.quantize.engine import measures_needed, quantize
from midi_strudel.quantize.grid import (
    SUPPORTED_QUANTIZATIONS,
    QuantizationGrid,
    default_quantization,
    snap,
)

__all__ = [
    "measures_needed",
    "quantize",
    "QuantizationGrid",
    "SUPPORTED_QUANTIZATIONS",
    "default_quantization",
    "snap",
]
