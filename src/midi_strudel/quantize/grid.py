"""Quantization grid: slice layout for one time signature and tempo.

The quantization level counts slices per whole note (16 = sixteenth
notes), so a measure holds ``quantization * numerator // denominator``
slices and one slice lasts ``(60 / bpm) * (4 / quantization)`` seconds.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from midi_strudel.errors import ValidationError

SUPPORTED_QUANTIZATIONS: tuple[int, ...] = (6, 8, 12, 16, 24, 32)


def snap(value: float) -> int:
    """Round half up; the single rounding rule used for every grid snap."""
    return math.floor(value + 0.5)


def validate_quantization(quantization: int) -> int:
    if quantization not in SUPPORTED_QUANTIZATIONS:
        supported = ", ".join(str(q) for q in SUPPORTED_QUANTIZATIONS)
        raise ValidationError(
            f"Unsupported quantization {quantization}; expected one of: {supported}"
        )
    return quantization


def default_quantization(numerator: int, denominator: int) -> int:
    """Pick a quantization level suited to the time signature.

    - 3/4 and 6/8 -> 8 (eighth-note slices)
    - everything else -> 16, or 32 when 16 does not fill whole measures
    """
    if (numerator, denominator) in ((3, 4), (6, 8)):
        return 8
    if (16 * numerator) % denominator:
        return 32
    return 16


@dataclass(frozen=True)
class QuantizationGrid:
    quantization: int
    numerator: int
    denominator: int
    bpm: float

    def __post_init__(self) -> None:
        validate_quantization(self.quantization)
        if self.numerator < 1:
            raise ValidationError(f"Time signature numerator must be >= 1, got {self.numerator}")
        if self.denominator < 1 or self.denominator & (self.denominator - 1):
            raise ValidationError(
                f"Time signature denominator must be a power of two, got {self.denominator}"
            )
        if self.bpm <= 0:
            raise ValidationError(f"Tempo must be > 0 BPM, got {self.bpm}")
        if (self.quantization * self.numerator) % self.denominator:
            raise ValidationError(
                f"Quantization {self.quantization} does not divide a "
                f"{self.numerator}/{self.denominator} measure into whole slices"
            )

    @property
    def slices_per_measure(self) -> int:
        return (self.quantization * self.numerator) // self.denominator

    @property
    def slice_seconds(self) -> float:
        return (60.0 / self.bpm) * (4.0 / self.quantization)

    def position(self, seconds: float) -> int:
        """Grid position nearest to *seconds*."""
        return snap(seconds / self.slice_seconds)

    def slice_count(self, seconds: float) -> int:
        """Whole slices covered by *seconds*, never less than one."""
        return max(1, snap(seconds / self.slice_seconds))
