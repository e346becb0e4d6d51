"""midi-strudel: convert Standard MIDI Files into quantized Strudel patterns."""

__version__ = "0.3.0"
