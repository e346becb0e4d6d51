"""Command-line entry point: ``midi-strudel convert`` and ``midi-strudel parse``."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from midi_strudel.config import load_config
from midi_strudel.converter import ConversionOptions, convert_document
from midi_strudel.errors import MidiStrudelError, SerializationError
from midi_strudel.formatter import format_document
from midi_strudel.model.document import TIME_UNITS
from midi_strudel.quantize.grid import SUPPORTED_QUANTIZATIONS
from midi_strudel.serialization.deserialize import load_document
from midi_strudel.serialization.serialize import document_to_json

logger = logging.getLogger("midi_strudel")

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="midi-strudel",
        description="Convert Standard MIDI Files into quantized Strudel patterns.",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = p.add_subparsers(dest="command", required=True)

    conv = sub.add_parser("convert", help="Write a Strudel pattern file")
    conv.add_argument("input", help="Input MIDI file (.mid) or JSON from 'parse' (.json)")
    conv.add_argument("-o", "--out", default=None,
                      help="Output file (default: <input>.strudel, '-' for stdout)")
    which = conv.add_mutually_exclusive_group()
    which.add_argument("--track", type=int, default=None, help="Track index to convert (default 0)")
    which.add_argument("--all-tracks", action="store_true", help="Convert and stack every non-empty track")
    conv.add_argument("--quantize", type=int, choices=SUPPORTED_QUANTIZATIONS, default=None,
                      help="Slices per whole note (default depends on the time signature)")
    conv.add_argument("--no-polyphony", action="store_true",
                      help="One note per slice (longest note wins)")
    conv.add_argument("--tempo", type=float, default=None, help="Override tempo in BPM")
    conv.add_argument("--config", default=None, help="YAML config file")

    parse = sub.add_parser("parse", help="Dump the decoded file as JSON or text")
    parse.add_argument("input", help="Input MIDI file (.mid)")
    parse.add_argument("-o", "--out", default=None, help="Output file (default: stdout)")
    parse.add_argument("--format", choices=("json", "text"), default="json")
    parse.add_argument("--time", choices=TIME_UNITS, default="seconds",
                       help="Note timing in the JSON dump: seconds and ticks, or ticks only")
    parse.add_argument("--include-meta", action=argparse.BooleanOptionalAction, default=True,
                       help="Include text and unknown meta events in the JSON dump")
    return p


def _write(content: str, out: str | None) -> None:
    if out is None or out == "-":
        sys.stdout.write(content)
        if not content.endswith("\n"):
            sys.stdout.write("\n")
        return
    try:
        Path(out).write_text(content, encoding="utf-8")
    except OSError as exc:
        raise SerializationError(f"Failed to write '{out}': {exc}") from exc
    print(f"[midi-strudel] wrote {out}", file=sys.stderr)


def default_output_path(input_path: Path) -> Path:
    return input_path.with_suffix(".strudel")


def _run_convert(args: argparse.Namespace, in_path: Path) -> None:
    cfg = load_config(args.config)
    options = ConversionOptions.from_config(
        cfg,
        tempo=args.tempo,
        track_index=args.track,
        quantization=args.quantize,
        polyphony=False if args.no_polyphony else None,
        all_tracks=args.all_tracks or None,
    )
    doc = load_document(in_path)
    content = convert_document(doc, in_path.name, options)
    out = args.out if args.out is not None else str(default_output_path(in_path))
    _write(content, out)


def _run_parse(args: argparse.Namespace, in_path: Path) -> None:
    doc = load_document(in_path)
    if args.format == "text":
        content = format_document(doc)
    else:
        content = document_to_json(doc, time_unit=args.time, include_meta=args.include_meta)
    _write(content, args.out)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    in_path = Path(args.input).expanduser()
    if not in_path.is_file():
        print(f"[midi-strudel] ERROR: input not found: {in_path}", file=sys.stderr)
        return EXIT_NOT_FOUND

    try:
        if args.command == "convert":
            _run_convert(args, in_path)
        else:
            _run_parse(args, in_path)
    except MidiStrudelError as exc:
        logger.debug("Conversion failed", exc_info=True)
        print(f"[midi-strudel] ERROR: {exc}", file=sys.stderr)
        return EXIT_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
