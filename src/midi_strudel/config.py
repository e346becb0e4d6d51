"""Conversion defaults with optional YAML overrides.

Values are merged in order: built-in defaults, the user file
(``~/.config/midi-strudel/config.yaml``) when present, then an explicit
``--config`` file. Example::

    quantization: 16
    polyphony: false
    room: 0.3
    sounds:
      0: steinway
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import yaml

from midi_strudel.errors import ValidationError

USER_CONFIG_PATH = Path.home() / ".config" / "midi-strudel" / "config.yaml"

DEFAULTS: dict[str, Any] = {
    "quantization": None,  # None -> chosen from the time signature
    "polyphony": True,
    "room": 0.2,
    "sounds": {},  # GM program -> Strudel sound override
}


def _deep_merge(base: dict[str, Any], extra: dict[str, Any]) -> dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in extra.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _deep_merge(out[key], value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValidationError(f"Invalid config file '{path}': {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(f"Config file '{path}' must contain a mapping")
    return data


def load_config(
    path: str | Path | None = None,
    user_path: str | Path | None = USER_CONFIG_PATH,
) -> dict[str, Any]:
    """Return the merged configuration dict."""
    cfg = copy.deepcopy(DEFAULTS)
    if user_path is not None and Path(user_path).is_file():
        cfg = _deep_merge(cfg, _read_yaml(Path(user_path)))
    if path is not None:
        explicit = Path(path)
        if not explicit.is_file():
            raise ValidationError(f"Config file not found: {explicit}")
        cfg = _deep_merge(cfg, _read_yaml(explicit))

    try:
        cfg["sounds"] = {int(k): str(v) for k, v in (cfg.get("sounds") or {}).items()}
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Config 'sounds' must map program numbers to names: {exc}") from exc
    return cfg
