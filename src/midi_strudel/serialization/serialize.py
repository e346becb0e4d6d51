"""Serialize an analysed document to JSON.

Usage::

    from midi_strudel.serialization.serialize import document_to_json

    text = document_to_json(doc)
    text = document_to_json(doc, time_unit="ticks", include_meta=False)

The output can be read back with ``deserialize.document_from_json``.
"""

from __future__ import annotations

import json

from midi_strudel.model.document import MidiDocument


def document_to_json(
    doc: MidiDocument,
    indent: int | None = 2,
    time_unit: str = "seconds",
    include_meta: bool = True,
) -> str:
    """Return *doc* as a JSON string."""
    data = doc.to_dict(time_unit=time_unit, include_meta=include_meta)
    return json.dumps(data, indent=indent, ensure_ascii=False)
