"""Schema/versioning helpers for backfill output files."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

SCHEMA_VERSION = 1

OUTPUT_FIELDS = ["symbol", "buysell_indicator", "quantity", "price", "packetSequence"]


def output_schema(output_name: str, fmt: str, count: int, still_missing: Iterable[int] = ()) -> dict:
    """Describe one emitted output file; records are ordered by packetSequence."""
    return {
        "schema_version": SCHEMA_VERSION,
        "created_utc": datetime.now(timezone.utc).isoformat(),
        "output": {
            "path": output_name,
            "format": fmt,
            "fields": list(OUTPUT_FIELDS),
            "order": "packetSequence ascending",
            "count": int(count),
            "still_missing": sorted(int(s) for s in still_missing),
        },
    }


def write_schema(
    output_path: Path,
    fmt: str,
    count: int,
    still_missing: Iterable[int] = (),
) -> Path:
    """Write `schema.json` next to `output_path` and return its path."""
    path = output_path.with_name("schema.json")
    path.parent.mkdir(parents=True, exist_ok=True)
    schema = output_schema(output_path.name, fmt, count, still_missing)
    path.write_text(json.dumps(schema, indent=2, sort_keys=True))
    return path
