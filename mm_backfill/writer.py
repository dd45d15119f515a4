from __future__ import annotations

import gzip
import json
from pathlib import Path
from typing import Iterable, List

from mm_core.records import Record


def record_to_row(record: Record) -> dict:
    return {
        "symbol": record.symbol_text,
        "buysell_indicator": record.side,
        "quantity": record.quantity,
        "price": record.price,
        "packetSequence": record.sequence,
    }


def _open_text(path: Path):
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix == ".gz":
        return gzip.open(path, "wt", encoding="utf-8")
    return path.open("w", encoding="utf-8")


def write_records_json(path: Path, records: Iterable[Record]) -> int:
    """Write records as a pretty-printed JSON array. Returns the row count."""
    rows: List[dict] = [record_to_row(r) for r in records]
    with _open_text(path) as fh:
        fh.write(json.dumps(rows, ensure_ascii=False, indent=4))
        fh.write("\n")
    return len(rows)


def write_records_ndjson(path: Path, records: Iterable[Record]) -> int:
    n = 0
    with _open_text(path) as fh:
        for record in records:
            fh.write(json.dumps(record_to_row(record), ensure_ascii=False) + "\n")
            n += 1
    return n


WRITERS = {
    "json": write_records_json,
    "ndjson": write_records_ndjson,
}
