from __future__ import annotations

import gzip
import json
from pathlib import Path

from mm_backfill.writer import record_to_row, write_records_json, write_records_ndjson
from mm_core.records import Record


def _records():
    return [
        Record(symbol="MSFT", side="B", quantity=50, price=100, sequence=1),
        Record(symbol="FB  ", side="S", quantity=-3, price=7, sequence=2),
        Record(symbol="X\x00\x00\x00", side="B", quantity=1, price=1, sequence=3),
    ]


def test_record_to_row_strips_symbol_padding():
    row = record_to_row(_records()[1])
    assert row == {
        "symbol": "FB",
        "buysell_indicator": "S",
        "quantity": -3,
        "price": 7,
        "packetSequence": 2,
    }
    assert record_to_row(_records()[2])["symbol"] == "X"


def test_write_json_array(tmp_path: Path):
    path = tmp_path / "out" / "output.json"
    n = write_records_json(path, _records())
    assert n == 3

    text = path.read_text()
    assert text.startswith("[\n    {\n")
    rows = json.loads(text)
    assert [r["packetSequence"] for r in rows] == [1, 2, 3]
    assert rows[0]["symbol"] == "MSFT"


def test_write_json_empty(tmp_path: Path):
    path = tmp_path / "output.json"
    assert write_records_json(path, []) == 0
    assert json.loads(path.read_text()) == []


def test_write_ndjson_gzip(tmp_path: Path):
    path = tmp_path / "records.ndjson.gz"
    assert write_records_ndjson(path, _records()) == 3
    with gzip.open(path, "rt", encoding="utf-8") as fh:
        rows = [json.loads(line) for line in fh]
    assert [r["symbol"] for r in rows] == ["MSFT", "FB", "X"]
