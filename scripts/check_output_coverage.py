#!/usr/bin/env python3
"""Check sequence coverage of a backfill output file.

Reads the JSON array (or NDJSON, by suffix) written by the backfill client and
reports:
  - row count, first/last packetSequence
  - duplicate sequences (should be none)
  - missing sequence runs in [1, last]
  - side breakdown

Examples:
  python scripts/check_output_coverage.py output.json
  python scripts/check_output_coverage.py out/records.ndjson --max-runs 50
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

SEQ_COL = "packetSequence"


@dataclass
class OutputCoverage:
    path: Path
    exists: bool
    n_rows: int = 0
    first_seq: Optional[int] = None
    last_seq: Optional[int] = None
    duplicates: int = 0
    missing_count: int = 0
    missing_runs: List[Tuple[int, int]] = field(default_factory=list)  # inclusive (start, end)
    sides: Dict[str, int] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return self.exists and self.missing_count == 0 and self.duplicates == 0


def read_output(path: Path) -> pd.DataFrame:
    lines = path.suffix == ".ndjson" or path.name.endswith(".ndjson.gz")
    df = pd.read_json(path, lines=lines, dtype={"symbol": str, "buysell_indicator": str})
    if df.empty:
        return pd.DataFrame(columns=["symbol", "buysell_indicator", "quantity", "price", SEQ_COL])
    if SEQ_COL not in df.columns:
        raise ValueError(f"{path} has no {SEQ_COL!r} column (columns: {list(df.columns)})")
    return df


def missing_runs(seqs: np.ndarray) -> List[Tuple[int, int]]:
    """Inclusive runs of absent sequence numbers in [1, max(seqs)]."""
    if len(seqs) == 0:
        return []
    present = np.unique(seqs.astype(np.int64))
    present = present[present >= 1]
    bounds = np.concatenate(([0], present))
    d = np.diff(bounds)
    idx = np.where(d > 1)[0]
    return [(int(bounds[i] + 1), int(bounds[i + 1] - 1)) for i in idx]


def analyze_output(path: Path) -> OutputCoverage:
    rep = OutputCoverage(path=path, exists=path.exists())
    if not rep.exists:
        return rep

    df = read_output(path)
    rep.n_rows = int(len(df))
    if rep.n_rows == 0:
        return rep

    seqs = pd.to_numeric(df[SEQ_COL], errors="coerce").dropna().astype("int64").values
    rep.first_seq = int(np.min(seqs))
    rep.last_seq = int(np.max(seqs))
    rep.duplicates = int(len(seqs) - len(np.unique(seqs)))
    rep.missing_runs = missing_runs(seqs)
    rep.missing_count = sum(end - start + 1 for start, end in rep.missing_runs)
    if "buysell_indicator" in df.columns:
        rep.sides = {str(k): int(v) for k, v in df["buysell_indicator"].value_counts().items()}
    return rep


def print_report(rep: OutputCoverage, max_runs: int = 30) -> None:
    print("=" * 80)
    print(f"Backfill output coverage | {rep.path}")
    print("=" * 80)
    if not rep.exists:
        print("  status: MISSING")
        return

    print(f"  rows: {rep.n_rows:,}")
    if rep.n_rows == 0:
        print("  (empty output)")
        return
    print(f"  sequence range: {rep.first_seq} .. {rep.last_seq}")
    print(f"  duplicates: {rep.duplicates}")
    print(f"  sides: {rep.sides}")

    if not rep.missing_runs:
        print("  missing: none")
        return
    print(f"  missing: {rep.missing_count} sequences in {len(rep.missing_runs)} runs")
    for start, end in rep.missing_runs[:max_runs]:
        print(f"    - {start}" if start == end else f"    - {start}..{end}")
    if len(rep.missing_runs) > max_runs:
        print(f"    ... and {len(rep.missing_runs) - max_runs} more")


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Report sequence coverage of a backfill output file.")
    ap.add_argument("path", type=Path, help="output.json or .ndjson file")
    ap.add_argument("--max-runs", type=int, default=30, help="Max missing runs to print (default: 30)")
    args = ap.parse_args(argv)

    try:
        rep = analyze_output(args.path)
    except ValueError as e:
        print(f"ERROR while analyzing {args.path}: {e}", file=sys.stderr)
        return 2

    print_report(rep, max_runs=args.max_runs)
    if not rep.exists:
        return 2
    return 0 if rep.complete else 1


if __name__ == "__main__":
    raise SystemExit(main())
