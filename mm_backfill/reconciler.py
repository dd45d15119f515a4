from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from mm_core.gaps import max_sequence, missing_sequences
from mm_core.records import Record


class ReconcilerPhase(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    GAP_COMPUTATION = "gap_computation"
    BACKFILLING = "backfilling"
    DONE = "done"


_NEXT_PHASE = {
    ReconcilerPhase.IDLE: ReconcilerPhase.COLLECTING,
    ReconcilerPhase.COLLECTING: ReconcilerPhase.GAP_COMPUTATION,
    ReconcilerPhase.GAP_COMPUTATION: ReconcilerPhase.BACKFILLING,
    ReconcilerPhase.BACKFILLING: ReconcilerPhase.DONE,
}


@dataclass
class ReconcilerState:
    phase: ReconcilerPhase = ReconcilerPhase.IDLE
    initial_count: int = 0
    duplicates: int = 0
    stream_end_reason: Optional[str] = None
    max_sequence: int = 0
    missing: List[int] = field(default_factory=list)
    resend_ok: int = 0
    resend_failed: List[int] = field(default_factory=list)
    mismatches: List[Tuple[int, int]] = field(default_factory=list)  # (requested, received)


class GapReconciler:
    """Owns the record collection and drives collect -> gaps -> backfill.

    Phases run once each, in order. The transport is anything exposing
    `stream_all()` and `request_resend(seq)` (see `mm_backfill.transport`).
    """

    def __init__(self, transport, on_event: Optional[Callable[[str, dict], None]] = None):
        self.transport = transport
        self.records: Dict[int, Record] = {}
        self.state = ReconcilerState()
        self._on_event = on_event
        self._log = logging.getLogger("backfill.reconciler")

    def _emit(self, typ: str, details: dict) -> None:
        try:
            if self._on_event:
                self._on_event(typ, details)
        except Exception:
            self._log.exception("Event callback error (type=%s)", typ)

    def _enter(self, phase: ReconcilerPhase) -> None:
        prev = self.state.phase
        if _NEXT_PHASE.get(prev) != phase:
            raise RuntimeError(f"Cannot enter phase {phase.value} from {prev.value}")
        self.state.phase = phase
        self._emit("state_change", {"from": prev.value, "to": phase.value})

    def _store(self, record: Record) -> bool:
        existed = record.sequence in self.records
        self.records[record.sequence] = record
        return existed

    def collect(self) -> int:
        self._enter(ReconcilerPhase.COLLECTING)
        result = self.transport.stream_all()
        for record in result.records:
            if self._store(record):
                self.state.duplicates += 1
        self.state.initial_count = len(self.records)
        self.state.stream_end_reason = result.end_reason
        self._log.info(
            "Initial stream finished (%s): %d frames, %d unique records, %d duplicates",
            result.end_reason,
            len(result.records),
            self.state.initial_count,
            self.state.duplicates,
        )
        self._emit(
            "stream_end",
            {
                "reason": result.end_reason,
                "frames": len(result.records),
                "unique": self.state.initial_count,
                "bytes": result.bytes_received,
                "discarded_bytes": result.discarded_bytes,
            },
        )
        return self.state.initial_count

    def compute_gaps(self) -> List[int]:
        self._enter(ReconcilerPhase.GAP_COMPUTATION)
        self.state.max_sequence = max_sequence(self.records.keys())
        self.state.missing = missing_sequences(self.records, upper=self.state.max_sequence)
        self._log.info(
            "Highest sequence %d; %d missing sequences to request",
            self.state.max_sequence,
            len(self.state.missing),
        )
        self._emit("gaps", {"max_sequence": self.state.max_sequence, "missing": len(self.state.missing)})
        return list(self.state.missing)

    def backfill(self) -> int:
        """Request each missing sequence once. Returns the number of successful resends."""
        self._enter(ReconcilerPhase.BACKFILLING)
        ok = self.resend_all(self.state.missing)
        self._log.info(
            "Backfill finished: %d ok, %d failed, %d records total",
            ok,
            len(self.state.resend_failed),
            len(self.records),
        )
        self._enter(ReconcilerPhase.DONE)
        return ok

    def resend_all(self, sequences) -> int:
        """One independent resend per sequence, ascending. No phase bookkeeping."""
        ok = 0
        for seq in sorted(sequences):
            if self._backfill_one(seq):
                ok += 1
        return ok

    def _backfill_one(self, seq: int) -> bool:
        self._log.info("Requesting resend for sequence %d", seq)
        result = self.transport.request_resend(seq)
        if not result.ok:
            self.state.resend_failed.append(seq)
            self._log.warning(
                "Resend for sequence %d failed (%s, %d bytes): %s",
                seq,
                result.reason,
                result.bytes_received,
                result.error or "-",
            )
            self._emit("resend_failed", {"requested": seq, "reason": result.reason, "error": result.error})
            return False

        record = result.record
        if record.sequence != seq:
            # Kept under the sequence the server reported.
            self.state.mismatches.append((seq, record.sequence))
            self._log.warning(
                "Requested sequence %d but server returned sequence %d; storing under %d",
                seq,
                record.sequence,
                record.sequence,
            )
            self._emit("sequence_mismatch", {"requested": seq, "received": record.sequence})
        self._store(record)
        self.state.resend_ok += 1
        self._emit("resend_ok", {"requested": seq, "stored": record.sequence})
        return True

    def run(self) -> List[Record]:
        self.collect()
        self.compute_gaps()
        self.backfill()
        return self.ordered_records()

    def ordered_records(self) -> List[Record]:
        return [self.records[k] for k in sorted(self.records)]

    def still_missing(self) -> List[int]:
        """Gaps left below the initial maximum after backfill (reporting only)."""
        return missing_sequences(self.records, upper=self.state.max_sequence)
