"""Backfill client.

Streams the full record set from the feed server, finds sequence gaps and
re-requests each missing record on its own connection, then writes the
ordered result.
"""

from __future__ import annotations

import argparse
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from mm_backfill.logging_config import setup_logging
from mm_backfill.reconciler import GapReconciler
from mm_backfill.settings import ClientSettings, load_settings
from mm_backfill.transport import TcpSession, TransportError
from mm_backfill.writer import WRITERS
from mm_core.schema import write_schema

LOGGER_NAME = "backfill.client"


@dataclass
class RunSummary:
    output_path: Path
    records_written: int
    initial_count: int
    max_sequence: int
    missing: List[int] = field(default_factory=list)
    resend_ok: int = 0
    resend_failed: List[int] = field(default_factory=list)
    mismatches: List[Tuple[int, int]] = field(default_factory=list)
    still_missing: List[int] = field(default_factory=list)
    stream_end_reason: Optional[str] = None
    elapsed_s: float = 0.0


def make_session(settings: ClientSettings) -> TcpSession:
    return TcpSession(
        host=settings.host,
        port=settings.port,
        recv_timeout_s=settings.recv_timeout_s,
        connect_timeout_s=settings.connect_timeout_s,
        chunk_size=settings.chunk_size,
    )


def run_client(settings: ClientSettings, session: Optional[TcpSession] = None) -> RunSummary:
    log_path = setup_logging(
        settings.log_level,
        component="backfill",
        subdir=f"{settings.host}_{settings.port}",
        base_dir=settings.log_dir,
        to_file=settings.log_to_file,
    )
    log = logging.getLogger(LOGGER_NAME)
    if log_path is not None:
        log.info("Backfill client logging to %s", log_path)
    log.info(
        "Client config host=%s port=%s recv_timeout_s=%.1f chunk_size=%d output=%s format=%s",
        settings.host,
        settings.port,
        settings.recv_timeout_s,
        settings.chunk_size,
        settings.output_path,
        settings.output_format,
    )

    t0 = time.monotonic()
    session = session or make_session(settings)
    session.resolve()

    def on_event(typ: str, details: dict) -> None:
        log.debug("event %s %s", typ, details)

    reconciler = GapReconciler(session, on_event=on_event)
    records = reconciler.run()
    state = reconciler.state
    still_missing = reconciler.still_missing()
    if still_missing:
        log.warning("%d sequences still missing after backfill: %s", len(still_missing), still_missing[:20])

    out_path = Path(settings.output_path)
    writer = WRITERS[settings.output_format]
    n = writer(out_path, records)
    log.info("Wrote %d records to %s", n, out_path)

    if settings.write_schema:
        schema_path = write_schema(out_path, settings.output_format, n, still_missing)
        log.info("Wrote schema to %s", schema_path)

    return RunSummary(
        output_path=out_path,
        records_written=n,
        initial_count=state.initial_count,
        max_sequence=state.max_sequence,
        missing=list(state.missing),
        resend_ok=state.resend_ok,
        resend_failed=list(state.resend_failed),
        mismatches=list(state.mismatches),
        still_missing=still_missing,
        stream_end_reason=state.stream_end_reason,
        elapsed_s=time.monotonic() - t0,
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Stream records, detect sequence gaps and backfill them.")
    ap.add_argument("--config", default=None, help="YAML config file (also CONFIG_PATH env)")
    ap.add_argument("--host", default=None)
    ap.add_argument("--port", type=int, default=None)
    ap.add_argument("--timeout", dest="recv_timeout_s", type=float, default=None, help="receive timeout, seconds")
    ap.add_argument("--output", dest="output_path", default=None)
    ap.add_argument("--format", dest="output_format", choices=sorted(WRITERS), default=None)
    ap.add_argument("--schema", dest="write_schema", action="store_true", default=None, help="write schema.json next to output")
    ap.add_argument("--log-level", dest="log_level", default=None)
    ap.add_argument("--no-log-file", dest="log_to_file", action="store_false", default=None)
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    overrides = {k: v for k, v in vars(args).items() if k != "config" and v is not None}
    log = logging.getLogger(LOGGER_NAME)
    try:
        settings = load_settings(config_path=args.config, overrides=overrides)
        summary = run_client(settings)
    except (TransportError, ValueError, OSError):
        log.exception("Backfill run failed")
        return 1
    log.info(
        "Done in %.1fs: %d records written (%d from stream, %d resent, %d resend failures)",
        summary.elapsed_s,
        summary.records_written,
        summary.initial_count,
        summary.resend_ok,
        len(summary.resend_failed),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
