from __future__ import annotations

import contextlib
import logging
import socket
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from mm_core.framing import FrameReader
from mm_core.records import RECORD_SIZE, Record, decode_record

REQUEST_STREAM_ALL = 1
REQUEST_RESEND = 2


class TransportError(RuntimeError):
    """Unrecoverable setup failure (bad address, initial connect/send failed)."""


@dataclass
class StreamResult:
    records: List[Record] = field(default_factory=list)
    end_reason: str = "closed"  # "closed" | "timeout" | "error"
    bytes_received: int = 0
    discarded_bytes: int = 0
    error: Optional[str] = None


@dataclass
class ResendResult:
    requested: int
    record: Optional[Record] = None
    reason: str = "ok"  # "ok" | "timeout" | "closed" | "error"
    bytes_received: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


def build_stream_request() -> bytes:
    return bytes([REQUEST_STREAM_ALL])


def build_resend_request(seq: int) -> bytes:
    # The server reads the sequence as a single byte.
    return bytes([REQUEST_RESEND, int(seq) & 0xFF])


class TcpSession:
    """One-shot TCP exchanges with the feed server.

    Every call opens its own connection and closes it before returning; the
    server expects one request per connection. `socket_factory` takes
    `(address, timeout)` like `socket.create_connection`.
    """

    def __init__(
        self,
        host: str,
        port: int,
        recv_timeout_s: float = 5.0,
        connect_timeout_s: float = 5.0,
        chunk_size: int = 1024,
        socket_factory: Optional[Callable[..., socket.socket]] = None,
    ):
        self.host = host
        self.port = int(port)
        self.recv_timeout_s = float(recv_timeout_s)
        self.connect_timeout_s = float(connect_timeout_s)
        self.chunk_size = max(1, int(chunk_size))
        self._socket_factory = socket_factory or socket.create_connection
        self._log = logging.getLogger("backfill.transport")

    @property
    def address(self) -> tuple[str, int]:
        return (self.host, self.port)

    def resolve(self) -> None:
        """Fail fast when the configured address cannot be resolved."""
        try:
            socket.getaddrinfo(self.host, self.port, type=socket.SOCK_STREAM)
        except (socket.gaierror, UnicodeError) as exc:
            raise TransportError(f"Invalid or unresolvable address {self.host}:{self.port}: {exc}") from exc

    def _open(self):
        sock = self._socket_factory(self.address, self.connect_timeout_s)
        try:
            sock.settimeout(self.recv_timeout_s)
        except OSError:
            sock.close()
            raise
        return sock

    def stream_all(self) -> StreamResult:
        """Request the full stream and read until the peer closes or goes quiet.

        Close, timeout and read errors all end the phase normally; the partial
        trailing frame, if any, is dropped.
        """
        try:
            sock = self._open()
        except OSError as exc:
            raise TransportError(f"Initial connection to {self.host}:{self.port} failed: {exc}") from exc
        self._log.info("Connected to %s:%s for the initial stream", self.host, self.port)

        result = StreamResult()
        reader = FrameReader()
        with contextlib.closing(sock):
            try:
                sock.sendall(build_stream_request())
            except OSError as exc:
                raise TransportError(f"Sending stream request failed: {exc}") from exc

            while True:
                try:
                    chunk = sock.recv(self.chunk_size)
                except socket.timeout:
                    result.end_reason = "timeout"
                    self._log.warning(
                        "Receive timeout (%.1fs) on initial stream; proceeding with received data",
                        self.recv_timeout_s,
                    )
                    break
                except OSError as exc:
                    result.end_reason = "error"
                    result.error = str(exc)
                    self._log.warning("Read error on initial stream: %s", exc)
                    break
                if not chunk:
                    result.end_reason = "closed"
                    self._log.info("Server closed the initial stream")
                    break
                result.records.extend(reader.feed(chunk))

        result.bytes_received = reader.bytes_in
        result.discarded_bytes = reader.discard()
        if result.discarded_bytes:
            self._log.info("Dropped %d trailing bytes (incomplete frame)", result.discarded_bytes)
        return result

    def request_resend(self, seq: int) -> ResendResult:
        """Ask for a single record. Failures are returned, never raised."""
        if not 0 <= seq <= 255:
            self._log.warning(
                "Sequence %d is outside the 1-byte range of the resend request; sending %d",
                seq,
                seq & 0xFF,
            )
        payload = build_resend_request(seq)
        buf = bytearray()
        sock = None
        try:
            sock = self._open()
            sock.sendall(payload)
            while len(buf) < RECORD_SIZE:
                chunk = sock.recv(RECORD_SIZE - len(buf))
                if not chunk:
                    return ResendResult(seq, reason="closed", bytes_received=len(buf))
                buf.extend(chunk)
        except socket.timeout as exc:
            return ResendResult(seq, reason="timeout", bytes_received=len(buf), error=str(exc) or "timed out")
        except OSError as exc:
            return ResendResult(seq, reason="error", bytes_received=len(buf), error=str(exc))
        finally:
            if sock is not None:
                sock.close()

        return ResendResult(seq, record=decode_record(buf), bytes_received=len(buf))
