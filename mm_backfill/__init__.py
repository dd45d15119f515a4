"""Sequence-gap backfill client for the fixed-width record feed."""

from .reconciler import GapReconciler, ReconcilerPhase, ReconcilerState
from .transport import ResendResult, StreamResult, TcpSession, TransportError

__all__ = [
    "GapReconciler",
    "ReconcilerPhase",
    "ReconcilerState",
    "ResendResult",
    "StreamResult",
    "TcpSession",
    "TransportError",
]
