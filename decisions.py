# -*- coding: utf-8 -*-
"""
Decision gate for the interactive side.

Anything the user has to approve (an inbound peer, an inbound file) or simply
acknowledge (a failed connection) is queued here as a PendingDecision. The
decision is plain data: whoever resolves it looks at `kind` to decide which
side effect to run.
"""

import enum
import sys
from collections import deque
from dataclasses import dataclass

# --- Import Local Modules ---
try:
    import utils
except ImportError as e:
    print(f"ERROR (decisions.py): Failed to import local modules: {e}", file=sys.stderr)
    print("Ensure all .py files are in the same directory or accessible in PYTHONPATH.", file=sys.stderr)
    sys.exit(1)


class DecisionType(enum.Enum):
    YES_NO = "yes/no"
    ACKNOWLEDGE = "ok"


@dataclass(frozen=True)
class ConnectApproval:
    peer_id: int
    ip: str


@dataclass(frozen=True)
class FileApproval:
    name: str
    data: bytes

    def __repr__(self):
        return f"FileApproval(name={self.name!r}, size={len(self.data)})"


@dataclass(frozen=True)
class Notice:
    text: str


@dataclass(frozen=True)
class PendingDecision:
    kind: object

    @property
    def decision_type(self):
        if isinstance(self.kind, Notice):
            return DecisionType.ACKNOWLEDGE
        return DecisionType.YES_NO

    @property
    def prompt(self):
        """Text shown to the user in the modal."""
        kind = self.kind
        if isinstance(kind, ConnectApproval):
            return (
                f"{kind.ip} (id {kind.peer_id:08x}) wants to connect.\n\n"
                f"Do you want to accept this connection?"
            )
        if isinstance(kind, FileApproval):
            return (
                f"Peer wants to send you a file:\n\n"
                f"Filename: {kind.name}\n"
                f"Size: {utils.format_bytes(len(kind.data))}\n"
                f"Fingerprint: {utils.payload_fingerprint(kind.data)}\n\n"
                f"Do you want to save this file?"
            )
        return kind.text


class DecisionGate:
    """FIFO of decisions waiting for the user. Only the interactive thread touches it."""

    def __init__(self):
        self._pending = deque()

    def __len__(self):
        return len(self._pending)

    def __iter__(self):
        return iter(list(self._pending))

    @property
    def has_pending(self):
        return bool(self._pending)

    @property
    def current(self):
        return self._pending[0] if self._pending else None

    def push(self, kind):
        decision = PendingDecision(kind)
        self._pending.append(decision)
        return decision

    def pop(self):
        """Removes and returns the decision currently shown to the user."""
        return self._pending.popleft()

    def cancel(self, predicate):
        """Drops every pending decision whose kind matches `predicate`. Returns them."""
        dropped = [d for d in self._pending if predicate(d.kind)]
        self._pending = deque(d for d in self._pending if not predicate(d.kind))
        return dropped
