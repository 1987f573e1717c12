# -*- coding: utf-8 -*-
"""
Coordination channel between the network thread and the interactive thread.

Two one-directional FIFO queues:
    events   network -> interactive  (ConnectRequest, Message, File, Disconnect, ...)
    commands interactive -> network  (ConnectAccept, Disconnect)

The only blocking receive on the command queue is `wait_for_command`, used by
the accept rendezvous. The interactive side only ever drains events without
blocking.
"""

import logging
import queue
import sys
import threading
from dataclasses import dataclass

# --- Import Local Modules ---
try:
    from errors import ChannelClosed
except ImportError as e:
    print(f"ERROR (channels.py): Failed to import local modules: {e}", file=sys.stderr)
    print("Ensure all .py files are in the same directory or accessible in PYTHONPATH.", file=sys.stderr)
    sys.exit(1)

logger = logging.getLogger(__name__)


# --- Events (network -> interactive) ---

@dataclass(frozen=True)
class ConnectRequest:
    peer_id: int
    ip: str


@dataclass(frozen=True)
class Message:
    text: str


@dataclass(frozen=True)
class File:
    name: str
    data: bytes

    def __repr__(self):
        return f"File(name={self.name!r}, size={len(self.data)})"


@dataclass(frozen=True)
class Disconnect:
    """Used in both directions: the peer went away / please drop the peer."""


@dataclass(frozen=True)
class Connected:
    ip: str
    outbound: bool


@dataclass(frozen=True)
class ConnectFailed:
    ip: str
    reason: str
    rejected: bool = False # True when the handshake echo did not match


# --- Commands (interactive -> network) ---

@dataclass(frozen=True)
class ConnectAccept:
    pass


_CLOSED = object() # Wakes a blocked waiter when the channel is closed


class CoordinationChannel:
    """Pair of unbounded queues shared by exactly two threads."""

    def __init__(self):
        self._events = queue.Queue()
        self._commands = queue.Queue()
        self._closed = threading.Event()

    @property
    def closed(self):
        return self._closed.is_set()

    def close(self):
        """Marks the channel closed and wakes anyone blocked in wait_for_command."""
        if self._closed.is_set():
            return
        self._closed.set()
        self._commands.put(_CLOSED)
        logger.debug("Coordination channel closed.")

    # --- Network side ---

    def emit(self, event):
        if self.closed:
            raise ChannelClosed(f"Cannot emit {event!r}: channel closed")
        logger.debug(f"Event -> interactive: {event!r}")
        self._events.put(event)

    def poll_command(self):
        """Returns the next command without blocking, or None."""
        try:
            command = self._commands.get_nowait()
        except queue.Empty:
            return None
        if command is _CLOSED:
            self._commands.put(_CLOSED) # Keep later waiters awake too
            raise ChannelClosed("Interactive side closed the channel")
        return command

    def wait_for_command(self, timeout=None):
        """
        Rendezvous: blocks until exactly one command arrives and returns it.
        Raises ChannelClosed if the channel is (or becomes) closed, and
        queue.Empty if `timeout` elapses first.
        """
        command = self._commands.get(timeout=timeout)
        if command is _CLOSED:
            self._commands.put(_CLOSED)
            raise ChannelClosed("Interactive side closed the channel")
        logger.debug(f"Command <- interactive: {command!r}")
        return command

    def discard_stale_commands(self):
        """Drops commands sent before a new request was emitted. Returns how many."""
        dropped = 0
        while True:
            command = self.poll_command()
            if command is None:
                return dropped
            logger.debug(f"Discarding stale command {command!r}")
            dropped += 1

    # --- Interactive side ---

    def send_command(self, command):
        if self.closed:
            raise ChannelClosed(f"Cannot send {command!r}: channel closed")
        self._commands.put(command)

    def drain_events(self):
        """Returns every queued event in emission order, without blocking."""
        events = []
        while True:
            try:
                events.append(self._events.get_nowait())
            except queue.Empty:
                return events

    def wait_for_event(self, timeout=None):
        """Blocks for the next event. Raises queue.Empty on timeout."""
        return self._events.get(timeout=timeout)
