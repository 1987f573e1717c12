# -*- coding: utf-8 -*-
"""
Interactive side of TinCan, without any widgets.

ChatSession turns typed input into network actions, drains the coordination
channel once per redraw cycle and keeps the state a frontend renders: the
connection status, the message log and the decision currently awaiting the
user.
"""

import enum
import logging
import os
import shlex
import sys
import threading

# --- Import Local Modules ---
try:
    import constants
    import utils
    from channels import (
        ConnectRequest, ConnectAccept, Connected, ConnectFailed, Message, File, Disconnect
    )
    from decisions import DecisionGate, ConnectApproval, FileApproval, Notice
    from errors import (
        ProtocolError, HandshakeRejected, ConnectionFailed, NotConnected, ChannelClosed
    )
    from protocol import ChatPayload, FilePayload
except ImportError as e:
    print(f"ERROR (session.py): Failed to import local modules: {e}", file=sys.stderr)
    print("Ensure all .py files are in the same directory or accessible in PYTHONPATH.", file=sys.stderr)
    sys.exit(1)

logger = logging.getLogger(__name__)

USAGE = (
    f"Commands: {constants.COMMAND_PREFIX}connect <ip>, {constants.COMMAND_PREFIX}disconnect, "
    f"{constants.COMMAND_PREFIX}file <path>, {constants.COMMAND_PREFIX}quit"
)


class Direction(enum.Enum):
    SENT = "You"
    RECEIVED = "Other"


class ChatSession:
    def __init__(self, connection, gate=None, downloads_dir=None):
        self.connection = connection
        self.channel = connection.channel
        self.gate = gate if gate is not None else DecisionGate()
        self.downloads_dir = downloads_dir
        self.messages = [] # [(Direction, text)] in display order
        self.received_files = [] # Paths of saved files
        self.connected_ip = None
        self.connecting_to = None
        self.network_thread = None
        self.connect_thread = None # Short-lived, for outgoing connections
        self.disconnect_deferred = False

    # --- Lifecycle ---

    def start(self):
        """Starts the network thread."""
        self.network_thread = threading.Thread(target=self.connection.run, name="tincan-network", daemon=True)
        self.network_thread.start()

    def shutdown(self):
        self.connection.close()
        if self.network_thread and self.network_thread.is_alive():
            self.network_thread.join(timeout=2)
            if self.network_thread.is_alive():
                logger.warning("Network thread did not shut down cleanly.")

    # --- Rendered state ---

    @property
    def pending(self):
        """The decision the user has to answer next, or None."""
        return self.gate.current

    @property
    def status_text(self):
        if self.connected_ip:
            return f"Connected to {self.connected_ip}"
        if self.connecting_to:
            return f"Connecting to {self.connecting_to}..."
        return f"Not connected to a peer. Use {constants.COMMAND_PREFIX}connect <ip> to connect"

    def notify(self, text):
        """Queues an acknowledge-only message for the user."""
        logger.info(text)
        self.gate.push(Notice(text))

    # --- Input ---

    def submit(self, line):
        """
        Handles one line typed by the user. Lines naming a known command after
        the command prefix run that command; anything else, including
        "?anyone there", is sent as chat text.
        Returns True when the user asked to quit.
        """
        if not line.strip():
            return False
        if not line.startswith(constants.COMMAND_PREFIX):
            self.send_text(line)
            return False

        try:
            parts = shlex.split(line[len(constants.COMMAND_PREFIX):])
        except ValueError:
            parts = [] # Unbalanced quotes: not a command
        command, args = (parts[0].lower(), parts[1:]) if parts else ("", [])

        if command == "connect":
            if len(args) == 1:
                self.connect(args[0])
            else:
                self.notify(f"Usage: {constants.COMMAND_PREFIX}connect <ip>\n{USAGE}")
        elif command == "disconnect":
            self.disconnect()
        elif command == "file":
            if len(args) == 1:
                self.send_file(args[0])
            else:
                self.notify(f'Usage: {constants.COMMAND_PREFIX}file <path> (quote paths with spaces)\n{USAGE}')
        elif command == "quit":
            return True
        else:
            self.send_text(line)
        return False

    def connect(self, target):
        """Starts an outbound connection on a worker thread."""
        if self.connected_ip:
            self.notify(f"Already connected to {self.connected_ip}.")
            return False
        if self.connecting_to:
            self.notify(f"Already connecting to {self.connecting_to}.")
            return False
        self.connecting_to = target
        self.connect_thread = threading.Thread(target=self._initiate_worker, args=(target,), daemon=True)
        self.connect_thread.start()
        return True

    def _initiate_worker(self, target):
        try:
            self.connection.initiate(target)
        except HandshakeRejected as e:
            self._post(ConnectFailed(target, str(e), rejected=True))
        except ConnectionFailed as e:
            self._post(ConnectFailed(target, str(e)))
        except Exception as e:
            # connecting_to is only cleared by an event; never leave it hanging.
            logger.exception(f"Unexpected error connecting to {target}")
            self._post(ConnectFailed(target, f"Unexpected error: {e}"))

    def _post(self, event):
        try:
            self.channel.emit(event)
        except ChannelClosed:
            logger.debug(f"Dropping {event!r}: shutting down.")

    def disconnect(self):
        if self.connecting_to and not self.connected_ip:
            if not self.connection.abort_initiate():
                logger.info(f"Gave up connecting to {self.connecting_to}.")
                self.connecting_to = None
            return
        if not self.connected_ip:
            self.notify("Not connected to a peer.")
            return
        if self._awaiting_connect_answer():
            # The network thread would take a Disconnect now as the answer to
            # the open prompt; send it once that prompt is resolved.
            logger.info("Disconnect queued until the pending connection request is answered.")
            self.disconnect_deferred = True
            return
        self.connection.disconnect()
        logger.info(f"Disconnected from {self.connected_ip}.")
        self.connected_ip = None

    def _awaiting_connect_answer(self):
        return any(isinstance(d.kind, ConnectApproval) for d in self.gate)

    def send_text(self, text):
        try:
            self.connection.send(ChatPayload(text))
        except NotConnected:
            self.notify(f"Not connected to a peer. Use {constants.COMMAND_PREFIX}connect <ip> first.")
            return False
        except ConnectionFailed as e:
            self.notify(f"Message not sent: {e}")
            return False
        self.messages.append((Direction.SENT, text))
        return True

    def send_file(self, path):
        path = os.path.expanduser(path)
        if not os.path.isfile(path):
            self.notify(f"File not found: {path}")
            return False
        if not self.connected_ip:
            self.notify(f"Not connected to a peer. Use {constants.COMMAND_PREFIX}connect <ip> first.")
            return False
        name = os.path.basename(path)
        try:
            with open(path, "rb") as f:
                data = f.read()
            self.connection.send(FilePayload(name, data))
        except OSError as e:
            self.notify(f"Error reading {path}: {e}")
            return False
        except ProtocolError as e:
            self.notify(f"Cannot send {name}: {e}")
            return False
        except (NotConnected, ConnectionFailed) as e:
            self.notify(f"File not sent: {e}")
            return False
        self.messages.append((Direction.SENT, f"sent a file: {name} ({utils.format_bytes(len(data))})"))
        return True

    # --- Channel ---

    def poll(self):
        """Drains the event queue once. Call once per redraw cycle."""
        events = self.channel.drain_events()
        for event in events:
            self._handle_event(event)
        return events

    def _handle_event(self, event):
        if isinstance(event, ConnectRequest):
            self.gate.push(ConnectApproval(event.peer_id, event.ip))
        elif isinstance(event, Connected):
            self.connected_ip = event.ip
            if event.outbound:
                self.connecting_to = None
        elif isinstance(event, ConnectFailed):
            if self.connecting_to == event.ip:
                self.connecting_to = None
            if self.connected_ip:
                # Lost a simultaneous-connect race but the other link is up.
                logger.info(f"Outbound attempt to {event.ip} dropped: {event.reason}")
            elif event.rejected:
                self.notify(f"Handshake rejected by {event.ip}. The peer did not echo our id.")
            else:
                self.notify(f"Could not connect to {event.ip}:\n{event.reason}")
        elif isinstance(event, Message):
            self.messages.append((Direction.RECEIVED, event.text))
        elif isinstance(event, File):
            self.messages.append(
                (Direction.RECEIVED, f"sent a file: {event.name} ({utils.format_bytes(len(event.data))})")
            )
            self.gate.push(FileApproval(event.name, event.data))
        elif isinstance(event, Disconnect):
            # Pending file approvals survive: the bytes are already here.
            self.disconnect_deferred = False
            if self.connected_ip:
                logger.info(f"Peer {self.connected_ip} disconnected.")
            self.connected_ip = None
        else:
            logger.warning(f"Unexpected channel event: {event!r}")

    def resolve(self, accepted=True):
        """
        Answers the current decision and runs its side effect.
        Returns the resolved PendingDecision, or None if nothing was pending.
        """
        decision = self.gate.current
        if decision is None:
            return None
        self.gate.pop()
        kind = decision.kind

        if isinstance(kind, ConnectApproval):
            logger.info(f"Connection from {kind.ip} {'accepted' if accepted else 'rejected'} by user.")
            self.channel.send_command(ConnectAccept() if accepted else Disconnect())
            if self.disconnect_deferred and not self._awaiting_connect_answer():
                self.disconnect_deferred = False
                self.disconnect()
        elif isinstance(kind, FileApproval):
            if accepted:
                try:
                    path = utils.save_received_file(kind.name, kind.data, self.downloads_dir)
                except OSError as e:
                    self.notify(f"Error saving {kind.name}: {e}")
                else:
                    self.received_files.append(path)
            else:
                logger.info(f"User rejected file: {kind.name}")
        return decision
