# -*- coding: utf-8 -*-
"""
Connection state machine for TinCan.

Owns the listening socket and the single peer socket. The network thread runs
`run()`, which alternates between the accept loop (while listening) and the
steady-state read loop (while connected). Outbound connections are set up by
`initiate()` on a separate short-lived thread and handed over to the network
thread once the handshake echo checks out.
"""

import enum
import logging
import secrets
import select
import socket
import sys
import threading

# --- Import Local Modules ---
try:
    import constants
    from channels import ConnectRequest, ConnectAccept, Connected, Message, File, Disconnect
    from errors import (
        ProtocolError, MalformedHandshake, HandshakeRejected, ConnectionFailed,
        NotConnected, ListenerUnavailable, ChannelClosed
    )
    from protocol import Handshake, ChatPayload, decode_frame, frame_length
except ImportError as e:
    print(f"ERROR (network.py): Failed to import local modules: {e}", file=sys.stderr)
    print("Ensure all .py files are in the same directory or accessible in PYTHONPATH.", file=sys.stderr)
    sys.exit(1)

logger = logging.getLogger(__name__)


class ConnectionState(enum.Enum):
    LISTENING = "Listening"
    AWAITING_APPROVAL = "Awaiting Approval"
    CONNECTED = "Connected"


def generate_peer_id():
    """Random non-zero 32-bit id. Call once per process."""
    peer_id = 0
    while peer_id == 0:
        peer_id = secrets.randbits(32)
    return peer_id


def recv_exact(sock, n):
    """Receive exactly n bytes"""
    chunks = []
    bytes_recd = 0
    while bytes_recd < n:
        chunk = sock.recv(min(n - bytes_recd, constants.BUFFER_SIZE))
        if not chunk:
            raise ConnectionError(f"Connection closed after {bytes_recd} of {n} bytes")
        chunks.append(chunk)
        bytes_recd += len(chunk)
    return b"".join(chunks)


def _close_socket(sock):
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass # Already disconnected
    try:
        sock.close()
    except OSError:
        pass


class PeerConnection:
    def __init__(self, channel, peer_id=None, port=constants.DEFAULT_PORT,
                 handshake_timeout=constants.HANDSHAKE_TIMEOUT,
                 accept_poll_interval=constants.ACCEPT_POLL_INTERVAL,
                 peer_poll_interval=constants.PEER_POLL_INTERVAL):
        self.channel = channel
        self.peer_id = peer_id if peer_id is not None else generate_peer_id()
        if not 0 < self.peer_id <= 0xFFFFFFFF:
            raise ValueError(f"Peer id must be a non-zero 32-bit integer, got {self.peer_id}")
        self.port = port # Well-known port, used for listening and as the outbound default
        self.listen_port = None
        self.handshake_timeout = handshake_timeout
        self.accept_poll_interval = accept_poll_interval
        self.peer_poll_interval = peer_poll_interval
        self.stop_event = threading.Event()

        self._listener = None
        self._peer_socket = None # Only live socket; read by the network thread alone
        self._peer_address = None
        self._state = ConnectionState.LISTENING
        self._pending_request = None # (peer_id, ip) while awaiting approval
        self._outbound_target = None
        self._outbound_socket = None
        self._lock = threading.Lock() # Guards state and socket ownership
        self._write_lock = threading.Lock() # Serializes frame writes

    # --- State ---

    @property
    def state(self):
        with self._lock:
            return self._state

    @property
    def is_connected(self):
        return self.state is ConnectionState.CONNECTED

    @property
    def peer_address(self):
        with self._lock:
            return self._peer_address

    @property
    def pending_request(self):
        with self._lock:
            return self._pending_request

    @property
    def is_connecting(self):
        with self._lock:
            return self._outbound_target is not None

    def _attach(self, sock, ip):
        # Caller holds self._lock
        self._peer_socket = sock
        self._peer_address = ip
        self._state = ConnectionState.CONNECTED

    def _finish_pending(self):
        with self._lock:
            self._pending_request = None
            if self._peer_socket is None:
                self._state = ConnectionState.LISTENING

    def _teardown(self, notify):
        """Drops the peer socket (if any) and goes back to listening."""
        with self._lock:
            sock = self._peer_socket
            self._peer_socket = None
            self._peer_address = None
            if self._pending_request is not None:
                self._state = ConnectionState.AWAITING_APPROVAL
            else:
                self._state = ConnectionState.LISTENING
        if sock is None:
            return
        _close_socket(sock)
        logger.debug("Peer socket closed.")
        if notify:
            self.channel.emit(Disconnect())

    # --- Listening ---

    def listen(self, host=constants.LISTEN_HOST):
        """Binds the well-known port. Raises ListenerUnavailable if it is taken."""
        server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server_socket.bind((host, self.port))
            server_socket.listen(1) # One peer at a time; others wait in the backlog
            server_socket.settimeout(self.accept_poll_interval) # Timeout to check stop_event
        except OSError as e:
            server_socket.close()
            raise ListenerUnavailable(
                f"Could not listen on port {self.port}: {e}. Another application might be using it."
            ) from e
        self._listener = server_socket
        self.listen_port = server_socket.getsockname()[1]
        logger.info(f"Listening on {host}:{self.listen_port} (peer id {self.peer_id:08x}).")
        return server_socket

    def run(self):
        """Network thread main loop."""
        if self._listener is None:
            self.listen()
        logger.debug("Network loop started.")
        try:
            while not self.stop_event.is_set():
                if self.is_connected:
                    self.steady_state_loop()
                else:
                    self.accept_loop()
        except ChannelClosed:
            if not self.stop_event.is_set():
                logger.error("Interactive side went away. Stopping network loop.")
                raise
        finally:
            logger.debug("Network loop stopped.")

    def accept_loop(self):
        """Accepts inbound peers until one is connected (or the loop is stopped)."""
        while not self.stop_event.is_set() and not self.is_connected:
            self.accept_once()

    def accept_once(self):
        """
        One pass of the accept loop. Returns True if an inbound peer was
        accepted and is now the connected peer.
        """
        if self._listener is None:
            raise ListenerUnavailable("listen() has not been called")
        try:
            conn, addr = self._listener.accept()
        except socket.timeout:
            return False
        except OSError as e:
            if not self.stop_event.is_set():
                logger.error(f"Accept error: {e}")
            return False

        peer_ip = addr[0]
        logger.info(f"Incoming connection from {peer_ip}:{addr[1]}")
        received = self._read_inbound_handshake(conn, peer_ip)
        if received is None:
            return False
        handshake, raw = received

        if not self._claim_inbound(handshake, peer_ip):
            _close_socket(conn)
            return False

        # Rendezvous: nothing else is accepted until the interactive side decides.
        try:
            self.channel.discard_stale_commands()
            self.channel.emit(ConnectRequest(handshake.peer_id, peer_ip))
            command = self.channel.wait_for_command()
        except ChannelClosed:
            _close_socket(conn)
            self._finish_pending()
            raise

        if isinstance(command, ConnectAccept):
            return self._accept_inbound(conn, raw, peer_ip)

        logger.info(f"Connection from {peer_ip} rejected.")
        _close_socket(conn)
        self._finish_pending()
        return False

    def _read_inbound_handshake(self, conn, peer_ip):
        try:
            conn.settimeout(self.handshake_timeout)
            raw = recv_exact(conn, constants.HANDSHAKE_SIZE)
            handshake = Handshake.decode(raw)
            conn.settimeout(None)
            return handshake, raw
        except socket.timeout:
            logger.warning(f"{peer_ip} did not send a handshake within {self.handshake_timeout:.0f}s. Dropping.")
        except OSError as e:
            logger.warning(f"Error reading handshake from {peer_ip}: {e}. Dropping.")
        except MalformedHandshake as e:
            logger.warning(f"Malformed handshake from {peer_ip}: {e}. Dropping.")
        _close_socket(conn)
        return None

    def _claim_inbound(self, handshake, peer_ip):
        with self._lock:
            if self._peer_socket is not None:
                logger.warning(f"Already connected, rejecting new incoming connection from {peer_ip}.")
                return False
            if self._outbound_target is not None and self.peer_id >= handshake.peer_id:
                # Both sides dialled at once: the link started by the larger id survives.
                logger.info(
                    f"Simultaneous connect with {peer_ip}: keeping our outbound attempt "
                    f"({self.peer_id:08x} >= {handshake.peer_id:08x})."
                )
                return False
            self._state = ConnectionState.AWAITING_APPROVAL
            self._pending_request = (handshake.peer_id, peer_ip)
        return True

    def _accept_inbound(self, conn, raw_handshake, peer_ip):
        with self._lock:
            self._pending_request = None
            if self._peer_socket is not None:
                logger.warning(f"A peer connected while {peer_ip} was awaiting approval. Dropping {peer_ip}.")
                attached = False
            else:
                try:
                    conn.sendall(raw_handshake) # Echo verbatim
                except OSError as e:
                    logger.error(f"Could not complete handshake with {peer_ip}: {e}")
                    self._state = ConnectionState.LISTENING
                    attached = None
                else:
                    self._attach(conn, peer_ip)
                    attached = True

        if attached:
            logger.info(f"Connected to {peer_ip} (inbound).")
            self.channel.emit(Connected(peer_ip, outbound=False))
            return True
        _close_socket(conn)
        if attached is None:
            # The user approved a peer that is already gone.
            self.channel.emit(Disconnect())
        return False

    # --- Outbound ---

    def initiate(self, target_ip, port=None):
        """
        Connects to `target_ip`, sends our handshake and expects it echoed back.
        Raises ConnectionFailed on any transport error and HandshakeRejected if
        the echo differs from what was sent.
        """
        port = port or self.port
        with self._lock:
            if self._peer_socket is not None:
                raise ConnectionFailed("Already connected to a peer.")
            if self._outbound_target is not None:
                raise ConnectionFailed(f"Already connecting to {self._outbound_target}.")
            self._outbound_target = target_ip

        handshake = Handshake(self.peer_id)
        sock = None
        attached = False
        try:
            try:
                sock = socket.create_connection((target_ip, port), timeout=constants.CONNECTION_TIMEOUT)
                with self._lock:
                    self._outbound_socket = sock
                sock.settimeout(None) # The remote user may take as long as they like
                sock.sendall(handshake.encode())
                logger.debug(f"Handshake sent to {target_ip}:{port}, waiting for echo.")
                echoed = Handshake.decode(recv_exact(sock, constants.HANDSHAKE_SIZE))
            except (OSError, ValueError, MalformedHandshake) as e:
                # ValueError covers host names the resolver cannot encode (IDNA)
                raise ConnectionFailed(f"Could not connect to {target_ip}: {e}") from e

            if echoed != handshake:
                logger.warning(
                    f"{target_ip} echoed id {echoed.peer_id:08x}, expected {handshake.peer_id:08x}."
                )
                raise HandshakeRejected(f"{target_ip} did not echo our handshake.")

            with self._lock:
                if self._peer_socket is not None:
                    raise ConnectionFailed("Another peer connected while this connection was being set up.")
                self._attach(sock, target_ip)
                attached = True
        finally:
            with self._lock:
                self._outbound_target = None
                self._outbound_socket = None
            if not attached and sock is not None:
                _close_socket(sock)

        logger.info(f"Connected to {target_ip} (outbound).")
        self.channel.emit(Connected(target_ip, outbound=True))
        return ConnectionState.CONNECTED

    def abort_initiate(self):
        """
        Unblocks an in-flight initiate() still waiting for its echo.
        Returns False if there was no connected outbound socket to cancel.
        """
        with self._lock:
            sock = self._outbound_socket
        if sock is None:
            return False
        logger.info("Cancelling outbound connection attempt.")
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        return True

    # --- Connected ---

    def steady_state_loop(self):
        """Reads frames until the peer goes away or the loop is stopped."""
        while not self.stop_event.is_set() and self.is_connected:
            self.steady_state_once()

    def steady_state_once(self):
        """
        One pass of the connected loop: honour a pending Disconnect command,
        then read and forward at most one frame. Returns False once the link
        is gone.
        """
        with self._lock:
            sock = self._peer_socket
        if sock is None:
            return False

        command = self.channel.poll_command()
        if isinstance(command, Disconnect):
            logger.info("Disconnecting from peer. Reason: user request")
            self._teardown(notify=False)
            return False
        if command is not None:
            logger.debug(f"Ignoring {command!r} while connected.")

        try:
            readable, _, _ = select.select([sock], [], [], self.peer_poll_interval)
            if not readable:
                return True
            peeked = sock.recv(constants.FRAME_HEADER_SIZE, socket.MSG_PEEK)
        except (OSError, ValueError) as e:
            logger.info(f"Connection to peer lost: {e}")
            self._teardown(notify=True)
            return False

        if not peeked:
            logger.info("Peer closed the connection.")
            self._teardown(notify=True)
            return False

        try:
            header = recv_exact(sock, constants.FRAME_HEADER_SIZE)
            body = recv_exact(sock, frame_length(header))
            payload = decode_frame(header + body)
        except ProtocolError as e:
            logger.error(f"Dropping peer after framing error: {e}")
            self._teardown(notify=True)
            return False
        except OSError as e:
            logger.error(f"Connection closed by peer unexpectedly during frame receive: {e}")
            self._teardown(notify=True)
            return False

        logger.debug(f"Received {payload!r}")
        if isinstance(payload, ChatPayload):
            self.channel.emit(Message(payload.text))
        else:
            self.channel.emit(File(payload.name, payload.data))
        return True

    def send(self, payload):
        """Writes one ChatPayload/FilePayload frame to the peer."""
        with self._lock:
            sock = self._peer_socket
        if sock is None:
            raise NotConnected("Not connected to a peer.")
        data = payload.encode()
        with self._write_lock:
            try:
                sock.sendall(data)
            except OSError as e:
                logger.error(f"Error sending {payload!r}: {e}")
                self._teardown(notify=True)
                raise ConnectionFailed(f"Send failed: {e}") from e
        logger.debug(f"Sent {payload!r}")

    def disconnect(self):
        """Asks the network thread to drop the current peer."""
        self.channel.send_command(Disconnect())

    def close(self):
        """Stops the network loop and releases every socket."""
        self.stop_event.set()
        self.channel.close()
        self.abort_initiate()
        self._teardown(notify=False)
        if self._listener is not None:
            try:
                self._listener.close()
            except OSError:
                pass
            self._listener = None
        logger.debug("Peer connection closed.")
