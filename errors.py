# -*- coding: utf-8 -*-
"""
Exception types raised by the TinCan core.
"""


class TinCanError(Exception):
    """Base class for every error raised by the TinCan core."""


# --- Wire Codec ---

class ProtocolError(TinCanError):
    """Bytes received from (or about to be sent to) a peer are not a valid frame."""


class MalformedHandshake(ProtocolError):
    pass


class InvalidUtf8(ProtocolError):
    pass


class ShortBuffer(ProtocolError):
    pass


class UnknownFrameType(ProtocolError):
    pass


class FileNameTooLong(ProtocolError):
    pass


class FrameTooLarge(ProtocolError):
    pass


# --- Connection ---

class HandshakeRejected(TinCanError):
    """The remote peer did not echo back the handshake we sent."""


class ConnectionFailed(TinCanError):
    """An outbound connection could not be established or a write failed."""


class NotConnected(TinCanError):
    pass


class ListenerUnavailable(TinCanError):
    """The well-known port could not be bound. The process cannot continue."""


# --- Coordination ---

class ChannelClosed(TinCanError):
    """The thread on the other side of the coordination channel has gone away."""
