# -*- coding: utf-8 -*-
"""
Wire codec for the TinCan peer protocol.

Handshake (9 bytes):  b"Hello" + peer id (u32, big-endian)
Frame:                tag (4 ASCII bytes) + length (u32, big-endian) + payload

    chat payload:     UTF-8 text
    file payload:     96-byte name field (zero padded on the left) + raw bytes

Nothing in here touches a socket.
"""

import struct
import sys
from dataclasses import dataclass

# --- Import Local Modules ---
try:
    import constants
    from errors import (
        MalformedHandshake, InvalidUtf8, ShortBuffer, UnknownFrameType,
        FileNameTooLong, FrameTooLarge
    )
except ImportError as e:
    print(f"ERROR (protocol.py): Failed to import local modules: {e}", file=sys.stderr)
    print("Ensure all .py files are in the same directory or accessible in PYTHONPATH.", file=sys.stderr)
    sys.exit(1)

# ! = Network byte order (big-endian), I = unsigned int (4 bytes)
LENGTH_FORMAT = "!I"
HANDSHAKE_FORMAT = "!5sI"
HEADER_FORMAT = "!4sI"


@dataclass(frozen=True)
class Handshake:
    # Equality is structural on the id; the magic is not part of the value.
    peer_id: int

    def encode(self) -> bytes:
        return struct.pack(HANDSHAKE_FORMAT, constants.HANDSHAKE_MAGIC, self.peer_id)

    @classmethod
    def decode(cls, data: bytes) -> 'Handshake':
        """
        Parses the first 9 bytes of `data`.
        Raises MalformedHandshake if there are not enough bytes for the id.
        """
        if len(data) < constants.HANDSHAKE_SIZE:
            raise MalformedHandshake(
                f"Handshake too short. Expected {constants.HANDSHAKE_SIZE} bytes, got {len(data)}"
            )
        _magic, peer_id = struct.unpack(HANDSHAKE_FORMAT, bytes(data[:constants.HANDSHAKE_SIZE]))
        return cls(peer_id)


@dataclass(frozen=True)
class ChatPayload:
    text: str

    def encode(self) -> bytes:
        body = self.text.encode('utf-8')
        return _pack_frame(constants.FRAME_TAG_CHAT, body)

    @classmethod
    def decode(cls, frame: bytes) -> 'ChatPayload':
        """Decodes a complete chat frame (header included)."""
        body = bytes(frame[constants.FRAME_HEADER_SIZE:])
        try:
            return cls(body.decode('utf-8'))
        except UnicodeDecodeError as e:
            raise InvalidUtf8(f"The message sent is not a valid UTF-8 string: {e}") from e


@dataclass(frozen=True)
class FilePayload:
    name: str
    data: bytes

    def __repr__(self):
        # File bodies can be huge; keep logs readable.
        return f"FilePayload(name={self.name!r}, size={len(self.data)})"

    def encode(self) -> bytes:
        raw_name = self.name.encode('utf-8')
        if len(raw_name) > constants.FILE_NAME_FIELD_SIZE:
            raise FileNameTooLong(
                f"File name is {len(raw_name)} bytes, the limit is {constants.FILE_NAME_FIELD_SIZE}"
            )
        name_field = raw_name.rjust(constants.FILE_NAME_FIELD_SIZE, b'\0')
        return _pack_frame(constants.FRAME_TAG_FILE, name_field + bytes(self.data))

    @classmethod
    def decode(cls, frame: bytes) -> 'FilePayload':
        """Decodes a complete file frame (header included)."""
        name_end = constants.FRAME_HEADER_SIZE + constants.FILE_NAME_FIELD_SIZE
        if len(frame) < name_end:
            raise ShortBuffer(
                f"File frame too short for its name field. Expected at least {name_end}, got {len(frame)}"
            )
        name_field = bytes(frame[constants.FRAME_HEADER_SIZE:name_end]).lstrip(b'\0')
        try:
            name = name_field.decode('utf-8')
        except UnicodeDecodeError as e:
            raise InvalidUtf8(f"Name of the file is not a valid UTF-8 string: {e}") from e
        return cls(name=name, data=bytes(frame[name_end:]))


def _pack_frame(tag: bytes, body: bytes) -> bytes:
    if len(body) > constants.MAX_FRAME_LENGTH:
        raise FrameTooLarge(f"Payload of {len(body)} bytes does not fit a 32-bit length field")
    return struct.pack(HEADER_FORMAT, tag, len(body)) + body


def frame_length(header: bytes) -> int:
    """Returns the payload length declared by an 8-byte frame header."""
    if len(header) < constants.FRAME_HEADER_SIZE:
        raise ShortBuffer(
            f"Data too short for header. Expected {constants.FRAME_HEADER_SIZE}, got {len(header)}"
        )
    return struct.unpack(LENGTH_FORMAT, bytes(header[constants.FRAME_TAG_SIZE:constants.FRAME_HEADER_SIZE]))[0]


def decode_frame(frame: bytes):
    """
    Decodes one complete frame into a ChatPayload or FilePayload.
    The declared length must match the number of bytes after the header exactly.
    """
    length = frame_length(frame)
    actual = len(frame) - constants.FRAME_HEADER_SIZE
    if actual != length:
        raise ShortBuffer(f"Frame declares {length} payload bytes but {actual} were supplied")

    tag = bytes(frame[:constants.FRAME_TAG_SIZE])
    if tag == constants.FRAME_TAG_CHAT:
        return ChatPayload.decode(frame)
    if tag == constants.FRAME_TAG_FILE:
        return FilePayload.decode(frame)
    raise UnknownFrameType(f"Malformed header received: invalid message type {tag!r}")
