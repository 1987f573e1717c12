# -*- coding: utf-8 -*-
import os
import struct
import sys
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from errors import (
    MalformedHandshake, InvalidUtf8, ShortBuffer, UnknownFrameType, FileNameTooLong
)
from protocol import Handshake, ChatPayload, FilePayload, decode_frame, frame_length


class HandshakeTests(unittest.TestCase):
    def test_encode_literal_bytes(self):
        self.assertEqual(Handshake(1).encode(), b"Hello\x00\x00\x00\x01")
        self.assertEqual(Handshake(0xDEADBEEF).encode(), b"Hello\xde\xad\xbe\xef")

    def test_decode_ignores_magic(self):
        self.assertEqual(Handshake.decode(b"XXXXX\x00\x00\x01\x00"), Handshake(256))

    def test_decode_uses_first_nine_bytes(self):
        self.assertEqual(Handshake.decode(b"Hello\x00\x00\x00\x07trailing"), Handshake(7))

    def test_short_handshake(self):
        with self.assertRaises(MalformedHandshake):
            Handshake.decode(b"Hello\x00\x00")

    def test_equality_is_on_id(self):
        self.assertEqual(Handshake(42), Handshake.decode(Handshake(42).encode()))
        self.assertNotEqual(Handshake(42), Handshake(43))


class ChatPayloadTests(unittest.TestCase):
    def test_encode_literal_bytes(self):
        self.assertEqual(ChatPayload("hi").encode(), b"chat\x00\x00\x00\x02hi")

    def test_empty_text(self):
        frame = ChatPayload("").encode()
        self.assertEqual(frame, b"chat\x00\x00\x00\x00")
        self.assertEqual(decode_frame(frame), ChatPayload(""))

    def test_length_counts_bytes_not_characters(self):
        frame = ChatPayload("héllo ☃").encode()
        self.assertEqual(frame_length(frame[:8]), len("héllo ☃".encode('utf-8')))
        self.assertEqual(decode_frame(frame).text, "héllo ☃")

    def test_invalid_utf8(self):
        with self.assertRaises(InvalidUtf8):
            decode_frame(b"chat\x00\x00\x00\x02\xff\xfe")


class FilePayloadTests(unittest.TestCase):
    def test_layout(self):
        frame = FilePayload("a.txt", b"xyz").encode()
        self.assertEqual(frame[:4], b"file")
        self.assertEqual(struct.unpack("!I", frame[4:8])[0], 96 + 3)
        name_field = frame[8:104]
        self.assertEqual(name_field, b"\0" * 91 + b"a.txt")
        self.assertEqual(frame[104:], b"xyz")

    def test_round_trip(self):
        payload = FilePayload("report.pdf", bytes(range(256)) * 4)
        self.assertEqual(decode_frame(payload.encode()), payload)

    def test_empty_data(self):
        payload = FilePayload("empty", b"")
        decoded = decode_frame(payload.encode())
        self.assertEqual(decoded.name, "empty")
        self.assertEqual(decoded.data, b"")

    def test_name_exactly_96_bytes(self):
        name = "n" * 96
        self.assertEqual(decode_frame(FilePayload(name, b"1").encode()).name, name)

    def test_name_too_long(self):
        with self.assertRaises(FileNameTooLong):
            FilePayload("n" * 97, b"").encode()

    def test_short_file_frame(self):
        frame = b"file" + struct.pack("!I", 50) + b"\0" * 50
        with self.assertRaises(ShortBuffer):
            decode_frame(frame)

    def test_invalid_name(self):
        frame = b"file" + struct.pack("!I", 96) + b"\0" * 94 + b"\xff\xfe"
        with self.assertRaises(InvalidUtf8):
            decode_frame(frame)

    def test_repr_hides_data(self):
        self.assertEqual(repr(FilePayload("a", b"12345")), "FilePayload(name='a', size=5)")


class DecodeFrameTests(unittest.TestCase):
    def test_header_too_short(self):
        with self.assertRaises(ShortBuffer):
            decode_frame(b"chat\x00")

    def test_length_mismatch(self):
        with self.assertRaises(ShortBuffer):
            decode_frame(b"chat\x00\x00\x00\x05hi")
        with self.assertRaises(ShortBuffer):
            decode_frame(b"chat\x00\x00\x00\x01hi")

    def test_unknown_tag(self):
        with self.assertRaises(UnknownFrameType):
            decode_frame(b"ping\x00\x00\x00\x00")

    def test_frame_length(self):
        self.assertEqual(frame_length(b"file\x00\x01\x00\x00"), 65536)


if __name__ == '__main__':
    unittest.main()
