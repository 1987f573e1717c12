# -*- coding: utf-8 -*-
import os
import queue
import sys
import threading
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from channels import (
    CoordinationChannel, ConnectRequest, ConnectAccept, Message, File, Disconnect
)
from errors import ChannelClosed


class CoordinationChannelTests(unittest.TestCase):
    def setUp(self):
        self.channel = CoordinationChannel()

    def test_events_drain_in_order(self):
        self.channel.emit(Message("one"))
        self.channel.emit(File("f.bin", b"\x00"))
        self.channel.emit(Disconnect())
        self.assertEqual(
            self.channel.drain_events(),
            [Message("one"), File("f.bin", b"\x00"), Disconnect()],
        )
        self.assertEqual(self.channel.drain_events(), [])

    def test_poll_command_does_not_block(self):
        self.assertIsNone(self.channel.poll_command())
        self.channel.send_command(Disconnect())
        self.assertEqual(self.channel.poll_command(), Disconnect())
        self.assertIsNone(self.channel.poll_command())

    def test_wait_for_command_rendezvous(self):
        received = []

        def network_side():
            self.channel.emit(ConnectRequest(7, "10.0.0.2"))
            received.append(self.channel.wait_for_command(timeout=5))

        thread = threading.Thread(target=network_side)
        thread.start()
        self.assertEqual(self.channel.wait_for_event(timeout=5), ConnectRequest(7, "10.0.0.2"))
        self.channel.send_command(ConnectAccept())
        thread.join(timeout=5)
        self.assertEqual(received, [ConnectAccept()])

    def test_wait_for_command_timeout(self):
        with self.assertRaises(queue.Empty):
            self.channel.wait_for_command(timeout=0.05)

    def test_discard_stale_commands(self):
        self.channel.send_command(ConnectAccept())
        self.channel.send_command(Disconnect())
        self.assertEqual(self.channel.discard_stale_commands(), 2)
        self.assertIsNone(self.channel.poll_command())

    def test_close_wakes_waiter(self):
        errors = []

        def waiter():
            try:
                self.channel.wait_for_command()
            except ChannelClosed as e:
                errors.append(e)

        thread = threading.Thread(target=waiter)
        thread.start()
        self.channel.close()
        thread.join(timeout=5)
        self.assertFalse(thread.is_alive())
        self.assertEqual(len(errors), 1)

    def test_closed_channel_rejects_traffic(self):
        self.channel.close()
        self.assertTrue(self.channel.closed)
        with self.assertRaises(ChannelClosed):
            self.channel.emit(Message("late"))
        with self.assertRaises(ChannelClosed):
            self.channel.send_command(Disconnect())
        with self.assertRaises(ChannelClosed):
            self.channel.poll_command()
        with self.assertRaises(ChannelClosed):
            self.channel.wait_for_command(timeout=1)

    def test_file_repr_hides_data(self):
        self.assertEqual(repr(File("a", b"123")), "File(name='a', size=3)")


if __name__ == '__main__':
    unittest.main()
