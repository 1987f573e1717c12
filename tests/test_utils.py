# -*- coding: utf-8 -*-
import json
import logging
import os
import shutil
import sys
import tempfile
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import settings
import utils


class FormatBytesTests(unittest.TestCase):
    def test_units(self):
        self.assertEqual(utils.format_bytes(0), "0 B")
        self.assertEqual(utils.format_bytes(1023), "1023 B")
        self.assertEqual(utils.format_bytes(1536), "1.50 KB")
        self.assertEqual(utils.format_bytes(5 * 1024**2), "5.00 MB")
        self.assertEqual(utils.format_bytes(-1), "Invalid size")


class FingerprintTests(unittest.TestCase):
    def test_known_digest(self):
        # SHA-256("abc") = ba7816bf 8f01cfea ...
        self.assertEqual(utils.payload_fingerprint(b"abc"), "BA78 16BF 8F01 CFEA")


class SaveReceivedFileTests(unittest.TestCase):
    def setUp(self):
        self.folder = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.folder, ignore_errors=True)

    def test_saves_under_transmitted_name(self):
        path = utils.save_received_file("hello.txt", b"hi", self.folder)
        self.assertEqual(path, os.path.join(self.folder, "hello.txt"))
        with open(path, "rb") as f:
            self.assertEqual(f.read(), b"hi")

    def test_existing_name_gets_suffix(self):
        utils.save_received_file("hello.txt", b"1", self.folder)
        second = utils.save_received_file("hello.txt", b"2", self.folder)
        third = utils.save_received_file("hello.txt", b"3", self.folder)
        self.assertEqual(os.path.basename(second), "hello_1.txt")
        self.assertEqual(os.path.basename(third), "hello_2.txt")

    def test_directory_components_are_stripped(self):
        path = utils.save_received_file("../../etc/passwd", b"x", self.folder)
        self.assertEqual(path, os.path.join(self.folder, "passwd"))
        path = utils.save_received_file("..\\win\\evil.dll", b"x", self.folder)
        self.assertEqual(path, os.path.join(self.folder, "evil.dll"))

    def test_empty_name(self):
        path = utils.save_received_file("", b"x", self.folder)
        self.assertEqual(os.path.basename(path), "downloaded_file")


class SettingsTests(unittest.TestCase):
    def setUp(self):
        self.folder = tempfile.mkdtemp()
        self.path = os.path.join(self.folder, "sub", "settings.json")

    def tearDown(self):
        shutil.rmtree(self.folder, ignore_errors=True)
        logging.getLogger().handlers.clear()

    def test_missing_file_gives_defaults(self):
        self.assertEqual(settings.load_settings(self.path), settings.DEFAULT_SETTINGS)

    def test_round_trip(self):
        self.assertTrue(settings.save_settings({"logging_level": "DEBUG", "last_peer": "10.0.0.3"}, self.path))
        loaded = settings.load_settings(self.path)
        self.assertEqual(loaded["logging_level"], "DEBUG")
        self.assertEqual(loaded["last_peer"], "10.0.0.3")

    def test_corrupt_file_gives_defaults(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "w") as f:
            f.write("{not json")
        self.assertEqual(settings.load_settings(self.path), settings.DEFAULT_SETTINGS)

    def test_unknown_level_falls_back(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "w") as f:
            json.dump({"logging_level": "LOUD"}, f)
        self.assertEqual(settings.load_settings(self.path)["logging_level"], "INFO")

    def test_apply_logging_level(self):
        handler = logging.NullHandler()
        self.assertEqual(settings.apply_logging_level("WARN", handlers=[handler]), logging.WARNING)
        root = logging.getLogger()
        self.assertEqual(root.level, logging.WARNING)
        self.assertIn(handler, root.handlers)


if __name__ == '__main__':
    unittest.main()
