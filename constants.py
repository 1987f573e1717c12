# -*- coding: utf-8 -*-
"""
Constants for the TinCan application.
"""
import logging
import os
from pathlib import Path

# --- Application Info ---
APP_NAME = "TinCan"
APP_VERSION = "0.1.0"

# --- Networking ---
DEFAULT_PORT = 42069
LISTEN_HOST = "0.0.0.0" # All interfaces
HANDSHAKE_TIMEOUT = 120.0 # Seconds an inbound peer gets to send its handshake
CONNECTION_TIMEOUT = 10.0 # Timeout for establishing an outbound TCP connection
ACCEPT_POLL_INTERVAL = 1.0 # Listener timeout so the loop can check for shutdown
PEER_POLL_INTERVAL = 0.2 # Readability wait while connected, keeps Disconnect responsive
BUFFER_SIZE = 262144 # 256 KB read size for frame bodies

# --- Wire Format ---
HANDSHAKE_MAGIC = b"Hello"
HANDSHAKE_SIZE = 9 # 5-byte magic + 4-byte id
FRAME_TAG_SIZE = 4
FRAME_HEADER_SIZE = 8 # 4-byte tag + 4-byte length
FRAME_TAG_CHAT = b"chat"
FRAME_TAG_FILE = b"file"
FILE_NAME_FIELD_SIZE = 96
MAX_FRAME_LENGTH = 0xFFFFFFFF

# --- Interactive ---
COMMAND_PREFIX = "?"
GUI_POLL_INTERVAL_MS = 100 # Redraw cycle; the event queue is drained once per cycle
FINGERPRINT_DISPLAY_LENGTH = 16 # Show first 16 hex chars of a payload fingerprint

# --- Logging ---
DEFAULT_LOGGING_LEVEL_STR = "INFO" # Default if settings file is missing/corrupt
LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR
}
LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
SETTINGS_FILE_PATH = os.path.join(str(Path.home()), ".tincan", "settings.json")
