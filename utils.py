# -*- coding: utf-8 -*-
"""
Utility functions for the TinCan application.
"""

import logging
import os
import socket
import sys
from pathlib import Path

from cryptography.hazmat.primitives import hashes

# Import constants
try:
    import constants
except ImportError:
    print("ERROR: constants.py not found. Make sure it's in the same directory.", file=sys.stderr)
    sys.exit(1)

logger = logging.getLogger(__name__)


def get_local_ip():
    """Gets the local IP address used for outbound connections."""
    s = None
    # Try connecting to a known external host (doesn't send data)
    targets = [("8.8.8.8", 80), ("1.1.1.1", 80)] # Google DNS, Cloudflare DNS
    ip = None
    for target_ip, target_port in targets:
        try:
            s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            s.settimeout(0.5)
            s.connect((target_ip, target_port))
            ip = s.getsockname()[0]
            break # Success
        except OSError: # Timeout, network unreachable...
            continue # Try next target
        finally:
            if s:
                s.close()

    # Fallback if external connection fails (e.g., offline)
    if ip is None:
        try:
            ip = socket.gethostbyname(socket.gethostname())
        except socket.gaierror:
            ip = "127.0.0.1"
    return ip


def format_bytes(size):
    """Formats bytes into a human-readable string (KB, MB, GB)."""
    if not isinstance(size, (int, float)) or size < 0:
        return "Invalid size"
    if size < 1024:
        return f"{size} B"
    elif size < 1024**2:
        return f"{size/1024:.2f} KB"
    elif size < 1024**3:
        return f"{size/1024**2:.2f} MB"
    else:
        return f"{size/1024**3:.2f} GB"


def payload_fingerprint(data):
    """Short SHA-256 fingerprint of a payload, spaced every 4 hex chars."""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(bytes(data))
    full_fingerprint = digest.finalize().hex().upper()
    fp_short = full_fingerprint[:constants.FINGERPRINT_DISPLAY_LENGTH]
    return ' '.join(fp_short[i:i+4] for i in range(0, constants.FINGERPRINT_DISPLAY_LENGTH, 4))


def get_downloads_folder():
    """Gets the default Downloads folder path for the current OS."""
    try:
        downloads = Path.home() / "Downloads"
        downloads.mkdir(parents=True, exist_ok=True)
        return str(downloads)
    except OSError as e:
        logger.warning(f"Error getting Downloads folder: {e}. Falling back to home directory.")
        return str(Path.home())


def unique_file_path(folder, filename):
    """Returns folder/filename, adding _1, _2... before the extension if it already exists."""
    base, ext = os.path.splitext(filename)
    counter = 1
    final_filename = filename
    while os.path.exists(os.path.join(folder, final_filename)):
        final_filename = f"{base}_{counter}{ext}"
        counter += 1
    return os.path.join(folder, final_filename)


def save_received_file(name, data, folder=None):
    """Writes an accepted file under its transmitted name. Returns the final path."""
    folder = folder or get_downloads_folder()
    # Only the last path component is trusted; the peer could send "../x".
    safe_name = os.path.basename(name.replace("\\", "/")).strip()
    if safe_name in ("", ".", ".."):
        safe_name = "downloaded_file"
    os.makedirs(folder, exist_ok=True)
    final_path = unique_file_path(folder, safe_name)
    with open(final_path, "wb") as f:
        f.write(data)
    logger.info(f"Saved {name} ({format_bytes(len(data))}) to {final_path}")
    return final_path
