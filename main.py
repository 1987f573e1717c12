#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
TinCan: direct peer-to-peer text and file exchange over TCP.
Main entry point.
"""

import tkinter as tk
from tkinter import messagebox
import logging
import sys

# --- Import Local Modules ---
try:
    import settings
    from channels import CoordinationChannel
    from errors import ListenerUnavailable
    from network import PeerConnection
    from session import ChatSession
    from tincan_app import TinCanApp
except ImportError as e:
    print(f"ERROR (main.py): Failed to import local modules: {e}", file=sys.stderr)
    print("Ensure all .py files are in the same directory or accessible in PYTHONPATH.", file=sys.stderr)
    sys.exit(1)

logger = logging.getLogger(__name__)


def _show_startup_error(title, message):
    print(f"ERROR: {message}", file=sys.stderr)
    try:
        root_err = tk.Tk()
        root_err.withdraw()
        messagebox.showerror(title, message)
        root_err.destroy()
    except tk.TclError:
        pass # Fallback to console output


def main():
    app_settings = settings.load_settings()
    settings.apply_logging_level(app_settings["logging_level"])

    connection = PeerConnection(CoordinationChannel())
    try:
        connection.listen()
    except ListenerUnavailable as e:
        _show_startup_error("Startup Error", str(e))
        return 1

    session = ChatSession(connection)
    root = tk.Tk()
    # Keep the root window hidden until the app is created
    root.withdraw()
    try:
        TinCanApp(root, session, app_settings)
        session.start()
        root.deiconify()
        root.mainloop()
    except tk.TclError as e:
        session.shutdown()
        _show_startup_error("Fatal Error", f"Application failed to start:\n\n{e}")
        return 1
    session.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
