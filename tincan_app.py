# -*- coding: utf-8 -*-
"""
TinCan application window.

Owns the Tk root, the GUI queue that carries log records from every thread,
and the redraw loop that polls the ChatSession once per cycle.
"""

import tkinter as tk
from tkinter import ttk, messagebox
import logging
import queue
import sys

# --- Import Local Modules ---
try:
    import constants
    import gui
    import settings
    import utils
except ImportError as e:
    print(f"ERROR (tincan_app.py): Failed to import local modules: {e}", file=sys.stderr)
    print("Ensure all .py files are in the same directory or accessible in PYTHONPATH.", file=sys.stderr)
    sys.exit(1)

logger = logging.getLogger(__name__)


class GuiLogHandler(logging.Handler):
    """Forwards formatted log records into the GUI queue. Safe from any thread."""

    def __init__(self, gui_queue):
        super().__init__()
        self.gui_queue = gui_queue

    def emit(self, record):
        try:
            self.gui_queue.put(("log", self.format(record)))
        except Exception:
            self.handleError(record)


class TinCanApp:
    def __init__(self, root_window, session, app_settings=None):
        self.root = root_window
        self.session = session
        self.app_settings = app_settings if app_settings is not None else dict(settings.DEFAULT_SETTINGS)
        self.root.title(f"{constants.APP_NAME} v{constants.APP_VERSION}")
        self.root.protocol("WM_DELETE_WINDOW", self._quit_app)
        try:
            style = ttk.Style()
            available_themes = style.theme_names()
            if 'clam' in available_themes: style.theme_use('clam')
            elif 'vista' in available_themes: style.theme_use('vista')
        except tk.TclError:
            logger.warning("Could not set custom theme, using default.")

        # --- State Variables ---
        self.connection_status = tk.StringVar(value="Initializing...")
        self.peer_ip = tk.StringVar(value=self.app_settings.get("last_peer", ""))
        self.chat_input = tk.StringVar()
        self.local_ip = utils.get_local_ip()
        self._rendered_messages = 0
        self._rendered_files = 0
        self._dialog_open = False
        self._quitting = False

        # --- Logging into the log pane ---
        self.gui_queue = queue.Queue()
        self.log_handler = GuiLogHandler(self.gui_queue)
        settings.apply_logging_level(self.app_settings.get("logging_level"), handlers=[self.log_handler])

        gui.create_widgets(self)
        self._process_gui_queue() # Start the redraw loop

    # --- Actions ---

    def _submit_input(self):
        line = self.chat_input.get()
        self.chat_input.set("")
        if self.session.submit(line):
            self._quit_app(confirm=False)

    def _connect_peer(self):
        target = self.peer_ip.get().strip()
        if not target:
            messagebox.showerror("Error", "Peer IP/Hostname cannot be empty.", parent=self.root)
            return
        if self.session.connect(target) and target != self.app_settings.get("last_peer"):
            self.app_settings["last_peer"] = target
            settings.save_settings(self.app_settings)

    def _disconnect_peer(self):
        self.session.disconnect()

    # --- Redraw loop ---

    def _process_gui_queue(self):
        """Drains the GUI queue and the session once per cycle and redraws."""
        try:
            while not self.gui_queue.empty():
                msg_type, data = self.gui_queue.get_nowait()
                if msg_type == "log":
                    gui.update_log_widget(self, data)

            self.session.poll()
            self._redraw()
            self._show_pending_decision()
        except queue.Empty:
            pass
        except Exception as e:
            logger.exception(f"Error processing GUI queue: {e}")
        finally:
            if not self._quitting and self.root.winfo_exists():
                self.root.after(constants.GUI_POLL_INTERVAL_MS, self._process_gui_queue)

    def _redraw(self):
        session = self.session
        gui.set_connection_status(self, session.status_text, bool(session.connected_ip), bool(session.connecting_to))
        for direction, text in session.messages[self._rendered_messages:]:
            gui.append_chat_message(self, direction, text)
        self._rendered_messages = len(session.messages)
        for path in session.received_files[self._rendered_files:]:
            gui.add_received_file_display(self, path)
        self._rendered_files = len(session.received_files)

    def _show_pending_decision(self):
        # Modals run a nested event loop, so this can be re-entered while one is up.
        if self._dialog_open:
            return
        while self.session.pending is not None and not self._quitting:
            self._dialog_open = True
            try:
                accepted = gui.show_decision_dialog(self, self.session.pending)
            finally:
                self._dialog_open = False
            self.session.resolve(accepted)
            self._redraw()

    # --- Shutdown ---

    def _quit_app(self, confirm=True):
        """Handles application shutdown."""
        if confirm:
            quit_message = f"Are you sure you want to quit {constants.APP_NAME}?"
            if self.session.connected_ip:
                quit_message = f"You are connected to {self.session.connected_ip}. Are you sure you want to quit?"
            if not messagebox.askyesno("Confirm Quit", quit_message, parent=self.root):
                logger.info("Quit cancelled by user.")
                return

        logger.info("Shutting down...")
        self._quitting = True
        self.session.shutdown()
        logging.getLogger().removeHandler(self.log_handler)
        if self.root:
            self.root.destroy()
        sys.exit(0)
