# -*- coding: utf-8 -*-
"""
GUI-related functions for the TinCan application.
"""

import tkinter as tk
from tkinter import ttk, filedialog, messagebox
import logging
import sys
import os

# --- Import Local Modules ---
try:
    import constants
    from decisions import DecisionType
    from session import Direction
except ImportError as e:
    print(f"ERROR (gui.py): Failed to import local modules: {e}", file=sys.stderr)
    print("Ensure all .py files are in the same directory or accessible in PYTHONPATH.", file=sys.stderr)
    sys.exit(1)

logger = logging.getLogger(__name__)


def create_widgets(app):
    """Creates all the main widgets for the TinCan application."""
    main_frame = ttk.Frame(app.root, padding="10")
    main_frame.grid(row=0, column=0, sticky=(tk.W, tk.E, tk.N, tk.S))
    app.root.columnconfigure(0, weight=1)
    app.root.rowconfigure(0, weight=1)

    main_frame.columnconfigure(0, weight=0)
    main_frame.columnconfigure(1, weight=1)
    main_frame.rowconfigure(0, weight=3)
    main_frame.rowconfigure(1, weight=1)

    # --- Left Column Frame ---
    left_frame = ttk.Frame(main_frame)
    left_frame.grid(row=0, column=0, rowspan=2, sticky=(tk.W, tk.N, tk.S), padx=(0, 10))
    left_frame.columnconfigure(0, weight=1)
    left_frame.rowconfigure(3, weight=1) # Pushes Quit to the bottom

    # --- Status Section ---
    app.status_frame = ttk.LabelFrame(left_frame, text="Connection Status", padding="10")
    app.status_frame.grid(row=0, column=0, sticky=(tk.W, tk.E), pady=(0, 5))
    app.status_frame.columnconfigure(1, weight=1)

    ttk.Label(app.status_frame, text="Status:").grid(row=0, column=0, sticky=tk.W, padx=5)
    app.status_label = ttk.Label(app.status_frame, textvariable=app.connection_status, font=('TkDefaultFont', 10, 'bold'), wraplength=220)
    app.status_label.grid(row=0, column=1, sticky=tk.W, padx=5)
    ttk.Label(app.status_frame, text="Local:").grid(row=1, column=0, sticky=tk.W, padx=5)
    app.local_info_label = ttk.Label(app.status_frame, text=f"{app.local_ip}:{constants.DEFAULT_PORT}")
    app.local_info_label.grid(row=1, column=1, sticky=tk.W, padx=5)
    ttk.Label(app.status_frame, text="Peer ID:").grid(row=2, column=0, sticky=tk.W, padx=5)
    ttk.Label(app.status_frame, text=f"{app.session.connection.peer_id:08x}", font=('Courier', 9)).grid(row=2, column=1, sticky=tk.W, padx=5)

    # --- Connect Section ---
    app.connect_frame = ttk.LabelFrame(left_frame, text="Peer", padding="10")
    app.connect_frame.grid(row=1, column=0, sticky=(tk.W, tk.E), pady=5)
    app.connect_frame.columnconfigure(0, weight=1)

    app.peer_entry = ttk.Entry(app.connect_frame, textvariable=app.peer_ip, width=20)
    app.peer_entry.grid(row=0, column=0, columnspan=2, sticky=(tk.W, tk.E), padx=5, pady=2)
    app.peer_entry.bind("<Return>", lambda event: app._connect_peer())
    app.connect_button = ttk.Button(app.connect_frame, text="Connect", command=app._connect_peer)
    app.connect_button.grid(row=1, column=0, padx=5, pady=2, sticky=tk.W)
    app.disconnect_button = ttk.Button(app.connect_frame, text="Disconnect", command=app._disconnect_peer, state='disabled')
    app.disconnect_button.grid(row=1, column=1, padx=5, pady=2, sticky=tk.E)

    # --- File Transfer Section ---
    app.transfer_frame = ttk.LabelFrame(left_frame, text="Files", padding="10")
    app.transfer_frame.grid(row=2, column=0, sticky=(tk.W, tk.E), pady=5)
    app.transfer_frame.columnconfigure(0, weight=1)

    app.send_file_button = ttk.Button(app.transfer_frame, text="Send File...", command=lambda: choose_file_dialog(app), state='disabled')
    app.send_file_button.grid(row=0, column=0, padx=5, pady=2, sticky=tk.W)
    app.received_listbox = tk.Listbox(app.transfer_frame, height=5, width=30)
    app.received_listbox.grid(row=1, column=0, sticky=(tk.W, tk.E), padx=5, pady=(5, 0))

    app.quit_button = ttk.Button(left_frame, text="Quit", command=app._quit_app)
    app.quit_button.grid(row=4, column=0, sticky=tk.E, pady=10, padx=5)

    # --- Right Column: Conversation ---
    chat_frame = ttk.LabelFrame(main_frame, text="Chat", padding="10")
    chat_frame.grid(row=0, column=1, sticky="nsew")
    chat_frame.rowconfigure(0, weight=1)
    chat_frame.columnconfigure(0, weight=1)

    app.chat_conversation_area = tk.Text(chat_frame, wrap=tk.WORD, state='disabled', relief=tk.SOLID, borderwidth=1, height=15)
    app.chat_conversation_area.grid(row=0, column=0, sticky="nsew")
    chat_scrollbar = ttk.Scrollbar(chat_frame, orient=tk.VERTICAL, command=app.chat_conversation_area.yview)
    chat_scrollbar.grid(row=0, column=1, sticky="ns")
    app.chat_conversation_area['yscrollcommand'] = chat_scrollbar.set

    app.chat_conversation_area.tag_configure("peer_sender_name", foreground="blue", font=('TkDefaultFont', 9, 'bold'))
    app.chat_conversation_area.tag_configure("peer_message_content", foreground="blue", lmargin1=10, lmargin2=10)
    app.chat_conversation_area.tag_configure("local_sender_name", foreground="green", font=('TkDefaultFont', 9, 'bold'))
    app.chat_conversation_area.tag_configure("local_message_content", foreground="green", lmargin1=10, lmargin2=10)

    input_frame = ttk.Frame(chat_frame, padding=(0, 5, 0, 0))
    input_frame.grid(row=1, column=0, columnspan=2, sticky="ew")
    input_frame.columnconfigure(0, weight=1)

    app.chat_message_entry = ttk.Entry(input_frame, textvariable=app.chat_input)
    app.chat_message_entry.grid(row=0, column=0, sticky="ew", padx=(0, 5))
    # Enter submits; the line may also be a ?command
    app.chat_message_entry.bind("<Return>", lambda event: app._submit_input())
    app.chat_send_button = ttk.Button(input_frame, text="Send", command=app._submit_input)
    app.chat_send_button.grid(row=0, column=1, sticky="e")

    # --- Right Column: Logs ---
    app.log_frame_outer = ttk.LabelFrame(main_frame, text="Logs", padding="10")
    app.log_frame_outer.grid(row=1, column=1, sticky=(tk.W, tk.E, tk.N, tk.S), pady=(5, 0))
    app.log_frame_outer.columnconfigure(0, weight=1)
    app.log_frame_outer.rowconfigure(1, weight=1)

    log_button_frame = ttk.Frame(app.log_frame_outer)
    log_button_frame.grid(row=0, column=0, columnspan=2, sticky=(tk.E), pady=(0, 5))
    app.copy_log_button = ttk.Button(log_button_frame, text="Copy", command=lambda: copy_logs(app))
    app.clear_log_button = ttk.Button(log_button_frame, text="Clear", command=lambda: clear_logs(app))
    app.clear_log_button.pack(side=tk.RIGHT, padx=5)
    app.copy_log_button.pack(side=tk.RIGHT, padx=5)

    app.log_text = tk.Text(app.log_frame_outer, height=8, state='disabled', wrap=tk.WORD, width=60)
    app.log_text.grid(row=1, column=0, sticky="nsew")
    log_scrollbar_y = ttk.Scrollbar(app.log_frame_outer, orient=tk.VERTICAL, command=app.log_text.yview)
    log_scrollbar_y.grid(row=1, column=1, sticky=(tk.N, tk.S))
    app.log_text['yscrollcommand'] = log_scrollbar_y.set

    app.chat_message_entry.focus_set()


def update_log_widget(app, log_entry):
    """Appends a log entry to the log Text widget."""
    try:
        if not app.log_text.winfo_exists(): return
        app.log_text.config(state='normal')
        app.log_text.insert(tk.END, log_entry + "\n")
        app.log_text.see(tk.END)
        app.log_text.config(state='disabled')
    except tk.TclError:
        pass # Window closing


def set_connection_status(app, status_text, connected, connecting=False):
    """Sets the status line and enables/disables widgets to match."""
    if not app.root.winfo_exists(): return
    app.connection_status.set(status_text)
    if connected:
        status_color = "green"
    elif connecting:
        status_color = "blue"
    else:
        status_color = "darkorange"
    idle = not connected and not connecting
    try:
        app.status_label.config(foreground=status_color)
        app.peer_entry.config(state='normal' if idle else 'disabled')
        app.connect_button.config(state='normal' if idle else 'disabled')
        app.disconnect_button.config(state='disabled' if idle else 'normal')
        app.send_file_button.config(state='normal' if connected else 'disabled')
    except tk.TclError as e:
        logger.debug(f"Error updating widget states (window likely closing): {e}")


def append_chat_message(app, direction, text):
    """Appends one line of conversation to the chat area."""
    if not app.root.winfo_exists(): return
    if direction is Direction.SENT:
        name_tag, content_tag = "local_sender_name", "local_message_content"
    else:
        name_tag, content_tag = "peer_sender_name", "peer_message_content"
    try:
        app.chat_conversation_area.config(state='normal')
        app.chat_conversation_area.insert(tk.END, f"{direction.value}:\n", name_tag)
        app.chat_conversation_area.insert(tk.END, f"{text}\n", content_tag)
        app.chat_conversation_area.see(tk.END)
        app.chat_conversation_area.config(state='disabled')
    except tk.TclError as e:
        logger.debug(f"Error appending chat message (window likely closing): {e}")


def add_received_file_display(app, full_path):
    """Adds a saved file to the received files listbox."""
    if not app.root.winfo_exists(): return
    try:
        app.received_listbox.insert(tk.END, os.path.basename(full_path))
    except tk.TclError as e:
        logger.debug(f"Error adding received file to listbox (window likely closing): {e}")


def show_decision_dialog(app, decision):
    """Shows the modal for a pending decision. Returns the user's answer."""
    if decision.decision_type is DecisionType.ACKNOWLEDGE:
        messagebox.showinfo(constants.APP_NAME, decision.prompt, parent=app.root)
        return True
    return messagebox.askyesno(constants.APP_NAME, decision.prompt, parent=app.root)


def choose_file_dialog(app):
    """Asks for a file and hands it to the session for sending."""
    filename = filedialog.askopenfilename(title="Choose File to Send", parent=app.root, initialdir=os.getcwd(), filetypes=[("All files", "*.*")])
    if filename:
        app.session.send_file(filename)


def copy_logs(app):
    """Copies the content of the log Text widget to the clipboard."""
    if not app.root.winfo_exists(): return
    log_content = app.log_text.get("1.0", tk.END).strip()
    if log_content:
        app.root.clipboard_clear()
        app.root.clipboard_append(log_content)
        logger.info("Logs copied to clipboard.")
    else:
        logger.info("No logs to copy.")


def clear_logs(app):
    """Clears the content of the log Text widget."""
    if not app.root.winfo_exists(): return
    try:
        app.log_text.config(state='normal')
        app.log_text.delete("1.0", tk.END)
        app.log_text.config(state='disabled')
    except tk.TclError as e:
        logger.debug(f"Error clearing logs (window likely closing): {e}")
