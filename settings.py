# -*- coding: utf-8 -*-
"""
Persistent settings for the TinCan application.

Settings live in a small JSON file; anything missing or unreadable falls back
to defaults.
"""

import json
import logging
import os
import sys

# --- Import Local Modules ---
try:
    import constants
except ImportError as e:
    print(f"ERROR (settings.py): Failed to import local modules: {e}", file=sys.stderr)
    print("Ensure all .py files are in the same directory or accessible in PYTHONPATH.", file=sys.stderr)
    sys.exit(1)

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    "logging_level": constants.DEFAULT_LOGGING_LEVEL_STR,
    "last_peer": "",
}


def load_settings(path=constants.SETTINGS_FILE_PATH):
    """Loads application settings from the JSON file."""
    settings = dict(DEFAULT_SETTINGS)
    try:
        if os.path.exists(path):
            with open(path, 'r') as f:
                loaded = json.load(f)
            if isinstance(loaded, dict):
                settings.update(loaded)
            logger.debug(f"Loaded settings from {path}")
        else:
            logger.info(f"Settings file not found at {path}. Using defaults.")
    except (json.JSONDecodeError, OSError) as e:
        logger.error(f"Error loading settings file: {e}. Using defaults.")
        settings = dict(DEFAULT_SETTINGS)

    if settings.get("logging_level") not in constants.LOG_LEVEL_MAP:
        settings["logging_level"] = constants.DEFAULT_LOGGING_LEVEL_STR
    return settings


def save_settings(settings, path=constants.SETTINGS_FILE_PATH):
    """Saves application settings to the JSON file. Returns True on success."""
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w') as f:
            json.dump(settings, f, indent=4)
        logger.info(f"Settings saved to {path}")
        return True
    except OSError as e:
        logger.error(f"Error saving settings file: {e}")
        return False


def apply_logging_level(level_name, handlers=None):
    """
    Configures the root logger with the named verbosity.
    Errors always go to stderr as well; extra handlers (e.g. the GUI log pane)
    are attached alongside.
    """
    level = constants.LOG_LEVEL_MAP.get(level_name, constants.LOG_LEVEL_MAP[constants.DEFAULT_LOGGING_LEVEL_STR])
    formatter = logging.Formatter(constants.LOG_FORMAT, datefmt=constants.LOG_DATE_FORMAT)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.ERROR)
    stderr_handler.setFormatter(formatter)

    all_handlers = [stderr_handler]
    for handler in handlers or []:
        handler.setFormatter(formatter)
        all_handlers.append(handler)

    logging.basicConfig(level=level, handlers=all_handlers, force=True)
    logger.info(f"Logging level set to: {level_name} (numeric: {level})")
    return level
