# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Idempotent .env loading for storage credentials.

Candidate files, highest precedence first:

1. ``~/.config/resume-store/.env`` (XDG config directory)
2. ``.env`` in the current working directory

Neither file overrides variables already present in the process
environment, so the XDG file wins over the working-directory one.
"""

import logging
from pathlib import Path

from dotenv import load_dotenv


logger = logging.getLogger(__name__)

_dotenv_loaded = False


def dotenv_candidates() -> list[Path]:
    """Return the ``.env`` paths to try, highest precedence first."""
    from resume_store.config import get_dotenv_path

    return [get_dotenv_path(), Path.cwd() / ".env"]


def load_dotenv_once() -> list[Path]:
    """Load the candidate ``.env`` files on the first call only.

    Returns:
        The files loaded by this call (empty on every later call).
    """
    global _dotenv_loaded
    if _dotenv_loaded:
        return []

    loaded = [path for path in dotenv_candidates() if path.is_file()]
    for path in loaded:
        load_dotenv(path, override=False)
        logger.debug("Loaded .env from %s", path)

    _dotenv_loaded = True
    return loaded


def reset_dotenv_state() -> None:
    """Reset the dotenv loaded state. For testing only."""
    global _dotenv_loaded
    _dotenv_loaded = False
