"""
Preset utilities.

Contains:
- normalized_source_path: deterministic, filesystem-free path normalisation
- sample_name_key: comparison key for Samples/Imported collisions
- sanitize_filename: safe preset filenames
- format_number: shortest stable decimal text for document values
"""

import os
import sys
import unicodedata
from decimal import Decimal

INVALID_FILENAME_CHARS = '<>:"/\\|?*'


def normalized_source_path(path_like) -> str:
    """
    Normalise a source path without touching the filesystem.

    Algorithm (strict order):
    1. expanduser + normpath (no symlink resolution, no stat)
    2. Unicode NFC normalisation
    3. Case normalisation on Windows only

    Idempotent and deterministic for the same input.
    """
    path = os.path.normpath(os.path.expanduser(str(path_like)))
    path = unicodedata.normalize("NFC", path)
    if sys.platform == "win32":
        path = path.lower()
    return path


def sample_name_key(filename: str) -> str:
    """
    Key under which two filenames collide in Samples/Imported.

    Case-insensitive on every platform: the default volumes on macOS and
    Windows treat 'Kick.wav' and 'kick.wav' as the same file.
    """
    return unicodedata.normalize("NFC", filename).casefold()


def sanitize_filename(name: str) -> str:
    """Replace characters that are invalid in filenames."""
    result = name
    for char in INVALID_FILENAME_CHARS:
        result = result.replace(char, "_")
    return result.strip()


def format_number(value) -> str:
    """
    Text for a numeric document value.

    Integers (and integral floats) print without a decimal point. Other
    floats use the shortest positional text that reads back to the same
    float: 44100.0 -> '44100', 0.5 -> '0.5', 1e-07 -> '0.0000001'.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")
