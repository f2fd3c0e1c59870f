"""App path helpers (cross-platform).

Default locations used by the calling layer (preset manager, CLI). The
mapping core never reads these.

Environment overrides (useful for portable/dev launches):
- MS_DATA_DIR: base data dir
- MS_PRESET_DIR: explicit preset dir (overrides MS_DATA_DIR/presets)
"""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_data_dir

APP_NAME = "Multisampler"


def _env_path(name: str) -> Path | None:
    v = os.environ.get(name)
    if not v:
        return None
    return Path(os.path.expanduser(v)).resolve()


def get_app_data_dir() -> Path:
    """Base app data dir."""
    data_dir = _env_path("MS_DATA_DIR")
    if data_dir is not None:
        return data_dir
    return Path(user_data_dir(APP_NAME, appauthor=False, roaming=True)).resolve()


def get_preset_dir() -> Path:
    """Default directory for exported presets (not created here)."""
    preset_dir = _env_path("MS_PRESET_DIR")
    if preset_dir is not None:
        return preset_dir
    return get_app_data_dir() / "presets"


def get_log_path() -> Path:
    return get_app_data_dir() / "multisampler.log"
