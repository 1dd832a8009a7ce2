from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_config_dir, user_data_dir

APP_NAME = "helperbot"


def data_dir() -> Path:
    # HELPERBOT_HOME relocates both data and config (used by tests and portable installs)
    home = os.getenv("HELPERBOT_HOME")
    root = Path(home) / "data" if home else Path(user_data_dir(APP_NAME))
    root.mkdir(parents=True, exist_ok=True)
    return root


def config_dir() -> Path:
    home = os.getenv("HELPERBOT_HOME")
    return Path(home) / "config" if home else Path(user_config_dir(APP_NAME))
