# vam_rpc/paths.py
import os
from pathlib import Path

APP_DIR_NAME = "VAM-RPC"


def support_dir() -> Path:
    override = os.getenv("VAM_RPC_HOME", "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / "Library" / "Application Support" / APP_DIR_NAME


def config_path() -> Path:
    return support_dir() / "data" / "config.json"


def status_path() -> Path:
    return support_dir() / "status.txt"
