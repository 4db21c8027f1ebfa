# vam_rpc/status.py
from pathlib import Path
from typing import Optional

from .paths import status_path

STARTING = "Service Starting..."
IDLE = "Idle"


class StatusReporter:
    """
    Writes the one-line status the menu-bar app polls. Last write wins.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else status_path()

    def report(self, message: str) -> None:
        line = " ".join(str(message).split())
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(line + "\n", encoding="utf-8")
        except OSError as e:
            print(f"[Agent] Could not write status file {self.path}: {e}", flush=True)

    def read(self) -> str:
        try:
            return self.path.read_text(encoding="utf-8").strip()
        except OSError:
            return ""
