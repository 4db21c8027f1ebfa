# vam_rpc/debug.py
import os
import time

from .paths import support_dir

DEBUG_LOG_NAME = "agent_debug.log"


def debug_enabled() -> bool:
    return os.getenv("VAM_RPC_DEBUG") == "1"


def format_line(tag: str, message: str, ts: str) -> str:
    return f"{ts} [{tag}] {message}"


def debug_log(message: str, tag: str = "Agent") -> None:
    """
    Verbose diagnostics, only with VAM_RPC_DEBUG=1. Appended to the debug log in
    the support dir and echoed to stdout next to the regular [Tag] lines.
    Never raises.
    """
    if not debug_enabled():
        return

    line = format_line(tag, message, time.strftime("%Y-%m-%d %H:%M:%S"))
    try:
        log_path = support_dir() / DEBUG_LOG_NAME
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with log_path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")
    except OSError as e:
        print(f"[{tag}] Could not write debug log: {e}", flush=True)

    print(f"[DEBUG] [{tag}] {message}", flush=True)
