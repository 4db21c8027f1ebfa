# vam_rpc/discord_rpc.py
import os
import time
from typing import Optional

from pypresence import Presence
from pypresence.types import ActivityType

from .debug import debug_log
from .models import PresenceActivity

# APP ID
APP_CLIENT_ID = "773825528921849856"


def client_id() -> str:
    return os.getenv("VAM_RPC_CLIENT_ID", "").strip() or APP_CLIENT_ID


def connect_to_discord(app_id: Optional[str] = None) -> Presence:
    rpc = Presence(app_id or client_id())
    rpc.connect()

    # Give Discord time to send READY payload
    time.sleep(0.3)

    try:
        user = getattr(rpc, "user", None) or {}
        name = user.get("username", "Unknown")
        disc = user.get("discriminator", "")
        display = f"{name}#{disc}" if disc and disc != "0" else name

        print(f"[RPC] Connected as {display}", flush=True)
    except Exception:
        print("[RPC] Connected", flush=True)

    return rpc


class PresencePublisher:
    """
    Pushes a built activity to Discord, or clears it when nothing is playing.
    Transport errors propagate to the caller.
    """

    def __init__(self, rpc: Presence):
        self.rpc = rpc

    def publish(self, activity: Optional[PresenceActivity]) -> None:
        if activity is None:
            self.rpc.clear()
            debug_log("Presence cleared", tag="RPC")
            return

        payload = activity.to_payload()
        self.rpc.update(activity_type=ActivityType.LISTENING, **payload)
        debug_log(f"Presence updated: {payload}", tag="RPC")
