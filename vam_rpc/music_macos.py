# vam_rpc/music_macos.py
import json
import subprocess
from typing import Callable

from .debug import debug_log
from .models import PAUSED, PLAYING, PlaybackState, Track

# JXA returns a JSON document; "playing" with no addressable track is the gap between songs.
MUSIC_STATE_SCRIPT = r'''
JSON.stringify((() => {
    const music = Application("Music");
    if (!music.running()) {
        return { state: "stopped" };
    }
    const state = music.playerState();
    if (state !== "playing" && state !== "paused") {
        return { state: "stopped" };
    }
    try {
        const track = music.currentTrack;
        return {
            state: state,
            track: {
                name: track.name(),
                artist: track.artist(),
                album: track.album(),
                duration: track.duration(),
                playerPosition: music.playerPosition()
            }
        };
    } catch (e) {
        return { state: "paused" };
    }
})())
'''

OSASCRIPT_TIMEOUT = 5


class MusicBridgeError(Exception):
    pass


def run_osascript(script: str = MUSIC_STATE_SCRIPT) -> dict:
    try:
        out = subprocess.check_output(
            ["osascript", "-l", "JavaScript", "-e", script],
            text=True,
            stderr=subprocess.PIPE,
            timeout=OSASCRIPT_TIMEOUT,
        )
    except (OSError, subprocess.SubprocessError) as e:
        raise MusicBridgeError(f"osascript failed: {e}") from e

    try:
        return json.loads(out)
    except ValueError as e:
        raise MusicBridgeError(f"osascript returned invalid JSON: {out!r}") from e


def _to_float(v) -> float:
    try:
        f = float(v)
    except (TypeError, ValueError):
        return 0.0
    return f if f > 0 else 0.0


def _to_str(v) -> str:
    return v if isinstance(v, str) else ""


def parse_music_state(raw) -> PlaybackState:
    """
    Map the bridge's {state, track?} document onto a PlaybackState.
    Anything unexpected degrades to stopped.
    """
    if not isinstance(raw, dict):
        return PlaybackState.stopped()

    state = raw.get("state")
    if state not in (PLAYING, PAUSED):
        return PlaybackState.stopped()

    props = raw.get("track")
    if not isinstance(props, dict):
        return PlaybackState.paused()

    track = Track(
        name=_to_str(props.get("name")),
        artist=_to_str(props.get("artist")),
        album=_to_str(props.get("album")),
        duration=_to_float(props.get("duration")),
        position=_to_float(props.get("playerPosition")),
    )
    if state == PLAYING:
        return PlaybackState.playing(track)
    return PlaybackState.paused(track)


class MusicReader:
    def __init__(self, runner: Callable[[], dict] = run_osascript):
        self._runner = runner

    def read_state(self) -> PlaybackState:
        try:
            raw = self._runner()
        except Exception as e:
            print(f"[Music] Apple Music read failed: {e}", flush=True)
            return PlaybackState.stopped()

        state = parse_music_state(raw)
        debug_log(f"Music state: {state}", tag="Music")
        return state
