# vam_rpc/settings.py
import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from .debug import debug_log
from .paths import config_path

DEFAULT_REFRESH_SECONDS = 5
MIN_REFRESH_SECONDS = 1
MAX_REFRESH_SECONDS = 15
DEFAULT_SPINNER_API_URL = "https://able-pig-53.deno.dev"

SMALL_IMAGE_OFF = "off"
SMALL_IMAGE_ALBUM_ART = "albumArt"
SMALL_IMAGE_ARTIST_ART = "artistArt"
SMALL_IMAGE_PLAYBACK_STATUS = "playbackStatus"
SMALL_IMAGE_APP_ICON = "appIcon"

SMALL_IMAGE_SOURCES = {
    SMALL_IMAGE_OFF,
    SMALL_IMAGE_ALBUM_ART,
    SMALL_IMAGE_ARTIST_ART,
    SMALL_IMAGE_PLAYBACK_STATUS,
    SMALL_IMAGE_APP_ICON,
}

# Labels the settings editor has written over time.
_SMALL_IMAGE_ALIASES = {
    "default": SMALL_IMAGE_APP_ICON,
    "app icon": SMALL_IMAGE_APP_ICON,
    "album art": SMALL_IMAGE_ALBUM_ART,
    "artist image": SMALL_IMAGE_ARTIST_ART,
    "artist art": SMALL_IMAGE_ARTIST_ART,
    "playback status": SMALL_IMAGE_PLAYBACK_STATUS,
    "none": SMALL_IMAGE_OFF,
}


@dataclass(frozen=True)
class ButtonSetting:
    enabled: bool
    label: str


@dataclass(frozen=True)
class Settings:
    refresh_interval: int = DEFAULT_REFRESH_SECONDS
    activity_name: str = "Apple Music"
    apple_music_button: ButtonSetting = ButtonSetting(True, "Open on Apple Music")
    spotify_button: ButtonSetting = ButtonSetting(True, "Find on Spotify")
    songlink_button: ButtonSetting = ButtonSetting(False, "Find on Songlink")
    youtube_music_button: ButtonSetting = ButtonSetting(False, "Find on YT Music")
    auto_launch: bool = False
    details_template: str = "{name}"
    state_template: str = "by {artist}"
    large_image_text: str = "{album}"
    small_image_text: str = "{artist}"
    small_image_source: str = SMALL_IMAGE_APP_ICON
    spinning_small_image: bool = False
    custom_enrichment_api_url: str = DEFAULT_SPINNER_API_URL


DEFAULT_SETTINGS = Settings()

# config.json key -> Settings field
_SCALAR_KEYS = {
    "activityName": "activity_name",
    "enableAutoLaunch": "auto_launch",
    "detailsString": "details_template",
    "stateString": "state_template",
    "largeImageText": "large_image_text",
    "smallImageText": "small_image_text",
    "spinningSmallImage": "spinning_small_image",
    "customSpinnerApiUrl": "custom_enrichment_api_url",
}

# (enable key, label key) -> Settings field
_BUTTON_KEYS = {
    ("enableAppleMusicButton", "appleMusicButtonLabel"): "apple_music_button",
    ("enableSpotifyButton", "spotifyButtonLabel"): "spotify_button",
    ("enableSonglinkButton", "songlinkButtonLabel"): "songlink_button",
    ("enableYoutubeMusicButton", "youtubeMusicButtonLabel"): "youtube_music_button",
}


def normalize_small_image_source(value) -> str:
    if not isinstance(value, str):
        return SMALL_IMAGE_OFF
    value = value.strip()
    if value in SMALL_IMAGE_SOURCES:
        return value
    return _SMALL_IMAGE_ALIASES.get(value.lower(), SMALL_IMAGE_OFF)


def _coerce_interval(value) -> int:
    if isinstance(value, bool):
        return DEFAULT_REFRESH_SECONDS
    try:
        seconds = int(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_REFRESH_SECONDS
    if not seconds:
        return DEFAULT_REFRESH_SECONDS
    return max(MIN_REFRESH_SECONDS, min(MAX_REFRESH_SECONDS, seconds))


def _same_type(value, default):
    # bool is an int subclass, keep them apart
    if isinstance(default, bool):
        return value if isinstance(value, bool) else default
    return value if isinstance(value, type(default)) else default


def merge_settings(loaded: dict, defaults: Settings = DEFAULT_SETTINGS) -> Settings:
    """
    Overlay a (possibly partial, possibly hand-edited) config document onto defaults.
    Values of the wrong type are dropped in favour of the default.
    """
    updates = {}

    if "refreshInterval" in loaded:
        updates["refresh_interval"] = _coerce_interval(loaded["refreshInterval"])

    for key, attr in _SCALAR_KEYS.items():
        if key in loaded:
            updates[attr] = _same_type(loaded[key], getattr(defaults, attr))

    for (enable_key, label_key), attr in _BUTTON_KEYS.items():
        current = getattr(defaults, attr)
        enabled = _same_type(loaded.get(enable_key, current.enabled), current.enabled)
        label = _same_type(loaded.get(label_key, current.label), current.label)
        updates[attr] = ButtonSetting(enabled, label)

    source = defaults.small_image_source
    if "smallImageSource" in loaded:
        source = normalize_small_image_source(loaded["smallImageSource"])
    if loaded.get("enableSmallImage") is False:
        source = SMALL_IMAGE_OFF
    updates["small_image_source"] = source

    return replace(defaults, **updates)


def load_settings(path: Optional[Path] = None) -> Settings:
    path = path or config_path()
    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = json.load(f)
    except FileNotFoundError:
        debug_log(f"No config at {path}, using defaults", tag="Settings")
        return DEFAULT_SETTINGS
    except (OSError, ValueError, RecursionError) as e:
        print(f"[Settings] Could not load {path}, using defaults ({e})", flush=True)
        return DEFAULT_SETTINGS

    if not isinstance(loaded, dict):
        print(f"[Settings] {path} is not a JSON object, using defaults", flush=True)
        return DEFAULT_SETTINGS

    settings = merge_settings(loaded)
    debug_log(f"Loaded settings from {path}: {settings}", tag="Settings")
    return settings
