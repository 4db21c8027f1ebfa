# vam_rpc/presence.py
import time
import urllib.parse
from typing import List, Optional, Tuple

from .models import Button, EnrichedMetadata, PlaybackState, PresenceActivity, Track
from .settings import (
    DEFAULT_SPINNER_API_URL,
    SMALL_IMAGE_ALBUM_ART,
    SMALL_IMAGE_APP_ICON,
    SMALL_IMAGE_ARTIST_ART,
    SMALL_IMAGE_OFF,
    SMALL_IMAGE_PLAYBACK_STATUS,
    Settings,
)

ICON_PLAY = "https://i.imgur.com/6uuaC8A.png"
ICON_PAUSE = "https://i.imgur.com/8oAUykh.png"
ICON_APPLE_MUSIC = "https://upload.wikimedia.org/wikipedia/commons/thumb/5/5f/Apple_Music_icon.svg/512px-Apple_Music_icon.svg.png"

TEXT_MAX = 128
BUTTON_LABEL_MAX = 32
MAX_BUTTONS = 2
ELLIPSIS = "…"


def ensure_valid(value: Optional[str], min_length: int = 2, max_length: int = TEXT_MAX) -> str:
    """
    Discord rejects fields shorter than 2 or longer than 128 characters.
    """
    if not value:
        return " " * min_length
    if len(value) < min_length:
        return value.ljust(min_length, " ")
    if len(value) > max_length:
        return value[: max_length - 1] + ELLIPSIS
    return value


def format_template(template: Optional[str], track: Track) -> str:
    if not template:
        return ""
    return (
        template.replace("{name}", track.name)
        .replace("{artist}", track.artist)
        .replace("{album}", track.album)
    )


def compute_timestamps(
    state: PlaybackState, now_ms: Optional[float] = None
) -> Tuple[Optional[int], Optional[int]]:
    track = state.track
    if not state.is_playing or track is None or track.duration <= 0:
        return None, None
    if now_ms is None:
        now_ms = time.time() * 1000
    start = round(now_ms - track.position * 1000)
    end = round(start + track.duration * 1000)
    return start, end


def search_query(track: Track) -> str:
    return urllib.parse.quote(f"{track.name} {track.artist}".strip(), safe="")


def apple_music_search_url(track: Track) -> str:
    return f"https://music.apple.com/us/search?term={search_query(track)}"


def spotify_search_url(track: Track) -> str:
    return f"https://open.spotify.com/search/{search_query(track)}"


def songlink_search_url(track: Track) -> str:
    return f"https://song.link/s?q={search_query(track)}"


def youtube_music_search_url(track: Track) -> str:
    return f"https://music.youtube.com/search?q={search_query(track)}"


def build_buttons(track: Track, enriched: EnrichedMetadata, settings: Settings) -> List[Button]:
    candidates = [
        (settings.apple_music_button, enriched.canonical_track_url or apple_music_search_url(track)),
        (settings.spotify_button, spotify_search_url(track)),
        (settings.songlink_button, songlink_search_url(track)),
        (settings.youtube_music_button, youtube_music_search_url(track)),
    ]
    buttons = [
        Button(ensure_valid(toggle.label, 2, BUTTON_LABEL_MAX), url)
        for toggle, url in candidates
        if toggle.enabled
    ]
    return buttons[:MAX_BUTTONS]


def select_small_image(
    state: PlaybackState, enriched: EnrichedMetadata, settings: Settings
) -> Tuple[Optional[str], Optional[str]]:
    source = settings.small_image_source
    if source == SMALL_IMAGE_OFF:
        return None, None

    if source == SMALL_IMAGE_PLAYBACK_STATUS:
        if state.is_paused:
            return ICON_PAUSE, "Paused"
        return ICON_PLAY, "Playing"

    if source == SMALL_IMAGE_APP_ICON:
        return ICON_APPLE_MUSIC, ensure_valid(settings.activity_name)

    text = ensure_valid(format_template(settings.small_image_text, state.track))
    if source == SMALL_IMAGE_ALBUM_ART:
        return enriched.album_artwork_url or ICON_APPLE_MUSIC, text
    if source == SMALL_IMAGE_ARTIST_ART:
        return enriched.artist_artwork_url or ICON_APPLE_MUSIC, text
    return ICON_APPLE_MUSIC, text


def spinner_url(settings: Settings, artwork_url: str) -> str:
    api = (settings.custom_enrichment_api_url or DEFAULT_SPINNER_API_URL).rstrip("/")
    return f"{api}/spin.gif?url={urllib.parse.quote(artwork_url, safe='')}"


def build_activity(
    state: PlaybackState,
    enriched: EnrichedMetadata,
    settings: Settings,
    now_ms: Optional[float] = None,
) -> Optional[PresenceActivity]:
    """
    Assemble the Rich Presence payload for a playing or paused track.
    Returns None when there is nothing to show and the presence should be cleared.
    """
    if not state.has_track:
        return None
    track = state.track

    start, end = compute_timestamps(state, now_ms)
    small_image, small_text = select_small_image(state, enriched, settings)
    if small_image and settings.spinning_small_image and enriched.album_artwork_url:
        small_image = spinner_url(settings, enriched.album_artwork_url)

    return PresenceActivity(
        details=ensure_valid(format_template(settings.details_template, track)),
        state=ensure_valid(format_template(settings.state_template, track)),
        large_image=enriched.album_artwork_url or ICON_APPLE_MUSIC,
        large_text=ensure_valid(format_template(settings.large_image_text, track)),
        small_image=small_image,
        small_text=small_text,
        start=start,
        end=end,
        buttons=build_buttons(track, enriched, settings),
    )
