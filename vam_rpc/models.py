# vam_rpc/models.py
from dataclasses import dataclass, field
from typing import List, Optional

STOPPED = "stopped"
PAUSED = "paused"
PLAYING = "playing"


@dataclass(frozen=True)
class Track:
    name: str
    artist: str
    album: str
    duration: float  # seconds
    position: float  # seconds


@dataclass(frozen=True)
class PlaybackState:
    status: str
    track: Optional[Track] = None

    @classmethod
    def stopped(cls) -> "PlaybackState":
        return cls(STOPPED)

    @classmethod
    def paused(cls, track: Optional[Track] = None) -> "PlaybackState":
        return cls(PAUSED, track)

    @classmethod
    def playing(cls, track: Track) -> "PlaybackState":
        return cls(PLAYING, track)

    @property
    def is_playing(self) -> bool:
        return self.status == PLAYING

    @property
    def is_paused(self) -> bool:
        return self.status == PAUSED

    @property
    def has_track(self) -> bool:
        return self.status != STOPPED and self.track is not None


@dataclass(frozen=True)
class EnrichedMetadata:
    album_artwork_url: Optional[str] = None
    artist_artwork_url: Optional[str] = None
    canonical_track_url: Optional[str] = None


@dataclass(frozen=True)
class Button:
    label: str
    url: str


@dataclass
class PresenceActivity:
    details: str
    state: str
    large_image: str
    large_text: str
    small_image: Optional[str] = None
    small_text: Optional[str] = None
    start: Optional[int] = None  # epoch millis
    end: Optional[int] = None
    buttons: List[Button] = field(default_factory=list)

    def to_payload(self) -> dict:
        """
        Keyword arguments for pypresence's Presence.update().
        """
        payload = {
            "details": self.details,
            "state": self.state,
            "large_image": self.large_image,
            "large_text": self.large_text,
        }
        if self.small_image:
            payload["small_image"] = self.small_image
            payload["small_text"] = self.small_text
        if self.start is not None and self.end is not None:
            payload["start"] = self.start
            payload["end"] = self.end
        if self.buttons:
            payload["buttons"] = [{"label": b.label, "url": b.url} for b in self.buttons]
        return payload
