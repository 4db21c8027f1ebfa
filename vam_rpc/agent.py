# vam_rpc/agent.py
import time
from typing import Callable, Optional

from .debug import debug_log
from .discord_rpc import PresencePublisher
from .enrichment import MetadataEnricher
from .models import EnrichedMetadata, PlaybackState
from .music_macos import MusicReader
from .presence import build_activity
from .settings import DEFAULT_REFRESH_SECONDS, DEFAULT_SETTINGS, SMALL_IMAGE_ARTIST_ART, Settings, load_settings
from .status import IDLE, StatusReporter


class PresenceAgent:
    """
    One tick: reload settings, read Music, enrich, build, publish, report.
    Ticks never overlap; the next one is scheduled after the current one settles.
    """

    def __init__(
        self,
        publisher: PresencePublisher,
        reader: Optional[MusicReader] = None,
        enricher: Optional[MetadataEnricher] = None,
        reporter: Optional[StatusReporter] = None,
        settings_loader: Callable[[], Settings] = load_settings,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.publisher = publisher
        self.reader = reader or MusicReader()
        self.enricher = enricher or MetadataEnricher()
        self.reporter = reporter or StatusReporter()
        self.settings_loader = settings_loader
        self.sleep = sleep
        self._last_status = None
        self._settings = DEFAULT_SETTINGS

    def _report(self, message: str):
        self.reporter.report(message)
        if message != self._last_status:
            print(f"[Agent] {message}", flush=True)
            self._last_status = message

    def _enrich(self, state: PlaybackState, settings: Settings) -> EnrichedMetadata:
        include_artist = settings.small_image_source == SMALL_IMAGE_ARTIST_ART
        return self.enricher.enrich(state.track, include_artist=include_artist)

    def tick(self, settings: Settings) -> str:
        state = self.reader.read_state()

        if not state.has_track:
            self.publisher.publish(None)
            return IDLE

        enriched = self._enrich(state, settings)
        activity = build_activity(state, enriched, settings)
        self.publisher.publish(activity)
        label = "Playing" if state.is_playing else "Paused"
        return f"{label}: {state.track.name}"

    def run_once(self) -> Settings:
        """
        Run a single tick with freshly loaded settings. Errors are reported, never raised.
        If the settings cannot be loaded, the previous tick's settings stay in effect.
        """
        try:
            self._settings = self.settings_loader()
            status = self.tick(self._settings)
        except Exception as e:
            message = str(e) or type(e).__name__
            print(f"[Agent] Error during update: {message}", flush=True)
            debug_log(f"Tick failed: {e!r}")
            status = f"Error: {message}"
        self._report(status)
        return self._settings

    def run_forever(self, max_ticks: Optional[int] = None):
        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            settings = self.run_once()
            ticks += 1
            self.sleep(settings.refresh_interval or DEFAULT_REFRESH_SECONDS)

    def shutdown(self):
        try:
            self.publisher.publish(None)
        except Exception as e:
            debug_log(f"Clear on shutdown failed: {e}")
        self._report(IDLE)
