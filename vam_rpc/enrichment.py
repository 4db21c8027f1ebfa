# vam_rpc/enrichment.py
import os
import re
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import requests

from .models import EnrichedMetadata, Track

REQUEST_TIMEOUT = 4
MB_USER_AGENT = "VAM-RPC/1.0 (https://github.com/)"
ITUNES_SEARCH_URL = "https://itunes.apple.com/search"
MB_SEARCH_URL = "https://musicbrainz.org/ws/2/release"
CAA_RELEASE_URL = "https://coverartarchive.org/release/{mbid}"
DEEZER_ARTIST_URL = "https://api.deezer.com/search/artist"


def _art_debug_enabled() -> bool:
    return os.getenv("VAM_RPC_ART_DEBUG", "").strip() in {"1", "true", "yes", "on"}


def _debug(msg: str):
    if _art_debug_enabled():
        print(f"[artwork] {msg}", flush=True)


def sanitize(value: str) -> str:
    """
    Drop parenthetical suffixes such as "(Remastered 2011)" so catalog search matches.
    """
    value = re.sub(r"\(.*?\)", " ", value or "")
    return " ".join(value.split())


def upscale_artwork_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return url
    # iTunes: .../100x100bb.jpg
    url = re.sub(r"/\d+x\d+bb\.", "/1000x1000bb.", url)
    # Deezer: .../250x250-000000-80-0-0.jpg
    url = re.sub(r"/\d+x\d+-", "/1000x1000-", url)
    # Cover Art Archive thumbnails: .../front-250.jpg
    url = re.sub(r"-(250|500|1200)(\.\w+)$", r"\2", url)
    return url


@dataclass(frozen=True)
class AlbumMatch:
    artwork_url: Optional[str] = None
    view_url: Optional[str] = None


class Provider:
    name = "provider"

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()

    def _get_json(self, url: str, **kwargs):
        """
        GET and decode JSON. Non-2xx responses and undecodable bodies are None.
        """
        try:
            r = self.session.get(url, timeout=REQUEST_TIMEOUT, **kwargs)
            if not r.ok:
                _debug(f"{self.name}: HTTP {r.status_code} for {url}")
                return None
            return r.json()
        except (requests.RequestException, ValueError) as e:
            _debug(f"{self.name}: {e}")
            return None


class AlbumProvider(Provider):
    def lookup_album(self, artist: str, album: str) -> Optional[AlbumMatch]:
        raise NotImplementedError


class ArtistProvider(Provider):
    def lookup_artist(self, artist: str) -> Optional[str]:
        raise NotImplementedError


class ITunesAlbumProvider(AlbumProvider):
    name = "itunes"

    def lookup_album(self, artist: str, album: str) -> Optional[AlbumMatch]:
        term = f"{artist} {album}".strip()
        if not term:
            return None
        params = {"term": term, "entity": "album", "limit": 1}
        data = self._get_json(ITUNES_SEARCH_URL, params=params)
        if not isinstance(data, dict):
            return None
        results = data.get("results") or []
        if not results:
            return None

        item = results[0]
        artwork = item.get("artworkUrl100") or item.get("artworkUrl60")
        view_url = item.get("collectionViewUrl")
        _debug(f"itunes album match: '{item.get('collectionName')}' by '{item.get('artistName')}'")
        return AlbumMatch(upscale_artwork_url(artwork), view_url)


class MusicBrainzAlbumProvider(AlbumProvider):
    """
    MusicBrainz release search + Cover Art Archive front image.
    Artwork only; the release page is not a listen link.
    """

    name = "musicbrainz"

    def __init__(self, session: Optional[requests.Session] = None, polite_delay: float = 0.25):
        super().__init__(session)
        self.polite_delay = polite_delay

    def _headers(self) -> dict:
        return {"User-Agent": MB_USER_AGENT}

    def lookup_album(self, artist: str, album: str) -> Optional[AlbumMatch]:
        if not album:
            return None
        parts = [f'release:"{album}"']
        if artist:
            parts.append(f'artist:"{artist}"')
        params = {"query": " AND ".join(parts), "fmt": "json", "limit": 1}

        data = self._get_json(MB_SEARCH_URL, params=params, headers=self._headers())
        if not isinstance(data, dict):
            return None
        releases = data.get("releases") or []
        if not releases:
            return None
        rel_id = releases[0].get("id")
        if not rel_id:
            return None

        # Be polite to MusicBrainz when followed by CAA requests.
        if self.polite_delay:
            time.sleep(self.polite_delay)

        art = self._get_json(CAA_RELEASE_URL.format(mbid=rel_id), headers=self._headers())
        if not isinstance(art, dict):
            return None
        images = art.get("images") or []
        if not images:
            return None

        front = next((img for img in images if img.get("front")), images[0])
        thumbs = front.get("thumbnails") or {}
        artwork = front.get("image") or thumbs.get("large") or thumbs.get("500")
        _debug(f"musicbrainz match: release {rel_id}")
        return AlbumMatch(upscale_artwork_url(artwork), None)


class DeezerArtistProvider(ArtistProvider):
    name = "deezer"

    def lookup_artist(self, artist: str) -> Optional[str]:
        if not artist:
            return None
        data = self._get_json(DEEZER_ARTIST_URL, params={"q": artist, "limit": 1})
        if not isinstance(data, dict):
            return None
        results = data.get("data") or []
        if not results:
            return None
        item = results[0]
        _debug(f"deezer artist match: '{item.get('name')}'")
        return item.get("picture_xl") or upscale_artwork_url(item.get("picture_medium"))


def default_album_providers(session: Optional[requests.Session] = None) -> Tuple[AlbumProvider, ...]:
    return (ITunesAlbumProvider(session), MusicBrainzAlbumProvider(session))


def default_artist_providers(session: Optional[requests.Session] = None) -> Tuple[ArtistProvider, ...]:
    return (DeezerArtistProvider(session),)


class MetadataEnricher:
    """
    Best-effort artwork and listen-link lookup for the current track.

    The first album provider is the primary one: it is the only source of the
    canonical listen URL. Later album providers are consulted, in order, only
    while no artwork has been found. Artist lookups run independently.
    """

    def __init__(
        self,
        album_providers: Optional[Sequence[AlbumProvider]] = None,
        artist_providers: Optional[Sequence[ArtistProvider]] = None,
        cache_size: int = 128,
    ):
        session = requests.Session()
        self.album_providers = (
            tuple(album_providers) if album_providers is not None else default_album_providers(session)
        )
        self.artist_providers = (
            tuple(artist_providers) if artist_providers is not None else default_artist_providers(session)
        )
        self.cache_size = cache_size
        self._album_cache: "OrderedDict[Tuple[str, str], AlbumMatch]" = OrderedDict()
        self._artist_cache: "OrderedDict[str, str]" = OrderedDict()

    def _remember(self, cache: OrderedDict, key, value):
        cache[key] = value
        cache.move_to_end(key)
        while len(cache) > self.cache_size:
            cache.popitem(last=False)

    def _call(self, provider: Provider, method: str, *args):
        try:
            return getattr(provider, method)(*args)
        except Exception as e:
            print(f"[Artwork] {provider.name} lookup failed: {e}", flush=True)
            return None

    def _lookup_album(self, artist: str, album: str) -> AlbumMatch:
        key = (artist.lower(), album.lower())
        if key in self._album_cache:
            self._album_cache.move_to_end(key)
            return self._album_cache[key]

        artwork, view_url = None, None
        for index, provider in enumerate(self.album_providers):
            match = self._call(provider, "lookup_album", artist, album)
            if match is None:
                continue
            if index == 0:
                view_url = match.view_url
            if match.artwork_url:
                artwork = match.artwork_url
                break

        result = AlbumMatch(artwork, view_url)
        if artwork:
            self._remember(self._album_cache, key, result)
        return result

    def _lookup_artist(self, artist: str) -> Optional[str]:
        key = artist.lower()
        if key in self._artist_cache:
            self._artist_cache.move_to_end(key)
            return self._artist_cache[key]

        for provider in self.artist_providers:
            url = self._call(provider, "lookup_artist", artist)
            if url:
                self._remember(self._artist_cache, key, url)
                return url
        return None

    def enrich(self, track: Track, include_artist: bool = True) -> EnrichedMetadata:
        artist = sanitize(track.artist)
        album = sanitize(track.album)

        match = self._lookup_album(artist, album)
        artist_art = self._lookup_artist(artist) if include_artist and artist else None

        return EnrichedMetadata(
            album_artwork_url=match.artwork_url,
            artist_artwork_url=artist_art,
            canonical_track_url=match.view_url,
        )
