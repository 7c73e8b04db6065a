import logging

from songdrop.domain.entities import ResolvedPlaylist, ResolvedTrack, SongInfo
from songdrop.domain.errors import PlaylistNotFound, TrackNotFound
from songdrop.domain.ports import MusicCatalog


logger = logging.getLogger(__name__)

PLAYLIST_PAGE_SIZE = 50


class TrackResolver:
    """Resolves a SongInfo to the first track the catalog returns. No scoring, no retries."""

    def __init__(self, catalog: MusicCatalog):
        self.catalog = catalog

    def resolve(self, song: SongInfo) -> ResolvedTrack:
        query = song.search_text()
        logger.debug(f"Searching catalog for track: {query}")

        items = self.catalog.search_tracks(query, limit=1)
        if not items:
            logger.info(f"No track found for query '{query}'")
            raise TrackNotFound(query)

        track = items[0]
        logger.info(f"Found track: {track.display_name} by {', '.join(track.artist_names)}")
        return track


class PlaylistResolver:
    """Finds the current user's playlist by case-insensitive exact name."""

    def __init__(self, catalog: MusicCatalog, page_size: int = PLAYLIST_PAGE_SIZE):
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.catalog = catalog
        self.page_size = page_size

    def resolve(self, name: str) -> ResolvedPlaylist:
        """Walk pages in order from offset 0; first match in listing order wins.

        Relies on the service's next-page signal to stop.
        """
        target = name.lower()
        offset = 0
        pages = 0

        while True:
            page = self.catalog.list_playlists(limit=self.page_size, offset=offset)
            pages += 1

            for playlist in page.items:
                if playlist.display_name.lower() == target:
                    logger.info(f"Found playlist: {playlist.display_name} (ID: {playlist.id})")
                    return playlist

            if not page.has_next:
                break
            offset += self.page_size

        logger.info(f"Playlist '{name}' not found after {pages} page(s)")
        raise PlaylistNotFound(name)
