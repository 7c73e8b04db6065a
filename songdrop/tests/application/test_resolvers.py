import pytest
from unittest.mock import Mock

from songdrop.application.resolvers import PlaylistResolver, TrackResolver
from songdrop.domain.entities import PlaylistPage, ResolvedPlaylist, ResolvedTrack, SongInfo
from songdrop.domain.errors import PlaylistNotFound, TrackNotFound


def paged_catalog(pages):
    """Catalog mock serving the given lists of playlist names as consecutive pages."""
    catalog = Mock()
    responses = []
    for index, names in enumerate(pages):
        items = [ResolvedPlaylist(id=f"p{index}_{i}", display_name=n) for i, n in enumerate(names)]
        responses.append(PlaylistPage(items=items, has_next=index < len(pages) - 1))
    catalog.list_playlists.side_effect = responses
    return catalog


class TestTrackResolver:
    """Tests for first-hit track resolution."""

    def setup_method(self):
        self.catalog = Mock()
        self.resolver = TrackResolver(self.catalog)

    def test_first_result_is_returned_unfiltered(self):
        track = ResolvedTrack(id="t1", uri="spotify:track:t1", display_name="Something Else",
                              artist_names=["Other"])
        self.catalog.search_tracks.return_value = [track]

        assert self.resolver.resolve(SongInfo("Lunar Drift", ["Echo Prime"])) is track

    def test_search_text_includes_artists(self):
        self.catalog.search_tracks.return_value = [
            ResolvedTrack(id="t1", uri="spotify:track:t1", display_name="Lunar Drift")
        ]

        self.resolver.resolve(SongInfo("Lunar Drift", ["Echo Prime", "Nova Ghost"]))

        self.catalog.search_tracks.assert_called_once_with("Lunar Drift Echo Prime Nova Ghost", limit=1)

    def test_no_results_raises_not_found(self):
        self.catalog.search_tracks.return_value = []

        with pytest.raises(TrackNotFound) as exc_info:
            self.resolver.resolve(SongInfo.raw("Quiet Static"))

        assert exc_info.value.query == "Quiet Static"


class TestPlaylistResolver:
    """Tests for paged, case-insensitive playlist lookup."""

    def test_match_on_later_page_stops_listing(self):
        catalog = paged_catalog([["Road Trip", "Chill"], ["WORKOUT"], ["Never Reached"]])
        resolver = PlaylistResolver(catalog, page_size=2)

        playlist = resolver.resolve("workout")

        assert playlist.display_name == "WORKOUT"
        offsets = [c.kwargs['offset'] for c in catalog.list_playlists.call_args_list]
        assert offsets == [0, 2]
        assert all(c.kwargs['limit'] == 2 for c in catalog.list_playlists.call_args_list)

    def test_first_match_in_listing_order_wins(self):
        catalog = paged_catalog([["chill", "CHILL"]])

        playlist = PlaylistResolver(catalog).resolve("Chill")

        assert playlist.id == "p0_0"

    def test_match_requires_whole_name(self):
        catalog = paged_catalog([["Chill Vibes"]])

        with pytest.raises(PlaylistNotFound):
            PlaylistResolver(catalog).resolve("Chill")

    def test_not_found_after_last_page(self):
        catalog = paged_catalog([["Road Trip"], ["Chill"]])

        with pytest.raises(PlaylistNotFound) as exc_info:
            PlaylistResolver(catalog, page_size=1).resolve("Workout")

        assert exc_info.value.name == "Workout"
        assert catalog.list_playlists.call_count == 2

    def test_empty_library(self):
        catalog = paged_catalog([[]])

        with pytest.raises(PlaylistNotFound):
            PlaylistResolver(catalog).resolve("Anything")

    def test_default_page_size_is_fifty(self):
        catalog = paged_catalog([["Road Trip"]])

        PlaylistResolver(catalog).resolve("road trip")

        catalog.list_playlists.assert_called_once_with(limit=50, offset=0)

    def test_invalid_page_size(self):
        with pytest.raises(ValueError):
            PlaylistResolver(Mock(), page_size=0)
