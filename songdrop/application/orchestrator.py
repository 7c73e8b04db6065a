import logging
from dataclasses import dataclass
from typing import Callable, Optional

from songdrop.application.credentials import CredentialManager
from songdrop.application.normalizer import QueryNormalizer
from songdrop.application.resolvers import PLAYLIST_PAGE_SIZE, PlaylistResolver, TrackResolver
from songdrop.crosscutting.logging import (
    CorrelationContext, log_error, log_request_complete, log_request_start, new_request_id
)
from songdrop.domain.entities import AddOutcome, Normalized
from songdrop.domain.errors import AuthInvalid, ParamMissing, PersistenceError, SongDropError, UpstreamError
from songdrop.domain.ports import AccountStore, MusicCatalog


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AddRequest:
    """Inbound add request as received from an interface."""

    api_key: Optional[str]
    query: Optional[str]
    playlist: Optional[str]
    use_ai: bool = False


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class AddOrchestrator:
    """Sequences credential check, normalization, track and playlist resolution, then the add.

    Each call is an independent unit of work; the account store is the only shared state.
    """

    def __init__(self,
                 store: AccountStore,
                 credentials: CredentialManager,
                 normalizer: QueryNormalizer,
                 catalog_factory: Callable[[str], MusicCatalog],
                 page_size: int = PLAYLIST_PAGE_SIZE):
        """Initialize orchestrator.

        Args:
            store: Account store used to map API keys to accounts
            credentials: Credential manager guaranteeing a usable access token
            normalizer: Optional AI query normalizer
            catalog_factory: Builds a catalog session from an access token
            page_size: Playlist listing page size
        """
        self.store = store
        self.credentials = credentials
        self.normalizer = normalizer
        self.catalog_factory = catalog_factory
        self.page_size = page_size

    def add(self, request: AddRequest) -> AddOutcome:
        """Add the song matching request.query to request.playlist.

        Raises:
            AuthInvalid, ParamMissing, ReauthRequired, TrackNotFound, PlaylistNotFound, UpstreamError
        """
        with CorrelationContext(request_id=new_request_id()):
            try:
                outcome = self._run(request)
            except SongDropError as e:
                log_request_complete(logger, type(e).__name__, e.status_code)
                raise
            except Exception as e:
                log_error(logger, "Add request failed unexpectedly", e)
                log_request_complete(logger, type(e).__name__, 500)
                raise
            log_request_complete(logger, 'added', 200,
                                 track_uri=outcome.track.uri, playlist_id=outcome.playlist.id)
            return outcome

    def _run(self, request: AddRequest) -> AddOutcome:
        api_key = _clean(request.api_key)
        query = _clean(request.query)
        playlist_name = _clean(request.playlist)

        # Validation happens before any external call, including the account lookup
        if not api_key:
            raise AuthInvalid(
                "Error: API key (token) is missing in query parameter or Authorization header.",
                status_code=401,
            )
        if not query:
            raise ParamMissing('query', "Error: Song query (query) is missing.")
        if not playlist_name:
            raise ParamMissing('playlist', "Error: Playlist name (playlist) is missing.")

        log_request_start(logger, query, playlist_name, request.use_ai)

        with CorrelationContext(stage='auth'):
            try:
                account = self.store.get_by_api_key(api_key)
            except PersistenceError as e:
                log_error(logger, "Account lookup failed", e)
                raise UpstreamError(f"Internal server error: {e}") from e
            if account is None:
                raise AuthInvalid("Error: Invalid API key (token).", status_code=403)

        with CorrelationContext(account_id=account.account_id):
            with CorrelationContext(stage='credentials'):
                creds = self.credentials.ensure_valid(account)

            catalog = self.catalog_factory(creds.access_token)

            with CorrelationContext(stage='normalize'):
                normalization = self.normalizer.normalize(query, requested=request.use_ai)
                if request.use_ai and not isinstance(normalization, Normalized):
                    logger.info(f"Searching with raw query ({normalization.reason})")

            with CorrelationContext(stage='resolve_track'):
                track = TrackResolver(catalog).resolve(normalization.song)

            with CorrelationContext(stage='resolve_playlist'):
                playlist = PlaylistResolver(catalog, page_size=self.page_size).resolve(playlist_name)

            with CorrelationContext(stage='add'):
                catalog.add_item(playlist.id, track.uri)
                logger.info(f"Added '{track.display_name}' to '{playlist.display_name}' "
                            f"for account {account.account_id}")

        return AddOutcome(track=track, playlist=playlist, normalization=normalization)
