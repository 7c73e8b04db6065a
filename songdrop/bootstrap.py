from typing import Optional

from songdrop.application.credentials import CredentialManager
from songdrop.application.normalizer import QueryNormalizer
from songdrop.application.orchestrator import AddOrchestrator
from songdrop.crosscutting.config import Settings, get_settings
from songdrop.infrastructure.persistence.accounts import SqliteAccountStore
from songdrop.infrastructure.providers.gemini import GeminiModel
from songdrop.infrastructure.providers.spotify import SpotifyCatalog, SpotifyTokenEndpoint


def build_orchestrator(settings: Optional[Settings] = None) -> AddOrchestrator:
    """Wire the add pipeline from settings.

    Raises:
        ConfigError: Spotify client credentials are missing
    """
    settings = settings or get_settings()
    client = settings.require_spotify_client()

    store = SqliteAccountStore(settings.db_path)
    store.initialize()

    token_endpoint = SpotifyTokenEndpoint(
        client_id=client['client_id'],
        client_secret=client['client_secret'],
        token_url=settings.spotify_token_url,
        timeout=settings.request_timeout,
    )

    model = (GeminiModel(settings.gemini_api_key, request_timeout=settings.request_timeout)
             if settings.ai_available else None)

    def catalog_factory(access_token: str) -> SpotifyCatalog:
        return SpotifyCatalog(access_token, requests_timeout=settings.request_timeout)

    return AddOrchestrator(
        store=store,
        credentials=CredentialManager(store, token_endpoint),
        normalizer=QueryNormalizer(model),
        catalog_factory=catalog_factory,
    )
