import logging
import time
from typing import Callable

from songdrop.domain.entities import Account, CredentialSet
from songdrop.domain.errors import PersistenceError, ReauthRequired, TokenRefreshRejected
from songdrop.domain.ports import AccountStore, TokenEndpoint


logger = logging.getLogger(__name__)

# Never use a token known to expire within five minutes
REFRESH_THRESHOLD_SECONDS = 5 * 60


class CredentialManager:
    """Owns access-token validity for an account and performs refresh explicitly."""

    def __init__(self,
                 store: AccountStore,
                 token_endpoint: TokenEndpoint,
                 clock: Callable[[], float] = time.time,
                 threshold_seconds: int = REFRESH_THRESHOLD_SECONDS):
        """Initialize credential manager.

        Args:
            store: Account store used to persist refreshed tokens
            token_endpoint: OAuth token endpoint client
            clock: Returns the current time in epoch seconds
            threshold_seconds: Tokens expiring within this window are refreshed first
        """
        self.store = store
        self.token_endpoint = token_endpoint
        self.clock = clock
        self.threshold_seconds = threshold_seconds

    def is_expiring(self, expires_at: int, now: int) -> bool:
        return expires_at <= now + self.threshold_seconds

    def ensure_valid(self, account: Account) -> CredentialSet:
        """Return credentials valid for immediate use.

        Raises:
            ReauthRequired: No refresh token, or the token endpoint rejected the refresh.
            UpstreamError: The token endpoint could not be reached.
        """
        now = int(self.clock())
        current = CredentialSet.from_account(account)

        if not self.is_expiring(current.expires_at, now):
            logger.debug(f"Access token for account {account.account_id} is still valid")
            return current

        logger.info(f"Access token for account {account.account_id} is expired or nearing expiry, refreshing")

        if not current.refresh_token:
            logger.warning(f"Account {account.account_id} has no refresh token available")
            raise ReauthRequired(
                "Error: Your Spotify session needs re-authentication. Please log in again via the dashboard."
            )

        try:
            grant = self.token_endpoint.refresh(current.refresh_token)
        except TokenRefreshRejected as e:
            logger.error(f"Token refresh rejected for account {account.account_id}: {e}")
            raise ReauthRequired(
                "Error: Your Spotify session has expired. Please log in again via the dashboard."
            ) from e

        # Refresh tokens are not guaranteed to rotate
        refreshed = CredentialSet(
            access_token=grant.access_token,
            refresh_token=grant.refresh_token or current.refresh_token,
            expires_at=now + int(grant.expires_in),
        )

        self._persist(account, refreshed, expected_expires_at=current.expires_at)
        logger.info(f"Access token refreshed for account {account.account_id}")
        return refreshed

    def _persist(self, account: Account, refreshed: CredentialSet, expected_expires_at: int) -> None:
        """Write refreshed tokens back. Failures never fail the request."""
        try:
            swapped = self.store.update_tokens(
                account.account_id,
                access_token=refreshed.access_token,
                refresh_token=refreshed.refresh_token,
                expires_at=refreshed.expires_at,
                expected_expires_at=expected_expires_at,
            )
        except PersistenceError as e:
            logger.error(f"Failed to persist refreshed tokens for account {account.account_id}: {e}")
            return

        if not swapped:
            logger.warning(
                f"Tokens for account {account.account_id} were refreshed concurrently; "
                f"keeping the in-memory token for this request"
            )
