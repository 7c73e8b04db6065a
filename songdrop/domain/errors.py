class SongDropError(Exception):
    """Base class for pipeline failures. Carries the HTTP status class of the outcome."""

    status_code = 500


class ParamMissing(SongDropError):
    """A required request parameter (song query or playlist name) is absent."""

    status_code = 400

    def __init__(self, param: str, message: str = None) -> None:
        super().__init__(message or f"Error: {param} is missing.")
        self.param = param


class AuthInvalid(SongDropError):
    """The opaque API key is missing or does not map to an account."""

    def __init__(self, message: str, status_code: int = 403) -> None:
        super().__init__(message)
        self.status_code = status_code


class ReauthRequired(SongDropError):
    """Stored credentials can no longer be refreshed without new user consent."""

    status_code = 401


class NotFound(SongDropError):
    """Requested resource was not found."""

    status_code = 404


class TrackNotFound(NotFound):
    """Catalog search returned no track for the query."""

    def __init__(self, query: str) -> None:
        super().__init__(f'Error: Song for query "{query}" not found on Spotify.')
        self.query = query


class PlaylistNotFound(NotFound):
    """No playlist of the current user matches the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f'Error: Playlist "{name}" not found or not owned by you.')
        self.name = name


class UpstreamError(SongDropError):
    """Any other failure from an external service. Message carries the underlying error text."""


class TokenRefreshRejected(Exception):
    """The token endpoint answered the refresh request with a non-2xx status."""

    def __init__(self, status: int, description: str = "") -> None:
        super().__init__(f"Token refresh rejected ({status}): {description}")
        self.status = status
        self.description = description


class PersistenceError(Exception):
    """The account store could not complete a read or write."""
