import json
import logging
import time
from typing import Any, Callable, Optional

from songdrop.application.prompts import SONG_INFO_SCHEMA, build_extraction_prompt
from songdrop.domain.entities import Fallback, Normalized, NormalizationResult, SongInfo
from songdrop.domain.ports import LanguageModel


logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 10.0


class ConstantBackoff:
    """Same delay before every retry."""

    def __init__(self, delay_seconds: float = RETRY_DELAY_SECONDS):
        self.delay_seconds = delay_seconds

    def delay_for(self, attempt: int) -> float:
        return self.delay_seconds


class ExponentialBackoff:
    """Doubling delay: base, 2*base, 4*base, ... capped at max_seconds."""

    def __init__(self, base_seconds: float = 1.0, max_seconds: float = 60.0):
        self.base_seconds = base_seconds
        self.max_seconds = max_seconds

    def delay_for(self, attempt: int) -> float:
        return min(self.max_seconds, self.base_seconds * (2 ** (attempt - 1)))


def parse_song_info(text: Optional[str]) -> Optional[SongInfo]:
    """Validate raw model output. Returns None unless it is a complete, well-typed result."""
    if not text:
        return None
    try:
        data: Any = json.loads(text)
    except (TypeError, ValueError):
        return None

    if not isinstance(data, dict):
        return None
    title = data.get('title')
    artists = data.get('artist')
    if not isinstance(title, str) or not title.strip():
        return None
    if not isinstance(artists, list) or not all(isinstance(a, str) for a in artists):
        return None

    return SongInfo(title=title.strip(), artists=[a.strip() for a in artists if a.strip()])


class QueryNormalizer:
    """Optional AI pass turning a raw query into a structured SongInfo.

    Failures are recovered here: after the last attempt the raw query is returned as a
    Fallback, so normalization never aborts the request.
    """

    def __init__(self,
                 model: Optional[LanguageModel] = None,
                 max_attempts: int = MAX_ATTEMPTS,
                 backoff=None,
                 sleep: Callable[[float], None] = time.sleep):
        """Initialize query normalizer.

        Args:
            model: Language model adapter, or None when no credential is configured
            max_attempts: Total attempts including the first one
            backoff: Object with delay_for(attempt) giving seconds to wait before the next attempt
            sleep: Sleep function, replaced in tests
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.model = model
        self.max_attempts = max_attempts
        self.backoff = backoff or ConstantBackoff()
        self.sleep = sleep

    @property
    def available(self) -> bool:
        return self.model is not None

    def normalize(self, query: str, requested: bool = True) -> NormalizationResult:
        """Return Normalized(song) on success, Fallback(raw song) otherwise."""
        raw = SongInfo.raw(query)

        if not requested or self.model is None:
            return Fallback(song=raw, reason='disabled', attempts=0)

        parts = build_extraction_prompt(query)
        attempt = 0

        while attempt < self.max_attempts:
            attempt += 1
            song = self._attempt(parts, attempt)
            if song is not None:
                logger.info(f"Normalized query '{query}' -> title='{song.title}' artists={song.artists} "
                            f"(attempt {attempt})")
                return Normalized(song=song, attempts=attempt)

            if attempt < self.max_attempts:
                delay = self.backoff.delay_for(attempt)
                logger.warning(f"Normalization attempt {attempt}/{self.max_attempts} failed, "
                               f"retrying in {delay}s")
                self.sleep(delay)

        logger.warning(f"Normalization exhausted {self.max_attempts} attempts, using raw query '{query}'")
        return Fallback(song=raw, reason='exhausted', attempts=attempt)

    def _attempt(self, parts, attempt: int) -> Optional[SongInfo]:
        try:
            text = self.model.generate_json(parts, SONG_INFO_SCHEMA)
        except Exception as e:
            logger.warning(f"Language model call failed on attempt {attempt}: {e}")
            return None

        song = parse_song_info(text)
        if song is None:
            logger.debug(f"Invalid structured result on attempt {attempt}: {text!r}")
        return song
