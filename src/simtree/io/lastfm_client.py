# src/simtree/io/lastfm_client.py
from __future__ import annotations
from typing import Tuple, Dict, Any, Optional, List
import requests
from loguru import logger
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)
from ratelimit import limits, sleep_and_retry

from simtree.errors import (
    InvalidApiKey,
    LastfmError,
    NetworkError,
    NoApiKey,
    NotFound,
    ParseError,
    RateLimited,
)

DEFAULT_BASE = "https://ws.audioscrobbler.com/2.0/"

# https://www.last.fm/api/errorcodes
ERR_NOT_FOUND = 6
ERR_INVALID_KEY = 10
ERR_SUSPENDED_KEY = 26
ERR_RATE_LIMIT = 29

Similar = List[Tuple[str, float]]


def parse_score(value: Any) -> float:
    """
    Parse a similarity score that the service sends either as a JSON string
    ("0.87") or as a JSON number (0.87).
    """
    if isinstance(value, bool):
        raise ParseError(f"invalid score: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            raise ParseError(f"invalid score: {value!r}") from None
    raise ParseError(f"invalid score type: {type(value).__name__}")


def _parse_count(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ParseError(f"invalid count: {value!r}") from None


def _as_list(value: Any) -> List[Any]:
    # single-element arrays are sometimes collapsed into a bare object
    if value is None or value == "":
        return []
    if isinstance(value, dict):
        return [value]
    if isinstance(value, list):
        return value
    raise ParseError(f"expected a list, got {type(value).__name__}")


class LastfmClient:
    def __init__(self, base_url: str = DEFAULT_BASE, user_agent: str = "simtree/0.1",
                 timeout: float = 20, session: requests.Session | None = None):
        self.base_url = base_url
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    @sleep_and_retry
    @limits(calls=5, period=1)
    @retry(reraise=True, stop=stop_after_attempt(3),
           wait=wait_exponential(multiplier=2, min=2, max=30),
           retry=retry_if_exception_type(RateLimited))
    def _get(self, method: str, api_key: str | None, params: Dict[str, Any]) -> Dict[str, Any]:
        if not api_key:
            raise NoApiKey()

        q = dict(params)
        q.update({"method": method, "api_key": api_key, "format": "json"})
        try:
            r = self.session.get(self.base_url, params=q, timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(f"{method} failed: {e}") from e

        if r.status_code == 429:
            raise RateLimited("429 Too Many Requests")

        try:
            payload = r.json()
        except ValueError:
            if r.status_code >= 400:
                raise NetworkError(f"{r.status_code} from {method}") from None
            raise ParseError(f"{method} returned non-JSON body") from None

        # error payloads arrive with both 200 and 4xx statuses
        if isinstance(payload, dict) and "error" in payload:
            code = payload.get("error")
            message = payload.get("message", "")
            if code == ERR_NOT_FOUND:
                raise NotFound(message or "Not found")
            if code in (ERR_INVALID_KEY, ERR_SUSPENDED_KEY):
                raise InvalidApiKey(message or "Invalid API key")
            if code == ERR_RATE_LIMIT:
                raise RateLimited(message or "Rate limit exceeded")
            raise NetworkError(f"error {code} from {method}: {message}")

        if r.status_code in (401, 403):
            raise InvalidApiKey(f"{r.status_code} Unauthorized/Forbidden for {method}")
        if r.status_code >= 400:
            raise NetworkError(f"{r.status_code} from {method}")
        if not isinstance(payload, dict):
            raise ParseError(f"{method} returned {type(payload).__name__}, expected object")
        return payload

    def fetch_similar(self, name: str, api_key: str | None,
                      limit: int | None = None) -> Tuple[str, Similar]:
        """
        Fetch artists similar to ``name``.

        Args:
            name: Any spelling of the artist
            api_key: Last.fm API key
            limit: Maximum number of similar artists (service default: 100)

        Returns:
            (canonical name, [(child name, score 0.0-1.0), ...]) in the
            service's order, most similar first
        """
        params: Dict[str, Any] = {"artist": name, "autocorrect": 1}
        if limit is not None:
            params["limit"] = limit

        logger.info(f"Fetching similar artists for {name!r}")
        payload = self._get("artist.getsimilar", api_key, params)

        body = payload.get("similarartists")
        if not isinstance(body, dict):
            raise ParseError("no similarartists")
        attr = body.get("@attr")
        canonical = attr.get("artist") if isinstance(attr, dict) else None
        if not isinstance(canonical, str) or not canonical:
            raise ParseError("no artist field")

        similar: Similar = []
        for entry in _as_list(body.get("artist")):
            if not isinstance(entry, dict):
                raise ParseError(f"unexpected similar artist entry: {entry!r}")
            child = entry.get("name")
            if not isinstance(child, str) or "match" not in entry:
                raise ParseError(f"similar artist entry missing name/match: {entry!r}")
            similar.append((child, parse_score(entry["match"])))

        logger.debug(f"{canonical!r}: {len(similar)} similar artists")
        return canonical, similar

    def fetch_info(self, name: str, api_key: str | None) -> Tuple[str, Optional[int], List[str]]:
        """
        Fetch listener count and tags for ``name``.

        Returns:
            (canonical name, listeners or None, [tag, ...])
        """
        logger.info(f"Fetching info for {name!r}")
        payload = self._get("artist.getinfo", api_key, {"artist": name, "autocorrect": 1})

        body = payload.get("artist")
        if not isinstance(body, dict) or not isinstance(body.get("name"), str):
            raise ParseError("no artist")

        stats = body.get("stats") or {}
        listeners = _parse_count(stats.get("listeners")) if isinstance(stats, dict) else None

        tags_body = body.get("tags") or {}
        tags = []
        if isinstance(tags_body, dict):
            for tag in _as_list(tags_body.get("tag")):
                if isinstance(tag, dict) and isinstance(tag.get("name"), str):
                    tags.append(tag["name"])
                else:
                    logger.warning(f"Skipping malformed tag for {body['name']!r}: {tag!r}")

        return body["name"], listeners, tags

    def validate_key(self, api_key: str | None) -> None:
        """Make one cheap live call; raises LastfmError if the key is unusable."""
        try:
            self.fetch_similar("Cher", api_key, limit=1)
        except LastfmError as e:
            logger.error(f"API key validation failed: {e}")
            raise


def make_client_from_settings(settings) -> LastfmClient:
    """Create a Last.fm client from a ``Settings`` instance."""
    return LastfmClient(
        base_url=settings.base_url,
        user_agent=settings.user_agent,
        timeout=settings.timeout,
    )
