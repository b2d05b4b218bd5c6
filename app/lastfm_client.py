import logging

import pylast
import requests

log = logging.getLogger("lastfm")

API_ROOT = "https://ws.audioscrobbler.com/2.0/"
# Never part of the signature
SIGNING_SKIP = {"format", "callback", "api_sig"}

# Custom error classes so callers can branch
class LastFMError(Exception): ...
class LastFMNetworkError(LastFMError): ...

class LastFMRejectedError(LastFMError):
    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.code = code

class LastFMAuthError(LastFMRejectedError): ...
class LastFMRateLimitError(LastFMRejectedError): ...

# 4=Auth failed, 9=Invalid session, 14=Token not authorized, 26=Suspended API key
AUTH_ERRORS = (4, 9, 14, 26)
RATE_LIMIT_ERRORS = (29,)

def sign(params: dict, secret: str) -> str:
    """Sort by key, concatenate key+value, append the shared secret, MD5."""
    items = sorted((k, str(v)) for k, v in params.items() if k not in SIGNING_SKIP)
    return pylast.md5("".join(k + v for k, v in items) + secret)

def _error_for(code, message: str) -> LastFMRejectedError:
    if code in AUTH_ERRORS:
        return LastFMAuthError(message, code)
    if code in RATE_LIMIT_ERRORS:
        return LastFMRateLimitError(message, code)
    return LastFMRejectedError(f"Last.fm API error {code}: {message}", code)

class LastFMClient:
    """Signed track.scrobble submissions against the Last.fm 2.0 API."""

    def __init__(self, api_key: str, api_secret: str, session_key: str,
                 timeout: float = 10, session: requests.Session | None = None):
        if not (api_key and api_secret and session_key):
            raise ValueError("Missing Last.fm credentials")
        self.api_key = api_key
        self.api_secret = api_secret
        self.session_key = session_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def scrobble_params(self, artist: str, title: str, timestamp: int) -> dict:
        params = {
            "api_key": self.api_key,
            "artist": artist,
            "method": "track.scrobble",
            "sk": self.session_key,
            "timestamp": str(timestamp),
            "track": title,
        }
        params["api_sig"] = sign(params, self.api_secret)
        params["format"] = "json"
        return params

    def submit(self, artist: str, title: str, timestamp: int) -> int:
        """Submit one scrobble (unix seconds). Returns the accepted count.

        Raises LastFMRejectedError (or its auth / rate-limit subclasses) when
        Last.fm declines the scrobble and LastFMNetworkError when no usable
        answer came back.
        """
        log.info("Scrobbling: %s by %s", title, artist)
        try:
            resp = self.session.post(
                API_ROOT, data=self.scrobble_params(artist, title, timestamp), timeout=self.timeout
            )
        except requests.RequestException as e:
            raise LastFMNetworkError(str(e)) from e

        try:
            data = resp.json()
        except ValueError:
            data = None

        # Last.fm reports API errors in the body, often with a 4xx status
        if isinstance(data, dict) and "error" in data:
            raise _error_for(data.get("error"), data.get("message", ""))
        if not resp.ok:
            raise LastFMNetworkError(f"HTTP {resp.status_code}")
        if not isinstance(data, dict):
            raise LastFMNetworkError("Unparsable response from Last.fm")

        attr = (data.get("scrobbles") or {}).get("@attr") or {}
        try:
            accepted = int(attr.get("accepted", 0))
        except (TypeError, ValueError):
            accepted = 0
        if accepted <= 0:
            raise LastFMRejectedError(f"Scrobble ignored: {self._ignored_message(data)}")

        log.info("Scrobble accepted: %s by %s", title, artist)
        return accepted

    @staticmethod
    def _ignored_message(data: dict) -> str:
        scrobble = (data.get("scrobbles") or {}).get("scrobble")
        if isinstance(scrobble, list):
            scrobble = scrobble[0] if scrobble else None
        if isinstance(scrobble, dict):
            ignored = scrobble.get("ignoredMessage") or {}
            return ignored.get("#text") or f"code {ignored.get('code', '?')}"
        return repr(data)
