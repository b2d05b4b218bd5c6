import os
from dataclasses import dataclass

PLAYERS = ("itunes", "bluos")

def _bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")

# -------------------------
# Configuration via ENV VARS
# -------------------------
@dataclass(frozen=True)
class Settings:
    api_key: str
    api_secret: str
    session_key: str
    progress_ratio: float = 0.5
    poll_interval: int = 10
    player: str = "itunes"
    itunes_app: str = "iTunes"
    bluos_host: str = "127.0.0.1"
    bluos_port: int = 11000
    lastfm_timeout: float = 10
    log_level: str = "INFO"
    log_file: str | None = None
    notify_desktop: bool = True
    notify_webhook_url: str | None = None
    notify_min_level: str = "WARNING"
    app_tag: str = "iTunes→Last.fm"

    @classmethod
    def from_env(cls, env=None) -> "Settings":
        """Read settings from the environment; SystemExit on anything unusable."""
        env = os.environ if env is None else env

        api_key = env.get("LASTFM_API_KEY")
        api_secret = env.get("LASTFM_API_SECRET")
        session_key = env.get("LASTFM_SESSION_KEY")
        # Validate Last.fm configuration up-front for clear errors
        if not api_key or not api_secret:
            raise SystemExit("LASTFM_API_KEY and LASTFM_API_SECRET are required")
        if not session_key:
            raise SystemExit("LASTFM_SESSION_KEY is required; run itunes-lastfm-auth to obtain one")

        try:
            progress_ratio = float(env.get("SCROBBLE_PROGRESS_RATIO", "0.5"))
            poll_interval = max(1, int(env.get("POLL_INTERVAL", "10")))
            bluos_port = int(env.get("BLUOS_PORT", "11000"))
            lastfm_timeout = float(env.get("LASTFM_TIMEOUT", "10"))
        except ValueError as e:
            raise SystemExit(f"Invalid numeric setting: {e}")
        if not 0 < progress_ratio <= 1:
            raise SystemExit("SCROBBLE_PROGRESS_RATIO must be in (0, 1]")

        player = env.get("PLAYER", "itunes").lower()
        if player not in PLAYERS:
            raise SystemExit(f"PLAYER must be one of: {', '.join(PLAYERS)}")

        return cls(
            api_key=api_key,
            api_secret=api_secret,
            session_key=session_key,
            progress_ratio=progress_ratio,
            poll_interval=poll_interval,
            player=player,
            itunes_app=env.get("ITUNES_APP", "iTunes"),
            bluos_host=env.get("BLUOS_HOST", "127.0.0.1"),
            bluos_port=bluos_port,
            lastfm_timeout=lastfm_timeout,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            log_file=env.get("LOG_FILE") or None,
            notify_desktop=_bool(env.get("NOTIFY_DESKTOP", "true")),
            notify_webhook_url=env.get("NOTIFY_WEBHOOK_URL") or None,
            notify_min_level=env.get("NOTIFY_MIN_LEVEL", "WARNING"),
            app_tag=env.get("APP_TAG", "iTunes→Last.fm"),
        )
