import logging
import signal
import threading
from logging.handlers import RotatingFileHandler

from config import Settings
from gate import ScrobbleGate
from lastfm_client import LastFMClient
from monitor import Monitor
from notifier import from_settings as notifier_from_settings
from player import probe_from_settings

log = logging.getLogger("itunes-lastfm")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# -------------------------
# Logging setup
# -------------------------
def setup_logging(settings: Settings):
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
        force=True,  # ensure our config is used even if libs pre-configure logging
    )
    if settings.log_file:
        handler = RotatingFileHandler(settings.log_file, maxBytes=1_024_000, backupCount=10, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)

def install_signal_handlers(stop: threading.Event):
    def handle(signum, frame):
        log.info("Received %s", signal.Signals(signum).name)
        # Event.set takes a lock the interrupted main thread may be holding in Event.wait
        threading.Thread(target=stop.set, name="shutdown", daemon=True).start()

    signal.signal(signal.SIGINT, handle)
    signal.signal(signal.SIGTERM, handle)

def main() -> int:
    settings = Settings.from_env()
    setup_logging(settings)

    probe = probe_from_settings(settings)
    gate = ScrobbleGate(progress_ratio=settings.progress_ratio)
    client = LastFMClient(
        api_key=settings.api_key,
        api_secret=settings.api_secret,
        session_key=settings.session_key,
        timeout=settings.lastfm_timeout,
    )
    notifier = notifier_from_settings(settings)
    monitor = Monitor(probe, gate, client, notifier, interval=settings.poll_interval)

    log.info("Starting %s → Last.fm scrobbler. Poll interval: %ss", settings.player, settings.poll_interval)
    log.info("Scrobble settings: progress_ratio=%s", settings.progress_ratio)
    notifier.send("INFO", "Scrobbler started", f"Watching {settings.player} every {settings.poll_interval}s.")

    stop = threading.Event()
    install_signal_handlers(stop)
    monitor.run(stop)

    log.info("Shutting down…")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
