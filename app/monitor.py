import logging
import threading
import time
from typing import Callable

from gate import ScrobbleGate, Scrobble
from lastfm_client import (
    LastFMClient, LastFMAuthError, LastFMNetworkError,
    LastFMRateLimitError, LastFMRejectedError
)
from player import PlayerProbe

log = logging.getLogger("itunes-lastfm")

MAX_BACKOFF = 15 * 60  # seconds

class Monitor:
    """Polls the player and feeds every snapshot through the gate.

    Idle until the player is seen playing, then Observing until it isn't.
    Each tick runs to completion; the only place the loop waits is between
    ticks, which is also where a stop request is noticed.
    """

    def __init__(self, probe: PlayerProbe, gate: ScrobbleGate, client: LastFMClient, notifier,
                 interval: float = 10, clock: Callable[[], float] = time.time):
        self.probe = probe
        self.gate = gate
        self.client = client
        self.notifier = notifier
        self.interval = interval
        self.clock = clock
        self.was_playing = False
        self.last_logged_key: str | None = None
        # Rate-limit hold-off
        self.backoff: float = 0
        self.hold_until: float | None = None
        self.auth_alerted: bool = False

    def tick(self):
        now = self.clock()
        if not self.probe.is_playing():
            if self.was_playing:
                log.info("Playback stopped or paused")
                self.was_playing = False
                # Next play of any track, even the same one, is a new instance
                self.last_logged_key = None
            return

        self.was_playing = True
        snapshot = self.probe.current_snapshot()
        if snapshot is None:
            return

        if snapshot.key != self.last_logged_key:
            log.info("Now playing: %s (%s/%ss)", snapshot.key, snapshot.position, snapshot.duration)
            self.last_logged_key = snapshot.key
            self.gate.on_track_changed(snapshot.key)
            self.auth_alerted = False

        decision = self.gate.evaluate(snapshot, now)
        if isinstance(decision, Scrobble):
            self.submit(decision, now)

    def submit(self, decision: Scrobble, now: float):
        if self.hold_until is not None and now < self.hold_until:
            log.info("Rate limited; holding scrobble for another %ss", int(self.hold_until - now))
            return

        try:
            self.client.submit(decision.artist, decision.title, int(now))
        except LastFMRateLimitError as e:
            self.backoff = min(MAX_BACKOFF, self.backoff * 2 if self.backoff else self.interval)
            self.hold_until = now + self.backoff
            log.warning("Scrobble rate limited: %s; backing off %ss", e, self.backoff)
            return
        except LastFMAuthError as e:
            log.error("Scrobble failed (auth): %s", e)
            # Once per track instance, not once per poll
            if not self.auth_alerted:
                self.auth_alerted = True
                self.notifier.send("ERROR", "Last.fm authentication failed", str(e),
                                   {"artist": decision.artist, "title": decision.title})
            return
        except LastFMRejectedError as e:
            log.error("Scrobble failed: %s", e)
            return
        except LastFMNetworkError as e:
            log.warning("Scrobble failed (network): %s; will retry next poll", e)
            return

        self.backoff = 0
        self.hold_until = None
        self.gate.mark_scrobbled(decision.artist, decision.title, now)
        self.notifier.send("INFO", "Scrobbled to Last.fm", f"{decision.title} - {decision.artist}")

    def safe_tick(self):
        try:
            self.tick()
        except Exception:
            # A single bad tick must never end the loop
            log.exception("Monitor tick error")

    def run(self, stop: threading.Event):
        log.info("Monitoring player every %ss", self.interval)
        while not stop.is_set():
            self.safe_tick()
            stop.wait(self.interval)
        log.info("Monitor stopped")
