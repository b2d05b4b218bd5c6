import logging
import time
from dataclasses import dataclass
from typing import Callable

log = logging.getLogger("gate")

# -------------------------
# Stateless snapshot of the player
# -------------------------
@dataclass(frozen=True)
class PlaybackSnapshot:
    artist: str
    title: str
    album: str
    duration: int  # seconds
    position: int  # seconds

    @property
    def key(self) -> str:
        return track_key(self.artist, self.title)

def track_key(artist: str, title: str) -> str:
    # Album and duration are deliberately not part of the identity
    return f"{artist} - {title}"

@dataclass(frozen=True)
class LastScrobble:
    artist: str
    title: str
    at: float  # unix seconds

@dataclass(frozen=True)
class Skip:
    reason: str

@dataclass(frozen=True)
class Scrobble:
    artist: str
    title: str

Decision = Skip | Scrobble

ALREADY_SCROBBLED = "already scrobbled this instance"
BELOW_THRESHOLD = "below threshold"
DUPLICATE = "duplicate within cooldown"

class ScrobbleGate:
    """Decides when the current track instance should be scrobbled.

    One instance of a track starts on every track change and on every
    stopped -> playing transition. Each instance is reported at most once,
    after ``progress_ratio`` of its duration has played. A new instance of
    the song that was scrobbled last is held back until half of its duration
    has passed since that scrobble, so repeat loops are not double counted.

    Failed submissions are not recorded: the caller simply asks again on the
    next poll.
    """

    def __init__(self, progress_ratio: float = 0.5, clock: Callable[[], float] = time.time):
        self.progress_ratio = progress_ratio
        self.clock = clock
        self.current_key: str | None = None
        self.scrobbled_current: bool = False
        self.last_scrobbled: LastScrobble | None = None

    def on_track_changed(self, new_key: str):
        self.current_key = new_key
        self.scrobbled_current = False

    def threshold(self, duration: int) -> float:
        # Rounded so jitter in the reported position doesn't flip the comparison
        return round(duration * self.progress_ratio, 1)

    def evaluate(self, snapshot: PlaybackSnapshot, now: float | None = None) -> Decision:
        now = self.clock() if now is None else now
        log.info("Track status: %s pos=%ss/%ss", snapshot.key, snapshot.position, snapshot.duration)

        if self.scrobbled_current and self.current_key == snapshot.key:
            log.info("Skip: already scrobbled this track in current playback")
            return Skip(ALREADY_SCROBBLED)

        threshold = self.threshold(snapshot.duration)
        if snapshot.position < threshold:
            log.info("Not scrobbling yet: pos=%ss < threshold=%ss", snapshot.position, threshold)
            return Skip(BELOW_THRESHOLD)

        last = self.last_scrobbled
        if last and (last.artist, last.title) == (snapshot.artist, snapshot.title):
            # Cooldown is half the track regardless of progress_ratio
            if now - last.at < snapshot.duration / 2:
                log.info("Skip duplicate scrobble for current track")
                return Skip(DUPLICATE)

        return Scrobble(artist=snapshot.artist, title=snapshot.title)

    def mark_scrobbled(self, artist: str, title: str, now: float | None = None):
        now = self.clock() if now is None else now
        self.scrobbled_current = True
        self.last_scrobbled = LastScrobble(artist=artist, title=title, at=now)
