"""
Read-only player probes.

Every probe fails closed: read errors are logged and reported as
"not playing" / no snapshot, never raised into the monitor loop.
"""

from __future__ import annotations
import logging
import subprocess
import xml.etree.ElementTree as ET

import requests

from gate import PlaybackSnapshot

log = logging.getLogger("player")

class PlayerProbe:
    def is_playing(self) -> bool:
        raise NotImplementedError

    def current_snapshot(self) -> PlaybackSnapshot | None:
        raise NotImplementedError

def _to_int(s):
    if s is None: return None
    try:
        # AppleScript may format reals with a decimal comma
        return int(float(str(s).strip().replace(",", ".")))
    except (ValueError, OverflowError):
        return None

class AppleScriptProbe(PlayerProbe):
    """iTunes / Music.app through osascript (macOS only)."""

    OSASCRIPT = "/usr/bin/osascript"
    # ASCII unit separator; never part of tag text
    SEPARATOR = "\x1f"

    def __init__(self, app_name: str = "iTunes", timeout: float = 5):
        self.app_name = app_name
        self.timeout = timeout

    def _track_script(self) -> str:
        return (
            f'tell application "{self.app_name}"\n'
            "  set sep to ASCII character 31\n"
            "  set trackName to name of current track\n"
            "  set trackArtist to artist of current track\n"
            "  set trackAlbum to album of current track\n"
            "  set trackDuration to duration of current track\n"
            "  set trackPosition to player position\n"
            "  return trackName & sep & trackArtist & sep & trackAlbum"
            " & sep & trackDuration & sep & trackPosition\n"
            "end tell"
        )

    def _osascript(self, script: str) -> str:
        p = subprocess.run(
            [self.OSASCRIPT, "-e", script],
            capture_output=True,
            text=True,
            timeout=self.timeout,
        )
        if p.returncode != 0:
            raise RuntimeError(f"osascript exited {p.returncode}: {(p.stderr or '').strip()}")
        # Only the trailing newline: the separator counts as whitespace for str.strip
        return (p.stdout or "").rstrip("\r\n")

    def player_state(self) -> str:
        try:
            return self._osascript(f'tell application "{self.app_name}" to player state as string').strip().lower()
        except (OSError, RuntimeError, subprocess.TimeoutExpired) as e:
            log.error("Error getting player state: %s", e)
            return "stopped"

    def is_playing(self) -> bool:
        return self.player_state() == "playing"

    def current_snapshot(self) -> PlaybackSnapshot | None:
        if not self.is_playing():
            return None
        try:
            result = self._osascript(self._track_script())
        except (OSError, RuntimeError, subprocess.TimeoutExpired) as e:
            log.error("Error getting current track: %s", e)
            return None
        if not result:
            return None

        parts = result.split(self.SEPARATOR)
        if len(parts) != 5:
            log.error("Unexpected osascript output: %r", result)
            return None
        position = _to_int(parts[-1])
        duration = _to_int(parts[-2])
        if position is None or duration is None:
            log.error("Unexpected osascript output: %r", result)
            return None
        return PlaybackSnapshot(
            title=parts[0],
            artist=parts[1],
            album=parts[2],
            duration=duration,
            position=position,
        )

class BluOSProbe(PlayerProbe):
    """
    BluOS player via its /Status XML endpoint.
    Uses recursive lookup + tag fallbacks: name/title1, artist, album, secs, totlen, state.
    """

    PLAYING_STATES = ("play", "stream")

    def __init__(self, host: str, port: int = 11000, timeout: float = 5):
        self.base = f"http://{host}:{port}"
        self.timeout = timeout

    def _findtext_any(self, root: ET.Element, *tags: str):
        for t in tags:
            el = root.find(f".//{t}")
            if el is not None and el.text:
                return el.text.strip()
        return None

    def _status(self) -> ET.Element | None:
        try:
            resp = requests.get(f"{self.base}/Status", timeout=self.timeout)
            resp.raise_for_status()
            return ET.fromstring(resp.text)
        except (requests.RequestException, ET.ParseError) as e:
            log.warning("BluOS status fetch failed: %s", e)
            return None

    def _playing(self, root: ET.Element) -> bool:
        state = self._findtext_any(root, "state", "status", "mode")
        return bool(state) and state.lower() in self.PLAYING_STATES

    def is_playing(self) -> bool:
        root = self._status()
        return root is not None and self._playing(root)

    def current_snapshot(self) -> PlaybackSnapshot | None:
        root = self._status()
        if root is None or not self._playing(root):
            return None

        title = self._findtext_any(root, "name", "title1", "title", "song")
        artist = self._findtext_any(root, "artist", "title2")
        album = self._findtext_any(root, "album", "title3")
        secs = self._findtext_any(root, "secs", "elapsed", "position", "time")
        duration = self._findtext_any(root, "totlen", "duration", "total", "trackLength", "length")

        if not artist or not title:
            log.debug("BluOS status without artist/title; skipping.")
            return None
        # Radio streams report no length; there is no threshold to reach
        if not _to_int(duration):
            log.debug("BluOS status without duration; skipping.")
            return None

        return PlaybackSnapshot(
            artist=artist,
            title=title,
            album=album or "",
            duration=_to_int(duration),
            position=_to_int(secs) or 0,
        )

def probe_from_settings(settings) -> PlayerProbe:
    if settings.player == "bluos":
        return BluOSProbe(settings.bluos_host, settings.bluos_port)
    return AppleScriptProbe(settings.itunes_app)
