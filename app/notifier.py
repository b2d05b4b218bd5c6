"""
Best-effort notifiers.

- DesktopNotifier shows an OS notification (osascript on macOS, notify-send elsewhere).
- WebhookNotifier POSTs a JSON body to NOTIFY_WEBHOOK_URL.
- Each respects a minimum level (e.g., WARNING and above).
- Failures are logged but never raised: notifications must not affect scrobbling.
"""

from __future__ import annotations
import logging
import platform
import shutil
import subprocess

import requests

log = logging.getLogger("notifier")

_LEVELS = {
    "DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40, "CRITICAL": 50
}

def _escape_applescript(s: str) -> str:
    return s.replace("\\", "\\\\").replace('"', '\\"')

class DesktopNotifier:
    def __init__(self, enabled: bool = True, min_level: str = "INFO", timeout: float = 5):
        self.enabled = enabled
        self.min_level = _LEVELS.get(min_level.upper(), 20)
        self.timeout = timeout

    def command(self, title: str, message: str) -> list[str] | None:
        if platform.system() == "Darwin":
            script = (f'display notification "{_escape_applescript(message)}"'
                      f' with title "{_escape_applescript(title)}"')
            return ["/usr/bin/osascript", "-e", script]
        notify_send = shutil.which("notify-send")
        if notify_send:
            return [notify_send, title, message]
        return None

    def send(self, level: str, title: str, message: str, extra: dict | None = None):
        if not self.enabled:
            return
        if _LEVELS.get(level.upper(), 30) < self.min_level:
            return

        cmd = self.command(title, message)
        if cmd is None:
            log.debug("No desktop notification command available")
            return
        log.info("Notify: %s", message)
        try:
            p = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            log.error("Notification error: %s", e)
            return
        if p.returncode != 0:
            log.warning("Notification command failed (exit %s). Check notification permissions for your terminal app.",
                        p.returncode)

class WebhookNotifier:
    def __init__(self, webhook_url: str | None, min_level: str = "WARNING", app_tag: str = "iTunes→Last.fm",
                 timeout: float = 5):
        self.webhook_url = webhook_url.strip() if webhook_url else None
        self.min_level = _LEVELS.get(min_level.upper(), 30)
        self.app_tag = app_tag
        self.timeout = timeout

    def send(self, level: str, title: str, message: str, extra: dict | None = None):
        if not self.webhook_url:
            return
        lvl = _LEVELS.get(level.upper(), 30)
        if lvl < self.min_level:
            return

        payload = {
            "level": level.upper(),
            "title": f"{self.app_tag}: {title}",
            "message": message,
            "extra": extra or {},
        }
        try:
            # Most webhooks accept JSON; Slack/Discord-compatible webhooks also work.
            requests.post(self.webhook_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            log.debug("Notification send failed: %s", e)

class Notifiers:
    """Fans a notification out to every configured notifier."""

    def __init__(self, *notifiers):
        self.notifiers = notifiers

    def send(self, level: str, title: str, message: str, extra: dict | None = None):
        for n in self.notifiers:
            try:
                n.send(level, title, message, extra)
            except Exception:
                log.exception("Notifier %s failed", type(n).__name__)

def from_settings(settings) -> Notifiers:
    return Notifiers(
        DesktopNotifier(enabled=settings.notify_desktop),
        WebhookNotifier(settings.notify_webhook_url, settings.notify_min_level, settings.app_tag),
    )
