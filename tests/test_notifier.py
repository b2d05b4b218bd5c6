import subprocess
from types import SimpleNamespace
from unittest import mock

import requests

import notifier
from notifier import DesktopNotifier, Notifiers, WebhookNotifier, from_settings


class TestDesktopNotifier:
    def test_macos_command(self):
        with mock.patch.object(notifier.platform, "system", return_value="Darwin"):
            cmd = DesktopNotifier().command("Scrobbled to Last.fm", 'Song "Live" - Artist')
        assert cmd[:2] == ["/usr/bin/osascript", "-e"]
        assert cmd[2] == 'display notification "Song \\"Live\\" - Artist" with title "Scrobbled to Last.fm"'

    def test_linux_command(self):
        with mock.patch.object(notifier.platform, "system", return_value="Linux"), \
                mock.patch.object(notifier.shutil, "which", return_value="/usr/bin/notify-send"):
            cmd = DesktopNotifier().command("Title", "Body")
        assert cmd == ["/usr/bin/notify-send", "Title", "Body"]

    def test_no_command_available(self):
        with mock.patch.object(notifier.platform, "system", return_value="Linux"), \
                mock.patch.object(notifier.shutil, "which", return_value=None), \
                mock.patch.object(notifier.subprocess, "run") as run:
            DesktopNotifier().send("INFO", "Title", "Body")
        run.assert_not_called()

    def test_send_runs_command(self):
        n = DesktopNotifier()
        with mock.patch.object(n, "command", return_value=["notify-send", "T", "B"]), \
                mock.patch.object(notifier.subprocess, "run",
                                  return_value=subprocess.CompletedProcess([], 0)) as run:
            n.send("INFO", "T", "B")
        run.assert_called_once()
        assert run.call_args[0][0] == ["notify-send", "T", "B"]

    def test_failures_are_swallowed(self):
        n = DesktopNotifier()
        with mock.patch.object(n, "command", return_value=["notify-send", "T", "B"]):
            with mock.patch.object(notifier.subprocess, "run", side_effect=OSError("no display")):
                n.send("INFO", "T", "B")
            with mock.patch.object(notifier.subprocess, "run",
                                   return_value=subprocess.CompletedProcess([], 1)):
                n.send("INFO", "T", "B")

    def test_disabled_and_below_level(self):
        with mock.patch.object(notifier.subprocess, "run") as run:
            DesktopNotifier(enabled=False).send("ERROR", "T", "B")
            DesktopNotifier(min_level="WARNING").send("INFO", "T", "B")
        run.assert_not_called()


class TestWebhookNotifier:
    def test_posts_payload(self):
        with mock.patch.object(notifier.requests, "post") as post:
            WebhookNotifier("https://hooks.example/x ", app_tag="tag").send(
                "error", "Auth", "bad key", {"artist": "A"})
        post.assert_called_once_with(
            "https://hooks.example/x",
            json={"level": "ERROR", "title": "tag: Auth", "message": "bad key", "extra": {"artist": "A"}},
            timeout=5,
        )

    def test_not_configured_or_below_level(self):
        with mock.patch.object(notifier.requests, "post") as post:
            WebhookNotifier(None).send("ERROR", "T", "B")
            WebhookNotifier("https://hooks.example/x").send("INFO", "T", "B")
        post.assert_not_called()

    def test_failure_swallowed(self):
        with mock.patch.object(notifier.requests, "post", side_effect=requests.ConnectionError("down")):
            WebhookNotifier("https://hooks.example/x").send("ERROR", "T", "B")


def test_fan_out_continues_after_failure():
    broken = mock.Mock()
    broken.send.side_effect = RuntimeError("boom")
    ok = mock.Mock()
    Notifiers(broken, ok).send("INFO", "T", "B")
    ok.send.assert_called_once_with("INFO", "T", "B", None)


def test_from_settings():
    settings = SimpleNamespace(notify_desktop=False, notify_webhook_url="https://hooks.example/x",
                               notify_min_level="ERROR", app_tag="tag")
    desktop, webhook = from_settings(settings).notifiers
    assert desktop.enabled is False
    assert webhook.webhook_url == "https://hooks.example/x"
    assert webhook.min_level == 40
