from unittest import mock

import pylast
import pytest

import get_session_key


@pytest.fixture
def skg():
    generator = mock.Mock()
    generator.get_web_auth_url.return_value = "https://www.last.fm/api/auth/?api_key=key&token=tok"
    generator.get_web_auth_session_key_username.return_value = ("session-key", "listener")
    with mock.patch.object(get_session_key.pylast, "LastFMNetwork"), \
            mock.patch.object(get_session_key.pylast, "SessionKeyGenerator", return_value=generator), \
            mock.patch.object(get_session_key.webbrowser, "open"):
        yield generator


def test_obtain_session_key(skg):
    prompt = mock.Mock()
    assert get_session_key.obtain_session_key("key", "secret", prompt=prompt) == ("session-key", "listener")
    prompt.assert_called_once()
    skg.get_web_auth_session_key_username.assert_called_once_with(
        "https://www.last.fm/api/auth/?api_key=key&token=tok")


def test_main_prints_key(skg, monkeypatch, capsys):
    monkeypatch.setenv("LASTFM_API_KEY", "key")
    monkeypatch.setenv("LASTFM_API_SECRET", "secret")
    monkeypatch.setattr("builtins.input", lambda _: "")
    assert get_session_key.main() == 0
    assert "Your Session Key (sk): session-key" in capsys.readouterr().out


def test_main_not_authorized(skg, monkeypatch):
    monkeypatch.setenv("LASTFM_API_KEY", "key")
    monkeypatch.setenv("LASTFM_API_SECRET", "secret")
    monkeypatch.setattr("builtins.input", lambda _: "")
    skg.get_web_auth_session_key_username.side_effect = pylast.WSError(None, "14", "Unauthorized Token")
    assert get_session_key.main() == 1


def test_main_requires_credentials(monkeypatch):
    monkeypatch.delenv("LASTFM_API_KEY", raising=False)
    monkeypatch.delenv("LASTFM_API_SECRET", raising=False)
    with pytest.raises(SystemExit):
        get_session_key.main()
