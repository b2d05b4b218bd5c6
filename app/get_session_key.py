"""
One-time Last.fm authorization.

Asks Last.fm for a request token, lets the user approve it in a browser and
exchanges it for the session key the scrobbler expects in LASTFM_SESSION_KEY.
"""

import logging
import os
import webbrowser

import pylast

log = logging.getLogger("lastfm-auth")

def obtain_session_key(api_key: str, api_secret: str, prompt=None) -> tuple[str, str]:
    network = pylast.LastFMNetwork(api_key=api_key, api_secret=api_secret)
    skg = pylast.SessionKeyGenerator(network)

    # Requests the token and builds the approval URL
    url = skg.get_web_auth_url()
    print("Open this URL in your browser and click Allow:")
    print(url)
    try:
        webbrowser.open(url)
    except webbrowser.Error as e:
        log.debug("Could not open browser: %s", e)
    (prompt or input)("Press ENTER after you authorize...")

    session_key, username = skg.get_web_auth_session_key_username(url)
    return session_key, username

def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    api_key = os.getenv("LASTFM_API_KEY")
    api_secret = os.getenv("LASTFM_API_SECRET")
    if not api_key or not api_secret:
        raise SystemExit("Set LASTFM_API_KEY and LASTFM_API_SECRET first.")

    try:
        session_key, username = obtain_session_key(api_key, api_secret)
    except (pylast.WSError, pylast.NetworkError, pylast.MalformedResponseError) as e:
        log.error("Failed to get session key: %s", e)
        return 1

    print(f"\nAuthorized as {username}.")
    print(f"Your Session Key (sk): {session_key}")
    print("Set it as LASTFM_SESSION_KEY in the scrobbler's environment.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
