# talkback/clients/chat_client.py

import logging
import os

import requests

logger = logging.getLogger(__name__)

# =========================
# CONFIGURATION
# =========================

SERVER_URL = os.getenv("TALKBACK_URL", "http://127.0.0.1:8000")
REQUEST_TIMEOUT = 10  # seconds
SEEN_THRESHOLD = 0.5  # fraction of the message that must be on screen

# =========================
# SEEN TRACKING
# =========================

class SeenTracker:
    """
    Decides when the viewer has seen a message.

    Feed it visibility ratios as the viewport changes. A message is reported
    once, the first time at least half of it is visible, and only if someone
    else sent it and it isn't seen already. After that it is no longer
    observed.
    """

    def __init__(self, viewer_id: str, threshold: float = SEEN_THRESHOLD):
        self.viewer_id = viewer_id
        self.threshold = threshold
        self._observed: set = set()

    def observe(self, message: dict) -> bool:
        """Start watching *message*; False if it can never need a seen receipt."""
        if message.get("senderId") == self.viewer_id or message.get("seenAt"):
            return False
        self._observed.add(message["id"])
        return True

    def is_observing(self, message_id) -> bool:
        return message_id in self._observed

    def visibility_changed(self, message_id, ratio: float) -> bool:
        """True exactly once per observed message: when it crosses the threshold."""
        if message_id not in self._observed or ratio < self.threshold:
            return False
        self._observed.discard(message_id)
        return True

# =========================
# HTTP CLIENT
# =========================

class ChatClient:
    def __init__(self, user_id: str, server_url: str = SERVER_URL, session: requests.Session | None = None):
        self.user_id = user_id
        self.server_url = server_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers["X-User-Id"] = user_id

    def _url(self, path: str) -> str:
        return f"{self.server_url}{path}"

    def _check(self, resp: requests.Response) -> requests.Response:
        if not resp.ok:
            logger.warning(f"{resp.request.method} {resp.url} -> {resp.status_code}: {resp.text}")
        resp.raise_for_status()
        return resp

    def realtime_url(self) -> str:
        """Where to open the websocket for this user."""
        base = self.server_url.replace("https://", "wss://").replace("http://", "ws://")
        return f"{base}/ws?userId={self.user_id}"

    def register(self, full_name: str, profile_pic: str = "") -> dict:
        resp = self.session.post(
            self._url("/users/register"),
            json={"userId": self.user_id, "fullName": full_name, "profilePic": profile_pic},
            timeout=REQUEST_TIMEOUT,
        )
        return self._check(resp).json()

    def list_users(self) -> list:
        resp = self.session.get(self._url("/messages/users"), timeout=REQUEST_TIMEOUT)
        return self._check(resp).json()

    def send_message(self, receiver_id: str, text: str | None = None, image: str | None = None,
                     location: dict | None = None, audio: str | None = None) -> dict:
        payload = {
            key: value
            for key, value in {"text": text, "image": image, "location": location, "audio": audio}.items()
            if value is not None
        }
        resp = self.session.post(
            self._url(f"/messages/send/{receiver_id}"), json=payload, timeout=REQUEST_TIMEOUT
        )
        return self._check(resp).json()

    def fetch_conversation(self, other_id: str) -> list:
        resp = self.session.get(self._url(f"/messages/{other_id}"), timeout=REQUEST_TIMEOUT)
        return self._check(resp).json()

    def update_receipt(self, message_id: int, status: str) -> dict:
        resp = self.session.patch(
            self._url("/messages/receipt"),
            json={"messageId": message_id, "status": status},
            timeout=REQUEST_TIMEOUT,
        )
        return self._check(resp).json()
