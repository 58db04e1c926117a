from __future__ import annotations

from typing import Callable, Dict

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

# One session per purpose, built on first use
_SESSIONS: Dict[str, requests.Session] = {}


def build_retry_session(retry: Retry) -> requests.Session:
    """
    Build a requests Session that applies `retry` to both http and https.
    """
    session = requests.Session()

    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    return session


def get_session(name: str, retry_factory: Callable[[], Retry]) -> requests.Session:
    """Shared session for `name`; `retry_factory` is only called the first time."""
    session = _SESSIONS.get(name)
    if session is None:
        session = build_retry_session(retry_factory())
        _SESSIONS[name] = session
    return session
