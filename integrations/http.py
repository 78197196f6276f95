"""Shared HTTP session construction for the REST collaborators."""

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

RETRYABLE_STATUS = {408, 425, 429, 500, 502, 503, 504}


def build_session(token, headers=None, retries=3):
    """Session with bearer auth and transport-level retries on idempotent calls."""
    s = requests.Session()
    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=1,  # 1s, 2s, 4s
        status_forcelist=RETRYABLE_STATUS,
        allowed_methods=frozenset({"GET", "PUT"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    s.headers.update({"Authorization": f"Bearer {token}", "User-Agent": "brief2repo/1.0"})
    if headers:
        s.headers.update(headers)
    return s
