# rcip_jobs/http_client.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import FetchError

LOG = logging.getLogger(__name__)

# Several community boards reject non-browser agents outright.
BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36"
)

_RETRYABLE_STATUS = (429, 500, 502, 503, 504)


def _status_only_retry(attempts: int) -> Retry:
    # connect/read stay at 0: a slow board must not hold a run past its timeout
    return Retry(
        total=attempts,
        connect=0,
        read=0,
        status=attempts,
        backoff_factor=0.5,
        status_forcelist=_RETRYABLE_STATUS,
        allowed_methods=frozenset({"GET", "HEAD"}),
        raise_on_status=False,
    )


class HttpClient:
    """
    One requests.Session per run, shared by every extractor.

    A GET either returns decoded text or raises FetchError (unreachable host,
    timeout, non-2xx), which lets callers tell "site down" from "site has no jobs".
    """

    def __init__(self, timeout: float = 15.0, user_agent: str = BROWSER_UA, status_retries: int = 0):
        self.timeout = float(timeout)
        self.session = requests.Session()
        self.session.headers["User-Agent"] = user_agent
        self.session.headers["Accept-Language"] = "en-CA,en;q=0.9"

        adapter = HTTPAdapter(max_retries=_status_only_retry(status_retries), pool_connections=10, pool_maxsize=20)
        for scheme in ("http://", "https://"):
            self.session.mount(scheme, adapter)

    def get_text(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        encoding: str | None = None,
    ) -> str:
        try:
            resp = self.session.get(url, params=params, headers=headers, timeout=timeout or self.timeout)
        except requests.Timeout as e:
            raise FetchError(f"timed out fetching {url}", url=url) from e
        except requests.RequestException as e:
            raise FetchError(f"could not reach {url}: {e}", url=url) from e

        if resp.status_code // 100 != 2:
            raise FetchError(f"HTTP {resp.status_code} from {url}", url=url, status=resp.status_code)

        # Headers without a charset leave requests guessing; sniff the body instead.
        resp.encoding = encoding or resp.encoding or resp.apparent_encoding
        return resp.text

    def close(self) -> None:
        self.session.close()
        LOG.debug("http session closed")

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
