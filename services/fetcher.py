import logging
from typing import Optional

import requests

from config import REQUEST_TIMEOUT, USER_AGENT
from models.preview import FetchResult

logger = logging.getLogger("preview-service.fetcher")


class FetchFailure(Exception):
    """The remote document could not be retrieved."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


def fetch(url: str, timeout: Optional[int] = None, user_agent: Optional[str] = None) -> FetchResult:
    """
    GET `url` once, following redirects. Returns the settled URL and body,
    raises FetchFailure on transport errors or a non-2xx final status.
    """
    try:
        response = requests.get(
            url,
            timeout=timeout or REQUEST_TIMEOUT,
            headers={"User-Agent": user_agent or USER_AGENT},
            allow_redirects=True,
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        raise FetchFailure(url, str(exc)) from exc

    if not 200 <= response.status_code < 300:
        raise FetchFailure(url, f"unexpected status {response.status_code}")

    logger.debug("Fetched %s (resolved to %s)", url, response.url)
    return FetchResult(resolved_url=response.url or url, body=response.text)
