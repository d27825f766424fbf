import logging
from typing import Optional

from models.preview import Preview
from services.extractor import extract
from services.fetcher import FetchFailure, fetch

logger = logging.getLogger("preview-service")


def generate_preview(url: str) -> Optional[Preview]:
    """Fetch `url` and extract its preview. None when the fetch failed."""
    try:
        result = fetch(url)
    except FetchFailure as exc:
        logger.warning(f"Preview fetch failed: {exc.reason}", extra={"url": url})
        return None
    return extract(result.resolved_url, result.body)
