import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional
from urllib.parse import urlparse

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from config import LOG_LEVEL, PREVIEW_API_KEY, PREVIEW_CACHE_TTL, RABBITMQ_URL
from models.preview import PreviewRequest
from services import cache
from services.preview import generate_preview
from services.queue import consume_preview_jobs

logging.basicConfig(level=LOG_LEVEL.upper())
logger = logging.getLogger("preview-service")

DEFAULT_TENANT = "default"


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not RABBITMQ_URL:
        logger.info("RABBITMQ_URL not set, preview job consumer disabled")
        yield
        return

    task = asyncio.create_task(consume_preview_jobs(RABBITMQ_URL))
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


app = FastAPI(title="OpenGraph Preview Service", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


def _is_valid_url(url: str) -> bool:
    try:
        result = urlparse(url)
        return result.scheme in ("http", "https") and bool(result.netloc)
    except ValueError:
        return False


def require_api_key(x_api_key: Optional[str] = Header(default=None, alias="X-API-Key")) -> None:
    """Reject the request unless it carries the configured API key."""
    if PREVIEW_API_KEY and x_api_key != PREVIEW_API_KEY:
        raise HTTPException(
            status_code=401,
            detail="Sorry, you are not allowed to make preview requests.",
            headers={"WWW-Authenticate": "ApiKey"},
        )


@app.get("/preview", dependencies=[Depends(require_api_key)])
def get_preview(
    request: Request,
    url: str = Query(..., description="The URL to build a link preview for"),
    x_tenant_id: str = Header(default=DEFAULT_TENANT, alias="X-Tenant-Id"),
):
    if not _is_valid_url(url):
        raise HTTPException(status_code=400, detail="Invalid URL. Must be a valid HTTP or HTTPS URL.")

    preview_request = PreviewRequest(url=url)
    key = cache.cache_key(dict(request.query_params), x_tenant_id)
    cached = cache.get(key)
    if cached is not None:
        return cached

    preview = generate_preview(preview_request.url)
    if preview is None:
        raise HTTPException(status_code=404, detail="opengraph_invalid_url")

    data = preview.model_dump()
    cache.put(key, data, PREVIEW_CACHE_TTL)
    return data


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/ready")
def ready():
    return {"status": "ready"}
