import logging
import os
import re
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.middleware import add_cors_middleware
from api.routes import router
from lab_panels import MalformedCatalog, get_catalog
from server import find_free_port, start_server

_logger = logging.getLogger(__name__)

_SENTRY_DSN = os.getenv("SENTRY_DSN", "")

# Patient identifiers that may end up in error reports
_PHI_PATTERNS = [
    re.compile(r"\b\d{14}\b"),                                 # national ID
    re.compile(r"\b\d{10,11}\b"),                              # phone
    re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b"),  # email
    re.compile(r"(?i)(?:patient|name)\s*[:=]\s*[^\n,;]{2,40}"),  # labeled patient name
]


def _scrub_phi(text: str) -> str:
    for pattern in _PHI_PATTERNS:
        text = pattern.sub("[REDACTED]", text)
    return text


def _scrub_event(event, hint):
    """Sentry before_send hook: strip patient identifiers from messages."""
    values = event.get("exception", {}).get("values", [])
    crumbs = event.get("breadcrumbs", {}).get("values", [])
    for item, field in [(v, "value") for v in values] + [(c, "message") for c in crumbs]:
        if item.get(field):
            item[field] = _scrub_phi(item[field])
    return event


def _init_sentry() -> None:
    if not _SENTRY_DSN:
        return
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration

    sentry_sdk.init(
        dsn=_SENTRY_DSN,
        environment=os.getenv("SENTRY_ENVIRONMENT", "development"),
        integrations=[FastApiIntegration()],
        before_send=_scrub_event,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the lab catalog before serving; a broken catalog stops startup."""
    try:
        get_catalog()
    except MalformedCatalog:
        _logger.exception("Lab catalog could not be loaded")
        raise
    yield


async def _internal_error(request: Request, exc: Exception) -> JSONResponse:
    _logger.exception("Request %s %s failed", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error."})


def create_app() -> FastAPI:
    _init_sentry()
    app = FastAPI(title="Lab Panels Sidecar", version="0.3", lifespan=lifespan)
    add_cors_middleware(app)
    app.add_exception_handler(Exception, _internal_error)
    app.include_router(router)
    return app


if __name__ == "__main__":
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
    port = find_free_port()
    app = create_app()
    start_server(app, port)
