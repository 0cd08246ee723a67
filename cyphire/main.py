"""Cyphire: engagement workrooms for a freelance marketplace."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import re
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from cyphire.api.router import api_router
from cyphire.background import background_loop
from cyphire.config import settings
from cyphire.content import render_response
from cyphire.database import close_db, get_session_factory, init_db
from cyphire.rate_limit import limiter

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cyphire")

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    db_url = settings.database_url
    if not db_url.startswith("sqlite"):
        db_url = f"sqlite+aiosqlite:///{db_url}"
    await init_db(db_url)
    safe_url = re.sub(r"://[^:]+:[^@]+@", "://***:***@", db_url)
    logger.info("Database connected: %s", safe_url)

    bg_task = asyncio.create_task(background_loop(get_session_factory()))

    yield

    bg_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await bg_task
    await close_db()
    logger.info("Database closed")


app = FastAPI(
    title="Cyphire",
    description="Engagement workrooms: chat, attachments and two-party finalisation",
    version=VERSION,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(api_router)

# Serves files written by LocalBlobStore.
if settings.blob_base_url.startswith("/"):
    app.mount(
        settings.blob_base_url,
        StaticFiles(directory=settings.blob_dir, check_dir=False),
        name="blobs",
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return render_response(
        request,
        {"error": exc.detail},
        status_code=exc.status_code,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return render_response(request, {"error": "Invalid request"}, status_code=400)


@app.get("/health")
async def health():
    return {"status": "ok", "version": VERSION}


def main():
    import uvicorn

    uvicorn.run(
        "cyphire.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
    )


if __name__ == "__main__":
    main()
