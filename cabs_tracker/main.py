from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cabs_tracker.adapters.api.controllers.tracking import router as tracking_router
from cabs_tracker.adapters.api.dependencies import build_tracking_session


def _env_flag(name: str, default: str = "") -> bool:
    return (os.getenv(name) or default).strip().lower() in {"1", "true", "yes", "on"}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    session = build_tracking_session()
    app.state.tracking_session = session
    if _env_flag("CABS_AUTOSTART", "1"):
        await session.start_tracking()
    try:
        yield
    finally:
        await session.aclose()
        await session.api.aclose()


app = FastAPI(title="CABS Live Tracker", lifespan=lifespan)
app.include_router(tracking_router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Ensure API errors are JSON so map clients can display them."""

    logging.getLogger("uvicorn.error").exception(
        "Unhandled exception", extra={"path": str(request.url.path)}
    )

    if _env_flag("CABS_REVEAL_ERRORS") or isinstance(exc, (RuntimeError, ValueError)):
        detail = str(exc) or exc.__class__.__name__
    else:
        detail = "Internal Server Error"

    return JSONResponse(status_code=500, content={"detail": detail})


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
