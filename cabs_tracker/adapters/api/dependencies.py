from __future__ import annotations

import os

from fastapi import Request

from cabs_tracker.adapters.cabs.http_cabs_api_client import HttpCabsApiClient
from cabs_tracker.adapters.persistence import JsonFilePreferencesStore
from cabs_tracker.app.services.tracking_session import TrackingSession


def build_tracking_session() -> TrackingSession:
    session = TrackingSession(
        api=HttpCabsApiClient(),
        preferences_store=JsonFilePreferencesStore(),
        # Allow tuning via env without changing code.
        poll_interval_s=float(os.getenv("CABS_POLL_INTERVAL_S") or 3.0),
        animation_duration_s=float(os.getenv("CABS_ANIMATION_DURATION_S") or 0.8),
        frame_rate=float(os.getenv("CABS_FRAME_RATE") or 60.0),
    )
    return session


def get_tracking_session(request: Request) -> TrackingSession:
    session = getattr(request.app.state, "tracking_session", None)
    if session is None:
        raise RuntimeError("Tracking session not initialised")
    return session
