"""
CORS configuration shared by the REST API and the WS Gateway.

Origins come from ALLOWED_ORIGINS (comma-separated); when it is empty the
local dev servers of the customer app and the staff board are allowed.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config.settings import settings
from shared.infrastructure.correlation import REQUEST_ID_HEADER


DEFAULT_CORS_ORIGINS = [
    f"http://{host}:{port}"
    for host in ("localhost", "127.0.0.1")
    for port in (3000, 3001, 5173)  # customer app, staff board, Vite
]

REST_METHODS = ["GET", "POST", "DELETE", "OPTIONS"]

REST_HEADERS = [
    "Content-Type",
    "Accept",
    REQUEST_ID_HEADER,
    "X-Table-Id",
    "X-Device-Id",
]


def get_cors_origins() -> list[str]:
    if settings.allowed_origins:
        return [origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()]
    return DEFAULT_CORS_ORIGINS


def configure_cors(
    app: FastAPI,
    methods: list[str] = REST_METHODS,
    headers: list[str] = REST_HEADERS,
) -> None:
    """Add CORSMiddleware; preflights are not cached in development."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=True,
        allow_methods=methods,
        allow_headers=headers,
        expose_headers=[REQUEST_ID_HEADER],
        max_age=0 if settings.environment == "development" else 600,
    )
