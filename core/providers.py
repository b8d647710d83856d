from __future__ import annotations

from fastapi import FastAPI, Request

from providers.factory import Providers, get_providers


def providers_from_request(request: Request) -> Providers:
    """
    Canonical provider accessor for ALL routers.

    Providers are attached once during app startup as request.app.state.providers.
    """
    try:
        return request.app.state.providers
    except Exception as exc:
        raise RuntimeError("Providers not initialized on app.state (startup/lifespan not executed).") from exc


def init_providers(app: FastAPI) -> Providers:
    """
    Canonical provider initialization.
    Called once during app startup/lifespan. Keeps providers a test already attached.
    """
    existing = getattr(app.state, "providers", None)
    if existing is not None:
        return existing
    app.state.providers = get_providers()
    return app.state.providers
