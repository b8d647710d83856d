from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from core.providers import providers_from_request
from core.settings import Settings
from media.registry import HandleRegistry
from providers.factory import Providers
from providers.storage import StorageProvider


# -----------------------------
# Canonical provider access
# -----------------------------

def get_providers(request: Request) -> Providers:
    """
    Canonical runtime provider resolver.

    Source of truth: request.app.state.providers
    """
    return providers_from_request(request)


# -----------------------------
# Canonical service deps
# -----------------------------

def get_storage(request: Request) -> StorageProvider:
    return get_providers(request).storage


StorageDep = Annotated[StorageProvider, Depends(get_storage)]


def get_registry(request: Request) -> HandleRegistry:
    return get_providers(request).registry


RegistryDep = Annotated[HandleRegistry, Depends(get_registry)]


def get_app_settings(request: Request) -> Settings:
    return get_providers(request).settings


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
