"""Dependency injection for FastAPI routes."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from dissonant.core.config import Settings, get_settings
from dissonant.core.document_store import DocumentStore, FirestoreDocumentStore
from dissonant.services.factory import Services, build_services


def get_store(request: Request) -> DocumentStore:
    """Document store backed by the app-wide Firestore client."""
    client = getattr(request.app.state, "firestore", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Document store not initialized",
        )
    return FirestoreDocumentStore(client)


def get_services(
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[DocumentStore, Depends(get_store)],
) -> Services:
    """Services wired for the current request."""
    return build_services(settings, store)


SettingsDep = Annotated[Settings, Depends(get_settings)]
StoreDep = Annotated[DocumentStore, Depends(get_store)]
ServicesDep = Annotated[Services, Depends(get_services)]

__all__ = [
    "ServicesDep",
    "SettingsDep",
    "StoreDep",
    "get_services",
    "get_settings",
    "get_store",
]
