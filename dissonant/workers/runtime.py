"""Per-invocation plumbing shared by Celery tasks and operator scripts."""

import asyncio
import contextlib
from collections.abc import AsyncIterator, Coroutine
from typing import Any

from dissonant.core.config import get_settings
from dissonant.core.document_store import FirestoreDocumentStore
from dissonant.core.logging_config import bind_invocation
from dissonant.services.factory import Services, build_services, create_firestore_client


def run_async[T](coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine in a fresh event loop with its own invocation id.

    Each Celery prefork worker creates a new event loop per task. The
    Firestore async client is bound to the loop that created it, so every
    invocation opens its own client (see ``open_services``).
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        with bind_invocation():
            return loop.run_until_complete(coro)
    finally:
        loop.close()


@contextlib.asynccontextmanager
async def open_services() -> AsyncIterator[Services]:
    """Services backed by a Firestore client that lives for one invocation."""
    settings = get_settings()
    client = create_firestore_client(settings)
    try:
        yield build_services(settings, FirestoreDocumentStore(client))
    finally:
        await client.close()
