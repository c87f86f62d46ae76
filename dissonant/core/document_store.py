"""Document store abstraction and its Firestore implementation.

Services depend on the ``DocumentStore`` protocol only. It offers per-document
atomic updates, all-or-nothing multi-document batches, and a conditional
update that reads and writes one document inside a single transaction. It
does not offer cross-request locks.

Field paths passed to ``update``/``batch_update``/``update_if`` may be dotted
(``"shippingLabels.status"``) and address nested map fields.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

logger = logging.getLogger(__name__)

# Firestore caps "in" filters at 30 values.
_IN_QUERY_CHUNK = 30

Condition = Callable[[dict[str, Any] | None], bool]


@dataclass(frozen=True)
class StoredDocument:
    """A document id together with its data."""

    id: str
    data: dict[str, Any] = field(default_factory=dict)


class DocumentStore(Protocol):
    """Async document store used by the order services."""

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Return a document's data, or None when it does not exist."""
        ...

    async def query(self, collection: str, field_path: str, value: Any) -> list[StoredDocument]:
        """Return every document whose ``field_path`` equals ``value``."""
        ...

    async def query_in(
        self, collection: str, field_path: str, values: Sequence[Any]
    ) -> list[StoredDocument]:
        """Return every document whose ``field_path`` is one of ``values``."""
        ...

    async def add(self, collection: str, data: Mapping[str, Any]) -> str:
        """Create a document with a generated id and return the id."""
        ...

    async def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        """Atomically update fields on an existing document."""
        ...

    async def batch_update(
        self, collection: str, updates: Mapping[str, Mapping[str, Any]]
    ) -> None:
        """Apply updates to several documents as one all-or-nothing write."""
        ...

    async def update_if(
        self,
        collection: str,
        doc_id: str,
        condition: Condition,
        fields: Mapping[str, Any],
    ) -> bool:
        """Read a document and write ``fields`` only if ``condition`` holds.

        The read and the write happen in one transaction. Returns True when
        the write was applied.
        """
        ...


class FirestoreDocumentStore:
    """``DocumentStore`` backed by ``google.cloud.firestore.AsyncClient``."""

    def __init__(self, client: firestore.AsyncClient) -> None:
        self.client = client

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        snapshot = await self.client.collection(collection).document(doc_id).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    async def query(self, collection: str, field_path: str, value: Any) -> list[StoredDocument]:
        query = self.client.collection(collection).where(
            filter=FieldFilter(field_path, "==", value)
        )
        return [
            StoredDocument(id=snapshot.id, data=snapshot.to_dict() or {})
            async for snapshot in query.stream()
        ]

    async def query_in(
        self, collection: str, field_path: str, values: Sequence[Any]
    ) -> list[StoredDocument]:
        results: list[StoredDocument] = []
        values = list(values)
        for start in range(0, len(values), _IN_QUERY_CHUNK):
            chunk = values[start : start + _IN_QUERY_CHUNK]
            query = self.client.collection(collection).where(
                filter=FieldFilter(field_path, "in", chunk)
            )
            results.extend(
                [
                    StoredDocument(id=snapshot.id, data=snapshot.to_dict() or {})
                    async for snapshot in query.stream()
                ]
            )
        return results

    async def add(self, collection: str, data: Mapping[str, Any]) -> str:
        _, ref = await self.client.collection(collection).add(dict(data))
        doc_id: str = ref.id
        return doc_id

    async def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        await self.client.collection(collection).document(doc_id).update(dict(fields))

    async def batch_update(
        self, collection: str, updates: Mapping[str, Mapping[str, Any]]
    ) -> None:
        if not updates:
            return
        batch = self.client.batch()
        for doc_id, fields in updates.items():
            batch.update(self.client.collection(collection).document(doc_id), dict(fields))
        await batch.commit()

    async def update_if(
        self,
        collection: str,
        doc_id: str,
        condition: Condition,
        fields: Mapping[str, Any],
    ) -> bool:
        ref = self.client.collection(collection).document(doc_id)

        @firestore.async_transactional
        async def _apply(transaction: firestore.AsyncTransaction) -> bool:
            snapshot = await ref.get(transaction=transaction)
            current = (snapshot.to_dict() or {}) if snapshot.exists else None
            if not condition(current):
                return False
            transaction.update(ref, dict(fields))
            return True

        applied: bool = await _apply(self.client.transaction())
        return applied
