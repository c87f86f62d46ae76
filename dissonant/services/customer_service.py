"""Resolve the customer's email and name for an order."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from dissonant.core.document_store import DocumentStore
from dissonant.core.exceptions import CustomerResolutionError
from dissonant.integrations.firebase.auth import AuthUser
from dissonant.models.order import USERS_COLLECTION

logger = logging.getLogger(__name__)


class AuthLookup(Protocol):
    async def get_user(self, uid: str) -> AuthUser | None: ...


@dataclass(frozen=True)
class Customer:
    email: str
    name: str | None


def _clean(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class CustomerResolver:
    """Finds an order's customer contact details.

    Sources in precedence order: fields stored on the order, the
    ``users/{userId}`` profile, then the auth provider record.
    """

    def __init__(self, store: DocumentStore, auth_lookup: AuthLookup | None = None) -> None:
        self.store = store
        self.auth_lookup = auth_lookup

    async def resolve(
        self, order: Mapping[str, Any], *, fallback_name: str | None = None
    ) -> Customer:
        """Return the customer for ``order``.

        Raises:
            CustomerResolutionError: no source has an email address.
        """
        email = _clean(order.get("customerEmail"))
        name = _clean(order.get("customerName"))
        user_id = _clean(order.get("userId"))

        if user_id and (email is None or name is None):
            profile = await self.store.get(USERS_COLLECTION, user_id)
            if profile is not None:
                email = email or _clean(profile.get("email"))
                name = (
                    name
                    or _clean(profile.get("displayName"))
                    or _clean(profile.get("name"))
                    or _clean(profile.get("username"))
                )

        if user_id and email is None and self.auth_lookup is not None:
            record = await self.auth_lookup.get_user(user_id)
            if record is not None:
                email = _clean(record.email)
                name = name or _clean(record.display_name)

        if email is None:
            raise CustomerResolutionError(f"No customer email for user {user_id or '<none>'}")

        return Customer(email=email, name=name or fallback_name)
