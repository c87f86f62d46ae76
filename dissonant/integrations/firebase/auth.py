"""Firebase Auth user lookups."""

import asyncio
import logging
from dataclasses import dataclass

import firebase_admin
from firebase_admin import auth

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthUser:
    uid: str
    email: str | None
    display_name: str | None


class FirebaseAuthClient:
    """Async wrapper over the blocking ``firebase_admin.auth`` calls."""

    def __init__(self, app: firebase_admin.App | None = None) -> None:
        self.app = app

    async def get_user(self, uid: str) -> AuthUser | None:
        """Return the auth record for ``uid``, or None when it does not exist."""
        try:
            record = await asyncio.to_thread(auth.get_user, uid, app=self.app)
        except auth.UserNotFoundError:
            logger.info("Auth user %s not found", uid)
            return None
        return AuthUser(uid=record.uid, email=record.email, display_name=record.display_name)
