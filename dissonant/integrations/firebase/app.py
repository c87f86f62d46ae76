"""Firebase Admin SDK initialisation."""

import logging

import firebase_admin

logger = logging.getLogger(__name__)


def get_firebase_app(project_id: str | None = None) -> firebase_admin.App:
    """Return the default Firebase app, initialising it on first use.

    Uses application default credentials, as on Cloud Run / Cloud Functions.
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        options = {"projectId": project_id} if project_id else None
        logger.info("Initialising Firebase Admin (project=%s)", project_id or "default")
        return firebase_admin.initialize_app(options=options)
