"""
Firebase Admin SDK bootstrap shared by the Auth verifier and Firestore store.
"""

from __future__ import annotations

import logging

import firebase_admin
from firebase_admin import credentials

from myblog.config import Settings

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"


def _build_credential(settings: Settings) -> credentials.Base:
    if (
        settings.firebase_project_id
        and settings.firebase_client_email
        and settings.firebase_private_key
    ):
        # Keys pasted into env files usually carry escaped newlines.
        private_key = settings.firebase_private_key.replace("\\n", "\n")
        return credentials.Certificate(
            {
                "type": "service_account",
                "project_id": settings.firebase_project_id,
                "client_email": settings.firebase_client_email,
                "private_key": private_key,
                "token_uri": TOKEN_URI,
            }
        )
    return credentials.ApplicationDefault()


def get_firebase_app(settings: Settings) -> firebase_admin.App:
    """Return the default Firebase app, initializing it on first use."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    options = {"httpTimeout": settings.store_timeout_seconds}
    if settings.firebase_project_id:
        options["projectId"] = settings.firebase_project_id
    app = firebase_admin.initialize_app(_build_credential(settings), options)
    logger.info("Firebase Admin initialized for project %s", app.project_id)
    return app
