import json

import firebase_admin
from firebase_admin import credentials

from app.core.config import get_settings
from app.core.logging import get_logger

log = get_logger(__name__)

APP_NAME = "push"


def initialize_firebase() -> firebase_admin.App | None:
    """Return the push Firebase app, initializing it on first use. None when no credentials are configured."""
    try:
        return firebase_admin.get_app(APP_NAME)
    except ValueError:
        pass

    settings = get_settings()
    options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
    try:
        if settings.firebase_service_account_json:
            cred = credentials.Certificate(json.loads(settings.firebase_service_account_json))
        elif settings.firebase_service_account_path:
            cred = credentials.Certificate(settings.firebase_service_account_path)
        elif settings.firebase_project_id:
            # Google Application Default Credentials
            cred = credentials.ApplicationDefault()
        else:
            log.warning("firebase_not_configured")
            return None
        app = firebase_admin.initialize_app(cred, options, name=APP_NAME)
    except (ValueError, OSError) as e:
        log.error("firebase_init_failed", error=str(e))
        return None
    log.info("firebase_initialized", project_id=app.project_id)
    return app
