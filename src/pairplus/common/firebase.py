"""Firebase Admin app initialization."""

import firebase_admin
from firebase_admin import credentials

from pairplus.common.config import PairPlusSettings

APP_NAME = "pairplus"


def get_firebase_app(settings: PairPlusSettings) -> firebase_admin.App:
    """Return the named Firebase app, initializing it on first use.

    Uses the service-account file from settings when given, otherwise
    Application Default Credentials.
    """
    try:
        return firebase_admin.get_app(APP_NAME)
    except ValueError:
        pass

    cred = None
    if settings.firebase_credentials_path:
        cred = credentials.Certificate(settings.firebase_credentials_path)
    options = {}
    if settings.firebase_project_id:
        options["projectId"] = settings.firebase_project_id
    return firebase_admin.initialize_app(cred, options=options or None, name=APP_NAME)
