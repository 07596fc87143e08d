import json
import logging

import firebase_admin
from firebase_admin import credentials, firestore, messaging

from functions.utils.config import Settings
from functions.utils.logging_utils import configure_logging

logger = logging.getLogger(__name__)

_clients = None


class FirebaseClients:
    """
    Handle on the Firestore client and the FCM sender.

    Handlers receive this object explicitly instead of reaching for module
    globals. The process-wide instance is built once by get_clients() and is
    only read afterwards.
    """

    def __init__(self, db, app=None, messaging_client=None):
        self.db = db
        self.app = app
        self._messaging = messaging_client or messaging

    def send(self, message):
        """Send an FCM message and return the message id assigned by FCM."""
        return self._messaging.send(message, app=self.app)


def get_firebase_credentials(secret_name, project_id):
    """Fetch a service account JSON stored in Secret Manager."""
    from google.cloud import secretmanager

    client = secretmanager.SecretManagerServiceClient()
    if not secret_name.startswith('projects/'):
        secret_name = f"projects/{project_id}/secrets/{secret_name}/versions/latest"
    response = client.access_secret_version(name=secret_name)
    return json.loads(response.payload.data.decode("UTF-8"))


def initialize_firebase(settings):
    """Return the default Firebase app, initializing it on first use."""
    try:
        app = firebase_admin.get_app()
        logger.info(f"✅ Firebase already initialized: {app.name}")
    except ValueError:
        if settings.credentials_secret:
            cred = credentials.Certificate(
                get_firebase_credentials(settings.credentials_secret, settings.project_id)
            )
            logger.info("Initializing Firebase with service account from Secret Manager")
        else:
            cred = credentials.ApplicationDefault()
            logger.info("Initializing Firebase with default credentials")
        options = {'projectId': settings.project_id} if settings.project_id else None
        app = firebase_admin.initialize_app(cred, options)
        logger.info(f"✅ Firebase initialized: {app.name}")
    return app


def create_clients(settings):
    app = initialize_firebase(settings)
    db = firestore.Client(
        project=settings.project_id or app.project_id,
        credentials=app.credential.get_credential(),
        database=settings.database,
    )
    return FirebaseClients(db=db, app=app)


def get_clients(settings=None):
    """Return the process-wide FirebaseClients, creating it once."""
    global _clients
    if _clients is None:
        settings = settings or Settings.from_env()
        configure_logging(settings)
        _clients = create_clients(settings)
    return _clients


def set_clients(clients):
    """Install a prebuilt handle (local runs and tests)."""
    global _clients
    _clients = clients


def reset_clients():
    global _clients
    _clients = None
