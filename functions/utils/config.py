import os
from dataclasses import dataclass

MESSAGES_SUBCOLLECTION = 'messages'


def _env_flag(value, default=False):
    if value is None or value == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class Settings:
    """Deployment settings shared by every function in this package."""

    project_id: str = None
    database: str = '(default)'
    chats_collection: str = 'chats'
    users_collection: str = 'users'
    notifications_collection: str = 'notifications'
    credentials_secret: str = None
    log_level: str = 'INFO'
    cloud_logging: bool = False
    guard_status_transition: bool = False

    @property
    def message_document_pattern(self):
        return f"{self.chats_collection}/{{chatId}}/{MESSAGES_SUBCOLLECTION}/{{messageId}}"

    @property
    def notification_document_pattern(self):
        return f"{self.notifications_collection}/{{notificationId}}"

    @classmethod
    def from_env(cls, environ=None):
        """
        Build settings from environment variables.

        Cloud Functions sets K_SERVICE, so Cloud Logging is switched on by
        default there and off everywhere else unless ENABLE_CLOUD_LOGGING says
        otherwise.
        """
        env = os.environ if environ is None else environ
        return cls(
            project_id=env.get('GOOGLE_CLOUD_PROJECT') or env.get('GCLOUD_PROJECT'),
            database=env.get('FIRESTORE_DATABASE') or '(default)',
            chats_collection=env.get('CHATS_COLLECTION') or 'chats',
            users_collection=env.get('USERS_COLLECTION') or 'users',
            notifications_collection=env.get('NOTIFICATIONS_COLLECTION') or 'notifications',
            credentials_secret=env.get('FIREBASE_CREDENTIALS_SECRET') or None,
            log_level=(env.get('LOG_LEVEL') or 'INFO').upper(),
            cloud_logging=_env_flag(env.get('ENABLE_CLOUD_LOGGING'), default=bool(env.get('K_SERVICE'))),
            guard_status_transition=_env_flag(env.get('NOTIFICATION_STATUS_GUARD')),
        )
