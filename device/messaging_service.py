"""
Device-side handling of incoming FCM pushes.

MessagingService turns a push that carries a notification block into a local
notification posted through a NotificationManager, the seam to the OS
notification tray.
"""
import logging

logger = logging.getLogger(__name__)

CHANNEL_ID = 'chat_channel'
CHANNEL_NAME = 'Chat Messages'
CHANNEL_DESCRIPTION = 'Channel for chat messages'

DEFAULT_TITLE = 'New Message'
DEFAULT_BODY = 'You have a new message'

# Every chat notification is posted under this id, so a new one replaces the
# one already in the tray instead of stacking.
NOTIFICATION_ID = 0

IMPORTANCE_HIGH = 'high'
PRIORITY_HIGH = 'high'
DEFAULT_ICON = 'ic_dialog_info'
DEFAULT_SOUND = 'default_notification'


class RemoteMessage:
    """An inbound push: optional notification block plus data map."""

    def __init__(self, notification=None, data=None):
        self.notification = notification
        self.data = data or {}

    @classmethod
    def from_dict(cls, payload):
        return cls(notification=payload.get('notification'), data=payload.get('data'))


class NotificationChannel:
    def __init__(self, channel_id, name, importance, description=None, enable_vibration=False):
        self.channel_id = channel_id
        self.name = name
        self.importance = importance
        self.description = description
        self.enable_vibration = enable_vibration

    def __eq__(self, other):
        return isinstance(other, NotificationChannel) and vars(self) == vars(other)


class LocalNotification:
    def __init__(self, channel_id, title, text, icon, sound, priority, auto_cancel):
        self.channel_id = channel_id
        self.title = title
        self.text = text
        self.icon = icon
        self.sound = sound
        self.priority = priority
        self.auto_cancel = auto_cancel

    def __eq__(self, other):
        return isinstance(other, LocalNotification) and vars(self) == vars(other)

    def __repr__(self):
        return f"LocalNotification(channel_id={self.channel_id!r}, title={self.title!r}, text={self.text!r})"


class NotificationManager:
    """Interface to the OS notification service."""

    def create_notification_channel(self, channel):
        raise NotImplementedError

    def notify(self, notification_id, notification):
        raise NotImplementedError


class MessagingService:
    """
    Receives pushes and token refreshes on the device.

    Args:
        notification_manager (NotificationManager): OS notification service
        requires_channels (bool): whether the platform needs an explicit channel
        token_listener (callable): called with each refreshed token
    """

    def __init__(self, notification_manager, requires_channels=True, token_listener=None,
                 icon=DEFAULT_ICON, sound=DEFAULT_SOUND):
        self.notification_manager = notification_manager
        self.requires_channels = requires_channels
        self.token_listener = token_listener
        self.icon = icon
        self.sound = sound
        self.token = None
        self._channel_ready = False

    def on_message_received(self, remote_message):
        """Render the push if it carries a notification block; data-only pushes post nothing."""
        if isinstance(remote_message, dict):
            remote_message = RemoteMessage.from_dict(remote_message)

        notification = remote_message.notification
        if notification is None:
            logger.debug("Data-only message received, nothing to display")
            return None

        return self.show_notification(
            notification.get('title') or DEFAULT_TITLE,
            notification.get('body') or DEFAULT_BODY,
        )

    def on_new_token(self, token):
        self.token = token
        logger.info("FCM token refreshed")
        if self.token_listener is not None:
            self.token_listener(token)

    def ensure_channel(self):
        if not self.requires_channels or self._channel_ready:
            return
        self.notification_manager.create_notification_channel(NotificationChannel(
            CHANNEL_ID,
            CHANNEL_NAME,
            IMPORTANCE_HIGH,
            description=CHANNEL_DESCRIPTION,
            enable_vibration=True,
        ))
        self._channel_ready = True

    def show_notification(self, title, message):
        notification = LocalNotification(
            channel_id=CHANNEL_ID,
            title=title,
            text=message,
            icon=self.icon,
            sound=self.sound,
            priority=PRIORITY_HIGH,
            auto_cancel=True,
        )
        self.ensure_channel()
        self.notification_manager.notify(NOTIFICATION_ID, notification)
        return notification
