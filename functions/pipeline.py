"""
Wiring of the notification fan-out pipeline.

    chats/{chatId}/messages/{messageId}  -> handle_message_created
    notifications/{notificationId}       -> handle_notification_created

Both Cloud Function entry points publish the decoded Firestore event on the
process-wide bus built here; the bus routes it by document path.
"""
from functools import partial

from functions.on_message_created.main import handle_message_created
from functions.send_push_notification.main import handle_notification_created
from functions.utils.config import Settings
from functions.utils.event_bus import EventBus
from functions.utils.firebase_client import get_clients

_bus = None


def build_event_bus(clients, settings):
    bus = EventBus()
    bus.subscribe(
        settings.message_document_pattern,
        partial(handle_message_created, clients=clients, settings=settings),
    )
    bus.subscribe(
        settings.notification_document_pattern,
        partial(handle_notification_created, clients=clients, settings=settings),
    )
    return bus


def configure(clients=None, settings=None):
    """Build and install the process-wide bus."""
    global _bus
    settings = settings or Settings.from_env()
    clients = clients or get_clients(settings)
    _bus = build_event_bus(clients, settings)
    return _bus


def get_event_bus():
    if _bus is None:
        return configure()
    return _bus


def reset():
    global _bus
    _bus = None
