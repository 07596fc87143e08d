# on_message_created/main.py
import functions_framework

from functions.utils.config import Settings
from functions.utils.firestore_events import document_created_from_cloud_event
from functions.utils.logging_utils import create_logger, log_cloud_event
from functions.utils.notification_record import build_notification_record

log = create_logger('on_message_created')


def find_recipient(participants, sender_id):
    """Return the participant that is not the sender, or None."""
    if not sender_id or sender_id not in participants:
        return None
    for participant_id in participants:
        if participant_id and participant_id != sender_id:
            return participant_id
    return None


def handle_message_created(event, clients, settings=None):
    """
    Create a pending notification for the recipient of a new chat message.

    Args:
        event (DocumentCreated): the created message; params carry chatId and messageId
        clients (FirebaseClients): Firestore / FCM handle
        settings (Settings): collection names

    Returns:
        str: id of the created notification document, or None when nothing was written
    """
    settings = settings or Settings()
    message = event.data
    if not message:
        log.error("No message data found", {"document": event.path})
        return None

    chat_id = event.params.get('chatId')
    message_id = event.params.get('messageId') or event.document_id
    sender_id = message.get('senderId')

    try:
        db = clients.db

        chat_doc = db.collection(settings.chats_collection).document(chat_id).get()
        if not chat_doc.exists:
            log.info(f"Chat {chat_id} not found, skipping")
            return None

        chat_data = chat_doc.to_dict()
        if not chat_data:
            log.info(f"Chat {chat_id} has no data, skipping")
            return None

        participants = list(chat_data.get('participants') or [])
        recipient_id = find_recipient(participants, sender_id)
        if not recipient_id:
            log.warning(f"No recipient for message {message_id} in chat {chat_id}", {
                "senderId": sender_id,
                "participants": participants,
            })
            return None

        user_doc = db.collection(settings.users_collection).document(recipient_id).get()
        if not user_doc.exists:
            log.info(f"User {recipient_id} not found, skipping")
            return None

        user_data = user_doc.to_dict() or {}
        token = user_data.get('fcmToken')
        if not token:
            # Recipient never registered a device or revoked permission
            log.info(f"No FCM token for user {recipient_id}, skipping")
            return None

        notification = build_notification_record(token, chat_id, message_id, message)

        # Creating the document arms send_push_notification
        _, notification_ref = db.collection(settings.notifications_collection).add(notification)
        log.info(f"✅ Notification {notification_ref.id} created for message {message_id}", {
            "chatId": chat_id,
            "recipientId": recipient_id,
        })
        return notification_ref.id

    except Exception as e:
        log.error(f"❌ Error creating notification: {str(e)}", exc_info=True)
        return None


@functions_framework.cloud_event
@log_cloud_event(log)
def on_message_created(cloud_event):
    """Entry point: Firestore document created in chats/{chatId}/messages/{messageId}."""
    from functions import pipeline

    try:
        path, data = document_created_from_cloud_event(cloud_event)
    except ValueError as e:
        log.error(f"❌ Unreadable message event: {str(e)}")
        return None

    try:
        results = pipeline.get_event_bus().publish(path, data, event_id=cloud_event['id'])
    except Exception as e:
        log.error(f"❌ Error dispatching message event: {str(e)}", exc_info=True)
        return None
    return results[0] if results else None
