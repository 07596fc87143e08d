from firebase_admin import firestore

STATUS_PENDING = 'pending'
STATUS_SENT = 'sent'
STATUS_ERROR = 'error'

NEW_MESSAGE_TYPE = 'new_message'
CLICK_ACTION = 'FLUTTER_NOTIFICATION_CLICK'
DEFAULT_SENDER_NAME = 'Someone'
DEFAULT_BODY = 'You have a new message'


def build_notification_record(token, chat_id, message_id, message):
    """
    Build a pending notification document for a chat message.

    Args:
        token (str): recipient device token
        chat_id (str): id of the chat the message belongs to
        message_id (str): id of the triggering message document
        message (dict): the message fields (senderId, senderName, text)

    Returns:
        dict: fields for the notifications collection
    """
    sender_name = message.get('senderName') or DEFAULT_SENDER_NAME
    return {
        'to': token,
        'notification': {
            'title': f"New message from {sender_name}",
            'body': message.get('text') or DEFAULT_BODY,
        },
        'data': {
            'type': NEW_MESSAGE_TYPE,
            'chatId': str(chat_id),
            'senderId': str(message.get('senderId') or ''),
            'messageId': str(message_id),
            'click_action': CLICK_ACTION,
        },
        'status': STATUS_PENDING,
        'createdAt': firestore.SERVER_TIMESTAMP,
    }


def sent_update(message_id):
    return {
        'status': STATUS_SENT,
        'sentAt': firestore.SERVER_TIMESTAMP,
        'messageId': message_id,
    }


def error_update(error):
    return {
        'status': STATUS_ERROR,
        'error': str(error) or type(error).__name__,
        'sentAt': firestore.SERVER_TIMESTAMP,
    }
