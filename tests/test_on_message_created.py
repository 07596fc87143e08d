from unittest.mock import MagicMock

from firebase_admin import firestore

from functions.on_message_created.main import find_recipient, handle_message_created
from functions.utils.event_bus import DocumentCreated


def message_event(data, chat_id='c1', message_id='m1'):
    return DocumentCreated(
        f"chats/{chat_id}/messages/{message_id}",
        data,
        params={'chatId': chat_id, 'messageId': message_id},
    )


def notifications(db):
    return {path: data for path, data in db.docs.items() if path.startswith('notifications/')}


def test_creates_pending_notification_for_recipient(chat_fixture, clients, settings):
    event = message_event({'senderId': 'u1', 'text': 'hi', 'senderName': 'Alice', 'type': 'text'})

    notification_id = handle_message_created(event, clients, settings)

    records = notifications(chat_fixture)
    assert list(records) == [f"notifications/{notification_id}"]
    record = records[f"notifications/{notification_id}"]
    assert record['to'] == 'tok123'
    assert record['notification'] == {'title': 'New message from Alice', 'body': 'hi'}
    assert record['data'] == {
        'type': 'new_message',
        'chatId': 'c1',
        'senderId': 'u1',
        'messageId': 'm1',
        'click_action': 'FLUTTER_NOTIFICATION_CLICK',
    }
    assert record['status'] == 'pending'
    assert record['createdAt'] is firestore.SERVER_TIMESTAMP


def test_recipient_resolved_regardless_of_participant_order(fake_db, clients, settings):
    fake_db.seed('chats/c1', {'participants': ['u2', 'u1']})
    fake_db.seed('users/u1', {'fcmToken': 'tok-u1'})

    notification_id = handle_message_created(message_event({'senderId': 'u2', 'text': 'yo'}), clients, settings)

    assert fake_db.docs[f"notifications/{notification_id}"]['to'] == 'tok-u1'


def test_defaults_for_missing_sender_name_and_text(chat_fixture, clients, settings):
    notification_id = handle_message_created(message_event({'senderId': 'u1'}), clients, settings)

    record = chat_fixture.docs[f"notifications/{notification_id}"]
    assert record['notification'] == {
        'title': 'New message from Someone',
        'body': 'You have a new message',
    }


def test_no_notification_when_recipient_has_no_token(chat_fixture, clients, settings):
    chat_fixture.seed('users/u2', {'name': 'Bob'})

    result = handle_message_created(message_event({'senderId': 'u1', 'text': 'hi', 'senderName': 'Alice'}),
                                    clients, settings)

    assert result is None
    assert notifications(chat_fixture) == {}


def test_no_notification_when_token_is_empty(chat_fixture, clients, settings):
    chat_fixture.seed('users/u2', {'fcmToken': ''})

    assert handle_message_created(message_event({'senderId': 'u1', 'text': 'hi'}), clients, settings) is None
    assert notifications(chat_fixture) == {}


def test_no_notification_when_recipient_user_missing(fake_db, clients, settings):
    fake_db.seed('chats/c1', {'participants': ['u1', 'u2']})

    assert handle_message_created(message_event({'senderId': 'u1', 'text': 'hi'}), clients, settings) is None
    assert fake_db.added == []


def test_no_notification_when_chat_missing(fake_db, clients, settings):
    assert handle_message_created(message_event({'senderId': 'u1', 'text': 'hi'}), clients, settings) is None
    assert fake_db.added == []


def test_no_notification_for_sender_outside_chat(chat_fixture, clients, settings):
    assert handle_message_created(message_event({'senderId': 'intruder', 'text': 'hi'}), clients, settings) is None
    assert notifications(chat_fixture) == {}


def test_no_notification_for_malformed_chat(fake_db, clients, settings):
    fake_db.seed('chats/c1', {'participants': ['u1']})

    assert handle_message_created(message_event({'senderId': 'u1', 'text': 'hi'}), clients, settings) is None
    assert fake_db.added == []


def test_empty_message_is_a_no_op(settings):
    clients = MagicMock()

    assert handle_message_created(message_event(None), clients, settings) is None
    assert handle_message_created(message_event({}), clients, settings) is None
    clients.db.collection.assert_not_called()


def test_store_failure_is_swallowed(settings):
    clients = MagicMock()
    clients.db.collection.side_effect = RuntimeError("deadline exceeded")

    assert handle_message_created(message_event({'senderId': 'u1', 'text': 'hi'}), clients, settings) is None


def test_find_recipient():
    assert find_recipient(['u1', 'u2'], 'u1') == 'u2'
    assert find_recipient(['u1', 'u2'], 'u2') == 'u1'
    assert find_recipient(['u1', 'u2'], 'u3') is None
    assert find_recipient(['u1', 'u1'], 'u1') is None
    assert find_recipient([], 'u1') is None
    assert find_recipient(['u1', 'u2'], None) is None
