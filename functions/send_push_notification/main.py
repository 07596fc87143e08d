# send_push_notification/main.py
import functions_framework
from firebase_admin import messaging

from functions.utils.config import Settings
from functions.utils.firestore_events import document_created_from_cloud_event
from functions.utils.logging_utils import create_logger, log_cloud_event
from functions.utils.notification_record import STATUS_PENDING, error_update, sent_update

log = create_logger('send_push_notification')


def build_push_message(record):
    """
    Compose the FCM message for a notification document.

    Android gets high priority delivery; APNs gets a content-available alert
    with a badge and the default sound.
    """
    notification = record.get('notification') or {}
    return messaging.Message(
        token=record.get('to'),
        notification=messaging.Notification(
            title=notification.get('title'),
            body=notification.get('body'),
        ),
        data=record.get('data'),
        android=messaging.AndroidConfig(
            priority='high',
        ),
        apns=messaging.APNSConfig(
            payload=messaging.APNSPayload(
                aps=messaging.Aps(
                    content_available=True,
                    badge=1,
                    sound='default',
                )
            )
        ),
    )


def _claim_pending(clients, notification_ref, notification_id):
    """
    Re-read the record and return a write precondition if it is still pending.

    Returns None when the record already reached a terminal status.
    """
    snapshot = notification_ref.get()
    current = (snapshot.to_dict() or {}) if snapshot.exists else {}
    status = current.get('status')
    if status != STATUS_PENDING:
        log.warning(f"⚠️ Notification {notification_id} has status {status!r}, skipping")
        return None
    return clients.db.write_option(last_update_time=snapshot.update_time)


def handle_notification_created(event, clients, settings=None):
    """
    Deliver a newly created notification document through FCM.

    Writes exactly one terminal update: status 'sent' with the FCM message id,
    or status 'error' with the failure message. Failed sends are not retried.

    Returns:
        dict: the update written, or None when nothing was written
    """
    settings = settings or Settings()
    record = event.data
    if not record:
        log.error("No notification data found", {"document": event.path})
        return None

    notification_id = event.document_id

    try:
        notification_ref = clients.db.collection(settings.notifications_collection).document(notification_id)

        option = None
        if settings.guard_status_transition:
            option = _claim_pending(clients, notification_ref, notification_id)
            if option is None:
                return None

        try:
            response = clients.send(build_push_message(record))
            log.info(f"✅ Successfully sent message: {response}", {"notificationId": notification_id})
            update = sent_update(response)
        except Exception as fcm_error:
            log.error(f"❌ Error sending message: {str(fcm_error)}", {
                "notificationId": notification_id,
                "error_type": type(fcm_error).__name__,
            })
            update = error_update(fcm_error)

        if option is not None:
            notification_ref.update(update, option=option)
        else:
            notification_ref.update(update)
        return update

    except Exception as e:
        log.error(f"❌ Error recording delivery status for {notification_id}: {str(e)}", exc_info=True)
        return None


@functions_framework.cloud_event
@log_cloud_event(log)
def send_push_notification(cloud_event):
    """Entry point: Firestore document created in notifications/{notificationId}."""
    from functions import pipeline

    try:
        path, data = document_created_from_cloud_event(cloud_event)
    except ValueError as e:
        log.error(f"❌ Unreadable notification event: {str(e)}")
        return None

    try:
        results = pipeline.get_event_bus().publish(path, data, event_id=cloud_event['id'])
    except Exception as e:
        log.error(f"❌ Error dispatching notification event: {str(e)}", exc_info=True)
        return None
    return results[0] if results else None
