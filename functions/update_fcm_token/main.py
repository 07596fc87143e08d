import functions_framework
from firebase_admin import firestore
from flask import jsonify
from flask_cors import cross_origin

from functions.utils.config import Settings
from functions.utils.firebase_client import get_clients
from functions.utils.logging_utils import create_logger

log = create_logger('update_fcm_token')


def _rejected(message, status_code):
    return jsonify({'success': False, 'error': message}), status_code


@functions_framework.http
@cross_origin(methods=['POST'], max_age=3600)
def update_fcm_token(request):
    """
    Store a device's refreshed FCM token on its user document.

    on_message_created reads users/{user_id}.fcmToken to address pushes, so
    the app calls this whenever FCM hands it a new token. Preflight requests
    are answered by flask_cors.

    Request JSON: {"user_id": str, "fcm_token": str}
    """
    try:
        request_json = request.get_json(silent=True)
        if not request_json:
            return _rejected('No request data provided', 400)

        user_id = request_json.get('user_id')
        fcm_token = request_json.get('fcm_token')
        if not user_id or not fcm_token:
            return _rejected('Both user_id and fcm_token are required', 400)

        log.set_context(document=f"users/{user_id}")

        settings = Settings.from_env()
        user_ref = get_clients(settings).db.collection(settings.users_collection).document(user_id)
        user_ref.update({
            'fcmToken': fcm_token,
            'tokenUpdatedAt': firestore.SERVER_TIMESTAMP,
        })

        log.info(f"✅ FCM token updated for user {user_id}")
        return jsonify({'success': True, 'userId': user_id})

    except Exception as e:
        log.error(f"❌ Could not store FCM token: {str(e)}", exc_info=True)
        return _rejected(f'Failed to update FCM token: {str(e)}', 500)
