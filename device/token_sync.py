import logging

import requests

logger = logging.getLogger(__name__)


class TokenSync:
    """
    Pushes refreshed FCM tokens to the update_fcm_token function.

    Pass an instance as MessagingService's token_listener.
    """

    def __init__(self, base_url, user_id, timeout=10, session=None):
        self.url = f"{base_url.rstrip('/')}/update_fcm_token"
        self.user_id = user_id
        self.timeout = timeout
        self.session = session or requests.Session()

    def __call__(self, token):
        return self.post_token(token)

    def post_token(self, token):
        """
        Send the token for this user.

        Returns:
            bool: True when the server stored the token
        """
        payload = {
            "user_id": self.user_id,
            "fcm_token": token
        }

        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Error sending FCM token: {str(e)}")
            return False

        if response.status_code != 200:
            logger.error(f"Token update failed with status {response.status_code}: {response.text}")
            return False

        try:
            return bool(response.json().get('success'))
        except ValueError:
            logger.error("Token update returned a non-JSON response")
            return False
