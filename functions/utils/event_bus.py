from functions.utils.logging_utils import create_logger

log = create_logger('event_bus')


class DocumentCreated:
    """A document-created event: the full document payload plus its path."""

    def __init__(self, path, data, params=None, event_id=None):
        self.path = path.strip('/')
        self.data = data
        self.params = params or {}
        self.event_id = event_id

    @property
    def collection(self):
        return self.path.rsplit('/', 1)[0] if '/' in self.path else ''

    @property
    def document_id(self):
        return self.path.rsplit('/', 1)[-1]

    @property
    def key(self):
        """Deterministic key: collection path + document id."""
        return f"{self.collection}/{self.document_id}"

    def __repr__(self):
        return f"DocumentCreated(path={self.path!r}, event_id={self.event_id!r})"


def match_path(pattern, path):
    """
    Match a document path against a pattern like 'chats/{chatId}/messages/{messageId}'.

    Returns:
        dict: captured parameters, or None when the path does not match
    """
    pattern_parts = pattern.strip('/').split('/')
    path_parts = path.strip('/').split('/')
    if len(pattern_parts) != len(path_parts):
        return None

    params = {}
    for expected, actual in zip(pattern_parts, path_parts):
        if not actual:
            return None
        if expected.startswith('{') and expected.endswith('}'):
            params[expected[1:-1]] = actual
        elif expected != actual:
            return None
    return params


class EventBus:
    """
    In-process dispatcher for document-created events.

    Handlers are registered against document path patterns. Delivery is at
    least once and unordered across events; that is the trigger platform's
    contract and nothing here strengthens it.
    """

    def __init__(self):
        self._subscriptions = []

    def subscribe(self, pattern, handler):
        self._subscriptions.append((pattern, handler))
        return handler

    def publish(self, path, data, event_id=None):
        """
        Deliver a created document to every matching handler.

        A failing handler is logged and does not prevent the others from
        running.

        Returns:
            list: results of the handlers that ran
        """
        results = []
        matched = False

        for pattern, handler in self._subscriptions:
            params = match_path(pattern, path)
            if params is None:
                continue
            matched = True
            event = DocumentCreated(path, data, params=params, event_id=event_id)
            try:
                results.append(handler(event))
            except Exception as e:
                log.error(f"❌ Handler {getattr(handler, '__name__', handler)!r} failed for {event.key}: {str(e)}",
                          exc_info=True)

        if not matched:
            log.warning(f"⚠️ No handler registered for document {path}")

        return results
