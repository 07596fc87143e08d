import contextvars
import json
import logging
import uuid
import inspect
import os
from datetime import datetime, timezone
from functools import wraps

from functions.utils.config import Settings

# Standard logger; Cloud Logging handlers are attached by configure_logging()
logger = logging.getLogger('chat-push')

SENSITIVE_FIELDS = ['password', 'token', 'key', 'secret', 'auth']
# Exact-match keys that hold a device token
SENSITIVE_KEYS = {'to'}

_configured = False


def configure_logging(settings):
    """
    Configure the process logger once.

    When settings.cloud_logging is on, records are routed to Google Cloud
    Logging; otherwise standard logging is used.
    """
    global _configured
    if _configured:
        return False

    level = getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(level=level)
    logger.setLevel(level)

    if settings.cloud_logging:
        try:
            from google.cloud import logging as cloud_logging

            client = cloud_logging.Client(project=settings.project_id)
            client.setup_logging(log_level=level)
        except Exception as e:
            logger.warning(f"GCP Cloud Logging could not be initialized. Using standard logging. ({str(e)})")

    _configured = True
    return True


def generate_request_id():
    """Generate a unique request ID for tracing."""
    return str(uuid.uuid4())


def serialize_firestore_data(data):
    """Helper function to serialize Firestore data for JSON."""
    if isinstance(data, dict):
        return {k: serialize_firestore_data(v) for k, v in data.items()}
    elif isinstance(data, (list, tuple)):
        return [serialize_firestore_data(item) for item in data]
    elif isinstance(data, datetime):
        return data.isoformat()
    elif isinstance(data, (str, int, float, bool)) or data is None:
        return data
    else:
        # Sentinels such as SERVER_TIMESTAMP
        return repr(data)


class StructuredLogger:
    """Structured logger that formats logs consistently."""

    def __init__(self, service_name):
        self.service_name = service_name
        # Per invocation: concurrent requests on one instance keep their own ids
        self._context = contextvars.ContextVar(f"{service_name}_log_context", default={})

    @property
    def request_id(self):
        return self._context.get().get('request_id')

    @property
    def document(self):
        return self._context.get().get('document')

    def set_context(self, request_id=None, document=None):
        """Set the current event context."""
        self._context.set({
            'request_id': request_id or generate_request_id(),
            'document': document,
        })
        return self

    def _format_log(self, message, additional_data=None):
        """Format log message as structured data."""
        caller_frame = inspect.currentframe().f_back.f_back
        function_name = caller_frame.f_code.co_name
        file_name = os.path.basename(caller_frame.f_code.co_filename)

        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": self.service_name,
            "request_id": self.request_id,
            "location": f"{file_name}:{function_name}",
            "message": message
        }

        if self.document:
            log_data["document"] = self.document

        if additional_data:
            log_data["data"] = serialize_firestore_data(self._sanitize_data(additional_data))

        return log_data

    def _sanitize_data(self, data):
        """Remove sensitive fields from data before logging."""
        if not isinstance(data, dict):
            return data

        sanitized = {}

        for key, value in data.items():
            lowered = key.lower()
            if lowered in SENSITIVE_KEYS or any(sensitive in lowered for sensitive in SENSITIVE_FIELDS):
                sanitized[key] = "[REDACTED]"
            elif isinstance(value, dict):
                sanitized[key] = self._sanitize_data(value)
            else:
                sanitized[key] = value

        return sanitized

    def debug(self, message, data=None):
        """Log a debug message."""
        log_data = self._format_log(message, data)
        logger.debug(json.dumps(log_data))
        return log_data

    def info(self, message, data=None):
        """Log an info message."""
        log_data = self._format_log(message, data)
        logger.info(json.dumps(log_data))
        return log_data

    def warning(self, message, data=None):
        """Log a warning message."""
        log_data = self._format_log(message, data)
        logger.warning(json.dumps(log_data))
        return log_data

    def error(self, message, data=None, exc_info=None):
        """Log an error message."""
        log_data = self._format_log(message, data)
        logger.error(json.dumps(log_data), exc_info=exc_info)
        return log_data


def create_logger(service_name):
    """Create a structured logger for a service."""
    return StructuredLogger(service_name)


def log_cloud_event(logger):
    """Decorator to log entry and exit of a CloudEvent-triggered function."""
    def decorator(func):
        @wraps(func)
        def wrapper(cloud_event, *args, **kwargs):
            configure_logging(Settings.from_env())

            request_id = None
            document = None
            try:
                request_id = cloud_event['id']
                document = cloud_event.get('document')
            except (KeyError, TypeError, AttributeError):
                pass

            logger.set_context(request_id=request_id, document=document)
            logger.info(f"Function {func.__name__} called")

            try:
                result = func(cloud_event, *args, **kwargs)
                logger.info(f"Function {func.__name__} completed successfully")
                return result
            except Exception as e:
                logger.error(f"Function {func.__name__} failed: {str(e)}", exc_info=True)
                raise

        return wrapper
    return decorator
