import base64
import json
from datetime import datetime

DOCUMENTS_MARKER = '/documents/'


def parse_timestamp(value):
    """Parse an RFC 3339 timestamp as sent in Firestore event payloads."""
    value = value.replace('Z', '+00:00')
    # Python < 3.11 only accepts up to microseconds
    if '.' in value:
        head, _, rest = value.partition('.')
        digits = ''
        while rest and rest[0].isdigit():
            digits += rest[0]
            rest = rest[1:]
        value = f"{head}.{digits[:6].ljust(6, '0')}{rest}"
    return datetime.fromisoformat(value)


def decode_value(value):
    """Convert one Firestore typed JSON value into a plain Python value."""
    if not isinstance(value, dict):
        return value

    if 'stringValue' in value:
        return value['stringValue']
    if 'integerValue' in value:
        return int(value['integerValue'])
    if 'doubleValue' in value:
        return float(value['doubleValue'])
    if 'booleanValue' in value:
        return bool(value['booleanValue'])
    if 'nullValue' in value:
        return None
    if 'timestampValue' in value:
        return parse_timestamp(value['timestampValue'])
    if 'mapValue' in value:
        return decode_fields((value.get('mapValue') or {}).get('fields') or {})
    if 'arrayValue' in value:
        return [decode_value(item) for item in (value.get('arrayValue') or {}).get('values') or []]
    if 'referenceValue' in value:
        return value['referenceValue']
    if 'geoPointValue' in value:
        point = value['geoPointValue'] or {}
        return {'latitude': point.get('latitude', 0.0), 'longitude': point.get('longitude', 0.0)}
    if 'bytesValue' in value:
        return base64.b64decode(value['bytesValue'])

    raise ValueError(f"Unsupported Firestore value: {sorted(value)}")


def decode_fields(fields):
    return {key: decode_value(value) for key, value in (fields or {}).items()}


def relative_document_path(resource_name):
    """
    Strip the resource prefix from a document name.

    projects/{project}/databases/{database}/documents/chats/c1 -> chats/c1
    """
    if DOCUMENTS_MARKER in resource_name:
        return resource_name.split(DOCUMENTS_MARKER, 1)[1]
    return resource_name.strip('/')


def _event_data(cloud_event):
    data = getattr(cloud_event, 'data', None)
    if isinstance(data, (bytes, bytearray)):
        data = json.loads(data.decode('utf-8'))
    elif isinstance(data, str):
        data = json.loads(data)
    return data if isinstance(data, dict) else {}


def document_path_from_event(cloud_event, data=None):
    """Return the created document's path relative to the database root."""
    try:
        document = cloud_event.get('document')
    except AttributeError:
        document = None
    if document:
        return relative_document_path(document)

    data = _event_data(cloud_event) if data is None else data
    value = data.get('value') or {}
    if isinstance(value, dict) and value.get('name'):
        return relative_document_path(value['name'])
    return None


def document_created_from_cloud_event(cloud_event):
    """
    Extract (path, fields) from a Firestore document-created CloudEvent.

    Returns:
        tuple: (path, data) where data is None when the document has no fields
    Raises:
        ValueError: the event carries no document path
    """
    data = _event_data(cloud_event)
    path = document_path_from_event(cloud_event, data)
    if not path:
        raise ValueError("Could not extract document path from event data")

    value = data.get('value') or {}
    fields = value.get('fields') if isinstance(value, dict) else None
    if not fields:
        return path, None
    return path, decode_fields(fields)
