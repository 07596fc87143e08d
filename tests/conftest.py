import itertools
from unittest.mock import MagicMock

import pytest
from google.api_core.exceptions import FailedPrecondition, NotFound

from functions import pipeline
from functions.utils import firebase_client
from functions.utils.config import Settings
from functions.utils.firebase_client import FirebaseClients


# === In-memory Firestore ===
class FakeSnapshot:
    def __init__(self, doc_id, data, update_time=None):
        self.id = doc_id
        self._data = data
        self.update_time = update_time

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocumentRef:
    def __init__(self, db, path):
        self._db = db
        self.path = path
        self.id = path.rsplit('/', 1)[-1]

    def get(self):
        return FakeSnapshot(self.id, self._db.docs.get(self.path), self._db.versions.get(self.path))

    def set(self, data):
        self._db.docs[self.path] = dict(data)
        self._db.versions[self.path] = self._db.versions.get(self.path, 0) + 1

    def update(self, fields, option=None):
        self._db.updates.append((self.path, dict(fields), option))
        if self.path not in self._db.docs:
            raise NotFound(f"No document to update: {self.path}")
        if option is not None and option['last_update_time'] != self._db.versions.get(self.path):
            raise FailedPrecondition(f"Document {self.path} changed")
        self._db.docs[self.path].update(fields)
        self._db.versions[self.path] += 1


class FakeCollection:
    def __init__(self, db, path):
        self._db = db
        self.path = path

    def document(self, doc_id):
        return FakeDocumentRef(self._db, f"{self.path}/{doc_id}")

    def add(self, data):
        ref = self.document(f"auto{next(self._db.ids)}")
        ref.set(data)
        self._db.added.append(ref.path)
        if self._db.on_create is not None:
            self._db.on_create(ref.path, dict(data))
        return self._db.versions[ref.path], ref


class FakeFirestore:
    """Minimal Firestore stand-in; on_create mimics document-created triggers."""

    def __init__(self):
        self.docs = {}
        self.versions = {}
        self.updates = []
        self.added = []
        self.ids = itertools.count(1)
        self.on_create = None

    def collection(self, path):
        return FakeCollection(self, path)

    def write_option(self, **kwargs):
        return kwargs

    def seed(self, path, data):
        FakeDocumentRef(self, path).set(data)


# === Fixtures ===
@pytest.fixture(autouse=True)
def reset_process_state():
    pipeline.reset()
    firebase_client.reset_clients()
    yield
    pipeline.reset()
    firebase_client.reset_clients()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def fcm():
    sender = MagicMock()
    sender.send.return_value = "msg-42"
    return sender


@pytest.fixture
def clients(fake_db, fcm):
    return FirebaseClients(db=fake_db, messaging_client=fcm)


@pytest.fixture
def chat_fixture(fake_db):
    """Chat c1 between u1 and u2, where u2 has a registered device."""
    fake_db.seed('chats/c1', {'participants': ['u1', 'u2']})
    fake_db.seed('users/u1', {'fcmToken': 'tok-u1'})
    fake_db.seed('users/u2', {'fcmToken': 'tok123'})
    return fake_db
