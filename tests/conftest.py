"""
Shared fixtures for the messaging server tests.

Every test gets a fresh in-memory Mongo database (mongomock) and a fresh
AuthSecurity configuration. Nothing here talks to a real MongoDB.
"""

from datetime import datetime, timedelta

import mongomock
import pytest
from bson import ObjectId

from jobnest_server.messaging.coordinator import DeliveryCoordinator
from jobnest_server.messaging.conversations import ConversationAggregator
from jobnest_server.messaging.presence import PresenceRegistry
from jobnest_server.messaging.store import MessageStore
from jobnest_server.repository.user_repository import UserDirectory
from jobnest_server.security.authentication import AuthSecurity
from jobnest_server.websocket.event_emitter import EventEmitter

TEST_SECRET = "test-secret-not-for-production"


class RecordingEmitter(EventEmitter):
    """Transport double: records emits instead of writing to sockets.

    Handles listed in ``dead_handles`` fail like a connection that closed
    between the presence lookup and the write.
    """

    def __init__(self):
        super().__init__(socketio=None)
        self.sent = []
        self.broadcasts = []
        self.dead_handles = set()

    def emit_to_connection(self, handle, event, data):
        if handle in self.dead_handles:
            return False
        self.sent.append((handle, event, data))
        return True

    def broadcast(self, event, data, skip_handle=None):
        self.broadcasts.append((event, data, skip_handle))
        return True

    def events_for(self, handle):
        return [(event, data) for h, event, data in self.sent if h == handle]


class SteppingClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self):
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


@pytest.fixture(autouse=True)
def auth_config():
    """Configure AuthSecurity with a test secret and restore it afterwards."""
    saved = (AuthSecurity.secret_key, AuthSecurity.algorithm, AuthSecurity.access_token_expire_minutes)
    AuthSecurity.configure(TEST_SECRET)
    yield AuthSecurity
    AuthSecurity.secret_key, AuthSecurity.algorithm, AuthSecurity.access_token_expire_minutes = saved


@pytest.fixture
def db():
    client = mongomock.MongoClient()
    yield client["jobnest_test"]
    client.close()


@pytest.fixture
def users(db):
    """Seed one job seeker, two employers and an assessed job seeker."""
    ids = {
        "alice": ObjectId(),   # Jobseeker, assessment done
        "bob": ObjectId(),     # Employeer
        "carol": ObjectId(),   # Employeer
        "dave": ObjectId(),    # Jobseeker, assessment not done
    }
    db["Jobseeker"].insert_many([
        {"_id": ids["alice"], "name": "Alice", "emailId": "alice@example.com",
         "skills": ["python"], "jobPreference": "backend", "experience": 3,
         "password": "hash", "test": True},
        {"_id": ids["dave"], "name": "Dave", "emailId": "dave@example.com",
         "skills": [], "password": "hash", "test": False},
    ])
    db["Employeer"].insert_many([
        {"_id": ids["bob"], "name": "Bob Corp", "emailId": "bob@example.com",
         "industry": "IT", "description": "Hiring", "password": "hash"},
        {"_id": ids["carol"], "name": "Carol Ltd", "emailId": "carol@example.com",
         "industry": "Finance", "description": "Banking", "password": "hash"},
    ])
    return {name: str(oid) for name, oid in ids.items()}


@pytest.fixture
def make_token():
    """Factory for signed tokens carrying the _id / userType claims."""

    def _make(user_id, user_type="Jobseeker", **kwargs):
        return AuthSecurity.encode_token({"_id": user_id, "userType": user_type}, **kwargs)

    return _make


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def store(db, clock):
    return MessageStore(db["Message"], clock=clock)


@pytest.fixture
def presence():
    return PresenceRegistry()


@pytest.fixture
def emitter():
    return RecordingEmitter()


@pytest.fixture
def coordinator(store, presence, emitter):
    return DeliveryCoordinator(store, presence, emitter)


@pytest.fixture
def aggregator(store, db):
    return ConversationAggregator(store, UserDirectory.from_db(db))
