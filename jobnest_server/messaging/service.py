"""Messaging service wiring.

One ``MessagingService`` is built per Flask app. It owns the presence
registry and hands the same store / registry / emitter references to the
coordinator and the aggregator, so tests can swap any of them.
"""
import logging
from typing import Optional

from flask import current_app

from jobnest_server.messaging.conversations import ConversationAggregator
from jobnest_server.messaging.coordinator import DeliveryCoordinator
from jobnest_server.messaging.presence import PresenceRegistry
from jobnest_server.messaging.store import MessageStore
from jobnest_server.repository.user_repository import UserDirectory
from jobnest_server.websocket.event_emitter import EventEmitter

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'messaging'


class MessagingService:
    """Container for the messaging components of one process."""

    def __init__(
        self,
        store: MessageStore,
        users: UserDirectory,
        presence: Optional[PresenceRegistry] = None,
        emitter: Optional[EventEmitter] = None
    ):
        self.store = store
        self.users = users
        self.presence = presence or PresenceRegistry()
        self.emitter = emitter or EventEmitter()
        self.coordinator = DeliveryCoordinator(self.store, self.presence, self.emitter)
        self.conversations = ConversationAggregator(self.store, self.users)

    @classmethod
    def from_db(cls, db, socketio=None) -> 'MessagingService':
        service = cls(MessageStore.from_db(db), UserDirectory.from_db(db), emitter=EventEmitter(socketio))
        logger.info(f"MessagingService initialized on db={getattr(db, 'name', db)}")
        return service

    def init_app(self, app):
        app.extensions[EXTENSION_KEY] = self


def get_messaging_service() -> MessagingService:
    """Messaging service of the current Flask app."""
    return current_app.extensions[EXTENSION_KEY]
