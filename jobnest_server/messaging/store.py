"""Message store backed by the MongoDB ``Message`` collection.

Only this module writes message documents. User ids are stored as ObjectId
when they are valid ObjectIds and matched in either form, so documents
written with string ids stay visible. Writes are single-document
inserts plus one ``update_many`` for read receipts; no multi-document
transactions are needed.
"""
import logging
import threading
from datetime import datetime, timedelta
from typing import List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from jobnest_server.exception.errors import PersistenceFailure
from jobnest_server.messaging.models import Message
from jobnest_server.utils.helpers import id_match
from jobnest_server.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

MESSAGE_COLLECTION = 'Message'

_HISTORY_SORT = [('createdAt', ASCENDING), ('_id', ASCENDING)]
_NEWEST_FIRST = [('createdAt', DESCENDING), ('_id', DESCENDING)]


class MessageStore:
    """Repository for direct messages."""

    def __init__(self, collection, clock=utc_now):
        self.collection = collection
        self._clock = clock
        self._lock = threading.Lock()
        self._last_created_at: Optional[datetime] = None

    @classmethod
    def from_db(cls, db, collection_name: str = MESSAGE_COLLECTION) -> 'MessageStore':
        return cls(db[collection_name])

    def _next_stamp(self):
        """Return (created_at, _id) strictly after the previous pair from this store."""
        with self._lock:
            created_at = self._clock()
            if self._last_created_at is not None and created_at <= self._last_created_at:
                created_at = self._last_created_at + timedelta(milliseconds=1)
            self._last_created_at = created_at
            return created_at, ObjectId()

    def create(self, sender_id: str, receiver_id: str, body: str) -> Message:
        """Persist a new unread message and return it with its id and timestamp."""
        created_at, oid = self._next_stamp()
        message = Message(
            message_id=str(oid),
            sender_id=sender_id,
            receiver_id=receiver_id,
            body=body,
            created_at=created_at,
            read=False
        )
        try:
            self.collection.insert_one(message.to_db_doc())
        except PyMongoError as e:
            logger.exception(f"Failed to store message {sender_id} -> {receiver_id}")
            raise PersistenceFailure('Failed to store message', cause=e) from e
        return message

    def find_between(
        self,
        user_a: str,
        user_b: str,
        limit: Optional[int] = None,
        before: Optional[datetime] = None
    ) -> List[Message]:
        """Messages exchanged between two users, oldest first.

        With ``limit`` the newest ``limit`` messages (older than ``before`` if
        given) are returned, still oldest first.
        """
        query = {
            '$or': [
                {'senderId': id_match(user_a), 'receiverId': id_match(user_b)},
                {'senderId': id_match(user_b), 'receiverId': id_match(user_a)}
            ]
        }
        if before is not None:
            query['createdAt'] = {'$lt': before}
        try:
            if limit:
                docs = list(self.collection.find(query).sort(_NEWEST_FIRST).limit(limit))
                docs.reverse()
            else:
                docs = list(self.collection.find(query).sort(_HISTORY_SORT))
        except PyMongoError as e:
            logger.exception(f"Failed to load history {user_a} <-> {user_b}")
            raise PersistenceFailure('Failed to load messages', cause=e) from e
        return [Message.from_doc(d) for d in docs]

    def find_involving(self, user_id: str) -> List[Message]:
        """All messages sent or received by user_id, newest first."""
        user = id_match(user_id)
        query = {'$or': [{'senderId': user}, {'receiverId': user}]}
        try:
            docs = list(self.collection.find(query).sort(_NEWEST_FIRST))
        except PyMongoError as e:
            logger.exception(f"Failed to load messages for {user_id}")
            raise PersistenceFailure('Failed to load messages', cause=e) from e
        return [Message.from_doc(d) for d in docs]

    def count_unread(self, sender_id: str, receiver_id: str) -> int:
        try:
            return self.collection.count_documents({
                'senderId': id_match(sender_id),
                'receiverId': id_match(receiver_id),
                'read': False
            })
        except PyMongoError as e:
            logger.exception(f"Failed to count unread {sender_id} -> {receiver_id}")
            raise PersistenceFailure('Failed to count unread messages', cause=e) from e

    def mark_read(self, sender_id: str, receiver_id: str) -> int:
        """Flip every unread sender -> receiver message to read. Returns the number flipped."""
        try:
            result = self.collection.update_many(
                {'senderId': id_match(sender_id), 'receiverId': id_match(receiver_id), 'read': False},
                {'$set': {'read': True}}
            )
        except PyMongoError as e:
            logger.exception(f"Failed to mark messages read {sender_id} -> {receiver_id}")
            raise PersistenceFailure('Failed to mark messages as read', cause=e) from e
        return result.modified_count

    def ensure_indexes(self):
        """Create the indexes the history, conversation and unread queries use (idempotent)."""
        self.collection.create_index([('senderId', 1), ('receiverId', 1)], name='message_sender_receiver')
        self.collection.create_index([('receiverId', 1), ('read', 1)], name='message_receiver_read')
        self.collection.create_index([('createdAt', -1)], name='message_created_at')
        logger.info('Ensured Message collection indexes')
