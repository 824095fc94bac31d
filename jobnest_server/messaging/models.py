"""Messaging data models for direct job seeker / employer chat.

Collections:
- Message: individual direct messages (persisted)
- Jobseeker, Employeer: user collections, read-only here

Conversation and presence entries are derived or in-memory only.
"""
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum

from bson import ObjectId

from jobnest_server.utils.helpers import id_query_value
from jobnest_server.utils.time_utils import to_iso


class UserKind(str, Enum):
    JOBSEEKER = "Jobseeker"
    EMPLOYER = "Employeer"   # spelling matches the stored userType claim and collection
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> 'UserKind':
        for kind in cls:
            if value and kind.value.lower() == str(value).lower():
                return kind
        if value and str(value).lower() == 'employer':
            return cls.EMPLOYER
        return cls.UNKNOWN


UNKNOWN_USER_NAME = 'Unknown User'


class UserIdentity:
    """Tagged identity of a user: who they are and which category they belong to."""

    def __init__(self, user_id: str, kind: UserKind, display_name: Optional[str] = None):
        self.user_id = user_id
        self.kind = kind
        self.display_name = display_name

    @classmethod
    def unknown(cls, user_id: str) -> 'UserIdentity':
        return cls(user_id, UserKind.UNKNOWN, UNKNOWN_USER_NAME)

    @property
    def is_known(self) -> bool:
        return self.kind != UserKind.UNKNOWN

    def __eq__(self, other):
        if not isinstance(other, UserIdentity):
            return NotImplemented
        return (self.user_id, self.kind, self.display_name) == (other.user_id, other.kind, other.display_name)

    def __repr__(self):
        return f"UserIdentity(user_id={self.user_id!r}, kind={self.kind.value!r}, display_name={self.display_name!r})"


class ConnectionSession:
    """State bound to one authenticated live connection for its lifetime."""

    def __init__(self, sid: str, user_id: str, user_kind: UserKind = UserKind.UNKNOWN,
                 connected_at: Optional[datetime] = None):
        self.sid = sid
        self.user_id = user_id
        self.user_kind = user_kind
        self.connected_at = connected_at

    def __repr__(self):
        return f"ConnectionSession(sid={self.sid!r}, user_id={self.user_id!r})"


class Message:
    """Message document structure.

    The body is stored under the ``message`` field and user ids as ObjectId,
    matching documents written by the REST API before the real-time layer
    existed. ``from_doc`` turns ids back into strings.
    """

    def __init__(
        self,
        sender_id: str,
        receiver_id: str,
        body: str,
        message_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
        read: bool = False
    ):
        self.message_id = message_id
        self.sender_id = sender_id
        self.receiver_id = receiver_id
        self.body = body
        self.created_at = created_at
        self.read = read

    def partner_of(self, user_id: str) -> str:
        """Return the other participant of this message from user_id's point of view."""
        return self.receiver_id if self.sender_id == user_id else self.sender_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            '_id': self.message_id,
            'senderId': self.sender_id,
            'receiverId': self.receiver_id,
            'message': self.body,
            'createdAt': to_iso(self.created_at),
            'read': self.read
        }

    def to_db_doc(self) -> Dict[str, Any]:
        doc = {
            'senderId': id_query_value(self.sender_id),
            'receiverId': id_query_value(self.receiver_id),
            'message': self.body,
            'createdAt': self.created_at,
            'read': self.read
        }
        if self.message_id:
            doc['_id'] = ObjectId(self.message_id) if ObjectId.is_valid(self.message_id) else self.message_id
        return doc

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> 'Message':
        return cls(
            message_id=str(doc.get('_id')) if doc.get('_id') is not None else None,
            sender_id=str(doc.get('senderId')),
            receiver_id=str(doc.get('receiverId')),
            body=doc.get('message', ''),
            created_at=doc.get('createdAt'),
            read=bool(doc.get('read', False))
        )

    def __repr__(self):
        return f"Message(id={self.message_id!r}, {self.sender_id!r}->{self.receiver_id!r}, read={self.read})"


class Conversation:
    """Per-partner conversation summary. Derived on every read, never stored."""

    def __init__(
        self,
        partner_id: str,
        partner_name: str,
        partner_type: UserKind,
        last_message: Optional[str] = None,
        last_message_at: Optional[datetime] = None,
        unread_count: int = 0
    ):
        self.partner_id = partner_id
        self.partner_name = partner_name
        self.partner_type = partner_type
        self.last_message = last_message
        self.last_message_at = last_message_at
        self.unread_count = unread_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            'partnerId': self.partner_id,
            'partnerName': self.partner_name,
            'partnerType': self.partner_type.value,
            'lastMessage': self.last_message or '',
            'lastMessageAt': to_iso(self.last_message_at),
            'unreadCount': self.unread_count
        }
