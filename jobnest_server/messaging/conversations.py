"""Conversation aggregation over the message store.

There is no conversations collection: the list a user sees is rebuilt from
their messages on every request.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from jobnest_server.messaging.models import Conversation, Message

logger = logging.getLogger(__name__)


class ConversationAggregator:
    """Answers "who have I talked to, what did they last say, how many are unread"."""

    def __init__(self, store, users):
        self.store = store
        self.users = users

    def list_conversations(self, user_id: str) -> List[Conversation]:
        """One entry per partner, most recently active first.

        Messages come back newest first, so the first message seen for a
        partner is the last one exchanged with them.
        """
        messages = self.store.find_involving(user_id)

        latest: Dict[str, Message] = {}
        for msg in messages:
            partner_id = msg.partner_of(user_id)
            if partner_id == user_id:
                continue
            if partner_id not in latest:
                latest[partner_id] = msg

        conversations = []
        for partner_id, last in latest.items():
            partner = self.users.resolve(partner_id)
            conversations.append(Conversation(
                partner_id=partner_id,
                partner_name=partner.display_name,
                partner_type=partner.kind,
                last_message=last.body,
                last_message_at=last.created_at,
                unread_count=self.store.count_unread(partner_id, user_id)
            ))

        conversations.sort(key=lambda c: c.last_message_at or datetime.min, reverse=True)
        logger.debug(f"user={user_id} has {len(conversations)} conversation(s)")
        return conversations

    def get_history(
        self,
        user_a: str,
        user_b: str,
        limit: Optional[int] = None,
        before: Optional[datetime] = None
    ) -> List[Message]:
        """Messages between two users, oldest first. Full history unless limit is given."""
        return self.store.find_between(user_a, user_b, limit=limit, before=before)
