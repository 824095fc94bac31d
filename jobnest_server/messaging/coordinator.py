"""Delivery coordinator: the send / typing / read-receipt protocol.

Data consistency:
- A message is stored before anything is emitted about it
- The sender's confirmation carries the stored message (id and timestamp)
- The receiver gets a live push only if the presence registry has a
  connection for them; otherwise they see the message on their next
  history or conversation load. Live pushes are never queued or retried
- Typing indicators are never stored and are dropped for offline receivers
"""
import logging
from typing import Optional

from jobnest_server.exception.errors import (
    MessagingError, EmptyMessage, MissingReceiver, ValidationFailure
)
from jobnest_server.messaging.commands import (
    SendMessage, Typing, StopTyping, MarkAsRead, GoOnline
)
from jobnest_server.messaging.models import ConnectionSession, Message
from jobnest_server.websocket.event_emitter import EventEmitter

logger = logging.getLogger(__name__)


class DeliveryCoordinator:
    """Turns send requests into stored messages plus best-effort live delivery."""

    def __init__(self, store, presence, emitter: EventEmitter):
        self.store = store
        self.presence = presence
        self.emitter = emitter
        self._handlers = {
            SendMessage: self._handle_send,
            Typing: self._handle_typing,
            StopTyping: self._handle_stop_typing,
            MarkAsRead: self._handle_mark_as_read,
            GoOnline: self._handle_go_online,
        }

    # =========================================================================
    # Command dispatch (live transport entry point)
    # =========================================================================

    def dispatch(self, session: ConnectionSession, command):
        """Run one inbound command for a connection.

        Messaging errors are reported to the originating connection as
        ``messageError`` and never broadcast.
        """
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unsupported command: {command!r}")
        try:
            return handler(session, command)
        except MessagingError as e:
            logger.warning(f"{type(command).__name__} from user={session.user_id} failed: {e}")
            self.report_error(session.sid, str(e))
            return None

    def report_error(self, handle: str, error: str) -> bool:
        return self.emitter.emit_to_connection(handle, EventEmitter.MESSAGE_ERROR, {
            'success': False,
            'error': error
        })

    def _handle_send(self, session: ConnectionSession, command: SendMessage) -> Message:
        return self.send_message(session.user_id, command.receiver_id, command.body, origin_handle=session.sid)

    def _handle_typing(self, session: ConnectionSession, command: Typing) -> bool:
        return self.typing(session.user_id, command.receiver_id)

    def _handle_stop_typing(self, session: ConnectionSession, command: StopTyping) -> bool:
        return self.stop_typing(session.user_id, command.receiver_id)

    def _handle_mark_as_read(self, session: ConnectionSession, command: MarkAsRead) -> int:
        return self.mark_as_read(session.user_id, command.partner_id)

    def _handle_go_online(self, session: ConnectionSession, command: GoOnline) -> bool:
        return self.announce_online(session.user_id, session.sid)

    # =========================================================================
    # Send
    # =========================================================================

    @staticmethod
    def validate_send(receiver_id: Optional[str], body: Optional[str]) -> str:
        """Return the trimmed body or raise MissingReceiver / EmptyMessage."""
        if not receiver_id or not str(receiver_id).strip():
            raise MissingReceiver()
        if body is None or not isinstance(body, str) or not body.strip():
            raise EmptyMessage()
        return body.strip()

    def send_message(
        self,
        sender_id: str,
        receiver_id: Optional[str],
        body: Optional[str],
        origin_handle: Optional[str] = None
    ) -> Message:
        """Validate, persist, acknowledge the sender, then push to the receiver if online.

        Raises ValidationFailure or PersistenceFailure; in both cases nothing
        has been emitted. Once the store write returns the send has succeeded
        regardless of what happens to the live pushes.
        """
        text = self.validate_send(receiver_id, body)
        receiver_id = str(receiver_id).strip()

        message = self.store.create(sender_id, receiver_id, text)
        payload = message.to_dict()
        logger.info(f"Message {message.message_id} stored {sender_id} -> {receiver_id}")

        if origin_handle:
            self.emitter.emit_to_connection(origin_handle, EventEmitter.MESSAGE_SENT, {
                'success': True,
                'message': payload
            })

        self.deliver(receiver_id, EventEmitter.NEW_MESSAGE, {
            'message': payload,
            'senderId': sender_id
        })
        return message

    def deliver(self, user_id: str, event: str, data: dict) -> bool:
        """Push an event to user_id's live connection, if they have one.

        Returns False on a delivery miss (offline, or the handle turned out
        to be stale); the caller's operation is unaffected either way.
        """
        handle = self.presence.lookup(user_id)
        if handle is None:
            logger.debug(f"Delivery miss: user={user_id} offline, {event} not pushed")
            return False
        if not self.emitter.emit_to_connection(handle, event, data):
            logger.warning(f"Delivery miss: {event} to user={user_id} via stale handle {handle}")
            return False
        return True

    # =========================================================================
    # Typing indicators
    # =========================================================================

    def typing(self, sender_id: str, receiver_id: Optional[str]) -> bool:
        if not receiver_id:
            return False
        return self.deliver(receiver_id, EventEmitter.USER_TYPING, {'senderId': sender_id})

    def stop_typing(self, sender_id: str, receiver_id: Optional[str]) -> bool:
        if not receiver_id:
            return False
        return self.deliver(receiver_id, EventEmitter.USER_STOPPED_TYPING, {'senderId': sender_id})

    # =========================================================================
    # Read receipts
    # =========================================================================

    def mark_as_read(self, reader_id: str, partner_id: Optional[str]) -> int:
        """Mark everything partner_id sent to reader_id as read and tell the partner.

        Idempotent: with nothing left unread it flips zero messages. The
        partner is notified on every call so a reconnecting client can
        resynchronise its read state.
        """
        if not partner_id:
            raise ValidationFailure('Partner ID is required')
        count = self.store.mark_read(partner_id, reader_id)
        logger.debug(f"user={reader_id} read {count} message(s) from {partner_id}")
        self.deliver(partner_id, EventEmitter.MESSAGES_READ, {'readBy': reader_id})
        return count

    # =========================================================================
    # Presence announcements
    # =========================================================================

    def announce_online(self, user_id: str, handle: Optional[str] = None) -> bool:
        return self.emitter.broadcast(EventEmitter.USER_ONLINE, {'userId': user_id}, skip_handle=handle)

    def announce_offline(self, user_id: str, handle: Optional[str] = None) -> bool:
        return self.emitter.broadcast(EventEmitter.USER_OFFLINE, {'userId': user_id}, skip_handle=handle)
