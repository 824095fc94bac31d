"""Event emitter for the live messaging transport.

Wraps a Flask-SocketIO instance so the delivery coordinator only deals with
connection handles (Socket.IO session ids) and event names. Emit errors are
caught here and reported as a False return; a failed live push never fails
the operation that triggered it.

Usage:
    emitter = EventEmitter(socketio)
    emitter.emit_to_connection(sid, EventEmitter.NEW_MESSAGE, payload)
    emitter.broadcast(EventEmitter.USER_ONLINE, {'userId': user_id}, skip_handle=sid)
"""
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class EventEmitter:
    """Server -> client event emitter."""

    # =========================================================================
    # Event Type Constants
    # =========================================================================

    # Message Events
    MESSAGE_SENT = 'messageSent'
    NEW_MESSAGE = 'newMessage'
    MESSAGE_ERROR = 'messageError'
    MESSAGES_READ = 'messagesRead'

    # Typing Events
    USER_TYPING = 'userTyping'
    USER_STOPPED_TYPING = 'userStoppedTyping'

    # Presence Events
    USER_ONLINE = 'userOnline'
    USER_OFFLINE = 'userOffline'

    def __init__(self, socketio=None):
        self.socketio = socketio

    def init_socketio(self, socketio):
        """Attach the Socket.IO instance once the app is wired."""
        self.socketio = socketio
        logger.debug("EVENT_EMITTER: initialized with Socket.IO instance")

    # =========================================================================
    # Emit Methods
    # =========================================================================

    def emit_to_connection(self, handle: str, event: str, data: Dict[str, Any]) -> bool:
        """Emit event to a single connection.

        Returns:
            True if the event was handed to the transport
        """
        if not self.socketio:
            logger.error(f"EVENT_EMITTER: Socket.IO NOT initialized, cannot emit {event} to {handle}")
            return False
        try:
            self.socketio.emit(event, data, to=handle)
            logger.debug(f"EVENT_EMITTER: Emitted '{event}' to socket {handle}")
            return True
        except Exception as e:
            logger.error(f"EVENT_EMITTER: Error emitting {event} to socket {handle}: {e}")
            return False

    def broadcast(self, event: str, data: Dict[str, Any], skip_handle: Optional[str] = None) -> bool:
        """Broadcast event to every connected client, optionally skipping one connection."""
        if not self.socketio:
            logger.warning(f"Socket.IO not initialized, cannot broadcast {event}")
            return False
        try:
            self.socketio.emit(event, data, skip_sid=skip_handle)
            logger.debug(f"Broadcast {event} to all clients")
            return True
        except Exception as e:
            logger.error(f"Error broadcasting {event}: {e}")
            return False
