"""Socket.IO connection gateway for direct messaging.

Authenticates each connection at handshake time, binds it to a user for its
lifetime and routes its events to the delivery coordinator.

Connection Events:
- connect: verify token, register presence, join the per-user room,
  broadcast userOnline
- disconnect: drop presence (once per connection), broadcast userOffline

Client Events (one command type each):
- sendMessage -> messageSent (sender), newMessage (receiver, if online)
- typing / stopTyping -> userTyping / userStoppedTyping (receiver, if online)
- markAsRead -> messagesRead (partner, if online)
- goOnline -> userOnline (everyone else)
"""
import logging
import threading
from typing import Dict, Optional

from flask import Flask, request
from flask_socketio import ConnectionRefusedError, SocketIO, join_room

from jobnest_server.exception.errors import AuthenticationFailure, ValidationFailure
from jobnest_server.messaging.commands import COMMAND_PARSERS, parse_command
from jobnest_server.messaging.models import ConnectionSession, UserIdentity
from jobnest_server.security.authentication import AuthSecurity, bearer_token
from jobnest_server.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


class ConnectionGateway:
    """Authenticated connection lifecycle plus event routing."""

    def __init__(self, messaging, verify=AuthSecurity.verify):
        self.messaging = messaging
        self._verify = verify
        self.sessions: Dict[str, ConnectionSession] = {}
        self._lock = threading.Lock()
        self.socketio: Optional[SocketIO] = None

    def init_app(self, app: Flask, socketio: SocketIO):
        """Register the Socket.IO handlers."""
        logger.debug(f"WS_GATEWAY: init app={app.name}, mode={getattr(socketio, 'async_mode', '?')}")
        self.socketio = socketio
        self._register_handlers()

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    def authenticate_connection(self, token: Optional[str]) -> UserIdentity:
        """Verify the handshake credential. Raises AuthenticationFailure."""
        if not token:
            raise AuthenticationFailure('No token provided')
        return self._verify(token)

    def open_session(self, sid: str, identity: UserIdentity) -> ConnectionSession:
        session = ConnectionSession(sid, identity.user_id, identity.kind, connected_at=utc_now())
        with self._lock:
            self.sessions[sid] = session
        self.messaging.presence.register(identity.user_id, sid, identity.kind)
        self.messaging.coordinator.announce_online(identity.user_id, sid)
        logger.info(f"WS connected: user={identity.user_id}, sid={sid}")
        return session

    def close_session(self, sid: str) -> bool:
        """Tear down a connection. Safe to call any number of times; only the first call acts."""
        with self._lock:
            session = self.sessions.pop(sid, None)
        if session is None:
            return False
        if self.messaging.presence.unregister(session.user_id, sid):
            self.messaging.coordinator.announce_offline(session.user_id, sid)
            logger.info(f"WS offline: user={session.user_id}, sid={sid}")
        else:
            logger.debug(f"WS closed superseded session: user={session.user_id}, sid={sid}")
        return True

    def get_session(self, sid: str) -> Optional[ConnectionSession]:
        with self._lock:
            return self.sessions.get(sid)

    def handle_event(self, sid: str, event: str, data=None):
        """Single entry point for every client event on a connection."""
        session = self.get_session(sid)
        if session is None:
            self.messaging.coordinator.report_error(sid, 'Not authenticated')
            return None
        try:
            command = parse_command(event, data)
        except ValidationFailure as e:
            logger.warning(f"WS bad {event} payload from user={session.user_id}: {e}")
            self.messaging.coordinator.report_error(sid, str(e))
            return None
        try:
            return self.messaging.coordinator.dispatch(session, command)
        except Exception as e:
            logger.exception(f"Error handling {event} from user={session.user_id}: {e}")
            self.messaging.coordinator.report_error(sid, 'Server error')
            return None

    # =========================================================================
    # Socket.IO wiring
    # =========================================================================

    @staticmethod
    def _handshake_token(auth) -> Optional[str]:
        """Token from the auth payload, the Authorization header or the query string."""
        token = None
        if auth and isinstance(auth, dict):
            token = auth.get('token')
        if not token:
            token = bearer_token(request.headers.get('Authorization'))
        if not token:
            token = request.args.get('token')
        return token

    def _register_handlers(self):
        @self.socketio.on_error_default
        def default_error_handler(e):
            logger.error(f"WS error: {e}")

        @self.socketio.on('connect')
        def handle_connect(auth=None):
            sid = request.sid
            try:
                identity = self.authenticate_connection(self._handshake_token(auth))
            except AuthenticationFailure as e:
                logger.warning(f"WS auth failed: sid={sid}, reason={e}")
                raise ConnectionRefusedError(f'Authentication error: {e}')

            join_room(identity.user_id)
            self.open_session(sid, identity)
            return True

        @self.socketio.on('disconnect')
        def handle_disconnect(reason=None):
            self.close_session(request.sid)

        for event in COMMAND_PARSERS:
            self.socketio.on_event(event, self._event_handler(event))

    def _event_handler(self, event: str):
        def handler(data=None):
            self.handle_event(request.sid, event, data)
        handler.__name__ = f'handle_{event}'
        return handler
