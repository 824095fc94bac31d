"""WebSocket module for real-time messaging.

This module provides:
- EventEmitter: server -> client events over Flask-SocketIO
- ConnectionGateway (gateway.py): handshake auth, presence and event routing
"""

from jobnest_server.websocket.event_emitter import EventEmitter

__all__ = ['EventEmitter']
