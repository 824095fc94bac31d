"""Messaging REST API routes.

These endpoints hydrate the UI on page load and act as the fallback path
when the client has no live Socket.IO connection. Sends and read receipts
made here go through the same delivery coordinator as the socket events,
so an online partner still gets the live push.

REST API Endpoints:
- GET  /api/v1/messages/conversations - Conversation list with unread counts
- GET  /api/v1/messages/conversation/<partner_id> - Message history (oldest first)
- POST /api/v1/messages/send - Send a message {receiverId, message}
- PUT  /api/v1/messages/read/<partner_id> - Mark partner's messages as read
- GET  /api/v1/messages/users - Users the caller can start a conversation with
- GET  /api/v1/messages/online - Ids of users with a live connection
"""
import logging

from flask import Blueprint, request

from jobnest_server.messaging.service import get_messaging_service
from jobnest_server.utils.decorators import protected_route
from jobnest_server.utils.helpers import respond_success, respond_error, parse_limit
from jobnest_server.utils.time_utils import parse_iso

logger = logging.getLogger(__name__)

messages_bp = Blueprint('messages', __name__, url_prefix='/api/v1/messages')


@messages_bp.route('/conversations', methods=['GET'])
@protected_route
def list_conversations(identity):
    """List the caller's conversations, most recent first.

    Response:
        {
            "conversations": [
                {"partnerId", "partnerName", "partnerType",
                 "lastMessage", "lastMessageAt", "unreadCount"}
            ],
            "unreadTotal": 3
        }
    """
    service = get_messaging_service()
    conversations = service.conversations.list_conversations(identity.user_id)
    return respond_success({
        'conversations': [c.to_dict() for c in conversations],
        'unreadTotal': sum(c.unread_count for c in conversations)
    })


@messages_bp.route('/conversation/<partner_id>', methods=['GET'])
@protected_route
def get_conversation(identity, partner_id):
    """Message history with one partner, oldest first.

    Query Params:
        limit: int - Only the newest N messages (default: full history)
        before: str - ISO timestamp; only messages older than this
    """
    limit, error = parse_limit(request.args.get('limit'))
    if error:
        return respond_error(error, status=400)
    before = parse_iso(request.args.get('before'))
    if request.args.get('before') and before is None:
        return respond_error('before must be an ISO-8601 timestamp', status=400)

    service = get_messaging_service()
    messages = service.conversations.get_history(identity.user_id, partner_id, limit=limit, before=before)
    return respond_success({'messages': [m.to_dict() for m in messages]})


@messages_bp.route('/send', methods=['POST'])
@protected_route
def send_message(identity):
    """Send a message.

    Body:
        receiverId: str - Recipient user id
        message: str - Message text (``body`` is accepted as an alias)
    """
    data = request.get_json(silent=True) or {}
    body = data.get('message')
    if body is None:
        body = data.get('body')

    service = get_messaging_service()
    message = service.coordinator.send_message(identity.user_id, data.get('receiverId'), body)
    return respond_success({'message': message.to_dict()}, status=201)


@messages_bp.route('/read/<partner_id>', methods=['PUT'])
@protected_route
def mark_as_read(identity, partner_id):
    service = get_messaging_service()
    count = service.coordinator.mark_as_read(identity.user_id, partner_id)
    return respond_success({'message': 'Messages marked as read', 'count': count})


@messages_bp.route('/users', methods=['GET'])
@protected_route
def connectable_users(identity):
    service = get_messaging_service()
    users = service.users.connectable_users(identity.user_id, identity.kind)
    return respond_success({'users': users})


@messages_bp.route('/online', methods=['GET'])
@protected_route
def online_users(identity):
    service = get_messaging_service()
    return respond_success({'online': sorted(service.presence.list_online())})
