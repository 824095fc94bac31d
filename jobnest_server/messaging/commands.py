"""Inbound live-transport commands.

Each client -> server Socket.IO event is parsed into one of these types and
handed to ``DeliveryCoordinator.dispatch``. Keeping the payload shape here
lets the coordinator be exercised without a socket.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from jobnest_server.exception.errors import ValidationFailure


@dataclass(frozen=True)
class SendMessage:
    receiver_id: Optional[str]
    body: Optional[str]


@dataclass(frozen=True)
class Typing:
    receiver_id: Optional[str]


@dataclass(frozen=True)
class StopTyping:
    receiver_id: Optional[str]


@dataclass(frozen=True)
class MarkAsRead:
    partner_id: Optional[str]


@dataclass(frozen=True)
class GoOnline:
    pass


def _str_or_none(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_send(data: Dict[str, Any]) -> SendMessage:
    body = data.get('message')
    if body is None:
        body = data.get('body')
    if body is not None and not isinstance(body, str):
        raise ValidationFailure('Message must be text')
    return SendMessage(receiver_id=_str_or_none(data.get('receiverId')), body=body)


COMMAND_PARSERS = {
    'sendMessage': _parse_send,
    'typing': lambda data: Typing(receiver_id=_str_or_none(data.get('receiverId'))),
    'stopTyping': lambda data: StopTyping(receiver_id=_str_or_none(data.get('receiverId'))),
    'markAsRead': lambda data: MarkAsRead(partner_id=_str_or_none(data.get('partnerId'))),
    'goOnline': lambda data: GoOnline(),
}


def parse_command(event: str, data: Any):
    """Build the command for a client event. Raises ValidationFailure for bad payloads."""
    parser = COMMAND_PARSERS.get(event)
    if parser is None:
        raise ValidationFailure(f'Unknown event: {event}')
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationFailure(f'{event} payload must be an object')
    return parser(data)
