from datetime import datetime

from bson import ObjectId
from flask import jsonify

from jobnest_server.utils.time_utils import to_iso


def respond_error(message_or_dict, status=400):
    """Return a standardized error response."""
    if isinstance(message_or_dict, dict):
        body = {'success': False, 'errors': message_or_dict}
    else:
        body = {'success': False, 'error': message_or_dict}
    return jsonify(body), status


def respond_success(payload=None, status=200):
    if payload is None:
        payload = {}
    body = {'success': True}
    if isinstance(payload, dict):
        body.update(payload)
    else:
        body['data'] = payload
    return jsonify(body), status


def normalize_doc(obj):
    """Recursively convert BSON types (ObjectId) and datetimes to JSON-serializable values.

    - ObjectId -> str(ObjectId)
    - datetime -> ISO string
    - recursively handles dicts and lists
    Returns a new object (does not mutate input).
    """
    if obj is None:
        return None
    if isinstance(obj, dict):
        return {k: normalize_doc(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [normalize_doc(v) for v in obj]
    if isinstance(obj, ObjectId):
        return str(obj)
    if isinstance(obj, datetime):
        return to_iso(obj)
    return obj


def parse_limit(value, default=None, max_limit=500):
    """Parse an optional positive ``limit`` query argument.

    Returns (limit, error); error is a message when the value is invalid.
    """
    if value in (None, ''):
        return default, None
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return None, 'limit must be an integer'
    if limit < 1 or limit > max_limit:
        return None, f'limit must be between 1 and {max_limit}'
    return limit, None


def id_query_value(user_id):
    """Users are keyed by ObjectId; fall back to the raw value for other ids."""
    if isinstance(user_id, str) and ObjectId.is_valid(user_id):
        return ObjectId(user_id)
    return user_id


def id_match(user_id):
    """Query value matching a user id stored either as ObjectId or as its string form."""
    value = id_query_value(user_id)
    if isinstance(value, ObjectId):
        return {'$in': [value, user_id]}
    return value
