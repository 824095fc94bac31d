"""JWT credential verification shared by the REST layer and the Socket.IO handshake.

Tokens are issued by the auth service (out of scope here) with the claims
``_id`` (user id) and ``userType`` (``Jobseeker`` or ``Employeer``).
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from jose.exceptions import ExpiredSignatureError

from jobnest_server.exception.errors import AuthenticationFailure
from jobnest_server.messaging.models import UserIdentity, UserKind

MALFORMED_TOKEN = "Malformed or missing token. Please provide a valid JWT token in the Authorization header."
EXPIRED_TOKEN = "Token expired. Please login again or refresh your session."
BAD_SIGNATURE = "Invalid token signature. Please login again or contact support if the problem persists."


class AuthSecurity:
    secret_key = None
    algorithm = 'HS256'
    # Matches the 10h expiry of the issuing service
    access_token_expire_minutes = 10 * 60

    @classmethod
    def configure(cls, secret_key, algorithm='HS256', access_token_expire_minutes=10 * 60):
        cls.secret_key = secret_key
        cls.algorithm = algorithm
        cls.access_token_expire_minutes = access_token_expire_minutes

    @classmethod
    def encode_token(cls, data: dict, expires_delta: timedelta = None) -> str:
        if not cls.secret_key:
            raise RuntimeError('AuthSecurity is not configured with a secret key')
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=cls.access_token_expire_minutes))
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, cls.secret_key, algorithm=cls.algorithm)

    @classmethod
    def decode_token(cls, token: str) -> dict:
        # Check for well-formed JWT (should have 2 dots)
        if not token or not isinstance(token, str) or token.count('.') != 2:
            raise AuthenticationFailure(MALFORMED_TOKEN)
        if not cls.secret_key:
            raise AuthenticationFailure("Authentication is not configured on this server.")
        try:
            return jwt.decode(token, cls.secret_key, algorithms=[cls.algorithm])
        except ExpiredSignatureError:
            raise AuthenticationFailure(EXPIRED_TOKEN)
        except JWTError as e:
            msg = str(e)
            if 'Not enough segments' in msg or 'Invalid header string' in msg:
                raise AuthenticationFailure(MALFORMED_TOKEN)
            if 'Signature verification failed' in msg:
                raise AuthenticationFailure(BAD_SIGNATURE)
            raise AuthenticationFailure(f"Invalid token: {msg}. Please check your authentication and try again.")

    @classmethod
    def verify(cls, token: str) -> UserIdentity:
        """Decode token into the caller's identity. Raises AuthenticationFailure."""
        payload = cls.decode_token(token)
        user_id = payload.get('_id') or payload.get('sub')
        if not user_id:
            raise AuthenticationFailure("Token does not identify a user.")
        return UserIdentity(str(user_id), UserKind.parse(payload.get('userType')))


def bearer_token(header_value: Optional[str]) -> Optional[str]:
    """Return the token part of an ``Authorization: Bearer <token>`` header, or None."""
    if not header_value:
        return None
    parts = header_value.split(' ')
    if len(parts) != 2 or parts[0] != 'Bearer':
        return None
    return parts[1]


def get_auth_identity(request) -> UserIdentity:
    """Extract and verify the Bearer token of a Flask request.

    Raises AuthenticationFailure if missing or invalid.
    """
    auth_header = request.headers.get('Authorization')
    if not auth_header:
        raise AuthenticationFailure('Authorization header missing')
    token = bearer_token(auth_header)
    if not token:
        raise AuthenticationFailure('Invalid authorization format')
    return AuthSecurity.verify(token)
