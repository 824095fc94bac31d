"""
Tests for JWT verification used by both the REST layer and the handshake.
"""

from datetime import timedelta
from types import SimpleNamespace

import pytest
from jose import jwt

from jobnest_server.exception.errors import AuthenticationFailure
from jobnest_server.messaging.models import UserKind
from jobnest_server.security.authentication import (
    AuthSecurity, EXPIRED_TOKEN, BAD_SIGNATURE, MALFORMED_TOKEN, bearer_token, get_auth_identity
)


class TestVerify:
    def test_valid_token_yields_identity(self, make_token):
        identity = AuthSecurity.verify(make_token("u1", "Employeer"))
        assert identity.user_id == "u1"
        assert identity.kind == UserKind.EMPLOYER

    def test_unrecognised_user_type_is_unknown(self, make_token):
        identity = AuthSecurity.verify(make_token("u1", "Admin"))
        assert identity.kind == UserKind.UNKNOWN

    def test_expired_token(self, make_token):
        token = make_token("u1", expires_delta=timedelta(seconds=-10))
        with pytest.raises(AuthenticationFailure, match=EXPIRED_TOKEN):
            AuthSecurity.verify(token)

    def test_wrong_secret(self):
        token = jwt.encode({"_id": "u1", "userType": "Jobseeker"}, "other-secret", algorithm="HS256")
        with pytest.raises(AuthenticationFailure) as exc_info:
            AuthSecurity.verify(token)
        assert exc_info.value.message == BAD_SIGNATURE
        assert exc_info.value.status == 401

    def test_malformed_token(self):
        with pytest.raises(AuthenticationFailure, match="Malformed"):
            AuthSecurity.verify("not-a-jwt")

    def test_token_without_user_id(self):
        token = AuthSecurity.encode_token({"userType": "Jobseeker"})
        with pytest.raises(AuthenticationFailure, match="does not identify a user"):
            AuthSecurity.verify(token)

    def test_unconfigured_secret_rejects(self, make_token):
        token = make_token("u1")
        AuthSecurity.secret_key = None
        with pytest.raises(AuthenticationFailure, match="not configured"):
            AuthSecurity.verify(token)


class TestBearerToken:
    def test_extracts_token(self):
        assert bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"

    @pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer", "Bearer a b"])
    def test_rejects_other_formats(self, header):
        assert bearer_token(header) is None


class TestGetAuthIdentity:
    def test_missing_header(self):
        request = SimpleNamespace(headers={})
        with pytest.raises(AuthenticationFailure, match="Authorization header missing"):
            get_auth_identity(request)

    def test_bad_format(self):
        request = SimpleNamespace(headers={"Authorization": "Basic xyz"})
        with pytest.raises(AuthenticationFailure, match="Invalid authorization format"):
            get_auth_identity(request)

    def test_valid_header(self, make_token):
        request = SimpleNamespace(headers={"Authorization": f"Bearer {make_token('u9')}"})
        assert get_auth_identity(request).user_id == "u9"


def test_malformed_message_constant_is_reused():
    with pytest.raises(AuthenticationFailure) as exc_info:
        AuthSecurity.decode_token("a.b")
    assert exc_info.value.message == MALFORMED_TOKEN
