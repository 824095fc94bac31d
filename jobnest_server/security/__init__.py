from jobnest_server.security.authentication import AuthSecurity, bearer_token, get_auth_identity

__all__ = ['AuthSecurity', 'bearer_token', 'get_auth_identity']
