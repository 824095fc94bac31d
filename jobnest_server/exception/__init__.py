from jobnest_server.exception.errors import (
    MessagingError, AuthenticationFailure, ValidationFailure,
    EmptyMessage, MissingReceiver, PersistenceFailure
)

__all__ = [
    'MessagingError', 'AuthenticationFailure',
    'ValidationFailure', 'EmptyMessage', 'MissingReceiver', 'PersistenceFailure'
]
