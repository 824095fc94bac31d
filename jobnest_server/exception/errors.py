"""Messaging error taxonomy.

Every error carries the HTTP status the REST layer answers with; the
Socket.IO layer forwards ``str(error)`` in a ``messageError`` event.
"""


class MessagingError(Exception):
    """Base class for errors surfaced to the originating client."""
    status = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class AuthenticationFailure(MessagingError):
    """Raised when authentication fails due to invalid, expired, or malformed token."""
    status = 401


class ValidationFailure(MessagingError):
    """Raised when a send request is rejected before persistence."""
    status = 400


class EmptyMessage(ValidationFailure):
    def __init__(self, message='Message cannot be empty'):
        super().__init__(message)


class MissingReceiver(ValidationFailure):
    def __init__(self, message='Receiver ID is required'):
        super().__init__(message)


class PersistenceFailure(MessagingError):
    """Raised when the message store is unreachable or rejects a write."""
    status = 503

    def __init__(self, message='Could not connect to database', cause=None):
        super().__init__(message)
        self.cause = cause
