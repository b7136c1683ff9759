"""
Exception types raised by the issue tracker connectors.
"""


class ConnectorException(Exception):
    """Base exception for all connector errors."""

    pass


class RateLimitException(ConnectorException):
    """Raised when the tracker rejects a request for rate limiting."""

    pass


class AuthenticationException(ConnectorException):
    """Raised when the tracker rejects the configured token."""

    pass


class NotFoundException(ConnectorException):
    """Raised when the requested repository does not exist or is hidden."""

    pass


class APIException(ConnectorException):
    """Raised when the tracker returns an error or an unreadable response."""

    pass
