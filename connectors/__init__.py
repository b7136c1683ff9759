"""
GitHub connector for retrieving repository issue history.

Issue pages are fetched through PyGithub; aggregate counts come from the
GitHub GraphQL API.
"""

from .exceptions import (APIException, AuthenticationException,
                         ConnectorException, NotFoundException,
                         RateLimitException)
from .github import GitHubIssuesConnector, is_pull_request
from .models import Issue, IssueCounts

__all__ = [
    # Connectors
    "GitHubIssuesConnector",
    "is_pull_request",
    # Models
    "Issue",
    "IssueCounts",
    # Exceptions
    "ConnectorException",
    "RateLimitException",
    "AuthenticationException",
    "NotFoundException",
    "APIException",
]
