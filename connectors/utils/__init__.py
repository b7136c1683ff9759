"""
Utility modules for connectors.
"""

from .graphql import GitHubGraphQLClient

__all__ = [
    "GitHubGraphQLClient",
]
