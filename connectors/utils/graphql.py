"""
GitHub GraphQL API helper.

Used for queries the REST issue listing cannot answer cheaply, such as the
total number of open and closed issues in a repository.
"""

import logging
from typing import Any, Dict, Optional

import requests

from connectors.exceptions import (APIException, AuthenticationException,
                                   RateLimitException)

logger = logging.getLogger(__name__)

ISSUE_COUNTS_QUERY = """
query ($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    totalOpened: issues(states: OPEN) {
      count: totalCount
    }
    totalClosed: issues(states: CLOSED) {
      count: totalCount
    }
  }
}
"""


class GitHubGraphQLClient:
    """
    Minimal GitHub GraphQL client.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = "https://api.github.com/graphql",
        timeout: int = 30,
    ):
        """
        Initialize GraphQL client.

        :param token: GitHub token. Anonymous GraphQL calls are rejected by GitHub.
        :param api_url: GraphQL endpoint URL.
        :param timeout: Request timeout in seconds.
        """
        self.api_url = api_url
        self.timeout = timeout
        self.headers = {"Accept": "application/vnd.github+json"}

        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    def query(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Execute a GraphQL query.

        :param query: GraphQL document.
        :param variables: Optional query variables.
        :return: The ``data`` member of the response.
        :raises AuthenticationException: If authentication fails.
        :raises RateLimitException: If rate limit is exceeded.
        :raises APIException: If the API returns an error.
        """
        try:
            response = requests.post(
                self.api_url,
                json={"query": query, "variables": variables or {}},
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            raise APIException("Request timeout")
        except requests.exceptions.RequestException as e:
            raise APIException(f"Request failed: {e}")

        if response.status_code == 401:
            raise AuthenticationException("Authentication failed")
        elif response.status_code in (403, 429) and (
            response.headers.get("X-RateLimit-Remaining") == "0"
            or response.status_code == 429
        ):
            raise RateLimitException("API rate limit exceeded")
        elif response.status_code != 200:
            raise APIException(f"API error: {response.status_code} - {response.text}")

        try:
            payload = response.json()
        except ValueError as e:
            raise APIException(f"Malformed GraphQL response: {e}")

        errors = payload.get("errors")
        if errors:
            messages = "; ".join(str(err.get("message", err)) for err in errors)
            raise APIException(f"GraphQL error: {messages}")

        data = payload.get("data")
        if data is None:
            raise APIException("GraphQL response has no data")
        return data

    def get_issue_counts(self, owner: str, repo: str) -> Dict[str, Any]:
        """
        Query open and closed issue totals for a repository.

        :param owner: Repository owner.
        :param repo: Repository name.
        :return: Raw ``repository`` object from the response.
        """
        logger.debug(f"Querying issue counts for {owner}/{repo}")
        data = self.query(ISSUE_COUNTS_QUERY, {"owner": owner, "name": repo})
        repository = data.get("repository")
        if repository is None:
            raise APIException(f"Repository not found: {owner}/{repo}")
        return repository
