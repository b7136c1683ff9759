"""
Tests for the GitHub GraphQL client.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from connectors.exceptions import (
    APIException,
    AuthenticationException,
    RateLimitException,
)
from connectors.utils.graphql import ISSUE_COUNTS_QUERY, GitHubGraphQLClient


def _response(status_code=200, payload=None, headers=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.headers = headers or {}
    response.text = text
    response.json.return_value = payload
    return response


@pytest.fixture
def mock_post():
    with patch("connectors.utils.graphql.requests.post") as post:
        yield post


class TestGitHubGraphQLClient:
    def test_sends_bearer_token_and_variables(self, mock_post):
        mock_post.return_value = _response(
            payload={
                "data": {
                    "repository": {
                        "totalOpened": {"count": 1},
                        "totalClosed": {"count": 2},
                    }
                }
            }
        )
        client = GitHubGraphQLClient("test_token")

        repository = client.get_issue_counts("vercel", "next.js")

        assert repository["totalClosed"]["count"] == 2
        args, kwargs = mock_post.call_args
        assert args[0] == "https://api.github.com/graphql"
        assert kwargs["headers"]["Authorization"] == "Bearer test_token"
        assert kwargs["json"]["query"] == ISSUE_COUNTS_QUERY
        assert kwargs["json"]["variables"] == {"owner": "vercel", "name": "next.js"}

    def test_graphql_errors_raise(self, mock_post):
        mock_post.return_value = _response(
            payload={"data": None, "errors": [{"message": "Something broke"}]}
        )
        client = GitHubGraphQLClient("test_token")

        with pytest.raises(APIException, match="Something broke"):
            client.query("query { viewer { login } }")

    def test_missing_repository_raises(self, mock_post):
        mock_post.return_value = _response(payload={"data": {"repository": None}})
        client = GitHubGraphQLClient("test_token")

        with pytest.raises(APIException, match="Repository not found"):
            client.get_issue_counts("vercel", "missing")

    def test_unauthorized(self, mock_post):
        mock_post.return_value = _response(status_code=401)
        client = GitHubGraphQLClient("bad")

        with pytest.raises(AuthenticationException):
            client.query("query { viewer { login } }")

    def test_rate_limited(self, mock_post):
        mock_post.return_value = _response(
            status_code=403, headers={"X-RateLimit-Remaining": "0"}
        )
        client = GitHubGraphQLClient("test_token")

        with pytest.raises(RateLimitException):
            client.query("query { viewer { login } }")

    def test_server_error(self, mock_post):
        mock_post.return_value = _response(status_code=502, text="Bad Gateway")
        client = GitHubGraphQLClient("test_token")

        with pytest.raises(APIException, match="502"):
            client.query("query { viewer { login } }")

    def test_network_failure(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError("boom")
        client = GitHubGraphQLClient("test_token")

        with pytest.raises(APIException, match="Request failed"):
            client.query("query { viewer { login } }")

    def test_malformed_json(self, mock_post):
        response = _response()
        response.json.side_effect = ValueError("not json")
        mock_post.return_value = response
        client = GitHubGraphQLClient("test_token")

        with pytest.raises(APIException, match="Malformed"):
            client.query("query { viewer { login } }")
