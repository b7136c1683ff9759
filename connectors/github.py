"""
GitHub issue connector using PyGithub and GraphQL.

This connector pages through a repository's issues (pull requests excluded)
and reads the server-side open/closed issue totals.
"""

import logging
import time
from typing import Any, Iterator, List, Optional

from github import Auth, Github, GithubException, RateLimitExceededException

from connectors.exceptions import (
    APIException,
    AuthenticationException,
    ConnectorException,
    NotFoundException,
    RateLimitException,
)
from connectors.models import Issue, IssueCounts
from connectors.utils import GitHubGraphQLClient

logger = logging.getLogger(__name__)

# GitHub caps issue listings at 100 items per page.
MAX_PER_PAGE = 100


def is_pull_request(item: Any) -> bool:
    """
    Return True when an item of the issues listing is a pull request.

    GitHub's issues endpoint returns pull requests too, marked by a
    ``pull_request`` member. For PyGithub objects the payload the page
    already returned is read directly: reading ``.pull_request`` (or
    ``.raw_data``) on a listing item without that key makes PyGithub fetch
    the whole issue again.
    """
    if isinstance(item, dict):
        return bool(item.get("pull_request"))
    raw = getattr(item, "_rawData", None)
    if isinstance(raw, dict):
        return bool(raw.get("pull_request"))
    return getattr(item, "pull_request", None) is not None


class GitHubIssuesConnector:
    """
    GitHub connector for issue history.

    Page requests are issued sequentially and never retried: any failure
    aborts the whole fetch.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        graphql_url: Optional[str] = None,
        per_page: int = MAX_PER_PAGE,
    ):
        """
        Initialize GitHub connector.

        :param token: GitHub personal access token (optional for public repos,
                      required for the GraphQL counts query).
        :param base_url: Optional base URL for GitHub Enterprise.
        :param graphql_url: Optional GraphQL endpoint for GitHub Enterprise.
        :param per_page: Number of items per page (capped at 100).
        """
        self.per_page = min(per_page, MAX_PER_PAGE)

        github_kwargs = {"per_page": self.per_page}
        if token:
            github_kwargs["auth"] = Auth.Token(token)
        if base_url:
            github_kwargs["base_url"] = base_url
        self.github = Github(**github_kwargs)

        if graphql_url is None:
            graphql_url = (
                f"{base_url.rstrip('/')}/graphql"
                if base_url
                else "https://api.github.com/graphql"
            )
        self.graphql = GitHubGraphQLClient(token, api_url=graphql_url)

    @classmethod
    def from_settings(cls, settings) -> "GitHubIssuesConnector":
        """Build a connector from a `settings.Settings` object."""
        return cls(token=settings.github_token, base_url=settings.github_api_url)

    def _handle_github_exception(self, e: Exception) -> None:
        """
        Convert GitHub API exceptions to connector exceptions.

        :param e: Exception from GitHub API.
        :raises: Appropriate connector exception.
        """
        if isinstance(e, ConnectorException):
            raise e
        if isinstance(e, RateLimitExceededException):
            raise RateLimitException(f"GitHub rate limit exceeded: {e}") from e
        elif isinstance(e, GithubException):
            if e.status == 401:
                raise AuthenticationException(
                    f"GitHub authentication failed: {e}"
                ) from e
            elif e.status == 404:
                raise NotFoundException(f"GitHub resource not found: {e}") from e
            else:
                raise APIException(f"GitHub API error: {e}") from e
        else:
            raise APIException(f"Unexpected error: {e}") from e

    def iter_issue_pages(
        self,
        owner: str,
        repo: str,
        max_pages: Optional[int] = None,
    ) -> Iterator[List[Any]]:
        """
        Yield raw pages of the repository's issues listing (state "all").

        Pages are requested one at a time, on demand, with 1-based page
        numbers. The generator ends on the first empty page or after
        ``max_pages`` pages, whichever comes first.

        :param owner: Repository owner.
        :param repo: Repository name.
        :param max_pages: Page-count ceiling. ``None`` or ``0`` means no ceiling.
        :return: Iterator over lists of PyGithub ``Issue`` objects (pull
                 requests included).
        """
        try:
            gh_repo = self.github.get_repo(f"{owner}/{repo}")
            listing = gh_repo.get_issues(state="all")
        except Exception as e:
            self._handle_github_exception(e)

        page = 1
        while not max_pages or page <= max_pages:
            try:
                # PyGithub numbers pages from zero.
                items = list(listing.get_page(page - 1))
            except Exception as e:
                self._handle_github_exception(e)

            if not items:
                logger.info(f"Reached last page: {page - 1}")
                return

            logger.debug(
                f"Page {page} with {len(items)} issues and pull requests fetched"
            )
            yield items
            page += 1

        logger.info(f"Stopped at page ceiling: {max_pages}")

    def get_issues(
        self,
        owner: str,
        repo: str,
        max_pages: Optional[int] = None,
    ) -> List[Issue]:
        """
        Get every issue of a repository, excluding pull requests.

        Results come back most recently fetched page first; callers must not
        rely on the ordering. With a ceiling the result may be incomplete.

        :param owner: Repository owner.
        :param repo: Repository name.
        :param max_pages: Page-count ceiling. ``None`` or ``0`` means no ceiling.
        :return: List of Issue objects.
        """
        started = time.monotonic()
        issues: List[Issue] = []

        for items in self.iter_issue_pages(owner, repo, max_pages=max_pages):
            for item in items:
                if is_pull_request(item):
                    continue
                issues.append(
                    Issue(created_at=item.created_at, closed_at=item.closed_at)
                )

        issues.reverse()
        logger.info(
            f"Fetched {len(issues)} issues for {owner}/{repo} "
            f"in {time.monotonic() - started:.2f}s"
        )
        return issues

    def get_issue_counts(self, owner: str, repo: str) -> IssueCounts:
        """
        Get the current open and closed issue totals, as counted by GitHub.

        :param owner: Repository owner.
        :param repo: Repository name.
        :return: IssueCounts object.
        """
        repository = self.graphql.get_issue_counts(owner, repo)
        try:
            counts = IssueCounts(
                total_opened=int(repository["totalOpened"]["count"]),
                total_closed=int(repository["totalClosed"]["count"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise APIException(f"Malformed issue counts for {owner}/{repo}: {e}")

        logger.info(
            f"{owner}/{repo} has {counts.total_opened} open and "
            f"{counts.total_closed} closed issues"
        )
        return counts

    def close(self) -> None:
        """Close the connector and cleanup resources."""
        if hasattr(self.github, "close"):
            self.github.close()
