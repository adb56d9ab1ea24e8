"""
Rate-limited GitHub API client for the Speckit GitHub MCP Server.

Wraps every PyGithub call in a thread pool with throttling awareness and
bounded automatic retry, and maps failures into the error taxonomy.
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional

from github import Github, GithubException
from loguru import logger

from ..config import Config
from ..constants import RETRY
from ..exceptions import (
    ClassifiedError,
    ErrorKind,
    classify_exception,
    kind_of_exception,
    retry_after_seconds,
)
from ..models import Credential, RateLimitSnapshot, RepositoryRef
from .auth_service import AuthStrategy


class GitHubClient:
    """Authenticated gateway to the GitHub REST API."""

    def __init__(
        self,
        credential: Credential,
        config: Config,
        auth_strategy: Optional[AuthStrategy] = None
    ):
        """
        Initialize the client.

        Args:
            credential: Credential resolved at startup
            config: Configuration instance
            auth_strategy: Strategy used to build the handle
        """
        self.credential = credential
        self.config = config
        self.auth_strategy = auth_strategy or AuthStrategy(config.timeout_seconds)
        self.max_retries = config.max_retries
        self.retry_delay = config.retry_delay
        self._handle: Optional[Github] = None
        self.login: Optional[str] = None

    async def initialize(self) -> None:
        """Build the authenticated handle once and verify the identity."""
        if self._handle is not None:
            logger.warning("GitHub client already initialized")
            return
        self._handle, self.login = await self.auth_strategy.create_handle(self.credential)
        logger.info(
            f"GitHub client initialized successfully "
            f"(auth type: {self.auth_type}, scopes: {', '.join(self.scopes)})"
        )

    @property
    def handle(self) -> Github:
        """Authenticated handle; using it before initialize() is a programming error."""
        if self._handle is None:
            raise ClassifiedError(
                ErrorKind.SYSTEM_ERROR,
                "GitHub client not initialized. Call initialize() first."
            )
        return self._handle

    @property
    def auth_type(self) -> str:
        return self.credential.mode.value

    @property
    def scopes(self) -> List[str]:
        return sorted(self.credential.scopes)

    @property
    def is_initialized(self) -> bool:
        return self._handle is not None

    def on_rate_limit(self, retry_after: float, retry_count: int, operation: str) -> bool:
        """
        Decide whether a rate-limited request should be retried.

        Args:
            retry_after: Seconds GitHub asked us to wait
            retry_count: Number of this rejection (1 for the first)
            operation: Name of the API operation

        Returns:
            True to wait and retry, False to surface the rate limit error
        """
        logger.warning(
            f"GitHub rate limit exceeded during {operation} "
            f"(retry after {retry_after:.0f}s, rejection #{retry_count})"
        )
        if retry_count <= self.max_retries:
            logger.info(f"Retrying GitHub request {operation} (retry count: {retry_count})")
            return True
        return False

    async def _execute(self, operation: str, func: Callable[..., Any], *args, context: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        """
        Run a blocking PyGithub call with throttling and retry.

        Each attempt gets the full per-call timeout configured on the handle.
        """
        handle = self.handle
        error_context = {"operation": operation}
        error_context.update(context or {})
        rate_limit_rejections = 0
        transient_failures = 0

        while True:
            try:
                return await asyncio.to_thread(func, handle, *args, **kwargs)
            except ClassifiedError:
                raise
            except Exception as e:
                kind = kind_of_exception(e)

                if kind is ErrorKind.GITHUB_RATE_LIMIT and isinstance(e, GithubException):
                    rate_limit_rejections += 1
                    retry_after = retry_after_seconds(e, RETRY.DEFAULT_RATE_LIMIT_WAIT)
                    if self.on_rate_limit(retry_after, rate_limit_rejections, operation):
                        await asyncio.sleep(retry_after)
                        continue
                    raise classify_exception(e, error_context) from e

                # Validation failures (422) and other permanent kinds are never retried
                if kind.retryable and transient_failures < self.max_retries:
                    transient_failures += 1
                    delay = self.retry_delay * transient_failures
                    logger.warning(
                        f"Transient GitHub failure during {operation} ({kind.value}); "
                        f"retry {transient_failures}/{self.max_retries} in {delay:.1f}s"
                    )
                    await asyncio.sleep(delay)
                    continue

                raise classify_exception(e, error_context) from e

    @staticmethod
    def _rate_limit_sync(handle: Github) -> Any:
        overview = handle.get_rate_limit()
        # Newer PyGithub nests the buckets under .resources
        resources = getattr(overview, "resources", None) or overview
        return resources.core

    async def get_rate_limits(self) -> RateLimitSnapshot:
        """Get the core API rate limit."""
        core = await self._execute("getRateLimits", self._rate_limit_sync)
        used = getattr(core, "used", None)
        if used is None:
            used = core.limit - core.remaining
        return RateLimitSnapshot(
            limit=core.limit,
            remaining=core.remaining,
            used=used,
            reset_at=core.reset,
        )

    @staticmethod
    def _repositories_sync(handle: Github, repo_type: str, sort: str, direction: str) -> list:
        return list(handle.get_user().get_repos(type=repo_type, sort=sort, direction=direction))

    async def get_repositories(
        self,
        repo_type: str = "all",
        sort: str = "updated",
        direction: str = "desc"
    ) -> List[RepositoryRef]:
        """
        List repositories for the authenticated user.

        Args:
            repo_type: all, owner or member
            sort: created, updated, pushed or full_name
            direction: asc or desc
        """
        repos = await self._execute(
            "getRepositories",
            self._repositories_sync,
            repo_type,
            sort,
            direction,
            context={"type": repo_type}
        )
        logger.info(f"Retrieved {len(repos)} repositories (type: {repo_type})")
        return [RepositoryRef.from_github(repo) for repo in repos]

    @staticmethod
    def _repository_sync(handle: Github, full_name: str) -> Any:
        return handle.get_repo(full_name)

    async def get_repository(self, owner: str, name: str) -> RepositoryRef:
        """Get a single repository."""
        repo = await self._execute(
            "getRepository",
            self._repository_sync,
            f"{owner}/{name}",
            context={"owner": owner, "name": name}
        )
        return RepositoryRef.from_github(repo)

    @staticmethod
    def _create_issue_sync(handle: Github, full_name: str, fields: Dict[str, Any]) -> Any:
        repo = handle.get_repo(full_name, lazy=True)
        return repo.create_issue(**fields)

    async def create_issue(
        self,
        repository: str,
        title: str,
        body: str,
        labels: Optional[List[str]] = None,
        assignees: Optional[List[str]] = None
    ) -> Any:
        """Create an issue and return the PyGithub issue object."""
        fields = {"title": title, "body": body, "labels": labels or [], "assignees": assignees or []}
        return await self._execute(
            "createIssue",
            self._create_issue_sync,
            repository,
            fields,
            context={"repository": repository}
        )

    @staticmethod
    def _update_issue_sync(handle: Github, full_name: str, number: int, fields: Dict[str, Any]) -> Any:
        issue = handle.get_repo(full_name, lazy=True).get_issue(number)
        issue.edit(**fields)
        return issue

    async def update_issue(
        self,
        repository: str,
        number: int,
        title: str,
        body: str,
        labels: Optional[List[str]] = None,
        assignees: Optional[List[str]] = None
    ) -> Any:
        """Update an issue by number and return the refreshed issue object."""
        fields = {"title": title, "body": body, "labels": labels or [], "assignees": assignees or []}
        return await self._execute(
            "updateIssue",
            self._update_issue_sync,
            repository,
            number,
            fields,
            context={"repository": repository, "issueId": number}
        )

    @staticmethod
    def _get_issue_sync(handle: Github, full_name: str, number: int) -> Any:
        return handle.get_repo(full_name, lazy=True).get_issue(number)

    async def get_issue(self, repository: str, number: int) -> Any:
        """Get a single issue object."""
        return await self._execute(
            "getIssue",
            self._get_issue_sync,
            repository,
            number,
            context={"repository": repository, "issueId": number}
        )
