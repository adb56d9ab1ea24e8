"""
Tests for the rate-limited GitHub client.

PyGithub handles are replaced with mocks and back-off sleeps are patched out.
"""

import unittest
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import requests
from github import GithubException

from speckit_github.exceptions import ClassifiedError, ErrorKind
from speckit_github.models import Credential
from speckit_github.services.github_client import GitHubClient


def make_config(max_retries=3, retry_delay=0.5):
    return SimpleNamespace(timeout_seconds=30.0, max_retries=max_retries, retry_delay=retry_delay)


def rate_limited():
    return GithubException(403, {"message": "API rate limit exceeded for user"}, {"Retry-After": "2"})


class TestGitHubClientBase(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.handle = MagicMock()
        self.strategy = MagicMock()
        self.strategy.create_handle = AsyncMock(return_value=(self.handle, "octocat"))
        self.client = GitHubClient(Credential.personal_token("ghp_abc"), make_config(), self.strategy)
        await self.client.initialize()


class TestInitialization(unittest.IsolatedAsyncioTestCase):

    async def test_calls_before_initialize_are_system_errors(self):
        strategy = MagicMock()
        client = GitHubClient(Credential.personal_token("ghp_abc"), make_config(), strategy)
        with self.assertRaises(ClassifiedError) as ctx:
            await client.get_repositories()
        self.assertEqual(ctx.exception.kind, ErrorKind.SYSTEM_ERROR)
        self.assertFalse(client.is_initialized)

    async def test_initialize_once(self):
        strategy = MagicMock()
        strategy.create_handle = AsyncMock(return_value=(MagicMock(), "octocat"))
        client = GitHubClient(Credential.personal_token("ghp_abc"), make_config(), strategy)
        await client.initialize()
        await client.initialize()
        strategy.create_handle.assert_awaited_once()
        self.assertEqual(client.login, "octocat")
        self.assertEqual(client.auth_type, "pat")
        self.assertEqual(client.scopes, ["issues:write", "repo"])


class TestOnRateLimit(unittest.TestCase):

    def test_retry_cutoff(self):
        client = GitHubClient(Credential.personal_token("ghp_abc"), make_config(max_retries=3), MagicMock())
        self.assertTrue(client.on_rate_limit(60, 1, "getIssue"))
        self.assertTrue(client.on_rate_limit(60, 3, "getIssue"))
        self.assertFalse(client.on_rate_limit(60, 4, "getIssue"))


class TestRetryLoop(TestGitHubClientBase):

    @patch("speckit_github.services.github_client.asyncio.sleep", new_callable=AsyncMock)
    async def test_rate_limit_surfaces_after_max_retries(self, mock_sleep):
        get_repos = self.handle.get_user.return_value.get_repos
        get_repos.side_effect = rate_limited()

        with self.assertRaises(ClassifiedError) as ctx:
            await self.client.get_repositories()

        self.assertEqual(ctx.exception.kind, ErrorKind.GITHUB_RATE_LIMIT)
        self.assertTrue(ctx.exception.retryable)
        self.assertEqual(get_repos.call_count, 4)
        self.assertEqual(mock_sleep.await_count, 3)
        mock_sleep.assert_awaited_with(2.0)

    @patch("speckit_github.services.github_client.asyncio.sleep", new_callable=AsyncMock)
    async def test_rate_limit_then_success(self, mock_sleep):
        get_repos = self.handle.get_user.return_value.get_repos
        get_repos.side_effect = [rate_limited(), []]

        self.assertEqual(await self.client.get_repositories(), [])
        self.assertEqual(get_repos.call_count, 2)

    @patch("speckit_github.services.github_client.asyncio.sleep", new_callable=AsyncMock)
    async def test_validation_failure_is_not_retried(self, mock_sleep):
        create_issue = self.handle.get_repo.return_value.create_issue
        create_issue.side_effect = GithubException(
            422, {"message": "Validation Failed", "errors": [{"field": "title", "code": "missing"}]}, {}
        )

        with self.assertRaises(ClassifiedError) as ctx:
            await self.client.create_issue("acme/widgets", "", "body")

        self.assertEqual(ctx.exception.kind, ErrorKind.GITHUB_VALIDATION)
        self.assertFalse(ctx.exception.retryable)
        self.assertEqual(create_issue.call_count, 1)
        mock_sleep.assert_not_awaited()

    @patch("speckit_github.services.github_client.asyncio.sleep", new_callable=AsyncMock)
    async def test_server_error_is_retried_with_linear_backoff(self, mock_sleep):
        gh_issue = MagicMock()
        get_issue = self.handle.get_repo.return_value.get_issue
        get_issue.side_effect = [
            GithubException(502, {"message": "Bad Gateway"}, {}),
            GithubException(503, {"message": "Unavailable"}, {}),
            gh_issue,
        ]

        self.assertIs(await self.client.get_issue("acme/widgets", 7), gh_issue)
        self.assertEqual(get_issue.call_count, 3)
        self.assertEqual([call.args[0] for call in mock_sleep.await_args_list], [0.5, 1.0])

    @patch("speckit_github.services.github_client.asyncio.sleep", new_callable=AsyncMock)
    async def test_network_errors_exhaust_retries(self, mock_sleep):
        get_issue = self.handle.get_repo.return_value.get_issue
        get_issue.side_effect = requests.exceptions.ConnectionError("refused")

        with self.assertRaises(ClassifiedError) as ctx:
            await self.client.get_issue("acme/widgets", 7)

        self.assertEqual(ctx.exception.kind, ErrorKind.GITHUB_SERVER_ERROR)
        self.assertTrue(ctx.exception.details["network"])
        self.assertEqual(get_issue.call_count, 4)

    @patch("speckit_github.services.github_client.asyncio.sleep", new_callable=AsyncMock)
    async def test_not_found_is_not_retried(self, mock_sleep):
        get_issue = self.handle.get_repo.return_value.get_issue
        get_issue.side_effect = GithubException(404, {"message": "Not Found"}, {})

        with self.assertRaises(ClassifiedError) as ctx:
            await self.client.get_issue("acme/widgets", 999)

        self.assertEqual(ctx.exception.kind, ErrorKind.GITHUB_NOT_FOUND)
        self.assertEqual(ctx.exception.details["issueId"], 999)
        mock_sleep.assert_not_awaited()


class TestOperations(TestGitHubClientBase):

    async def test_empty_repository_list(self):
        self.handle.get_user.return_value.get_repos.return_value = iter([])
        self.assertEqual(await self.client.get_repositories(), [])
        self.handle.get_user.return_value.get_repos.assert_called_once_with(
            type="all", sort="updated", direction="desc"
        )

    async def test_repository_mapping(self):
        repo = SimpleNamespace(
            owner=SimpleNamespace(login="acme"),
            name="widgets",
            private=True,
            permissions=SimpleNamespace(pull=True, push=True, admin=False),
            default_branch="main",
        )
        self.handle.get_user.return_value.get_repos.return_value = [repo]

        repos = await self.client.get_repositories(repo_type="owner", sort="pushed", direction="asc")

        self.assertEqual(len(repos), 1)
        data = repos[0].to_dict()
        self.assertEqual(data["fullName"], "acme/widgets")
        self.assertTrue(data["isPrivate"])
        self.assertEqual(data["permissions"], {"pull": True, "push": True, "admin": False, "issues": False})

    async def test_get_repository(self):
        self.handle.get_repo.return_value = SimpleNamespace(
            owner=SimpleNamespace(login="acme"),
            name="widgets",
            private=False,
            permissions=SimpleNamespace(pull=True, push=False, admin=False),
            default_branch="trunk",
        )

        repo = await self.client.get_repository("acme", "widgets")

        self.handle.get_repo.assert_called_once_with("acme/widgets")
        self.assertEqual(repo.full_name, "acme/widgets")
        self.assertFalse(repo.is_private)
        self.assertEqual(repo.default_branch, "trunk")
        self.assertTrue(repo.permissions.pull)
        self.assertFalse(repo.permissions.push)

    @patch("speckit_github.services.github_client.asyncio.sleep", new_callable=AsyncMock)
    async def test_get_repository_not_found(self, mock_sleep):
        self.handle.get_repo.side_effect = GithubException(404, {"message": "Not Found"}, {})

        with self.assertRaises(ClassifiedError) as ctx:
            await self.client.get_repository("acme", "missing")

        self.assertEqual(ctx.exception.kind, ErrorKind.GITHUB_NOT_FOUND)
        self.assertEqual(ctx.exception.details["owner"], "acme")
        self.assertEqual(ctx.exception.details["name"], "missing")
        self.assertEqual(ctx.exception.details["operation"], "getRepository")
        self.assertEqual(self.handle.get_repo.call_count, 1)
        mock_sleep.assert_not_awaited()

    async def test_rate_limit_snapshot(self):
        reset = datetime(2026, 1, 1, tzinfo=timezone.utc)
        core = SimpleNamespace(limit=5000, remaining=4900, used=100, reset=reset)
        self.handle.get_rate_limit.return_value = SimpleNamespace(resources=SimpleNamespace(core=core))

        snapshot = await self.client.get_rate_limits()

        self.assertEqual(snapshot.remaining, 4900)
        self.assertEqual(snapshot.to_dict()["resetTimeUnix"], int(reset.timestamp()))

    async def test_update_issue_edits_and_returns_issue(self):
        gh_issue = self.handle.get_repo.return_value.get_issue.return_value

        result = await self.client.update_issue("acme/widgets", 42, "Title", "Body", labels=["speckit"])

        self.assertIs(result, gh_issue)
        self.handle.get_repo.assert_called_with("acme/widgets", lazy=True)
        gh_issue.edit.assert_called_once_with(title="Title", body="Body", labels=["speckit"], assignees=[])


if __name__ == "__main__":
    unittest.main()
