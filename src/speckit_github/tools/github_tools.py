"""
GitHub tools for the Speckit GitHub MCP Server.

MCP tools for authentication status, repository listing, issue CRUD and
batch conversion of speckit tasks into GitHub issues.
"""

from typing import Any, Dict, List, Optional

from loguru import logger
from mcp.server.fastmcp import FastMCP

from ..config import Config
from ..constants import ISSUE
from ..exceptions import ClassifiedError, ErrorKind
from ..models import Priority, Task, TaskStatus
from ..services.github_client import GitHubClient
from ..services.issue_converter import IssueConverter
from .registry import ToolDefinition, ToolRegistry, utc_timestamp
from .schemas import (
    AuthStatusInput,
    IssueCreateInput,
    IssueGetInput,
    IssueUpdateInput,
    RateLimitInput,
    RepositoryListInput,
    TaskConvertInput,
)


class GitHubToolHandlers:
    """Handlers behind the GitHub MCP tools."""

    def __init__(self, config: Config, github_client: GitHubClient, issue_converter: IssueConverter):
        self.config = config
        self.github_client = github_client
        self.issue_converter = issue_converter

    async def auth_status(self, params: AuthStatusInput) -> Dict[str, Any]:
        """Report the authenticated identity and current core rate limit."""
        rate_limits = None
        if self.github_client.is_initialized:
            snapshot = await self.github_client.get_rate_limits()
            rate_limits = snapshot.to_dict()

        return {
            "authenticated": self.github_client.is_initialized,
            "authType": self.github_client.auth_type,
            "login": self.github_client.login,
            "scopes": self.github_client.scopes,
            "rateLimits": rate_limits,
            "timestamp": utc_timestamp(),
        }

    async def rate_limit(self, params: RateLimitInput) -> Dict[str, Any]:
        snapshot = await self.github_client.get_rate_limits()
        if snapshot.remaining < self.config.rate_limit_buffer:
            logger.warning(
                f"GitHub rate limit nearly exhausted: {snapshot.remaining} remaining "
                f"(buffer {self.config.rate_limit_buffer})"
            )
        return {"rateLimit": snapshot.to_dict(), "timestamp": utc_timestamp()}

    async def list_repositories(self, params: RepositoryListInput) -> Dict[str, Any]:
        repositories = await self.github_client.get_repositories(
            repo_type=params.type,
            sort=params.sort,
            direction=params.direction,
        )
        return {
            "repositories": [repo.to_dict() for repo in repositories],
            "totalCount": len(repositories),
            "filters": {"type": params.type, "sort": params.sort, "direction": params.direction},
            "timestamp": utc_timestamp(),
        }

    async def create_issue(self, params: IssueCreateInput) -> Dict[str, Any]:
        """Create an issue from free-form input by wrapping it in a manual task."""
        task = Task(
            id=params.task_id or ISSUE.MANUAL_TASK_ID,
            title=params.title,
            description=params.body,
            priority=Priority(params.priority or Priority.MEDIUM.value),
            story=ISSUE.MANUAL_STORY,
            status=TaskStatus.PENDING,
            metadata={"source": "mcp_tool"},
        )
        issue = await self.issue_converter.convert_task_to_issue(
            task,
            params.repository,
            labels=params.labels,
            assignees=params.assignees,
        )
        return {"success": True, "issue": issue.to_dict(), "timestamp": utc_timestamp()}

    async def get_issue(self, params: IssueGetInput) -> Dict[str, Any]:
        issue = await self.issue_converter.get_issue(params.repository, params.issue_id)
        return {"success": True, "issue": issue.to_dict(), "timestamp": utc_timestamp()}

    async def update_issue(self, params: IssueUpdateInput) -> Dict[str, Any]:
        issue = await self.issue_converter.update_issue_from_task(
            params.issue_id,
            params.task.to_task(),
            params.repository,
            labels=params.labels,
            assignees=params.assignees,
        )
        return {"success": True, "issue": issue.to_dict(), "timestamp": utc_timestamp()}

    async def convert_tasks(self, params: TaskConvertInput) -> Dict[str, Any]:
        """
        Convert a batch of speckit tasks.

        Falls back to the configured default repository when none is given.
        """
        repository = params.repository or self.config.default_repo
        if not repository:
            raise ClassifiedError(
                ErrorKind.TASK_VALIDATION,
                "Repository is required: pass 'repository' or set GITHUB_DEFAULT_REPO",
                details={"field": "repository"}
            )

        result = await self.issue_converter.convert_multiple_tasks(
            [task.to_task() for task in params.tasks],
            repository,
            labels=params.labels,
            assignees=params.assignees,
            create_missing=params.create_missing,
            update_existing=params.update_existing,
            issue_map=params.issue_map,
        )
        payload = result.to_dict()
        payload["repository"] = repository
        payload["timestamp"] = utc_timestamp()
        return payload


def build_github_tools(handlers: GitHubToolHandlers) -> List[ToolDefinition]:
    """Tool definitions for every GitHub tool."""
    return [
        ToolDefinition(
            "github_auth_status",
            "Check GitHub authentication status and rate limits",
            AuthStatusInput,
            handlers.auth_status,
        ),
        ToolDefinition(
            "github_rate_limit",
            "Get current GitHub API rate limit status",
            RateLimitInput,
            handlers.rate_limit,
        ),
        ToolDefinition(
            "github_list_repositories",
            "List accessible GitHub repositories",
            RepositoryListInput,
            handlers.list_repositories,
        ),
        ToolDefinition(
            "github_create_issue",
            "Create a new GitHub issue",
            IssueCreateInput,
            handlers.create_issue,
        ),
        ToolDefinition(
            "github_get_issue",
            "Get details of a specific GitHub issue",
            IssueGetInput,
            handlers.get_issue,
        ),
        ToolDefinition(
            "github_update_issue",
            "Update an existing GitHub issue from a speckit task",
            IssueUpdateInput,
            handlers.update_issue,
        ),
        ToolDefinition(
            "speckit_convert_tasks",
            "Convert speckit tasks to GitHub issues",
            TaskConvertInput,
            handlers.convert_tasks,
        ),
    ]


async def call_tool(registry: ToolRegistry, name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
    """Invoke a registered tool, turning classified errors into an error payload."""
    try:
        return await registry.invoke(name, arguments)
    except ClassifiedError as e:
        return {"success": False, "error": e.to_dict()}


def register_github_tools(mcp: FastMCP, registry: ToolRegistry, handlers: GitHubToolHandlers) -> None:
    """
    Register all GitHub tools with the registry and the MCP server.

    Args:
        mcp: FastMCP server instance
        registry: Tool registry that validates and dispatches calls
        handlers: Handler instance bound to the GitHub services
    """
    for tool in build_github_tools(handlers):
        registry.register(tool)

    @mcp.tool()
    async def github_auth_status() -> dict:
        """Check GitHub authentication status, granted scopes and core rate limit."""
        return await call_tool(registry, "github_auth_status", {})

    @mcp.tool()
    async def github_rate_limit() -> dict:
        """Get the current GitHub API core rate limit."""
        return await call_tool(registry, "github_rate_limit", {})

    @mcp.tool()
    async def github_list_repositories(
        type: str = "all",
        sort: str = "updated",
        direction: str = "desc"
    ) -> dict:
        """
        List GitHub repositories accessible to the authenticated identity.

        Args:
            type: all, owner or member
            sort: created, updated, pushed or full_name
            direction: asc or desc
        """
        return await call_tool(
            registry,
            "github_list_repositories",
            {"type": type, "sort": sort, "direction": direction}
        )

    @mcp.tool()
    async def github_create_issue(
        repository: str,
        title: str,
        body: str,
        labels: Optional[List[str]] = None,
        assignees: Optional[List[str]] = None,
        priority: Optional[str] = None,
        taskId: Optional[str] = None
    ) -> dict:
        """
        Create a new GitHub issue.

        Args:
            repository: Repository in 'owner/repo' format
            title: Issue title
            body: Issue body content
            labels: Extra labels to apply
            assignees: Users to assign
            priority: low, medium or high
            taskId: Associated speckit task ID
        """
        return await call_tool(registry, "github_create_issue", {
            "repository": repository,
            "title": title,
            "body": body,
            "labels": labels,
            "assignees": assignees,
            "priority": priority,
            "taskId": taskId,
        })

    @mcp.tool()
    async def github_get_issue(repository: str, issueId: int) -> dict:
        """
        Get details of a specific GitHub issue.

        Args:
            repository: Repository in 'owner/repo' format
            issueId: Issue number
        """
        return await call_tool(registry, "github_get_issue", {"repository": repository, "issueId": issueId})

    @mcp.tool()
    async def github_update_issue(
        repository: str,
        issueId: int,
        task: Dict[str, Any],
        labels: Optional[List[str]] = None,
        assignees: Optional[List[str]] = None
    ) -> dict:
        """
        Refresh an existing GitHub issue from an updated speckit task.

        Args:
            repository: Repository in 'owner/repo' format
            issueId: Issue number to update
            task: Speckit task (id, title, description, priority, story, status, dependencies, metadata)
            labels: Extra labels to apply
            assignees: Users to assign
        """
        return await call_tool(registry, "github_update_issue", {
            "repository": repository,
            "issueId": issueId,
            "task": task,
            "labels": labels,
            "assignees": assignees,
        })

    @mcp.tool()
    async def speckit_convert_tasks(
        tasks: List[Dict[str, Any]],
        repository: Optional[str] = None,
        labels: Optional[List[str]] = None,
        assignees: Optional[List[str]] = None,
        createMissing: bool = True,
        updateExisting: bool = False,
        issueMap: Optional[Dict[str, int]] = None
    ) -> dict:
        """
        Convert speckit tasks to GitHub issues, one outcome per task.

        Args:
            tasks: Speckit tasks to convert
            repository: Target repository, defaults to GITHUB_DEFAULT_REPO
            labels: Extra labels for every issue
            assignees: Users to assign to every issue
            createMissing: Create issues for tasks without a mapped issue
            updateExisting: Update issues already mapped to a task
            issueMap: Mapping of task ID to existing issue number
        """
        return await call_tool(registry, "speckit_convert_tasks", {
            "tasks": tasks,
            "repository": repository,
            "labels": labels,
            "assignees": assignees,
            "createMissing": createMissing,
            "updateExisting": updateExisting,
            "issueMap": issueMap or {},
        })

    logger.info("GitHub tools registered")
