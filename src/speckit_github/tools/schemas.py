"""
Input schemas for the MCP tools.

Every tool validates its arguments against one of these models before any
service is touched. Field aliases follow the camelCase names MCP clients send.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models import Task


class ToolInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class AuthStatusInput(ToolInput):
    pass


class RateLimitInput(ToolInput):
    pass


class RepositoryListInput(ToolInput):
    type: Literal["all", "owner", "member"] = Field("all", description="Repository type filter")
    sort: Literal["created", "updated", "pushed", "full_name"] = Field("updated", description="Sort field")
    direction: Literal["asc", "desc"] = Field("desc", description="Sort direction")


class TaskInput(BaseModel):
    """A speckit task as sent by MCP clients."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1, pattern=r"^\S+$", description="Task identifier")
    title: str = Field(..., description="Task title")
    description: str = Field("", description="Task description")
    priority: Literal["low", "medium", "high"] = "medium"
    story: str = Field("", description="Associated user story")
    status: Literal["pending", "in-progress", "completed"] = "pending"
    dependencies: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_task(self) -> Task:
        return Task.from_dict(self.model_dump())


class IssueCreateInput(ToolInput):
    repository: str = Field(..., description="Repository in format owner/repo")
    title: str = Field(..., description="Issue title")
    body: str = Field(..., description="Issue body content")
    labels: Optional[List[str]] = None
    assignees: Optional[List[str]] = None
    priority: Optional[Literal["low", "medium", "high"]] = None
    task_id: Optional[str] = Field(None, alias="taskId", pattern=r"^\S+$", description="Associated speckit task ID")


class IssueGetInput(ToolInput):
    repository: str = Field(..., description="Repository in format owner/repo")
    issue_id: int = Field(..., alias="issueId", gt=0, description="Issue number")


class IssueUpdateInput(ToolInput):
    repository: str = Field(..., description="Repository in format owner/repo")
    issue_id: int = Field(..., alias="issueId", gt=0, description="Issue number to update")
    task: TaskInput
    labels: Optional[List[str]] = None
    assignees: Optional[List[str]] = None


class TaskConvertInput(ToolInput):
    tasks: List[TaskInput] = Field(..., description="Speckit tasks to convert")
    repository: Optional[str] = Field(None, description="Target repository, defaults to GITHUB_DEFAULT_REPO")
    labels: Optional[List[str]] = None
    assignees: Optional[List[str]] = None
    create_missing: bool = Field(True, alias="createMissing", description="Create issues for unmapped tasks")
    update_existing: bool = Field(False, alias="updateExisting", description="Update issues mapped to tasks")
    issue_map: Dict[str, int] = Field(default_factory=dict, alias="issueMap", description="Task ID to issue number")


class ConfigStatusInput(ToolInput):
    pass


class ConfigSetInput(ToolInput):
    auth_type: Literal["oauth", "pat", "app"] = Field(..., alias="authType")
    client_id: Optional[str] = Field(None, alias="clientId")
    client_secret: Optional[str] = Field(None, alias="clientSecret")
    token: Optional[str] = None
    repository: Optional[str] = None
    timeout: Optional[int] = Field(None, gt=0, description="Request timeout in milliseconds")
