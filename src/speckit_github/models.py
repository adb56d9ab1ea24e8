"""
Data models for the Speckit GitHub MCP Server.

Defines credentials, speckit tasks, GitHub issues, repository references and
batch conversion results using dataclasses for type safety.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Dict, Any, Optional, Tuple, FrozenSet

from .constants import GITHUB
from .exceptions import AuthError, ClassifiedError, ErrorKind


class AuthMode(Enum):
    """Supported credential modes."""
    OAUTH = "oauth"
    PAT = "pat"
    APP = "app"


@dataclass(frozen=True)
class Permission:
    """A single granted (or refused) permission."""
    name: str
    granted: bool
    level: str = "read"  # read, write, admin


# Fields each mode must populate
_REQUIRED_FIELDS = {
    AuthMode.PAT: ("token",),
    AuthMode.OAUTH: ("client_id", "client_secret"),
    AuthMode.APP: ("app_id", "private_key", "installation_id"),
}


@dataclass(frozen=True)
class Credential:
    """Resolved authentication material for one credential mode."""
    mode: AuthMode
    token: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    app_id: Optional[str] = None
    private_key: Optional[str] = None
    installation_id: Optional[str] = None
    scopes: FrozenSet[str] = frozenset(GITHUB.DEFAULT_SCOPES)
    expires_at: Optional[datetime] = None
    permissions: Tuple[Permission, ...] = ()

    def __post_init__(self):
        """Reject credentials missing the chosen mode's required fields."""
        if not isinstance(self.mode, AuthMode):
            raise AuthError(
                f"Unsupported authentication type: {self.mode}",
                kind=ErrorKind.AUTH_MISSING_CREDENTIALS
            )
        missing = [name for name in _REQUIRED_FIELDS[self.mode] if not getattr(self, name)]
        if missing:
            raise AuthError(
                f"{self.mode.value} authentication requires {', '.join(missing)}",
                kind=ErrorKind.AUTH_MISSING_CREDENTIALS,
                details={"authType": self.mode.value, "missing": missing}
            )

    @classmethod
    def personal_token(cls, token: str, **kwargs) -> "Credential":
        return cls(mode=AuthMode.PAT, token=token, **kwargs)

    @classmethod
    def oauth_app(cls, client_id: str, client_secret: str, token: Optional[str] = None, **kwargs) -> "Credential":
        return cls(mode=AuthMode.OAUTH, client_id=client_id, client_secret=client_secret, token=token, **kwargs)

    @classmethod
    def installation_app(cls, app_id: str, private_key: str, installation_id: str, **kwargs) -> "Credential":
        return cls(
            mode=AuthMode.APP,
            app_id=app_id,
            private_key=private_key,
            installation_id=installation_id,
            **kwargs
        )

    def __repr__(self) -> str:
        """String representation without secrets."""
        return f"Credential(mode={self.mode.value}, scopes={sorted(self.scopes)})"


class Priority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Task:
    """A speckit work item to be mirrored as a GitHub issue."""
    id: str
    title: str
    description: str
    priority: Priority = Priority.MEDIUM
    story: str = ""
    status: TaskStatus = TaskStatus.PENDING
    dependencies: Tuple[str, ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """
        Build a task from tool input.

        Raises:
            ClassifiedError: TASK_VALIDATION when a field is missing or invalid
        """
        try:
            return cls(
                id=str(data["id"]),
                title=str(data["title"]),
                description=str(data.get("description", "")),
                priority=Priority(data.get("priority") or Priority.MEDIUM.value),
                story=str(data.get("story") or ""),
                status=TaskStatus(data.get("status") or TaskStatus.PENDING.value),
                dependencies=tuple(data.get("dependencies") or ()),
                metadata=dict(data.get("metadata") or {}),
            )
        except (KeyError, ValueError, TypeError) as e:
            raise ClassifiedError(
                ErrorKind.TASK_VALIDATION,
                f"Invalid task: {e}",
                details={"task": data.get("id") if isinstance(data, dict) else None},
                cause=e
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "story": self.story,
            "status": self.status.value,
            "dependencies": list(self.dependencies),
            "metadata": self.metadata,
        }


class IssueState(Enum):
    OPEN = "open"
    CLOSED = "closed"
    LOCKED = "locked"


@dataclass
class Issue:
    """In-memory view of a GitHub issue for the duration of a response."""
    id: str
    number: int
    url: str
    title: str
    body: str
    state: IssueState
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    labels: List[str] = field(default_factory=list)
    assignees: List[str] = field(default_factory=list)
    task_id: str = ""

    @classmethod
    def from_github(cls, gh_issue: Any, task_id: str) -> "Issue":
        """Map a PyGithub issue object."""
        return cls(
            id=str(gh_issue.number),
            number=gh_issue.number,
            url=gh_issue.html_url,
            title=gh_issue.title,
            body=gh_issue.body or "",
            state=IssueState(gh_issue.state),
            created_at=gh_issue.created_at,
            updated_at=gh_issue.updated_at,
            labels=[label.name for label in (gh_issue.labels or [])],
            assignees=[assignee.login for assignee in (gh_issue.assignees or [])],
            task_id=task_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "number": self.number,
            "url": self.url,
            "title": self.title,
            "body": self.body,
            "state": self.state.value,
            "labels": self.labels,
            "assignees": self.assignees,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "taskId": self.task_id,
        }


@dataclass(frozen=True)
class RateLimitSnapshot:
    """Core API rate limit at the time of the call."""
    limit: int
    remaining: int
    used: int
    reset_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "limit": self.limit,
            "remaining": self.remaining,
            "used": self.used,
            "resetTime": self.reset_at.isoformat(),
            "resetTimeUnix": int(self.reset_at.timestamp()),
        }


@dataclass(frozen=True)
class RepositoryPermissions:
    pull: bool = False
    push: bool = False
    admin: bool = False
    issues: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {"pull": self.pull, "push": self.push, "admin": self.admin, "issues": self.issues}


@dataclass(frozen=True)
class RepositoryRef:
    """Reference to a repository the authenticated identity can see."""
    owner: str
    name: str
    is_private: bool
    permissions: RepositoryPermissions
    default_branch: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def from_github(cls, repo: Any) -> "RepositoryRef":
        """Map a PyGithub repository object."""
        perms = repo.permissions
        return cls(
            owner=repo.owner.login,
            name=repo.name,
            is_private=bool(repo.private),
            permissions=RepositoryPermissions(
                pull=bool(getattr(perms, "pull", False)),
                push=bool(getattr(perms, "push", False)),
                admin=bool(getattr(perms, "admin", False)),
                issues=bool(getattr(perms, "issues", False)),
            ),
            default_branch=repo.default_branch,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "name": self.name,
            "fullName": self.full_name,
            "isPrivate": self.is_private,
            "permissions": self.permissions.to_dict(),
            "defaultBranch": self.default_branch,
        }


class ConversionAction(Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass
class ConversionOutcome:
    """Outcome of converting a single task in a batch."""
    task: Task
    action: ConversionAction
    issue: Optional[Issue] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "taskId": self.task.id,
            "result": self.action.value,
            "issueId": self.issue.id if self.issue else None,
            "issueUrl": self.issue.url if self.issue else None,
            "issue": self.issue.to_dict() if self.issue else None,
            "error": self.error,
        }


@dataclass
class BatchResult:
    """Ordered outcomes of a batch conversion; counts are derived."""
    outcomes: List[ConversionOutcome] = field(default_factory=list)

    def count(self, action: ConversionAction) -> int:
        return sum(1 for outcome in self.outcomes if outcome.action is action)

    @property
    def success(self) -> bool:
        return self.count(ConversionAction.ERROR) == 0

    @property
    def summary(self) -> Dict[str, int]:
        return {
            "total": len(self.outcomes),
            "created": self.count(ConversionAction.CREATED),
            "updated": self.count(ConversionAction.UPDATED),
            "skipped": self.count(ConversionAction.SKIPPED),
            "errors": self.count(ConversionAction.ERROR),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "results": [outcome.to_dict() for outcome in self.outcomes],
            "summary": self.summary,
        }
