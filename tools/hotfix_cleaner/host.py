"""Access to the project hosting service (GitLab)."""

from dataclasses import dataclass
from typing import Generic, List, Optional, Protocol, TypeVar, Union

import gitlab
import requests
from gitlab.exceptions import GitlabError

from shared.logger import get_logger

logger = get_logger(__name__)

DEFAULT_GITLAB_URL = "https://gitlab.com"

# Page size used when listing projects and branches
PER_PAGE = 100

ProjectId = Union[int, str]
T = TypeVar("T")


@dataclass(frozen=True)
class Project:
    """A project as reported by the host."""

    id: ProjectId
    path: str
    default_branch: Optional[str] = None

    @property
    def group(self) -> str:
        """Top-level namespace segment of the project path."""
        return self.path.split("/", 1)[0]


@dataclass(frozen=True)
class Branch:
    """
    A branch snapshot.

    Attributes:
        name: Branch name
        project_path: Path of the owning project
        created_at: ISO-8601 creation time of the latest commit, if known
    """

    name: str
    project_path: str
    created_at: Optional[str] = None


@dataclass(frozen=True)
class HostResult(Generic[T]):
    """Outcome of a host call: either a value or the reason it failed."""

    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "HostResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "HostResult[T]":
        return cls(error=error)


class ProjectHost(Protocol):
    """Operations the cleaner needs from a hosting service."""

    def list_projects(self) -> HostResult[List[Project]]:
        ...

    def get_project(self, project_id: ProjectId) -> HostResult[Project]:
        ...

    def list_branches(self, project: Project) -> HostResult[List[Branch]]:
        ...

    def delete_branch(self, project_id: ProjectId, branch_name: str) -> HostResult[None]:
        ...


class GitLabHost:
    """
    ProjectHost backed by the GitLab REST API.

    API and network failures are returned as failed HostResults instead of
    being raised.

    Attributes:
        url: Base URL of the GitLab instance
        client: python-gitlab client
    """

    def __init__(
        self, token: str, url: Optional[str] = None, client: Optional[gitlab.Gitlab] = None
    ):
        """
        Initialize the GitLab host.

        Args:
            token: Personal or project access token
            url: GitLab instance URL (defaults to gitlab.com)
            client: Pre-built client, mostly for tests
        """
        self.url = url or DEFAULT_GITLAB_URL
        self.client = client or gitlab.Gitlab(self.url, private_token=token)
        logger.debug(f"Using GitLab instance at {self.url}")

    def list_projects(self) -> HostResult[List[Project]]:
        """List every project the token is a member of."""
        try:
            projects = self.client.projects.list(membership=True, per_page=PER_PAGE, get_all=True)
        except (GitlabError, requests.RequestException) as e:
            return HostResult.failure(f"Error fetching projects: {e}")

        return HostResult.success([_to_project(p) for p in projects])

    def get_project(self, project_id: ProjectId) -> HostResult[Project]:
        try:
            project = self.client.projects.get(project_id)
        except (GitlabError, requests.RequestException) as e:
            return HostResult.failure(f"Error fetching project {project_id}: {e}")

        return HostResult.success(_to_project(project))

    def list_branches(self, project: Project) -> HostResult[List[Branch]]:
        try:
            remote = self.client.projects.get(project.id, lazy=True)
            branches = remote.branches.list(per_page=PER_PAGE, get_all=True)
        except (GitlabError, requests.RequestException) as e:
            return HostResult.failure(f"Error getting branches for project {project.path}: {e}")

        result = []
        for branch in branches:
            commit = getattr(branch, "commit", None) or {}
            result.append(
                Branch(
                    name=branch.name,
                    project_path=project.path,
                    created_at=commit.get("created_at"),
                )
            )
        return HostResult.success(result)

    def delete_branch(self, project_id: ProjectId, branch_name: str) -> HostResult[None]:
        try:
            remote = self.client.projects.get(project_id, lazy=True)
            remote.branches.delete(branch_name)
        except (GitlabError, requests.RequestException) as e:
            return HostResult.failure(str(e))

        return HostResult.success(None)


def _to_project(project) -> Project:
    return Project(
        id=project.id,
        path=getattr(project, "path_with_namespace", None) or "",
        default_branch=getattr(project, "default_branch", None),
    )
