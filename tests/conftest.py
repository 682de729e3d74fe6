"""Shared fixtures for the hotfix cleaner tests."""

from datetime import datetime, timedelta, timezone

import pytest

from tools.hotfix_cleaner.host import Branch, HostResult, Project

NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


def days_ago(days: float) -> str:
    """ISO-8601 timestamp the given number of days before NOW."""
    return (NOW - timedelta(days=days)).isoformat()


class FakeHost:
    """In-memory ProjectHost that records every call."""

    def __init__(
        self, projects=(), branches=None, fail_deletes=(), fail_listing=False, crash_on=()
    ):
        self.projects = list(projects)
        self.branches = branches or {}
        self.fail_deletes = set(fail_deletes)
        self.fail_listing = fail_listing
        self.crash_on = set(crash_on)
        self.calls = []

    @property
    def delete_calls(self):
        return [c for c in self.calls if c[0] == "delete_branch"]

    def list_projects(self):
        self.calls.append(("list_projects",))
        if self.fail_listing:
            return HostResult.failure("Error fetching projects: 500 Internal Server Error")
        return HostResult.success(list(self.projects))

    def get_project(self, project_id):
        self.calls.append(("get_project", project_id))
        for project in self.projects:
            if str(project.id) == str(project_id) or project.path == project_id:
                return HostResult.success(project)
        return HostResult.failure(f"Error fetching project {project_id}: 404 Project Not Found")

    def list_branches(self, project):
        self.calls.append(("list_branches", project.id))
        if project.path in self.crash_on:
            raise RuntimeError(f"unexpected response for {project.path}")
        if project.path not in self.branches:
            return HostResult.failure(f"Error getting branches for project {project.path}")
        return HostResult.success(
            [
                Branch(name=name, project_path=project.path, created_at=created_at)
                for name, created_at in self.branches[project.path]
            ]
        )

    def delete_branch(self, project_id, branch_name):
        self.calls.append(("delete_branch", project_id, branch_name))
        if branch_name in self.fail_deletes:
            return HostResult.failure("403 Forbidden")
        return HostResult.success(None)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def repo_a():
    return Project(id=1, path="g1/repoA", default_branch="main")


@pytest.fixture
def make_host():
    return FakeHost
