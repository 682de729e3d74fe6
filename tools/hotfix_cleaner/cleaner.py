"""Core hotfix branch cleanup logic."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Union

from shared.logger import get_logger

from .config import DEFAULT_HOTFIX_PREFIX, CleanerConfig
from .host import Branch, HostResult, Project, ProjectHost, ProjectId

logger = get_logger(__name__)

# Hotfix branches younger than this are kept
RETENTION_DAYS = 3


@dataclass(frozen=True)
class BranchInfo:
    """A hotfix branch selected for reporting or deletion."""

    name: str
    project: str
    created_at: Optional[str] = None
    project_id: Optional[ProjectId] = field(default=None, compare=False)

    @classmethod
    def from_branch(cls, branch: Branch, project_id: Optional[ProjectId] = None) -> "BranchInfo":
        return cls(
            name=branch.name,
            project=branch.project_path,
            created_at=branch.created_at,
            project_id=project_id,
        )


def is_hotfix_branch(name: str, prefix: str = DEFAULT_HOTFIX_PREFIX) -> bool:
    """
    Check whether a branch name follows the hotfix convention.

    The match is a case-insensitive prefix match, so with the default prefix
    "Hotfix/login" and "hotfix-123" match but "my-hotfix/login" does not.
    """
    return name.lower().startswith(prefix.lower())


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware datetime.

    Naive values are taken as UTC. Returns None for missing or unparseable
    input.
    """
    if not value:
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Ignoring unparseable timestamp: {value}")
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_older_than(
    created_at: Optional[str], days: int = RETENTION_DAYS, now: Optional[datetime] = None
) -> bool:
    """
    Check whether a timestamp is strictly older than now minus the given days.

    A missing timestamp is never old enough.
    """
    created = parse_timestamp(created_at)
    if created is None:
        return False

    now = now or datetime.now(timezone.utc)
    return created < now - timedelta(days=days)


def filter_projects_by_group(
    projects: Iterable[Project], group_filter: Iterable[str], verbose: bool = False
) -> List[Project]:
    """
    Keep projects whose top-level group is in the filter.

    Args:
        projects: Projects to filter
        group_filter: Lowercase group names; empty keeps every project
        verbose: Log the filtering activity

    Returns:
        Filtered list of projects, in input order
    """
    groups = set(group_filter)
    projects = list(projects)
    if not groups:
        return projects

    if verbose:
        logger.info(f"Filtering projects for groups: {', '.join(sorted(groups))}")

    return [p for p in projects if p.group.lower() in groups]


class HotfixBranchCleaner:
    """
    Finds and removes stale hotfix branches across GitLab projects.

    Host calls are made one at a time. Failures are contained at the
    smallest unit that failed (branch, project, run) and turn into empty
    results plus a log line.

    Attributes:
        host: Hosting service used for all reads and deletions
        config: Cleaner configuration
    """

    def __init__(
        self,
        host: ProjectHost,
        config: CleanerConfig,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the cleaner.

        Args:
            host: ProjectHost implementation
            config: Configuration (group filter, single-project override, prefix)
            clock: Returns the current aware datetime (defaults to UTC now)
        """
        self.host = host
        self.config = config
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def get_projects(self, dry_run: bool = False) -> List[Project]:
        """
        Get accessible projects narrowed to the configured groups.

        Returns:
            List of projects, or an empty list if they could not be fetched
        """
        result = self.host.list_projects()
        if not result.ok:
            logger.error(result.error)
            return []

        return filter_projects_by_group(result.value, self.config.group_filter, verbose=dry_run)

    def get_hotfix_branches(
        self, project: Union[Project, ProjectId], age_filter: bool = False
    ) -> List[BranchInfo]:
        """
        Get hotfix branches of a project.

        Args:
            project: Project or its identifier
            age_filter: Only keep branches older than the retention window

        Returns:
            List of BranchInfo in the host's listing order; empty on error
        """
        resolved = self._resolve(project)
        if not resolved.ok:
            logger.error(resolved.error)
            return []

        branches = self.host.list_branches(resolved.value)
        if not branches.ok:
            logger.error(branches.error)
            return []

        hotfixes = [
            BranchInfo.from_branch(b, resolved.value.id)
            for b in branches.value
            if is_hotfix_branch(b.name, self.config.hotfix_prefix)
        ]
        if age_filter:
            hotfixes = self.filter_by_age(hotfixes)
        return hotfixes

    def filter_by_age(
        self, branches: List[BranchInfo], older_than_days: int = RETENTION_DAYS
    ) -> List[BranchInfo]:
        """Keep branches created more than older_than_days ago."""
        now = self.clock()
        return [b for b in branches if is_older_than(b.created_at, older_than_days, now=now)]

    def clean_project(
        self, project: Union[Project, ProjectId], dry_run: bool = False
    ) -> List[BranchInfo]:
        """
        Clean hotfix branches older than the retention window in one project.

        Args:
            project: Project or its identifier
            dry_run: Report matching branches without deleting them

        Returns:
            Branches deleted, or in a dry run the branches that would be
        """
        resolved = self._resolve(project)
        if not resolved.ok:
            logger.error(f"Error processing project {project}: {resolved.error}")
            return []

        project = resolved.value
        report = logger.info if dry_run else logger.debug
        if dry_run:
            logger.info(f"Scanning project: {project.path}")

        hotfix_branches = self.get_hotfix_branches(project)
        old_branches = self.filter_by_age(hotfix_branches)

        if not old_branches:
            if hotfix_branches:
                report(
                    f"Found {len(hotfix_branches)} hotfix branches in {project.path}, "
                    f"but none are older than {RETENTION_DAYS} days"
                )
            else:
                report(f"No hotfix branches found in {project.path}")
            return []

        report(
            f"Found {len(old_branches)} hotfix branches older than {RETENTION_DAYS} days "
            f"in {project.path}"
        )
        if dry_run:
            return old_branches

        return self.delete_branches(old_branches)

    def delete_branches(self, branches: List[BranchInfo]) -> List[BranchInfo]:
        """
        Delete exactly the given branches, one at a time.

        A failed deletion is logged and does not stop the remaining ones.

        Args:
            branches: Previously selected branches

        Returns:
            Branches that were deleted successfully
        """
        deleted = []
        for branch in branches:
            project_id = branch.project if branch.project_id is None else branch.project_id
            try:
                result = self.host.delete_branch(project_id, branch.name)
            except Exception as e:
                result = HostResult.failure(str(e))

            if result.ok:
                logger.info(
                    f"Successfully deleted branch: {branch.name} from {branch.project} "
                    f"(created at: {branch.created_at})"
                )
                deleted.append(branch)
            else:
                logger.error(
                    f"Failed to delete branch {branch.name} from {branch.project}: {result.error}"
                )
        return deleted

    def run_cleanup(self, dry_run: bool = False) -> List[BranchInfo]:
        """
        Clean hotfix branches across all configured projects.

        With a single-project override only that project is cleaned and
        project discovery is skipped.

        Args:
            dry_run: Report matching branches without deleting them

        Returns:
            All deleted (or, in a dry run, matching) branches in project order
        """
        all_branches: List[BranchInfo] = []
        try:
            if self.config.project_id:
                logger.info(f"Testing cleanup for specific project ID: {self.config.project_id}")
                all_branches = self._clean_contained(self.config.project_id, dry_run)
            else:
                logger.info("Starting hotfix branch cleanup across all projects...")
                if self.config.group_filter:
                    groups = ", ".join(sorted(self.config.group_filter))
                    logger.info(f"Filtering projects for groups: {groups}")

                projects = self.get_projects()
                logger.info(f"Found {len(projects)} projects to scan")

                for project in projects:
                    all_branches.extend(self._clean_contained(project, dry_run))
        except Exception:
            logger.exception("Error in hotfix branch cleanup")
            return []

        action = "matched" if dry_run else "deleted"
        logger.info(f"Hotfix branch cleanup completed ({len(all_branches)} branches {action})")
        return all_branches

    def _clean_contained(
        self, project: Union[Project, ProjectId], dry_run: bool
    ) -> List[BranchInfo]:
        try:
            return self.clean_project(project, dry_run=dry_run)
        except Exception:
            path = project.path if isinstance(project, Project) else project
            logger.exception(f"Error processing project {path}")
            return []

    def _resolve(self, project: Union[Project, ProjectId]) -> HostResult[Project]:
        if isinstance(project, Project):
            return HostResult.success(project)
        return self.host.get_project(project)
