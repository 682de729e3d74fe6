"""CLI interface for the Hotfix Branch Cleaner."""

import signal
import sys
from collections import defaultdict
from dataclasses import replace
from typing import Dict, List, Optional

import click

from shared.cli import confirm, create_table, error, handle_errors, info, print_table, success, warning
from shared.logger import get_logger, setup_logger

from .cleaner import RETENTION_DAYS, BranchInfo, HotfixBranchCleaner, parse_timestamp
from .config import CleanerConfig, ConfigError, normalize_groups
from .host import GitLabHost
from .scheduler import DailyScheduler

logger = get_logger(__name__)


def load_config(
    project: Optional[str] = None, groups: tuple = (), run_now: Optional[bool] = None
) -> CleanerConfig:
    """
    Read configuration from the environment and apply CLI overrides.

    Exits with status 1 if the token is missing.
    """
    try:
        config = CleanerConfig.from_env()
    except ConfigError as e:
        error(str(e))
        sys.exit(1)

    return config.with_overrides(
        project_id=project,
        group_filter=normalize_groups(groups) if groups else None,
        run_now=run_now,
    )


def build_cleaner(config: CleanerConfig) -> HotfixBranchCleaner:
    return HotfixBranchCleaner(GitLabHost(config.token, config.url), config)


def group_by_project(branches: List[BranchInfo]) -> Dict[str, List[str]]:
    """Group branch names by project path, keeping first-seen order."""
    grouped: Dict[str, List[str]] = defaultdict(list)
    for branch in branches:
        grouped[branch.project].append(branch.name)
    return dict(grouped)


def format_created(created_at: Optional[str]) -> str:
    created = parse_timestamp(created_at)
    if created is None:
        return "unknown"
    return created.strftime("%Y-%m-%d %H:%M")


def display_branches(branches: List[BranchInfo], title: str = "Hotfix Branches") -> None:
    """
    Display branches in a table.

    Args:
        branches: List of BranchInfo to display
        title: Table title
    """
    if not branches:
        info("No branches found")
        return

    table = create_table(title=title)
    table.add_column("Project", style="cyan")
    table.add_column("Branch", style="magenta")
    table.add_column("Created", style="yellow")

    for branch in branches:
        table.add_row(branch.project, branch.name, format_created(branch.created_at))

    print_table(table)


def _describe_scope(config: CleanerConfig) -> None:
    if config.project_id:
        logger.info(
            f"GitLab branch cleaner started in TEST mode for project ID: {config.project_id}"
        )
        return

    logger.info(
        "GitLab branch cleaner started. "
        "Waiting for midnight to clean hotfix branches across all projects..."
    )
    if config.group_filter:
        logger.info(f"Group filter active for: {', '.join(sorted(config.group_filter))}")


project_option = click.option(
    "--project",
    "-p",
    help="Only clean this project ID or path (overrides TEST_PROJECT_ID)",
)
group_option = click.option(
    "--group",
    "-g",
    multiple=True,
    help="Only scan projects in this top-level group (can be specified multiple times)",
)
verbose_option = click.option("--verbose", "-v", is_flag=True, help="Verbose output")


@click.group()
def main() -> None:
    """Hotfix Branch Cleaner - Remove stale hotfix branches from GitLab projects."""
    pass


@main.command()
@project_option
@group_option
@click.option(
    "--now",
    "run_now",
    is_flag=True,
    help="Run a cleanup immediately in addition to the daily schedule",
)
@verbose_option
@handle_errors
def run(project: Optional[str], group: tuple, run_now: bool, verbose: bool) -> None:
    """Run the cleanup every day at local midnight.

    Configuration is read from GITLAB_TOKEN, GITLAB_URL, GROUP_FILTER,
    TEST_PROJECT_ID and TEST_RUN (a .env file is honoured).

    Examples:

        \b
        # Start the daily scheduler
        hotfix-cleaner run

        \b
        # Clean one project right away, then keep the schedule
        hotfix-cleaner run --project 42 --now
    """
    setup_logger(level="DEBUG" if verbose else "INFO")
    config = load_config(project, group, run_now or None)
    cleaner = build_cleaner(config)

    def scheduled_cleanup() -> None:
        logger.info("Running scheduled hotfix branch cleanup...")
        cleaner.run_cleanup()

    scheduler = DailyScheduler(scheduled_cleanup)
    signal.signal(signal.SIGTERM, lambda signum, frame: scheduler.stop())

    _describe_scope(config)

    if config.run_now:
        logger.info("Running test cleanup...")
        cleaner.run_cleanup()

    try:
        scheduler.run_forever()
    except KeyboardInterrupt:
        scheduler.stop()

    logger.info("GitLab branch cleaner stopped")


@main.command()
@project_option
@group_option
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be deleted without actually deleting",
)
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Skip confirmation prompt",
)
@verbose_option
@handle_errors
def clean(project: Optional[str], group: tuple, dry_run: bool, force: bool, verbose: bool) -> None:
    """Run one cleanup now.

    Deletes hotfix branches older than 3 days in every accessible project
    (or the configured groups / single project).

    Examples:

        \b
        # Preview what would be deleted
        hotfix-cleaner clean --dry-run

        \b
        # Clean the "payments" group without prompting
        hotfix-cleaner clean --group payments --force
    """
    setup_logger(level="DEBUG" if verbose else "INFO")
    config = load_config(project, group)
    cleaner = build_cleaner(config)

    branches = cleaner.run_cleanup(dry_run=True)
    if not branches:
        success(f"No hotfix branches older than {RETENTION_DAYS} days. Nothing to clean!")
        return

    title = "Branches (Dry Run)" if dry_run else "Branches to Delete"
    display_branches(branches, title=title)

    if dry_run:
        info(f"Dry run complete. {len(branches)} branch(es) would be deleted")
        return

    if not force:
        warning(f"About to delete {len(branches)} branch(es)")
        if not confirm("Do you want to proceed?", default=False):
            info("Operation cancelled")
            return

    deleted = cleaner.delete_branches(branches)
    failed_count = len(branches) - len(deleted)

    info("Summary:")
    info(f"  Deleted: {len(deleted)}")
    if failed_count > 0:
        warning(f"  Not deleted: {failed_count}")

    if deleted:
        success("Hotfix branch cleanup completed!")
    else:
        error("No branches were deleted")
        sys.exit(1)


@main.command()
@group_option
@verbose_option
@handle_errors
def check(group: tuple, verbose: bool) -> None:
    """Show projects and hotfix branches a cleanup would touch.

    Nothing is deleted. A group filter (GROUP_FILTER or --group) is required.
    """
    setup_logger(level="DEBUG" if verbose else "INFO")
    config = load_config(groups=group)

    if not config.group_filter:
        error("GROUP_FILTER is required for checking")
        sys.exit(1)

    # Scan by group even when a single project is configured
    config = replace(config, project_id=None)
    cleaner = build_cleaner(config)
    groups = ", ".join(sorted(config.group_filter))
    info(f"Checking with group filter: {groups}")

    projects = cleaner.get_projects(dry_run=True)
    if not projects:
        warning(f"No projects found in groups: {groups}")
        return

    table = create_table(title=f"Projects ({len(projects)})")
    table.add_column("Project", style="cyan")
    table.add_column("ID", style="dim")
    table.add_column("Group", style="magenta")
    table.add_column("Default Branch", style="yellow")
    for project in projects:
        table.add_row(project.path, str(project.id), project.group, project.default_branch or "none")
    print_table(table)

    all_hotfixes: List[BranchInfo] = []
    for project in projects:
        all_hotfixes.extend(cleaner.get_hotfix_branches(project))
    display_branches(all_hotfixes, title="Hotfix Branches (any age)")

    to_delete = cleaner.run_cleanup(dry_run=True)

    info("Summary:")
    info(f"  Groups being filtered: {groups}")
    info(f"  Total projects found: {len(projects)}")
    info(f"  Total hotfix branches found: {len(all_hotfixes)}")

    if not to_delete:
        success("No hotfix branches found to delete.")
        return

    info("Branches that would be deleted:")
    for project_path, names in group_by_project(to_delete).items():
        info(f"  In {project_path}:")
        for name in names:
            info(f"    - {name}")


if __name__ == "__main__":
    main()
