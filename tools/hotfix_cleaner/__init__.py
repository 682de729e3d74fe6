"""Hotfix Branch Cleaner - Scheduled removal of stale hotfix branches."""

from .cleaner import BranchInfo, HotfixBranchCleaner
from .config import CleanerConfig
from .host import GitLabHost

__all__ = ["BranchInfo", "CleanerConfig", "GitLabHost", "HotfixBranchCleaner"]
