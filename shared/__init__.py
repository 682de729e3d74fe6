"""Shared helpers used by every tool in the repository."""
