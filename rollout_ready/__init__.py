"""Rollout Ready: role-based checklists for implementation projects."""

__version__ = "1.0.0"
