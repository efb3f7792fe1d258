"""Collybrix - Agency admin tool.

This package tracks client projects, revenue and cost estimations, and
provides a lightweight project-management module (tasks, sprints, tags,
users, retrospectives) exposed through a JSON API and a small dashboard.
"""

__version__ = "0.1.0"
