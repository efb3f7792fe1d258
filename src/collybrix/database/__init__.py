"""Persistence for projects, estimations and the project-management module.

``connection`` builds engines and sessions, ``models`` holds the ORM
tables, and ``queries`` the async functions the routes call.
"""

from collybrix.database.connection import create_schema, get_engine, get_session_factory
from collybrix.database.models import Base

__all__ = ["Base", "create_schema", "get_engine", "get_session_factory"]
