"""SQL persistence: declarative models plus engine and unit-of-work helpers."""

from .create_tables import create_all
from .session import Base, get_engine, get_session

__all__ = ["Base", "create_all", "get_engine", "get_session"]
