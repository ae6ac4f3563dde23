"""Persistence layer: database session management and repositories."""

from dwdedupe.infrastructure.persistence.database import Database
from dwdedupe.infrastructure.persistence.repositories import UserRepository

__all__ = ["Database", "UserRepository"]
