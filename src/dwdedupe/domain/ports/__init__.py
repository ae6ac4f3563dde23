"""Domain ports (interfaces) for the user store."""

from abc import ABC, abstractmethod

from dwdedupe.domain.entities import User


# Hey future me - the store is "get/set whole document by id", nothing smarter. Merge
# semantics belong to the caller: load, run the service, save what it handed back.
class IUserRepository(ABC):
    """Repository for User entities keyed by Spotify user id."""

    @abstractmethod
    async def get(self, user_id: str) -> User | None:
        """Get a user by id, None if unknown."""
        pass

    @abstractmethod
    async def save(self, user: User) -> None:
        """Insert or fully replace a user."""
        pass

    @abstractmethod
    async def list_all(self) -> list[User]:
        """List every stored user (batch sync)."""
        pass


__all__ = ["IUserRepository"]
