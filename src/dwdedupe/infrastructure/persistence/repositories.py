"""SQLAlchemy repository implementations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dwdedupe.domain.entities import Credentials, User
from dwdedupe.domain.ports import IUserRepository
from dwdedupe.infrastructure.persistence.models import UserModel, ensure_utc_aware


class UserRepository(IUserRepository):
    """SQLAlchemy implementation of User repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def get(self, user_id: str) -> User | None:
        """Get a user by Spotify id."""
        model = await self.session.get(UserModel, user_id)
        if model is None:
            return None
        return self._to_entity(model)

    # Hey future me - save() is an UPSERT that replaces every column. Whoever calls it must
    # have loaded the user first (or just created it) - there's no field-level merge here.
    async def save(self, user: User) -> None:
        """Insert or fully replace a user."""
        model = await self.session.get(UserModel, user.id)
        if model is None:
            model = UserModel(id=user.id, created_at=user.created_at)
            self.session.add(model)

        model.display_name = user.display_name
        model.access_token = user.credentials.access_token
        model.refresh_token = user.credentials.refresh_token
        model.token_type = user.credentials.token_type
        model.expires_in = user.credentials.expires_in
        model.scope = user.credentials.scope
        model.discover_weekly_id = user.discover_weekly_id
        model.dw_dedupe_id = user.dw_dedupe_id
        model.track_ids = sorted(user.track_ids)
        model.repeat_ids = sorted(user.repeat_ids)
        model.latest_repeat_ids = sorted(user.latest_repeat_ids)
        model.updated_at = user.updated_at
        model.last_synced_at = user.last_synced_at
        await self.session.flush()

    async def list_all(self) -> list[User]:
        """List every stored user, ordered by id for a stable batch order."""
        result = await self.session.execute(select(UserModel).order_by(UserModel.id))
        return [self._to_entity(model) for model in result.scalars().all()]

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            display_name=model.display_name,
            credentials=Credentials(
                access_token=model.access_token,
                refresh_token=model.refresh_token,
                token_type=model.token_type,
                expires_in=model.expires_in,
                scope=model.scope,
            ),
            discover_weekly_id=model.discover_weekly_id,
            dw_dedupe_id=model.dw_dedupe_id,
            track_ids=set(model.track_ids or []),
            repeat_ids=set(model.repeat_ids or []),
            latest_repeat_ids=set(model.latest_repeat_ids or []),
            created_at=ensure_utc_aware(model.created_at),
            updated_at=ensure_utc_aware(model.updated_at),
            last_synced_at=(
                ensure_utc_aware(model.last_synced_at) if model.last_synced_at else None
            ),
        )
