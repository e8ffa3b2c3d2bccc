# services/user_profile_service.py

import logging
from typing import AsyncIterator, Optional

from core.store import join_path
from models.profile import UserProfile
from services.base import USER_PROFILES, StoreService

logger = logging.getLogger(__name__)

def profile_path(user_id: str) -> str:
    return join_path(USER_PROFILES, user_id)

class UserProfileService(StoreService):
    """Краткие профили (user_profiles/{uid})"""

    async def load_user_profile(self, user_id: str) -> Optional[UserProfile]:
        try:
            snapshot = await self._run(self.store.get(profile_path(user_id)))
            if not snapshot.exists:
                return None
            return UserProfile.from_dict(snapshot.to_dict())
        except Exception as e:
            logger.error(f"❌ Ошибка загрузки профиля {user_id}: {e}")
            return None

    async def save_user_profile(self, user_id: str, profile: UserProfile) -> None:
        try:
            await self._run(self.store.set(profile_path(user_id), profile.to_dict(), merge=True))
            logger.info(f"💾 Профиль {user_id} сохранён")
        except Exception as e:
            logger.error(f"❌ Ошибка сохранения профиля {user_id}: {e}")
            raise

    async def delete_user_profile(self, user_id: str) -> None:
        try:
            await self._run(self.store.delete(profile_path(user_id)))
        except Exception as e:
            logger.error(f"❌ Ошибка удаления профиля {user_id}: {e}")
            raise

    async def has_completed_onboarding(self, user_id: str) -> bool:
        profile = await self.load_user_profile(user_id)
        return profile is not None and profile.onboarding_completed

    async def stream_user_profile(self, user_id: str) -> AsyncIterator[Optional[UserProfile]]:
        async for snapshot in self.store.watch(profile_path(user_id)):
            yield UserProfile.from_dict(snapshot.to_dict()) if snapshot.exists else None
